from __future__ import annotations

from pathlib import Path
from typing import Dict, Union


def load_labels(labels_path: Union[str, Path]) -> Dict[int, str]:
    """
    Load class labels exported next to a Custom Vision model.

    Two formats are understood:

    - `labels.txt`: one label per line, the line index is the class id
    - a lightweight `names:` mapping (as in a metadata.yaml):

        names:
          0: person
          1: bicycle

    Blank lines and `#` comments are skipped in both.
    """

    path = Path(labels_path)
    if not path.exists():
        raise FileNotFoundError(f"Labels file not found: {path}")

    lines = [raw.strip() for raw in path.read_text(encoding="utf-8").splitlines()]
    lines = [line for line in lines if line and not line.startswith("#")]

    if "names:" not in lines:
        return {i: line for i, line in enumerate(lines)}

    names: Dict[int, str] = {}
    for line in lines[lines.index("names:") + 1 :]:
        # Parse "id: label"
        if ":" not in line:
            continue
        left, right = line.split(":", 1)
        left = left.strip()
        right = right.strip().strip("'").strip('"')
        if not left.isdigit():
            continue
        names[int(left)] = right
    return names
