from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .postprocess import DEFAULT_ANCHORS, GridDecoderConfig, parse_anchors


TASKS = ("classification", "detection")

DEFAULT_INPUT_SIZES = {"classification": 300, "detection": 416}


@dataclass(frozen=True)
class ModelProfile:
    """
    Describes one exported model: which task it serves and how to read its output.
    """

    schema_version: int
    task: str
    input_size: int
    num_classes: Optional[int] = None
    grid_size: Tuple[int, int] = (13, 13)
    channels_per_cell: int = 30
    anchors: Tuple[Tuple[float, float], ...] = DEFAULT_ANCHORS
    score_threshold: float = 0.05
    model: Optional[str] = None
    labels: Optional[str] = None

    def __post_init__(self) -> None:
        if self.schema_version != 1:
            raise ValueError("model profile schema_version must be 1")
        if self.task not in TASKS:
            raise ValueError(f"task must be one of {list(TASKS)}")
        if self.input_size < 1:
            raise ValueError("input_size must be >= 1")
        if self.num_classes is not None and self.num_classes < 1:
            raise ValueError("num_classes must be >= 1")
        if not 0.0 <= self.score_threshold < 1.0:
            raise ValueError("score_threshold must be in [0, 1)")

    def decoder_config(self) -> GridDecoderConfig:
        grid_h, grid_w = self.grid_size
        return GridDecoderConfig(
            grid_height=grid_h,
            grid_width=grid_w,
            channels_per_cell=self.channels_per_cell,
            anchors=self.anchors,
            num_classes=self.num_classes,
            score_threshold=self.score_threshold,
        )


def _require_str(payload: Dict[str, Any], key: str) -> str:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def _require_int(payload: Dict[str, Any], key: str) -> int:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    return _as_int(payload[key], key)


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _as_number(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _optional_str(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{key} must be a string if provided")
    return value


def load_model_profile(path: Path) -> ModelProfile:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Model profile not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid model profile JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Model profile must be a JSON object")

    allowed = {
        "schema_version",
        "task",
        "input_size",
        "num_classes",
        "grid_size",
        "channels_per_cell",
        "anchors",
        "score_threshold",
        "model",
        "labels",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown model profile keys: {unknown}")

    schema_version = _require_int(payload, "schema_version")
    task = _require_str(payload, "task")
    if task not in TASKS:
        raise ValueError(f"task must be one of {list(TASKS)}")

    kwargs: Dict[str, Any] = {}
    if "input_size" in payload:
        kwargs["input_size"] = _as_int(payload["input_size"], "input_size")
    else:
        kwargs["input_size"] = DEFAULT_INPUT_SIZES[task]
    if payload.get("num_classes") is not None:
        kwargs["num_classes"] = _as_int(payload["num_classes"], "num_classes")
    if "grid_size" in payload:
        grid = payload["grid_size"]
        if not isinstance(grid, list) or len(grid) != 2:
            raise ValueError("grid_size must be a [height, width] list")
        kwargs["grid_size"] = (_as_int(grid[0], "grid_size"), _as_int(grid[1], "grid_size"))
    if "channels_per_cell" in payload:
        kwargs["channels_per_cell"] = _as_int(payload["channels_per_cell"], "channels_per_cell")
    if "anchors" in payload:
        anchors: List[Any] = payload["anchors"]
        if not isinstance(anchors, list):
            raise ValueError("anchors must be a list")
        kwargs["anchors"] = parse_anchors(anchors)
    if "score_threshold" in payload:
        kwargs["score_threshold"] = _as_number(payload["score_threshold"], "score_threshold")

    model = _optional_str(payload, "model")
    labels = _optional_str(payload, "labels")

    return ModelProfile(
        schema_version=schema_version,
        task=task,
        model=model,
        labels=labels,
        **kwargs,
    )
