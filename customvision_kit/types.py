from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple


# (x_min, y_min, x_max, y_max), normalized to the model input.
BoxProposal = Tuple[float, float, float, float]


@dataclass
class Detection:
    """
    Pixel-space detection, used for drawing on the original image.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    score: float
    class_id: Optional[int] = None

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2


@dataclass
class DetectionResult:
    """
    Decoded grid proposals as parallel lists; index i of each list belongs together.

    Boxes are in normalized corner form. `class_ids` holds the argmax class
    of each proposal's combined score.
    """

    boxes: List[BoxProposal] = field(default_factory=list)
    scores: List[float] = field(default_factory=list)
    class_ids: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.boxes)

    def append(self, box: BoxProposal, score: float, class_id: int) -> None:
        self.boxes.append(box)
        self.scores.append(score)
        self.class_ids.append(class_id)

    def as_pair(self) -> Tuple[List[BoxProposal], List[float]]:
        return self.boxes, self.scores

    def to_detections(self, width: int, height: int) -> List[Detection]:
        """Scale normalized boxes to a `width` x `height` image."""
        return [
            Detection(
                x1=x1 * width,
                y1=y1 * height,
                x2=x2 * width,
                y2=y2 * height,
                score=score,
                class_id=cls_id,
            )
            for (x1, y1, x2, y2), score, cls_id in zip(self.boxes, self.scores, self.class_ids)
        ]

    def to_dict(self, class_names: Optional[Dict[int, str]] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "boxes": [list(b) for b in self.boxes],
            "scores": list(self.scores),
            "class_ids": list(self.class_ids),
        }
        if class_names:
            payload["labels"] = [class_names.get(c, str(c)) for c in self.class_ids]
        return payload


def is_unavailable(scores: Sequence[float]) -> bool:
    """True for the all-NaN classification sentinel returned when no model is loaded."""
    return len(scores) > 0 and all(math.isnan(s) for s in scores)
