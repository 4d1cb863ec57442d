from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from .types import Detection, DetectionResult


_PALETTE = [
    (56, 56, 255),
    (31, 112, 255),
    (49, 210, 207),
    (10, 249, 72),
    (187, 212, 0),
    (255, 194, 0),
    (236, 24, 0),
    (255, 56, 132),
]


def _color_for_class_id(class_id: Optional[int]) -> Tuple[int, int, int]:
    """BGR color for a class id; ids past the palette cycle through it."""
    if class_id is None:
        return (0, 255, 255)
    return _PALETTE[class_id % len(_PALETTE)]


def draw_detections(
    image_bgr: np.ndarray,
    detections: Union[DetectionResult, Iterable[Detection]],
    *,
    class_names: Optional[Dict[int, str]] = None,
    show_score: bool = True,
    box_thickness: int = 2,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw boxes + labels on a copy of an OpenCV BGR image.

    A `DetectionResult` (normalized boxes) is scaled to the image size
    first; plain `Detection` objects are taken as pixel coordinates.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]

    items: List[Detection]
    if isinstance(detections, DetectionResult):
        items = detections.to_detections(w, h)
    else:
        items = list(detections)

    for det in items:
        x1, y1, x2, y2 = (int(round(v)) for v in det.as_xyxy())
        x1, x2 = (int(np.clip(v, 0, w - 1)) for v in (x1, x2))
        y1, y2 = (int(np.clip(v, 0, h - 1)) for v in (y1, y2))

        color = _color_for_class_id(det.class_id)
        cv2.rectangle(out, (x1, y1), (x2, y2), color, thickness=box_thickness)

        if det.class_id is None:
            label = "object"
        else:
            label = class_names.get(det.class_id, str(det.class_id)) if class_names else str(det.class_id)
        if show_score:
            label = f"{label} {det.score:.2f}"

        (tw, th), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        # Label sits above the box unless that would leave the image.
        top = y1 - th - baseline if y1 - th - baseline >= 0 else y1
        cv2.rectangle(out, (x1, top), (min(x1 + tw, w - 1), min(top + th + baseline, h - 1)), color, thickness=-1)
        cv2.putText(
            out,
            label,
            (x1, min(top + th, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (255, 255, 255),
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out
