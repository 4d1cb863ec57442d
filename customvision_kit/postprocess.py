from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .errors import ShapeMismatchError
from .numeric import logistic, softmax
from .types import DetectionResult


logger = logging.getLogger(__name__)

Anchor = Tuple[float, float]

# Anchor priors (width, height) in grid-cell units for the Custom Vision compact detector export.
DEFAULT_ANCHORS: Tuple[Anchor, ...] = (
    (0.573, 0.677),
    (1.87, 2.06),
    (3.34, 5.47),
    (7.88, 3.53),
    (9.77, 9.17),
)

# Per-anchor fields ahead of the class logits: tx, ty, tw, th, objectness.
BOX_FIELDS = 5


def parse_anchors(values: Sequence) -> Tuple[Anchor, ...]:
    """
    Normalize anchors given either as pairs `[(w, h), ...]` or flat `[w0, h0, w1, h1, ...]`.
    """

    items = list(values)
    if not items:
        raise ShapeMismatchError("At least one anchor is required.")

    if all(isinstance(v, numbers.Real) and not isinstance(v, (bool, np.bool_)) for v in items):
        if len(items) % 2 != 0:
            raise ShapeMismatchError(f"Flat anchor list must have even length, got {len(items)}.")
        return tuple((float(items[i]), float(items[i + 1])) for i in range(0, len(items), 2))

    anchors = []
    for pair in items:
        pair = tuple(pair)
        if len(pair) != 2:
            raise ShapeMismatchError(f"Anchor must be a (width, height) pair, got {pair!r}.")
        anchors.append((float(pair[0]), float(pair[1])))
    return tuple(anchors)


@dataclass(frozen=True)
class GridDecoderConfig:
    """
    Layout of a grid detector output and the acceptance threshold.

    - grid_height/grid_width: spatial size of the output grid
    - channels_per_cell: channels per cell, must equal num_anchors * (5 + num_classes)
    - num_classes: None derives it from channels_per_cell and the anchor count
    - score_threshold: proposals need objectness * class probability strictly above this
    """

    grid_height: int = 13
    grid_width: int = 13
    channels_per_cell: int = 30
    anchors: Tuple[Anchor, ...] = DEFAULT_ANCHORS
    num_classes: Optional[int] = None
    score_threshold: float = 0.05

    def __post_init__(self) -> None:
        if self.grid_height < 1 or self.grid_width < 1:
            raise ValueError("grid_height and grid_width must be >= 1")
        if self.channels_per_cell < 1:
            raise ValueError("channels_per_cell must be >= 1")
        if self.num_classes is not None and self.num_classes < 1:
            raise ValueError("num_classes must be >= 1")
        object.__setattr__(self, "anchors", parse_anchors(self.anchors))

    @property
    def num_anchors(self) -> int:
        return len(self.anchors)

    @property
    def tensor_size(self) -> int:
        return self.grid_height * self.grid_width * self.channels_per_cell


class ChannelCursor:
    """
    Forward-only reader over one grid cell's channel vector.

    Each anchor consumes a contiguous block, so the cursor simply keeps
    advancing from where the previous anchor stopped.
    """

    def __init__(self, channels: np.ndarray):
        self._channels = channels
        self._pos = 0

    @property
    def remaining(self) -> int:
        return self._channels.shape[0] - self._pos

    def take(self) -> float:
        return float(self.take_many(1)[0])

    def take_many(self, n: int) -> np.ndarray:
        if n > self.remaining:
            raise ShapeMismatchError(
                f"Cell has {self._channels.shape[0]} channels; cannot read {n} more at offset {self._pos}."
            )
        out = self._channels[self._pos : self._pos + n]
        self._pos += n
        return out


class GridDetectionDecoder:
    """
    Decode a (rows, cols, channels) grid tensor into normalized boxes and scores.

    Per cell and anchor the channels are read as
    `[tx, ty, tw, th, obj, class_logits...]`:

    - center: (logistic(tx) + col) / width, (logistic(ty) + row) / height
    - size: exp(tw) * anchor_w / width, exp(th) * anchor_h / height
    - score: max(softmax(class_logits) * logistic(obj))

    Proposals are emitted in row-major cell order, then anchor order. No
    suppression or sorting is applied.
    """

    def __init__(self, cfg: GridDecoderConfig = GridDecoderConfig()):
        self.cfg = cfg
        self.num_classes = self._resolve_num_classes(cfg)

    @staticmethod
    def _resolve_num_classes(cfg: GridDecoderConfig) -> int:
        per_anchor, rem = divmod(cfg.channels_per_cell, cfg.num_anchors)
        if rem != 0:
            raise ShapeMismatchError(
                f"channels_per_cell={cfg.channels_per_cell} is not divisible by num_anchors={cfg.num_anchors}."
            )
        derived = per_anchor - BOX_FIELDS
        if cfg.num_classes is None:
            if derived < 1:
                raise ShapeMismatchError(
                    f"channels_per_cell={cfg.channels_per_cell} leaves no class channels for {cfg.num_anchors} anchors."
                )
            return derived
        if cfg.num_classes != derived:
            raise ShapeMismatchError(
                f"channels_per_cell={cfg.channels_per_cell} does not match "
                f"{cfg.num_anchors} anchors x (5 + {cfg.num_classes} classes)."
            )
        return cfg.num_classes

    def decode(self, tensor) -> DetectionResult:
        grid = self._as_grid(tensor)
        cfg = self.cfg
        height, width = cfg.grid_height, cfg.grid_width

        result = DetectionResult()
        for grid_y in range(height):
            for grid_x in range(width):
                cursor = ChannelCursor(grid[grid_y, grid_x])
                for anchor_w, anchor_h in cfg.anchors:
                    tx, ty, tw, th, t_obj = cursor.take_many(BOX_FIELDS)
                    class_logits = cursor.take_many(self.num_classes)

                    x = (logistic(tx) + grid_x) / width
                    y = (logistic(ty) + grid_y) / height
                    w = np.exp(tw) * anchor_w / width
                    h = np.exp(th) * anchor_h / height
                    objectness = logistic(t_obj)

                    combined = softmax(class_logits) * objectness
                    best = int(np.argmax(combined))
                    score = float(combined[best])
                    if not score > cfg.score_threshold:
                        continue

                    result.append(self._corners(x, y, float(w), float(h)), score, best)

        logger.debug("Decoded %d proposals from %dx%d grid", len(result), height, width)
        return result

    # ------------------------------------------------------------------ #
    # Helper internal
    # ------------------------------------------------------------------ #
    def _as_grid(self, tensor) -> np.ndarray:
        cfg = self.cfg
        flat = np.asarray(tensor, dtype=np.float64).reshape(-1)
        if flat.shape[0] != cfg.tensor_size:
            raise ShapeMismatchError(
                f"Expected {cfg.grid_height}*{cfg.grid_width}*{cfg.channels_per_cell}={cfg.tensor_size} "
                f"values, got {flat.shape[0]}."
            )
        return flat.reshape(cfg.grid_height, cfg.grid_width, cfg.channels_per_cell)

    @staticmethod
    def _corners(x: float, y: float, w: float, h: float) -> Tuple[float, float, float, float]:
        # Every corner is clamped against 0 only; x_max/y_max may exceed 1.
        return (
            max(0.0, x - w / 2),
            max(0.0, y - h / 2),
            max(0.0, x + w / 2),
            max(0.0, y + h / 2),
        )


def decode_detections(
    tensor,
    anchors: Sequence = DEFAULT_ANCHORS,
    score_threshold: float = 0.05,
    *,
    grid_height: int = 13,
    grid_width: int = 13,
    channels_per_cell: int = 30,
) -> DetectionResult:
    """
    Functional form of `GridDetectionDecoder(...).decode(tensor)`.
    """

    cfg = GridDecoderConfig(
        grid_height=grid_height,
        grid_width=grid_width,
        channels_per_cell=channels_per_cell,
        anchors=parse_anchors(anchors),
        score_threshold=score_threshold,
    )
    return GridDetectionDecoder(cfg).decode(tensor)


class ClassificationDecoder:
    """
    Pass-through decoder for classifier exports: the output vector already holds per-class scores.

    The vector must hold exactly `num_classes` values; anything else raises
    `ShapeMismatchError`. Exports that append a background slot need
    `num_classes` set to include it (e.g. 11 for 10 classes plus background).
    """

    def __init__(self, num_classes: int = 10):
        if num_classes < 1:
            raise ValueError("num_classes must be >= 1")
        self.num_classes = num_classes

    def decode(self, raw) -> List[float]:
        scores = np.asarray(raw, dtype=np.float32).reshape(-1)
        if scores.shape[0] != self.num_classes:
            raise ShapeMismatchError(f"Expected {self.num_classes} class scores, got {scores.shape[0]}.")
        return [float(s) for s in scores]

    def unavailable(self) -> List[float]:
        return [float("nan")] * self.num_classes
