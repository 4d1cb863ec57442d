from __future__ import annotations

import math
from typing import Callable, Optional, Protocol, Sequence

import numpy as np

from .errors import ShapeMismatchError


class InferenceEngine(Protocol):
    """
    Synchronous single-input/single-output inference contract used by the pipelines.

    Call order per image: allocate_buffers() -> set_input(buffer) -> run() -> get_output(0).
    """

    def allocate_buffers(self) -> None:
        ...

    def set_input(self, buffer: np.ndarray) -> None:
        ...

    def run(self) -> None:
        ...

    def get_output(self, index: int = 0) -> np.ndarray:
        ...


def run_engine(engine: InferenceEngine, buffer: np.ndarray, output_index: int = 0) -> np.ndarray:
    engine.allocate_buffers()
    engine.set_input(buffer)
    engine.run()
    return np.asarray(engine.get_output(output_index), dtype=np.float32).reshape(-1)


def shape_input(buffer: np.ndarray, input_shape: Sequence) -> np.ndarray:
    """
    Reshape a flat square RGB pixel buffer into a model's declared input layout.

    `input_shape` may contain dynamic dims (None, -1 or a symbolic name). A
    4-D shape with 3 in position 1 is treated as NCHW, anything else as NHWC.
    """

    flat = np.asarray(buffer, dtype=np.float32).reshape(-1)
    side = int(round(math.sqrt(flat.shape[0] / 3)))
    if side * side * 3 != flat.shape[0]:
        raise ShapeMismatchError(f"Pixel buffer of length {flat.shape[0]} is not a square RGB image.")

    hwc = flat.reshape(1, side, side, 3)
    dims = [int(d) if isinstance(d, (int, np.integer)) and d > 0 else None for d in input_shape]
    if len(dims) == 4 and dims[1] == 3 and dims[3] != 3:
        expected = (dims[2], dims[3])
        out = np.ascontiguousarray(hwc.transpose(0, 3, 1, 2))
    elif len(dims) == 4:
        expected = (dims[1], dims[2])
        out = hwc
    elif len(dims) == 3:
        expected = (dims[0], dims[1])
        out = hwc[0]
    else:
        raise ShapeMismatchError(f"Unsupported model input shape {tuple(input_shape)}.")

    for want in expected:
        if want is not None and want != side:
            raise ShapeMismatchError(f"Model expects {expected[0]}x{expected[1]} input, got {side}x{side}.")
    return out


class FunctionEngine:
    """
    Adapts a plain `infer_fn(buffer) -> output` callable to the engine contract.

    Handy for tests and for wrapping runtimes that already expose a single call.
    """

    def __init__(self, infer_fn: Callable[[np.ndarray], np.ndarray]):
        self._infer_fn = infer_fn
        self._input: Optional[np.ndarray] = None
        self._output: Optional[np.ndarray] = None

    def allocate_buffers(self) -> None:
        self._input = None
        self._output = None

    def set_input(self, buffer: np.ndarray) -> None:
        self._input = np.asarray(buffer, dtype=np.float32)

    def run(self) -> None:
        if self._input is None:
            raise RuntimeError("set_input() must be called before run().")
        self._output = np.asarray(self._infer_fn(self._input))

    def get_output(self, index: int = 0) -> np.ndarray:
        if self._output is None:
            raise RuntimeError("run() must be called before get_output().")
        if index != 0:
            raise IndexError(f"FunctionEngine has a single output, got index {index}.")
        return self._output.reshape(-1)
