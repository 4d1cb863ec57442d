from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np

from ..engine import shape_input


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class TFLiteBackendConfig:
    """
    Configuration for TensorFlow Lite inference.

    - num_threads: interpreter threads (None keeps the runtime default)
    """

    num_threads: Optional[int] = None


class TFLiteBackend:
    """
    Thin wrapper around `tflite_runtime.interpreter.Interpreter`.

    The interpreter calls map one-to-one onto the engine contract:
    allocate_tensors / set_tensor / invoke / get_tensor.
    """

    def __init__(self, model_path: PathLike, cfg: TFLiteBackendConfig = TFLiteBackendConfig()):
        try:
            from tflite_runtime.interpreter import Interpreter  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "tflite-runtime is required for the TFLite backend. Install it with `pip install tflite-runtime`."
            ) from e

        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        self.interpreter = Interpreter(model_path=str(self.model_path), num_threads=cfg.num_threads)
        self._allocated = False
        logger.info("Loaded TFLite model %s", self.model_path)

    def allocate_buffers(self) -> None:
        if not self._allocated:
            self.interpreter.allocate_tensors()
            self._allocated = True

    def set_input(self, buffer: np.ndarray) -> None:
        detail = self.interpreter.get_input_details()[0]
        data = shape_input(buffer, [int(d) for d in detail["shape"]])
        self.interpreter.set_tensor(detail["index"], data.astype(detail["dtype"], copy=False))

    def run(self) -> None:
        self.interpreter.invoke()

    def get_output(self, index: int = 0) -> np.ndarray:
        detail = self.interpreter.get_output_details()[index]
        return np.asarray(self.interpreter.get_tensor(detail["index"]), dtype=np.float32).reshape(-1)
