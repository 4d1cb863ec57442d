from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np

from ..engine import shape_input


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CPUExecutionProvider"])
    - input_name: override the auto-selected input name if needed
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None


class OnnxRuntimeBackend:
    """
    ONNX Runtime engine for Custom Vision ONNX exports.

    Takes the flat RGB pixel buffer, reshapes it to the session's declared
    input (NHWC or NCHW) and keeps every output flattened for `get_output`.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime`."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        model_input = self.session.get_inputs()[0]
        self.input_name = cfg.input_name or model_input.name
        self.input_shape = tuple(model_input.shape)
        self.output_names = [o.name for o in self.session.get_outputs()]

        self._feed: Optional[np.ndarray] = None
        self._outputs: List[np.ndarray] = []
        logger.info("Loaded ONNX model %s (input %s %s)", self.model_path, self.input_name, self.input_shape)

    @property
    def providers_in_use(self) -> Sequence[str]:
        return tuple(self.session.get_providers())

    def allocate_buffers(self) -> None:
        # ORT allocates per run; only reset the previous call's state.
        self._feed = None
        self._outputs = []

    def set_input(self, buffer: np.ndarray) -> None:
        self._feed = shape_input(buffer, self.input_shape)

    def run(self) -> None:
        if self._feed is None:
            raise RuntimeError("set_input() must be called before run().")
        outputs = self.session.run(self.output_names, {self.input_name: self._feed})
        self._outputs = [np.asarray(o, dtype=np.float32).reshape(-1) for o in outputs]

    def get_output(self, index: int = 0) -> np.ndarray:
        if not self._outputs:
            raise RuntimeError("run() must be called before get_output().")
        return self._outputs[index]
