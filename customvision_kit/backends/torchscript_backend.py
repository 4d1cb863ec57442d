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
class TorchScriptBackendConfig:
    """
    Configuration for TorchScript inference.

    - device: "cpu" or "cuda" (if available)
    - channels_first: feed NCHW (PyTorch convention) instead of NHWC
    - output_index: if the model returns multiple outputs, select this index
    """

    device: str = "cpu"
    channels_first: bool = True
    output_index: int = 0


class TorchScriptBackend:
    """
    TorchScript engine using `torch.jit.load`.
    """

    def __init__(self, model_path: PathLike, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()):
        try:
            import torch  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("torch is required for the TorchScript backend. Install with `pip install torch`.") from e

        self._torch = torch
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        self.device = torch.device(cfg.device)
        self.cfg = cfg

        model = torch.jit.load(str(self.model_path), map_location=self.device)
        model.eval()
        self.model = model

        self._input: Optional[object] = None
        self._output: Optional[np.ndarray] = None
        logger.info("Loaded TorchScript model %s on %s", self.model_path, self.device)

    def allocate_buffers(self) -> None:
        self._input = None
        self._output = None

    def set_input(self, buffer: np.ndarray) -> None:
        layout = (-1, 3, -1, -1) if self.cfg.channels_first else (-1, -1, -1, 3)
        blob = shape_input(buffer, layout)
        self._input = self._torch.as_tensor(blob, device=self.device).float().contiguous()

    def run(self) -> None:
        torch = self._torch
        if self._input is None:
            raise RuntimeError("set_input() must be called before run().")

        with torch.no_grad():
            y = self.model(self._input)

        if isinstance(y, (tuple, list)):
            y = y[self.cfg.output_index]
        self._output = y.detach().to("cpu").numpy().astype(np.float32).reshape(-1)

    def get_output(self, index: int = 0) -> np.ndarray:
        if self._output is None:
            raise RuntimeError("run() must be called before get_output().")
        if index != 0:
            raise IndexError(f"TorchScriptBackend exposes one output, got index {index}.")
        return self._output
