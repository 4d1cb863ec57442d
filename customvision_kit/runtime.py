from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .config import ModelProfile, load_model_profile
from .engine import InferenceEngine, run_engine
from .errors import ModelUnavailable
from .postprocess import ClassificationDecoder, GridDecoderConfig, GridDetectionDecoder
from .preprocess import ImageInput, resize_image
from .types import DetectionResult


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def find_project_root(start: Optional[PathLike] = None, markers: Sequence[str] = ("pyproject.toml", ".git")) -> Path:
    """
    Walk up from `start` (default: cwd) to the first directory holding one of `markers`.

    Falls back to the starting directory when none is found.
    """

    here = Path(start if start is not None else Path.cwd()).resolve()
    if here.is_file():
        here = here.parent
    candidates = (here, *here.parents)
    return next((d for d in candidates if any((d / m).exists() for m in markers)), here)


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Absolute paths pass through; relative ones are joined onto `root`.

    `root="auto"` (or None) uses `find_project_root()`, so model and label
    paths in profiles work from any working directory inside a checkout.
    """

    target = Path(path)
    if target.is_absolute():
        return target
    base = find_project_root() if root in ("auto", None) else Path(root).resolve()
    return (base / target).resolve()


@dataclass(frozen=True)
class ClassifierConfig:
    input_size: int = 300
    num_classes: int = 10
    output_index: int = 0


@dataclass(frozen=True)
class DetectorConfig:
    input_size: int = 416
    decoder: GridDecoderConfig = GridDecoderConfig()
    output_index: int = 0


class ClassificationPipeline:
    """
    resize (300x300 by default) -> inference -> per-class scores.

    Without an engine every call returns the all-NaN sentinel instead of raising.
    """

    def __init__(self, engine: Optional[InferenceEngine], cfg: ClassifierConfig = ClassifierConfig()):
        self.engine = engine
        self.cfg = cfg
        self.decoder = ClassificationDecoder(cfg.num_classes)

    def __call__(self, image: ImageInput) -> List[float]:
        if self.engine is None:
            logger.warning("No classification model loaded; returning NaN scores.")
            return self.decoder.unavailable()

        pixels = resize_image(image, self.cfg.input_size)
        raw = run_engine(self.engine, pixels, self.cfg.output_index)
        return self.decoder.decode(raw)


class DetectionPipeline:
    """
    resize (416x416 by default) -> inference -> grid decode.

    The pipeline owns its engine; concurrent callers should each use their own
    pipeline instance.
    """

    def __init__(self, engine: Optional[InferenceEngine], cfg: DetectorConfig = DetectorConfig()):
        self.engine = engine
        self.cfg = cfg
        self.decoder = GridDetectionDecoder(cfg.decoder)

    def __call__(self, image: ImageInput) -> DetectionResult:
        if self.engine is None:
            raise ModelUnavailable("No detection model loaded.")

        pixels = resize_image(image, self.cfg.input_size)
        raw = run_engine(self.engine, pixels, self.cfg.output_index)
        logger.debug("Detector output has %d values", raw.shape[0])
        return self.decoder.decode(raw)


def open_engine(
    model_path: PathLike,
    *,
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
    onnx_providers: Optional[Sequence[str]] = None,
    tflite_threads: Optional[int] = None,
    torch_device: str = "cpu",
) -> InferenceEngine:
    """
    Open an inference engine for a model on disk.

    Args:
        model_path: model file; relative paths resolve against the project root by default
        backend: "onnxruntime", "tflite" or "torchscript"; None infers it from the extension
    """

    resolved = resolve_path(model_path, root=root)
    chosen = backend
    if chosen is None:
        suffix = resolved.suffix.lower()
        if suffix == ".onnx":
            chosen = "onnxruntime"
        elif suffix == ".tflite":
            chosen = "tflite"
        elif suffix in {".torchscript", ".ts", ".pt"}:
            chosen = "torchscript"
        else:
            raise ValueError(
                f"Could not infer backend from extension '{suffix}'. Pass backend=... explicitly."
            )

    chosen = chosen.lower()
    if chosen == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        return OnnxRuntimeBackend(resolved, OnnxRuntimeBackendConfig(providers=onnx_providers))

    if chosen == "tflite":
        from .backends.tflite_backend import TFLiteBackend, TFLiteBackendConfig

        return TFLiteBackend(resolved, TFLiteBackendConfig(num_threads=tflite_threads))

    if chosen == "torchscript":
        from .backends.torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

        return TorchScriptBackend(resolved, TorchScriptBackendConfig(device=torch_device))

    raise ValueError(f"Unsupported backend: {backend!r}")


def load_classifier(
    model_path: Optional[PathLike],
    *,
    cfg: ClassifierConfig = ClassifierConfig(),
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
) -> ClassificationPipeline:
    """
    Create a classification pipeline. `model_path=None` yields a pipeline that
    returns the NaN sentinel.
    """

    engine = open_engine(model_path, backend=backend, root=root) if model_path is not None else None
    return ClassificationPipeline(engine, cfg)


def load_detector(
    model_path: PathLike,
    *,
    cfg: DetectorConfig = DetectorConfig(),
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
) -> DetectionPipeline:
    return DetectionPipeline(open_engine(model_path, backend=backend, root=root), cfg)


def pipeline_from_profile(
    profile: ModelProfile,
    *,
    model_path: Optional[PathLike] = None,
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
) -> Union[ClassificationPipeline, DetectionPipeline]:
    """
    Build the pipeline a profile describes. `model_path` overrides the profile's `model`.
    """

    path = model_path if model_path is not None else profile.model
    if profile.task == "classification":
        cfg = ClassifierConfig(input_size=profile.input_size, num_classes=profile.num_classes or 10)
        return load_classifier(path, cfg=cfg, backend=backend, root=root)

    if path is None:
        raise ModelUnavailable("Detection profile does not name a model and none was given.")
    det_cfg = DetectorConfig(input_size=profile.input_size, decoder=profile.decoder_config())
    return load_detector(path, cfg=det_cfg, backend=backend, root=root)


def load_from_profile(profile_path: PathLike, **kwargs) -> Union[ClassificationPipeline, DetectionPipeline]:
    return pipeline_from_profile(load_model_profile(Path(profile_path)), **kwargs)
