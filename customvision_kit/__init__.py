"""
Decoding helpers for Azure Custom Vision image classifier and object detector exports.

The core (grid decoding, logistic/softmax) only needs NumPy. Image
preprocessing and drawing use OpenCV; inference runtimes are optional and
imported lazily by their backends.
"""

from .types import BoxProposal, Detection, DetectionResult, is_unavailable
from .errors import CustomVisionError, ImageDecodeError, ModelUnavailable, ShapeMismatchError
from .numeric import logistic, softmax
from .preprocess import resize_image, strip_alpha
from .engine import FunctionEngine, InferenceEngine, run_engine
from .postprocess import (
    DEFAULT_ANCHORS,
    ChannelCursor,
    ClassificationDecoder,
    GridDecoderConfig,
    GridDetectionDecoder,
    decode_detections,
)
from .config import ModelProfile, load_model_profile
from .runtime import (
    ClassificationPipeline,
    ClassifierConfig,
    DetectionPipeline,
    DetectorConfig,
    find_project_root,
    load_classifier,
    load_detector,
    load_from_profile,
    open_engine,
    resolve_path,
)
from .metadata import load_labels
from .visualize import draw_detections

__all__ = [
    "BoxProposal",
    "Detection",
    "DetectionResult",
    "is_unavailable",
    "CustomVisionError",
    "ImageDecodeError",
    "ModelUnavailable",
    "ShapeMismatchError",
    "logistic",
    "softmax",
    "resize_image",
    "strip_alpha",
    "FunctionEngine",
    "InferenceEngine",
    "run_engine",
    "DEFAULT_ANCHORS",
    "ChannelCursor",
    "ClassificationDecoder",
    "GridDecoderConfig",
    "GridDetectionDecoder",
    "decode_detections",
    "ModelProfile",
    "load_model_profile",
    "ClassificationPipeline",
    "ClassifierConfig",
    "DetectionPipeline",
    "DetectorConfig",
    "find_project_root",
    "load_classifier",
    "load_detector",
    "load_from_profile",
    "open_engine",
    "resolve_path",
    "load_labels",
    "draw_detections",
]
