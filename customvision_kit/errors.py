class CustomVisionError(Exception):
    """Base class for errors raised by customvision_kit."""


class ModelUnavailable(CustomVisionError, RuntimeError):
    """Raised when an inference path needs a model but none is loaded."""


class ImageDecodeError(CustomVisionError, ValueError):
    """Raised when input image bytes cannot be decoded, resized or re-encoded."""


class ShapeMismatchError(CustomVisionError, ValueError):
    """Raised when a raw tensor or a decoder layout disagrees with the expected grid/channel shape."""
