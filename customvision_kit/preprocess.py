from __future__ import annotations

from typing import Union

import numpy as np

from .errors import ImageDecodeError


ImageInput = Union[bytes, bytearray, memoryview, np.ndarray]


def _cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for image preprocessing. Install with `pip install opencv-python`.") from e
    return cv2


def decode_image(image: ImageInput) -> np.ndarray:
    """
    Decode encoded image bytes (any codec OpenCV reads) to an 8-bit BGR array.

    EXIF orientation is applied and deeper images come back as 8 bits.
    Arrays are passed through untouched.
    """

    cv2 = _cv2()
    if isinstance(image, np.ndarray):
        return image

    data = np.frombuffer(bytes(image), dtype=np.uint8)
    if data.size == 0:
        raise ImageDecodeError("Image bytes are empty.")
    try:
        decoded = cv2.imdecode(data, cv2.IMREAD_COLOR)
    except cv2.error as exc:
        raise ImageDecodeError(f"Failed to decode image bytes: {exc}") from exc
    if decoded is None:
        raise ImageDecodeError("Failed to decode image bytes.")
    return decoded


def _to_uint8(image: np.ndarray) -> np.ndarray:
    if image.dtype == np.uint8:
        return image
    if image.dtype == np.uint16:
        return (image >> 8).astype(np.uint8)
    raise ImageDecodeError(f"Unsupported image dtype {image.dtype}.")


def _to_rgba(image: np.ndarray) -> np.ndarray:
    cv2 = _cv2()
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    raise ImageDecodeError(f"Unsupported image shape {image.shape}.")


def strip_alpha(rgba: np.ndarray) -> np.ndarray:
    """
    Drop every fourth sample of a flat RGBA8 buffer, returning RGB float32.
    """

    flat = np.asarray(rgba).reshape(-1)
    if flat.shape[0] % 4 != 0:
        raise ImageDecodeError(f"RGBA buffer length {flat.shape[0]} is not a multiple of 4.")
    return flat.reshape(-1, 4)[:, :3].astype(np.float32).reshape(-1)


def resize_image(image: ImageInput, target_size: int) -> np.ndarray:
    """
    Resize an image to `target_size` x `target_size` and return its RGB pixel buffer.

    The aspect ratio is not preserved. The resized image round-trips through
    PNG before the raw RGBA pixels are read back, then the alpha channel is
    stripped. Pixel values stay in 0..255.

    Returns:
        float32 array of length target_size * target_size * 3, row-major RGB.
    """

    if target_size < 1:
        raise ValueError("target_size must be >= 1")

    cv2 = _cv2()
    decoded = _to_uint8(decode_image(image))

    try:
        resized = cv2.resize(decoded, (target_size, target_size), interpolation=cv2.INTER_LINEAR)
        ok, png = cv2.imencode(".png", resized)
    except cv2.error as exc:
        raise ImageDecodeError(f"Failed to resize image: {exc}") from exc
    if not ok:
        raise ImageDecodeError("Failed to re-encode resized image as PNG.")

    raster = decode_image(png.tobytes())
    return strip_alpha(_to_rgba(raster))
