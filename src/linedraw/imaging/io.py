"""
Image I/O
=========

Decoding sources to luminance and encoding results to image bytes.

Design Rules:
    - This is the ONLY place in the codebase that decodes or encodes images
    - Sources are always read as single-channel luminance (uint8)
    - Fails fast on missing, corrupt or unsupported files
"""

import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np


logger = logging.getLogger(__name__)


SUPPORTED_EXTENSIONS = (".jpg", ".jpeg", ".png", ".bmp")

DEFAULT_JPEG_QUALITY = 100


class ImageDecodeError(Exception):
    """Raised when an image cannot be read, decoded or encoded."""
    pass


def decode_luminance(data: bytes) -> np.ndarray:
    """
    Decode encoded image bytes to a grayscale array.

    Args:
        data: PNG/JPEG/BMP file contents

    Returns:
        Grayscale image as np.ndarray (H, W), dtype=uint8

    Raises:
        ImageDecodeError: If decoding fails or the image is empty
    """
    try:
        buffer = np.frombuffer(data, np.uint8)
        gray = cv2.imdecode(buffer, cv2.IMREAD_GRAYSCALE)

        if gray is None:
            raise ImageDecodeError("Failed to decode image: cv2.imdecode returned None")

        if gray.ndim != 2 or gray.size == 0:
            raise ImageDecodeError(f"Invalid image shape: {gray.shape}")

        return gray

    except Exception as e:
        if isinstance(e, ImageDecodeError):
            raise
        raise ImageDecodeError(f"Unexpected error decoding image: {e}")


def load_luminance(path: Union[str, Path]) -> np.ndarray:
    """
    Read an image file as grayscale.

    Args:
        path: Source image path

    Returns:
        Grayscale image (H, W), dtype=uint8

    Raises:
        ImageDecodeError: If the file is missing or cannot be decoded
    """
    path = Path(path)
    if not path.is_file():
        raise ImageDecodeError(f"Source image not found: {path}")

    try:
        data = path.read_bytes()
    except OSError as e:
        raise ImageDecodeError(f"Cannot read {path}: {e}")

    gray = decode_luminance(data)
    logger.info(f"Loaded {path.name}: {gray.shape[1]}x{gray.shape[0]}")
    return gray


def check_extension(path: Union[str, Path]) -> str:
    """
    Return the lower-cased extension of ``path`` if it is supported.

    Raises:
        ImageDecodeError: If the extension is not an output format
    """
    ext = Path(path).suffix.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise ImageDecodeError(
            f"Output file type not supported: {ext or '<none>'} "
            f"(expected one of {', '.join(SUPPORTED_EXTENSIONS)})"
        )
    return ext


def to_uint8(image: np.ndarray) -> np.ndarray:
    """
    Convert an image to uint8 for encoding.

    Float images are taken to be in [0, 1]; uint8 images pass through.
    """
    if image.dtype == np.uint8:
        return image
    scaled = np.clip(np.nan_to_num(image.astype(np.float32)), 0.0, 1.0) * 255.0
    return np.rint(scaled).astype(np.uint8)


def encode_image(
    image: np.ndarray,
    ext: str = ".png",
    jpeg_quality: int = DEFAULT_JPEG_QUALITY,
) -> bytes:
    """
    Encode an image to bytes.

    Args:
        image: Grayscale (H, W) or BGR (H, W, 3) image
        ext: Target format extension (.png, .jpg, .jpeg, .bmp)
        jpeg_quality: JPEG quality when encoding JPEG

    Returns:
        Encoded file contents

    Raises:
        ImageDecodeError: If the format is unsupported or encoding fails
    """
    ext = ext.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise ImageDecodeError(f"Unsupported image format: {ext}")

    params = []
    if ext in (".jpg", ".jpeg"):
        params = [cv2.IMWRITE_JPEG_QUALITY, int(jpeg_quality)]

    ok, buffer = cv2.imencode(ext, to_uint8(image), params)
    if not ok:
        raise ImageDecodeError(f"cv2.imencode failed for format {ext}")

    return buffer.tobytes()


def save_image(
    path: Union[str, Path],
    image: np.ndarray,
    jpeg_quality: int = DEFAULT_JPEG_QUALITY,
) -> Path:
    """
    Encode ``image`` by the extension of ``path`` and write it.

    Returns:
        The written path

    Raises:
        ImageDecodeError: If the extension is unsupported or writing fails
    """
    path = Path(path)
    ext = check_extension(path)
    data = encode_image(image, ext, jpeg_quality=jpeg_quality)

    try:
        path.write_bytes(data)
    except OSError as e:
        raise ImageDecodeError(f"Cannot write {path}: {e}")

    logger.info(f"Wrote {path} ({len(data)} bytes)")
    return path
