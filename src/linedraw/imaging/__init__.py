"""
Imaging Module
==============

Image collaborators used by the line drawing engines.

This module provides:
    - Decoding to luminance and encoding to PNG/JPEG/BMP
    - Sobel derivatives, magnitude, min-max normalization
    - Gaussian blur and resizing
"""

from linedraw.imaging.io import (
    SUPPORTED_EXTENSIONS,
    ImageDecodeError,
    check_extension,
    decode_luminance,
    encode_image,
    load_luminance,
    save_image,
)
from linedraw.imaging.ops import (
    directional_derivative,
    gaussian_blur,
    magnitude,
    normalize_min_max,
    resize,
    to_luminance,
)

__all__ = [
    # I/O
    "SUPPORTED_EXTENSIONS",
    "ImageDecodeError",
    "check_extension",
    "decode_luminance",
    "encode_image",
    "load_luminance",
    "save_image",
    # Operations
    "directional_derivative",
    "gaussian_blur",
    "magnitude",
    "normalize_min_max",
    "resize",
    "to_luminance",
]
