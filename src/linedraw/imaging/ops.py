"""
Dense Image Operations
======================

Thin OpenCV wrappers for the matrix primitives the engines depend on:
directional derivatives, magnitude, min-max normalization, Gaussian blur
and resizing. Nothing here is specific to line drawing.
"""

from typing import Tuple

import cv2
import numpy as np


SOBEL_KERNEL_SIZE = 5


def to_luminance(image: np.ndarray) -> np.ndarray:
    """
    Private float32 luminance copy in [0, 1].

    uint8 input is scaled by 1/255; float input is taken as already in
    [0, 1]. NaN and infinities are replaced and values clipped so that
    malformed samples never reach the engines.

    Raises:
        ValueError: If the image is not a non-empty 2-D array
    """
    if image.ndim != 2 or image.size == 0:
        raise ValueError(f"Expected a non-empty 2-D luminance image, got shape {image.shape}")

    if image.dtype == np.uint8:
        return image.astype(np.float32) / np.float32(255.0)

    lum = np.nan_to_num(image.astype(np.float32), nan=0.0, posinf=1.0, neginf=0.0)
    return np.clip(lum, 0.0, 1.0)


def normalize_min_max(src: np.ndarray, lo: float = 0.0, hi: float = 1.0) -> np.ndarray:
    """
    Rescale ``src`` linearly so its range becomes [lo, hi].

    A constant input maps to ``lo`` everywhere.
    """
    src = np.ascontiguousarray(src, dtype=np.float32)
    return cv2.normalize(src, None, lo, hi, cv2.NORM_MINMAX, dtype=cv2.CV_32F)


def directional_derivative(
    image: np.ndarray,
    axis: int,
    kernel_size: int = SOBEL_KERNEL_SIZE,
) -> np.ndarray:
    """
    Sobel derivative of a float image.

    Args:
        image: (H, W) float32 image
        axis: 1 for d/dx (along columns), 0 for d/dy (along rows)
        kernel_size: Sobel aperture (1, 3, 5 or 7)
    """
    if axis not in (0, 1):
        raise ValueError(f"axis must be 0 or 1, got {axis}")
    dx, dy = (1, 0) if axis == 1 else (0, 1)
    return cv2.Sobel(
        np.ascontiguousarray(image, dtype=np.float32),
        cv2.CV_32F,
        dx,
        dy,
        ksize=kernel_size,
        scale=1,
        delta=0,
        borderType=cv2.BORDER_DEFAULT,
    )


def magnitude(grad_x: np.ndarray, grad_y: np.ndarray) -> np.ndarray:
    """Per-pixel sqrt(gx^2 + gy^2)."""
    return cv2.magnitude(
        np.ascontiguousarray(grad_x, dtype=np.float32),
        np.ascontiguousarray(grad_y, dtype=np.float32),
    )


def gaussian_blur(
    image: np.ndarray,
    kernel_size: int,
    border: int = cv2.BORDER_DEFAULT,
) -> np.ndarray:
    """Gaussian blur with a square kernel; sigma derived from the size."""
    if kernel_size < 1 or kernel_size % 2 == 0:
        raise ValueError(f"kernel_size must be odd and >= 1, got {kernel_size}")
    return cv2.GaussianBlur(image, (kernel_size, kernel_size), 0.0, 0.0, borderType=border)


def resize(image: np.ndarray, size: Tuple[int, int], nearest: bool = False) -> np.ndarray:
    """
    Resize to ``size`` given as (height, width).

    Bilinear by default, nearest-neighbour when ``nearest`` is set.
    """
    height, width = size
    interpolation = cv2.INTER_NEAREST if nearest else cv2.INTER_LINEAR
    return cv2.resize(image, (width, height), interpolation=interpolation)
