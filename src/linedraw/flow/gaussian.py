"""
Gaussian Kernels
================

Sampled 1-D Gaussian weight tables shared by the ETF and FDoG engines.

The kernel half-width is not configured. It is derived from sigma by
sampling g(0), g(1), ... until the value drops below a fixed fraction of
the peak, so a larger sigma yields a wider kernel.
"""

import math
from functools import lru_cache

import numpy as np


# Relative to the peak g(0)
GAUSSIAN_THRESHOLD = 0.001


def gauss(x: float, mean: float, sigma: float) -> float:
    """Normal density with the given mean and standard deviation."""
    return math.exp(-((x - mean) ** 2) / (2 * sigma * sigma)) / math.sqrt(
        2.0 * math.pi * sigma * sigma
    )


@lru_cache(maxsize=64)
def _gaussian_vector(sigma: float) -> np.ndarray:
    peak = gauss(0.0, 0.0, sigma)
    cutoff = GAUSSIAN_THRESHOLD * peak

    i = 1
    while gauss(float(i), 0.0, sigma) >= cutoff:
        i += 1

    weights = np.array(
        [gauss(float(j), 0.0, sigma) for j in range(i + 1)],
        dtype=np.float64,
    )
    weights.setflags(write=False)
    return weights


def make_gaussian_vector(sigma: float) -> np.ndarray:
    """
    Build the sampled Gaussian weights g[0..k] for a sigma.

    k is the first index >= 1 at which g(k) < 0.001 * g(0); that element
    is the last one in the table. g[0] is the peak and the table is
    non-increasing.

    Args:
        sigma: Standard deviation, finite and > 0

    Returns:
        Read-only float64 array of length k + 1

    Raises:
        ValueError: If sigma is not a finite positive number
    """
    if not (math.isfinite(sigma) and sigma > 0):
        raise ValueError(f"sigma must be finite and > 0, got {sigma}")
    return _gaussian_vector(float(sigma))
