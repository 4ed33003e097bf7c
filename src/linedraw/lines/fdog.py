"""
Flow-Based Difference of Gaussians
==================================

The FDoG edge detector driven by an edge tangent flow field.

Stages (each ends at a barrier):
    1. Gradient-DoG: sample the luminance across the flow, along the
       perpendicular of the local tangent, and subtract a rho-weighted
       wide Gaussian mean from a narrow one.
    2. Flow-DoG: integrate the gradient-DoG along the flow, following
       the local tangent forward and backward, then map the mean through
       1 (if positive) or 1 + tanh(mean).
    3. Global min-max normalization of the flow-DoG response.
    4. Threshold at tau: 255 where response >= tau, else 0.

Boundary policy:
    Samples whose position leaves the image are skipped and excluded
    from the weight sums. They are never zero-filled.

Positions are rounded half-up to the nearest pixel. All positions are
non-negative when sampled, so floor(p + 0.5) is used.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from linedraw.flow.gaussian import make_gaussian_vector
from linedraw.flow.scheduler import RowScheduler
from linedraw.flow.tangent_field import FlowField
from linedraw.imaging.ops import gaussian_blur, normalize_min_max


logger = logging.getLogger(__name__)


RESEED_BLUR_SIZE = 3


def _round_index(pos: np.ndarray, limit: int) -> np.ndarray:
    return np.clip(np.floor(pos + 0.5).astype(np.intp), 0, limit - 1)


def _padded_weights(weights: np.ndarray, length: int) -> np.ndarray:
    out = np.zeros(length, dtype=np.float64)
    out[: len(weights)] = weights
    return out


def gradient_dog(
    src: np.ndarray,
    flow: FlowField,
    sigma_c: float,
    sigma_r: float,
    rho: float,
    scheduler: Optional[RowScheduler] = None,
) -> np.ndarray:
    """
    Difference of Gaussians across the flow.

    Args:
        src: (H, W) float32 luminance in [0, 1]
        flow: Tangent field of the same shape
        sigma_c: Center sigma
        sigma_r: Surround/center sigma ratio
        rho: Surround weight
        scheduler: Band scheduler

    Returns:
        (H, W) float32 response center_mean - rho * surround_mean
    """
    scheduler = scheduler or RowScheduler(workers=1)
    height, width = src.shape

    gau_c = make_gaussian_vector(sigma_c)
    gau_s = make_gaussian_vector(sigma_r * sigma_c)
    kernel = max(len(gau_c), len(gau_s)) - 1
    w_c = _padded_weights(gau_c, kernel + 1)
    w_s = _padded_weights(gau_s, kernel + 1)

    dst = np.zeros((height, width), dtype=np.float32)
    cols = np.arange(width, dtype=np.float64)[None, :]

    def gradient_band(start: int, stop: int) -> None:
        rows = np.arange(start, stop, dtype=np.float64)[:, None]
        # Perpendicular of the tangent (tx, ty) is (-ty, tx)
        nx = -flow.ty[start:stop].astype(np.float64)
        ny = flow.tx[start:stop].astype(np.float64)
        center_pixels = src[start:stop].astype(np.float64)

        c_acc = np.zeros((stop - start, width), dtype=np.float64)
        s_acc = np.zeros_like(c_acc)
        c_wsum = np.zeros_like(c_acc)
        s_wsum = np.zeros_like(c_acc)

        for step in range(-kernel, kernel + 1):
            row = rows + ny * step
            col = cols + nx * step
            inside = (row >= 0.0) & (row <= height - 1) & (col >= 0.0) & (col <= width - 1)

            value = src[_round_index(row, height), _round_index(col, width)].astype(np.float64)
            idx = abs(step)
            wc = np.where(inside, w_c[idx], 0.0)
            ws = np.where(inside, w_s[idx], 0.0)

            c_acc += value * wc
            s_acc += value * ws
            c_wsum += wc
            s_wsum += ws

        center = np.divide(c_acc, c_wsum, out=center_pixels.copy(), where=c_wsum > 0)
        surround = np.divide(s_acc, s_wsum, out=center_pixels.copy(), where=s_wsum > 0)
        dst[start:stop] = center - rho * surround

    scheduler.run(gradient_band, height)
    return dst


def flow_dog_response(
    dog: np.ndarray,
    flow: FlowField,
    sigma_m: float,
    scheduler: Optional[RowScheduler] = None,
) -> np.ndarray:
    """
    Raw (unnormalized) flow-DoG response in (0, 1].

    The accumulator is seeded with -g[0] * dog(p) so that the center
    sample, visited by both the forward and the backward walk, counts
    once. Each walk stops on a zero tangent or when the position leaves
    the image.

    Args:
        dog: (H, W) gradient-DoG response
        flow: Tangent field of the same shape
        sigma_m: Integration sigma
        scheduler: Band scheduler

    Returns:
        (H, W) float32 array of 1 where the mean is positive, else 1 + tanh(mean)
    """
    scheduler = scheduler or RowScheduler(workers=1)
    height, width = dog.shape

    gau = make_gaussian_vector(sigma_m)
    kernel_half = len(gau) - 1

    dst = np.zeros((height, width), dtype=np.float32)

    def flow_band(start: int, stop: int) -> None:
        shape = (stop - start, width)
        center = dog[start:stop].astype(np.float64)
        acc = -gau[0] * center
        wsum = np.full(shape, -gau[0], dtype=np.float64)

        for sign in (1.0, -1.0):
            pos_y = np.broadcast_to(
                np.arange(start, stop, dtype=np.float64)[:, None], shape
            ).copy()
            pos_x = np.broadcast_to(np.arange(width, dtype=np.float64)[None, :], shape).copy()
            active = np.ones(shape, dtype=bool)

            for step in range(kernel_half):
                active &= (pos_x >= 0.0) & (pos_x <= width - 1) & (pos_y >= 0.0) & (pos_y <= height - 1)
                ri = _round_index(pos_y, height)
                ci = _round_index(pos_x, width)

                dir_x = sign * flow.tx[ri, ci].astype(np.float64)
                dir_y = sign * flow.ty[ri, ci].astype(np.float64)
                active &= ~((dir_x == 0.0) & (dir_y == 0.0))
                if not active.any():
                    break

                weight = np.where(active, gau[step], 0.0)
                acc += dog[ri, ci].astype(np.float64) * weight
                wsum += weight

                pos_x = np.where(active, pos_x + dir_x, pos_x)
                pos_y = np.where(active, pos_y + dir_y, pos_y)

                next_x = np.floor(pos_x + 0.5)
                next_y = np.floor(pos_y + 0.5)
                active &= (next_x >= 0) & (next_x <= width - 1) & (next_y >= 0) & (next_y <= height - 1)

        mean = np.divide(acc, wsum, out=center.copy(), where=wsum != 0)
        dst[start:stop] = np.where(mean > 0, 1.0, 1.0 + np.tanh(mean))

    scheduler.run(flow_band, height)
    return dst


def flow_dog(
    dog: np.ndarray,
    flow: FlowField,
    sigma_m: float,
    scheduler: Optional[RowScheduler] = None,
) -> np.ndarray:
    """Flow-DoG response, min-max normalized to [0, 1] over the image."""
    raw = flow_dog_response(dog, flow, sigma_m, scheduler)
    return normalize_min_max(raw, 0.0, 1.0)


def binary_threshold(response: np.ndarray, tau: float) -> np.ndarray:
    """255 where ``response >= tau``, 0 elsewhere, as uint8."""
    return np.where(response >= tau, 255, 0).astype(np.uint8)


def reseed(src: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """
    Prepare the source for the next FDoG pass.

    Zeroes source pixels where the mask is 0 and blurs the result with a
    small Gaussian. Returns a new array.
    """
    if src.shape != mask.shape:
        raise ValueError(f"Mask shape {mask.shape} does not match source {src.shape}")
    seeded = np.where(mask == 0, np.float32(0.0), src).astype(np.float32)
    return gaussian_blur(seeded, RESEED_BLUR_SIZE)


@dataclass(frozen=True, slots=True)
class FdogPass:
    """
    Buffers produced by one FDoG pass.

    Attributes:
        dog: Gradient-DoG response
        response: Normalized flow-DoG response in [0, 1]
        mask: Edge mask in {0, 255}
        flat: True when the flow-DoG response had no dynamic range
    """

    dog: np.ndarray
    response: np.ndarray
    mask: np.ndarray
    flat: bool
