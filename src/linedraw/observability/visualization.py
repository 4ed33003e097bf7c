"""
Visualization Module
====================

Presentation and diagnostic renderings of pipeline outputs.

This module generates PURELY DESCRIPTIVE artifacts.
Nothing here feeds back into edge detection.

Artifacts:
    - Anti-aliased edge mask (min-max stretch + Gaussian blur)
    - Flow preview: line integral convolution of a noise texture
      advected along the tangent field
    - Flow arrows drawn on a regular grid
"""

import logging
import math
from typing import Optional

import cv2
import numpy as np

from linedraw.flow.scheduler import RowScheduler
from linedraw.flow.tangent_field import FlowField
from linedraw.imaging.ops import gaussian_blur, normalize_min_max, resize


logger = logging.getLogger(__name__)


LIC_ITERATIONS = 5
ARROW_SPACING = 10
ARROW_COLOR = (0, 0, 255)  # BGR


def anti_alias(mask: np.ndarray, blur_size: int) -> np.ndarray:
    """
    Smooth a binary mask for display.

    The mask is stretched to [0, 255] and blurred with a
    ``blur_size x blur_size`` Gaussian using a constant border.

    Args:
        mask: (H, W) edge mask
        blur_size: Odd kernel size

    Returns:
        (H, W) uint8 image
    """
    src = mask.astype(np.float32)
    if src.max() > src.min():
        src = normalize_min_max(src, 0.0, 255.0)

    blurred = gaussian_blur(src, blur_size, border=cv2.BORDER_CONSTANT)
    return np.clip(np.rint(blurred), 0, 255).astype(np.uint8)


def visualize_flow(
    flow: FlowField,
    iterations: int = LIC_ITERATIONS,
    seed: Optional[int] = None,
    scheduler: Optional[RowScheduler] = None,
) -> np.ndarray:
    """
    Line integral convolution preview of the tangent field.

    A uniform noise texture, generated at half resolution and upsampled
    with nearest-neighbour, is sampled along the flow in both directions.
    Each advection step moves one pixel in L1 distance, split between the
    axes in proportion to the tangent components. Indices wrap around the
    image borders. Samples are weighted by exp(-k^2 / s) / (pi * s) with
    s = 2 * iterations^2.

    Args:
        flow: Tangent field
        iterations: Steps per direction
        seed: Noise seed, for reproducible previews
        scheduler: Band scheduler

    Returns:
        (H, W) uint8 preview in [0, 255]
    """
    scheduler = scheduler or RowScheduler(workers=1)
    height, width = flow.shape

    rng = np.random.default_rng(seed)
    noise = rng.uniform(0.0, 1.0, (max(height // 2, 1), max(width // 2, 1))).astype(np.float32)
    noise = resize(noise, (height, width), nearest=True)

    sigma = 2.0 * iterations * iterations
    weights = [math.exp(-(k * k) / sigma) / (math.pi * sigma) for k in range(iterations)]
    weight_sum = 2.0 * sum(weights)

    dst = np.zeros((height, width), dtype=np.float32)

    def lic_band(start: int, stop: int) -> None:
        shape = (stop - start, width)
        acc = np.zeros(shape, dtype=np.float64)

        for sign in (1.0, -1.0):
            y = np.broadcast_to(np.arange(start, stop, dtype=np.float64)[:, None], shape).copy()
            x = np.broadcast_to(np.arange(width, dtype=np.float64)[None, :], shape).copy()

            for k in range(iterations):
                ri = np.trunc(y).astype(np.intp) % height
                ci = np.trunc(x).astype(np.intp) % width
                vx = sign * flow.tx[ri, ci].astype(np.float64)
                vy = sign * flow.ty[ri, ci].astype(np.float64)

                l1 = np.abs(vx) + np.abs(vy)
                x += np.divide(vx, l1, out=np.zeros(shape), where=l1 > 0)
                y += np.divide(vy, l1, out=np.zeros(shape), where=l1 > 0)

                ri = np.trunc(y).astype(np.intp) % height
                ci = np.trunc(x).astype(np.intp) % width
                acc += weights[k] * noise[ri, ci]

        dst[start:stop] = acc / weight_sum

    scheduler.run(lic_band, height)

    preview = normalize_min_max(dst, 0.0, 255.0)
    return np.rint(preview).astype(np.uint8)


def draw_flow_arrows(
    flow: FlowField,
    canvas: Optional[np.ndarray] = None,
    spacing: int = ARROW_SPACING,
    scale: float = 4.0,
) -> np.ndarray:
    """
    Draw tangent vectors as arrows every ``spacing`` pixels.

    Args:
        flow: Tangent field
        canvas: Optional image to draw on (grayscale or BGR); white if None
        spacing: Grid spacing in pixels
        scale: Arrow length in pixels for a unit tangent

    Returns:
        (H, W, 3) uint8 BGR image
    """
    if spacing < 1:
        raise ValueError(f"spacing must be >= 1, got {spacing}")

    height, width = flow.shape
    if canvas is None:
        out = np.full((height, width, 3), 255, dtype=np.uint8)
    elif canvas.ndim == 2:
        out = cv2.cvtColor(canvas.astype(np.uint8), cv2.COLOR_GRAY2BGR)
    else:
        out = canvas.astype(np.uint8).copy()

    drawn = 0
    for y in range(spacing // 2, height, spacing):
        for x in range(spacing // 2, width, spacing):
            tx = float(flow.tx[y, x])
            ty = float(flow.ty[y, x])
            if tx == 0.0 and ty == 0.0:
                continue

            tip = (int(round(x + tx * scale)), int(round(y + ty * scale)))
            cv2.arrowedLine(out, (x, y), tip, ARROW_COLOR, 1, tipLength=0.3)
            drawn += 1

    logger.debug(f"Drew {drawn} flow arrows (spacing={spacing}px)")
    return out
