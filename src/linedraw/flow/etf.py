"""
Edge Tangent Flow
=================

Construction and refinement of the edge tangent flow (ETF) field.

Bootstrap:
    1. Min-max normalize the luminance to [0, 1]
    2. Sobel derivatives gx, gy (5x5)
    3. Gradient magnitude, min-max normalized to [0, 1]
    4. Unit gradient direction rotated +90 degrees so that vectors run
       along edges instead of across them

Refinement (one pass):
    t_new(p) = sum_q phi(p, q) * t(q) * ws(p, q) * wm(p, q) * wd(p, q)

    wd = |t(p) . t(q)|                      direction weight
    phi = +1 if t(p) . t(q) > 0 else -1     sign correction
    ws = 1 if |p - q| < radius else 0       crisp spatial window
    wm = (1 + tanh(mag(p) - mag(q))) / 2    magnitude weight

Every pass reads the previous field snapshot and writes a separate
buffer, which is normalized and published as a new FlowField once all
bands have finished.

Reference:
    Kang, H., Lee, S., & Chui, C. K. (2007). Coherent Line Drawing.
    Proc. Non-Photorealistic Animation and Rendering (NPAR), 43-50.
"""

import logging
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np

from linedraw.flow.scheduler import RowScheduler
from linedraw.flow.tangent_field import FlowField, normalize_vectors, rotate_quarter_turn
from linedraw.imaging.ops import (
    directional_derivative,
    magnitude,
    normalize_min_max,
    to_luminance,
)
from linedraw.observability.progress import ProgressCallback, ProgressTracker, Stage


logger = logging.getLogger(__name__)


class EtfState(str, Enum):
    """Lifecycle of the ETF engine."""

    EMPTY = "EMPTY"
    BOOTSTRAPPED = "BOOTSTRAPPED"
    REFINED = "REFINED"


def window_offsets(radius: int) -> List[Tuple[int, int]]:
    """(dy, dx) offsets strictly inside the circle of ``radius``."""
    return [
        (dy, dx)
        for dy in range(-radius, radius + 1)
        for dx in range(-radius, radius + 1)
        if dy * dy + dx * dx < radius * radius
    ]


def magnitude_weight(center: np.ndarray, neighbor: np.ndarray) -> np.ndarray:
    """wm: favours neighbours whose gradient is weaker than the center."""
    return (1.0 + np.tanh(center - neighbor)) / 2.0


def initial_flow_field(image: np.ndarray) -> FlowField:
    """
    Derive the unrefined tangent field from image gradients.

    Args:
        image: (H, W) luminance, uint8 or float in [0, 1]

    Returns:
        FlowField with unit tangents and normalized gradient magnitude
    """
    lum = normalize_min_max(to_luminance(image), 0.0, 1.0)

    grad_x = directional_derivative(lum, axis=1)
    grad_y = directional_derivative(lum, axis=0)

    grad_mag = normalize_min_max(magnitude(grad_x, grad_y), 0.0, 1.0)

    gradient = normalize_vectors(np.stack([grad_x, grad_y], axis=-1))
    tangent = rotate_quarter_turn(gradient)

    return FlowField(tangent=tangent, magnitude=grad_mag)


def refine_flow_field(
    field: FlowField,
    kernel_radius: int,
    scheduler: Optional[RowScheduler] = None,
) -> FlowField:
    """
    Apply one ETF refinement pass.

    Neighbours outside the image are skipped: the snapshot is zero-padded
    and a zero tangent contributes nothing to the sum.

    Args:
        field: Current (immutable) field snapshot
        kernel_radius: Neighbourhood radius, >= 1
        scheduler: Band scheduler (serial when omitted)

    Returns:
        New, normalized FlowField sharing the same magnitude

    Raises:
        ValueError: If kernel_radius < 1
    """
    if kernel_radius < 1:
        raise ValueError(f"kernel_radius must be >= 1, got {kernel_radius}")

    scheduler = scheduler or RowScheduler(workers=1)
    height, width = field.shape
    r = kernel_radius
    offsets = window_offsets(r)

    padded_t = np.pad(field.tangent, ((r, r), (r, r), (0, 0)))
    padded_m = np.pad(field.magnitude, r)
    accumulated = np.zeros((height, width, 2), dtype=np.float32)

    def refine_band(start: int, stop: int) -> None:
        t_p = field.tangent[start:stop]
        m_p = field.magnitude[start:stop]
        acc = np.zeros_like(t_p)

        for dy, dx in offsets:
            rows = slice(start + r + dy, stop + r + dy)
            cols = slice(r + dx, r + dx + width)
            t_q = padded_t[rows, cols]
            m_q = padded_m[rows, cols]

            dot = t_p[..., 0] * t_q[..., 0] + t_p[..., 1] * t_q[..., 1]
            phi = np.where(dot > 0, np.float32(1.0), np.float32(-1.0))
            w_d = np.abs(dot)
            w_m = magnitude_weight(m_p, m_q)

            acc += t_q * (phi * w_m * w_d)[..., None]

        accumulated[start:stop] = acc

    scheduler.run(refine_band, height)

    return FlowField(tangent=normalize_vectors(accumulated), magnitude=field.magnitude)


class EdgeTangentFlow:
    """
    ETF engine: bootstrap once, then refine any number of times.

    Attributes:
        state: EMPTY, BOOTSTRAPPED or REFINED
        passes: Number of refinement passes applied
    """

    def __init__(
        self,
        scheduler: Optional[RowScheduler] = None,
        progress: Optional[ProgressTracker] = None,
    ) -> None:
        self.scheduler = scheduler or RowScheduler()
        self.progress = progress or ProgressTracker()
        self.state = EtfState.EMPTY
        self.passes = 0
        self._field: Optional[FlowField] = None

    @property
    def field(self) -> FlowField:
        """The published field."""
        if self._field is None:
            raise RuntimeError("EdgeTangentFlow has not been bootstrapped")
        return self._field

    def bootstrap(self, image: np.ndarray) -> FlowField:
        """Build the initial field from ``image`` gradients."""
        self._field = initial_flow_field(image)
        self.state = EtfState.BOOTSTRAPPED
        self.passes = 0

        height, width = self._field.shape
        logger.info(f"ETF bootstrapped: {width}x{height}")
        self.progress.report(Stage.ETF_BOOTSTRAP)
        return self._field

    def refine(self, kernel_radius: int, total: int = 1) -> FlowField:
        """Run one refinement pass and publish the result."""
        self._field = refine_flow_field(self.field, kernel_radius, self.scheduler)
        self.state = EtfState.REFINED
        self.passes += 1

        logger.debug(f"ETF refinement pass {self.passes} done (radius={kernel_radius})")
        self.progress.report(Stage.ETF_REFINE, self.passes, max(total, self.passes))
        return self._field


def compute_flow_field(
    image: np.ndarray,
    kernel_radius: int,
    iterations: int,
    scheduler: Optional[RowScheduler] = None,
    progress: Optional[ProgressCallback] = None,
) -> FlowField:
    """
    Bootstrap and refine the ETF of an image.

    Args:
        image: (H, W) luminance
        kernel_radius: Refinement neighbourhood radius
        iterations: Refinement passes (0 = bootstrap only)
        scheduler: Band scheduler
        progress: Optional progress callback

    Returns:
        The refined FlowField
    """
    if iterations < 0:
        raise ValueError(f"iterations must be >= 0, got {iterations}")

    engine = EdgeTangentFlow(scheduler=scheduler, progress=ProgressTracker(progress))
    field = engine.bootstrap(image)
    for _ in range(iterations):
        field = engine.refine(kernel_radius, total=iterations)

    logger.info(f"ETF ready after {engine.passes} refinement passes")
    return field
