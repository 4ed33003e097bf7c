"""
Coherent Line Drawing
=====================

Orchestration of the ETF and FDoG engines into a full pipeline.

Pipeline:
    image -> ETF (bootstrap + refine) -> FDoG pass -> mask
          -> [reseed source with mask, FDoG pass] x fdog_iterations
          -> anti-alias (optional) -> result

FDoG state machine:
    SEEDED -> GRADIENT_DOG -> FLOW_DOG -> THRESHOLDED -> (SEEDED | DONE)

The outer iteration is a fixed-count loop. The flow field is computed
once from the input image and reused by every pass.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np

from linedraw.flow.etf import compute_flow_field
from linedraw.flow.scheduler import RowScheduler
from linedraw.flow.tangent_field import FlowField
from linedraw.imaging.ops import normalize_min_max, to_luminance
from linedraw.lines.fdog import (
    FdogPass,
    binary_threshold,
    flow_dog_response,
    gradient_dog,
    reseed,
)
from linedraw.models.options import Options
from linedraw.observability.progress import ProgressCallback, ProgressTracker, Stage
from linedraw.observability.visualization import anti_alias, visualize_flow


logger = logging.getLogger(__name__)


class FdogStage(str, Enum):
    """Stages of one FDoG pass."""

    SEEDED = "SEEDED"
    GRADIENT_DOG = "GRADIENT_DOG"
    FLOW_DOG = "FLOW_DOG"
    THRESHOLDED = "THRESHOLDED"
    DONE = "DONE"


@dataclass(frozen=True, slots=True)
class LineDrawingResult:
    """
    Output of the full pipeline.

    Attributes:
        mask: Final edge mask (uint8, {0, 255} unless anti-aliased)
        flow: Tangent field used for every pass
        passes: Number of FDoG passes run
        flow_preview: LIC preview of the flow, when requested
    """

    mask: np.ndarray
    flow: FlowField
    passes: int
    flow_preview: Optional[np.ndarray] = None

    @property
    def shape(self) -> tuple:
        return self.mask.shape


def run_fdog_pass(
    src: np.ndarray,
    flow: FlowField,
    options: Options,
    scheduler: Optional[RowScheduler] = None,
    on_stage: Optional[Callable[[FdogStage], None]] = None,
) -> FdogPass:
    """
    One gradient-DoG -> flow-DoG -> threshold pass over a luminance image.

    A flow-DoG response with no dynamic range carries no edges; the mask
    is then all zeros for any tau.

    Args:
        src: (H, W) float32 luminance in [0, 1]
        flow: Tangent field of the same shape
        options: Line drawing options
        scheduler: Band scheduler
        on_stage: Called with each stage as it starts

    Returns:
        FdogPass with every intermediate buffer
    """
    if src.shape != flow.shape:
        raise ValueError(f"Image shape {src.shape} does not match flow field {flow.shape}")

    enter = on_stage or (lambda stage: None)

    enter(FdogStage.GRADIENT_DOG)
    dog = gradient_dog(
        src,
        flow,
        sigma_c=options.sigma_c,
        sigma_r=options.sigma_r,
        rho=options.rho,
        scheduler=scheduler,
    )
    enter(FdogStage.FLOW_DOG)
    raw = flow_dog_response(dog, flow, options.sigma_m, scheduler)

    enter(FdogStage.THRESHOLDED)
    if float(raw.max()) == float(raw.min()):
        logger.warning("Flow-DoG response is constant; no edges detected")
        return FdogPass(
            dog=dog,
            response=np.zeros_like(raw),
            mask=np.zeros(raw.shape, dtype=np.uint8),
            flat=True,
        )

    response = normalize_min_max(raw, 0.0, 1.0)
    return FdogPass(
        dog=dog,
        response=response,
        mask=binary_threshold(response, options.tau),
        flat=False,
    )


def detect_edges(
    image: np.ndarray,
    flow: FlowField,
    options: Options,
    scheduler: Optional[RowScheduler] = None,
) -> np.ndarray:
    """
    Single FDoG pass producing an edge mask.

    Args:
        image: (H, W) luminance, uint8 or float in [0, 1]; not modified
        flow: Tangent field of the same shape
        options: Line drawing options
        scheduler: Band scheduler

    Returns:
        (H, W) uint8 mask with values in {0, 255}
    """
    return run_fdog_pass(to_luminance(image), flow, options, scheduler).mask


class CoherentLineDrawing:
    """
    Full line drawing pipeline.

    Attributes:
        options: Validated options
        scheduler: Band scheduler shared by every stage
        stage: Current FDoG stage
    """

    def __init__(
        self,
        options: Optional[Options] = None,
        scheduler: Optional[RowScheduler] = None,
        progress: Optional[ProgressCallback] = None,
        preview_seed: Optional[int] = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            options: Line drawing options (defaults if None)
            scheduler: Band scheduler (CPU count workers if None)
            progress: Optional callback for stage boundaries
            preview_seed: Noise seed for the flow preview
        """
        self.options = options or Options()
        self.scheduler = scheduler or RowScheduler()
        self.preview_seed = preview_seed
        self.stage = FdogStage.SEEDED
        self._progress_callback = progress

        logger.info(
            f"CoherentLineDrawing initialized: "
            f"sigma_c={self.options.sigma_c}, sigma_r={self.options.sigma_r}, "
            f"sigma_m={self.options.sigma_m}, rho={self.options.rho}, "
            f"tau={self.options.tau}, {self.scheduler!r}"
        )

    def compute_flow(self, image: np.ndarray) -> FlowField:
        """ETF bootstrap plus the configured refinement passes."""
        return compute_flow_field(
            image,
            kernel_radius=self.options.etf_kernel_radius,
            iterations=self.options.etf_iterations,
            scheduler=self.scheduler,
            progress=self._progress_callback,
        )

    def _enter(self, stage: FdogStage) -> None:
        logger.debug(f"FDoG stage {self.stage.value} -> {stage.value}")
        self.stage = stage

    def _fdog_pass(self, src: np.ndarray, flow: FlowField) -> np.ndarray:
        return run_fdog_pass(src, flow, self.options, self.scheduler, on_stage=self._enter).mask

    def generate(self, image: np.ndarray) -> LineDrawingResult:
        """
        Run the whole pipeline on ``image``.

        Args:
            image: (H, W) luminance, uint8 or float in [0, 1]; not modified

        Returns:
            LineDrawingResult with the final mask
        """
        progress = ProgressTracker(self._progress_callback)
        opts = self.options
        total_passes = opts.fdog_iterations + 1

        flow = self.compute_flow(image)

        src = to_luminance(image)
        self._enter(FdogStage.SEEDED)
        mask = self._fdog_pass(src, flow)
        progress.report(Stage.FDOG_PASS, 1, total_passes)

        for i in range(opts.fdog_iterations):
            self._enter(FdogStage.SEEDED)
            src = reseed(src, mask)
            mask = self._fdog_pass(src, flow)
            progress.report(Stage.FDOG_PASS, i + 2, total_passes)

        self._enter(FdogStage.DONE)

        if opts.anti_alias:
            mask = anti_alias(mask, opts.blur_size)

        preview = None
        if opts.visualize_flow:
            preview = visualize_flow(flow, seed=self.preview_seed, scheduler=self.scheduler)

        if opts.anti_alias or opts.visualize_flow:
            progress.report(Stage.POSTPROCESS)

        edge_fraction = float(np.mean(mask < 128))
        logger.info(
            f"Line drawing done: {total_passes} FDoG passes, "
            f"{edge_fraction:.1%} line pixels"
        )

        return LineDrawingResult(
            mask=mask,
            flow=flow,
            passes=total_passes,
            flow_preview=preview,
        )


def generate(
    image: np.ndarray,
    options: Optional[Options] = None,
    scheduler: Optional[RowScheduler] = None,
    progress: Optional[ProgressCallback] = None,
) -> np.ndarray:
    """
    Full pipeline returning only the final mask.

    See CoherentLineDrawing.generate for the detailed result.
    """
    pipeline = CoherentLineDrawing(options, scheduler=scheduler, progress=progress)
    return pipeline.generate(image).mask
