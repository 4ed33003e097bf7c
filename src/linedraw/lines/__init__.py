"""
Line Extraction Module
======================

Flow-based difference of Gaussians (FDoG) and the full pipeline.

This module provides:
    - Gradient-DoG across the flow
    - Flow-DoG along the flow
    - Thresholding and the reseed step of the outer iteration
    - CoherentLineDrawing orchestration
"""

from linedraw.lines.fdog import (
    FdogPass,
    binary_threshold,
    flow_dog,
    flow_dog_response,
    gradient_dog,
    reseed,
)
from linedraw.lines.drawing import (
    CoherentLineDrawing,
    FdogStage,
    LineDrawingResult,
    detect_edges,
    generate,
    run_fdog_pass,
)

__all__ = [
    # FDoG stages
    "FdogPass",
    "binary_threshold",
    "flow_dog",
    "flow_dog_response",
    "gradient_dog",
    "reseed",
    # Pipeline
    "CoherentLineDrawing",
    "FdogStage",
    "LineDrawingResult",
    "detect_edges",
    "generate",
    "run_fdog_pass",
]
