"""
linedraw
========

Coherent line drawings from raster images.

This package turns a grayscale image into a stylized line drawing by
computing a smoothed edge tangent flow (ETF) and using it to steer a
flow-based difference-of-Gaussians (FDoG) edge detector.

Components:
    - flow: Gaussian kernels, tangent field, ETF engine, band scheduler
    - lines: FDoG stages and the full pipeline
    - imaging: Decoding/encoding and OpenCV matrix helpers
    - models: Validated options
    - observability: Progress events and visual previews

Example:
    from linedraw import Options, compute_flow_field, detect_edges
    from linedraw.imaging import load_luminance

    image = load_luminance("portrait.png")
    flow = compute_flow_field(image, kernel_radius=3, iterations=2)
    mask = detect_edges(image, flow, Options(tau=0.9))
"""

__version__ = "0.1.0"

from linedraw.flow.etf import compute_flow_field
from linedraw.flow.tangent_field import FlowField
from linedraw.lines.drawing import (
    CoherentLineDrawing,
    LineDrawingResult,
    detect_edges,
    generate,
)
from linedraw.models.options import Options, OptionsValidationError, build_options

__all__ = [
    "__version__",
    "CoherentLineDrawing",
    "FlowField",
    "LineDrawingResult",
    "Options",
    "OptionsValidationError",
    "build_options",
    "compute_flow_field",
    "detect_edges",
    "generate",
]
