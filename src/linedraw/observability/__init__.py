"""
Observability Module
====================

Progress reporting and descriptive renderings.

Components:
    - Progress: Stage-boundary events delivered to a caller callback
    - Visualization: Anti-aliasing, flow LIC preview, flow arrows
"""

from linedraw.observability.progress import (
    LoggingProgress,
    ProgressCallback,
    ProgressEvent,
    ProgressTracker,
    Stage,
)
from linedraw.observability.visualization import (
    anti_alias,
    draw_flow_arrows,
    visualize_flow,
)

__all__ = [
    # Progress
    "LoggingProgress",
    "ProgressCallback",
    "ProgressEvent",
    "ProgressTracker",
    "Stage",
    # Visualization
    "anti_alias",
    "draw_flow_arrows",
    "visualize_flow",
]
