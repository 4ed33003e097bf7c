"""
Flow Computation Module
=======================

Edge tangent flow (ETF) construction and refinement.

This module provides:
    - Sampled Gaussian kernels
    - The immutable FlowField snapshot
    - ETF bootstrap from image gradients and iterative refinement
    - The row-band scheduler used by every per-pixel stage
"""

from linedraw.flow.gaussian import gauss, make_gaussian_vector
from linedraw.flow.tangent_field import FlowField
from linedraw.flow.scheduler import RowScheduler, serial_scheduler
from linedraw.flow.etf import (
    EdgeTangentFlow,
    EtfState,
    compute_flow_field,
    initial_flow_field,
    refine_flow_field,
)

__all__ = [
    # Kernels
    "gauss",
    "make_gaussian_vector",
    # Field
    "FlowField",
    # Scheduling
    "RowScheduler",
    "serial_scheduler",
    # ETF
    "EdgeTangentFlow",
    "EtfState",
    "compute_flow_field",
    "initial_flow_field",
    "refine_flow_field",
]
