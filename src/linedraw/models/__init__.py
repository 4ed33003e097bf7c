"""
Data Models
===========

Pydantic models for linedraw.

Models:
    - Options: Validated line drawing configuration
    - OptionsValidationError: Raised for out-of-range options
"""

from linedraw.models.options import Options, OptionsValidationError, build_options

__all__ = [
    "Options",
    "OptionsValidationError",
    "build_options",
]
