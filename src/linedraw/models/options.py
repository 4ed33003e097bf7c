"""
Line Drawing Options
====================

The immutable configuration record consumed by the engines.

Parameters:
    sigma_r: Ratio between surround and center sigma of the gradient-DoG
    sigma_m: Sigma of the flow-DoG integration along the flow
    sigma_c: Center sigma of the gradient-DoG
    rho: Surround subtraction weight (< 1 keeps flat regions positive)
    tau: Binarization threshold on the normalized flow-DoG response
    etf_kernel_radius: ETF refinement neighbourhood radius
    etf_iterations: ETF refinement passes (0 = bootstrap only)
    fdog_iterations: Reseed-and-repeat passes (0 = single pass)
    blur_size: Anti-alias Gaussian kernel size (odd)
    anti_alias: Smooth the final mask
    visualize_flow: Also render a flow-field preview

Defaults follow the classic Coherent Line Drawing settings.

Example:
    from linedraw.models.options import Options

    opts = Options(tau=0.9, etf_iterations=3)
    text = opts.to_yaml()
    assert Options.from_yaml(text) == opts
"""

from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator


class OptionsValidationError(ValueError):
    """Raised when line drawing options are out of range."""
    pass


class Options(BaseModel):
    """
    Validated, frozen line drawing configuration.

    All numeric constraints are checked on construction so the engines
    can assume sigmas > 0 and tau in [0, 1].
    """

    sigma_r: float = Field(default=2.6, gt=0, description="Surround/center sigma ratio")
    sigma_m: float = Field(default=3.0, gt=0, description="Flow-DoG sigma")
    sigma_c: float = Field(default=1.0, gt=0, description="Gradient-DoG center sigma")
    rho: float = Field(default=0.98, ge=0, description="Surround subtraction weight")
    tau: float = Field(default=0.98, ge=0, le=1.0, description="Binarization threshold")
    etf_kernel_radius: int = Field(default=3, ge=1, description="ETF neighbourhood radius")
    etf_iterations: int = Field(default=1, ge=0, description="ETF refinement passes")
    fdog_iterations: int = Field(default=0, ge=0, description="Reseed-and-repeat passes")
    blur_size: int = Field(default=3, ge=1, description="Anti-alias kernel size (odd)")
    anti_alias: bool = Field(default=False, description="Smooth the final mask")
    visualize_flow: bool = Field(default=False, description="Render a flow preview")

    class Config:
        """Options are an immutable value object."""
        frozen = True
        allow_inf_nan = False
        extra = "forbid"

    @field_validator("blur_size")
    @classmethod
    def _odd_blur(cls, value: int) -> int:
        if value % 2 == 0:
            raise ValueError(f"blur_size must be odd, got {value}")
        return value

    def to_yaml(self) -> str:
        """Serialize to a YAML mapping."""
        return yaml.safe_dump(self.model_dump(), sort_keys=False)

    @classmethod
    def from_yaml(cls, text: str) -> "Options":
        """Parse options from a YAML mapping."""
        data = yaml.safe_load(text) or {}
        return build_options(**data)

    def with_overrides(self, **overrides: Any) -> "Options":
        """Copy with some fields replaced, re-validating the result."""
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return build_options(**data)


def build_options(**values: Any) -> Options:
    """
    Construct Options, reporting invalid values as OptionsValidationError.

    Raises:
        OptionsValidationError: If any value is out of range or unknown
    """
    try:
        return Options(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise OptionsValidationError(f"Invalid line drawing options: {problems}") from e
