"""
Tangent Flow Field
==================

Dense edge-tangent field produced by the ETF engine.

Conventions:
    - Arrays are indexed [row, col]
    - tangent[..., 0] is tx (along columns, +x = rightward)
    - tangent[..., 1] is ty (along rows, +y = downward)
    - Every vector has length 0 or 1

A FlowField is an immutable snapshot: its arrays are copied on
construction and marked read-only. Refinement builds a new instance
instead of writing into the current one.
"""

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator


UNIT_TOLERANCE = 1e-5


def _frozen_copy(value: np.ndarray) -> np.ndarray:
    arr = np.array(value, dtype=np.float32, copy=True)
    arr.setflags(write=False)
    return arr


class FlowField(BaseModel):
    """
    Edge tangent flow plus the normalized gradient magnitude.

    Attributes:
        tangent: Unit tangent vectors, (H, W, 2) float32
        magnitude: Gradient magnitude in [0, 1], (H, W) float32
    """

    tangent: np.ndarray = Field(
        ...,
        description="Unit tangent (tx, ty) per pixel, (H, W, 2) array",
    )

    magnitude: np.ndarray = Field(
        ...,
        description="Normalized gradient magnitude, (H, W) array",
    )

    class Config:
        """Allow numpy arrays in Pydantic model."""
        arbitrary_types_allowed = True
        frozen = True

    @field_validator("tangent")
    @classmethod
    def _check_tangent(cls, value: np.ndarray) -> np.ndarray:
        if value.ndim != 3 or value.shape[2] != 2:
            raise ValueError(f"tangent must have shape (H, W, 2), got {value.shape}")
        return _frozen_copy(value)

    @field_validator("magnitude")
    @classmethod
    def _check_magnitude(cls, value: np.ndarray) -> np.ndarray:
        if value.ndim != 2:
            raise ValueError(f"magnitude must have shape (H, W), got {value.shape}")
        return _frozen_copy(value)

    @model_validator(mode="after")
    def _check_shapes(self) -> "FlowField":
        if self.tangent.shape[:2] != self.magnitude.shape:
            raise ValueError(
                f"tangent {self.tangent.shape[:2]} and magnitude "
                f"{self.magnitude.shape} must cover the same grid"
            )
        return self

    @classmethod
    def zeros(cls, height: int, width: int) -> "FlowField":
        """Field with no direction and no gradient anywhere."""
        return cls(
            tangent=np.zeros((height, width, 2), dtype=np.float32),
            magnitude=np.zeros((height, width), dtype=np.float32),
        )

    @property
    def shape(self) -> tuple:
        """Grid shape as (height, width)."""
        return self.magnitude.shape

    @property
    def tx(self) -> np.ndarray:
        return self.tangent[..., 0]

    @property
    def ty(self) -> np.ndarray:
        return self.tangent[..., 1]

    @property
    def norms(self) -> np.ndarray:
        """Length of every tangent vector."""
        return np.sqrt(self.tx.astype(np.float64) ** 2 + self.ty.astype(np.float64) ** 2)

    @property
    def angle(self) -> np.ndarray:
        """Tangent angle at each pixel (radians)."""
        return np.arctan2(self.ty, self.tx)

    def is_unit(self, tolerance: float = UNIT_TOLERANCE) -> bool:
        """True when every non-zero tangent has length 1 within tolerance."""
        norms = self.norms
        nonzero = norms > 0
        return bool(np.all(np.abs(norms[nonzero] - 1.0) <= tolerance))


def normalize_vectors(vectors: np.ndarray) -> np.ndarray:
    """
    Scale (..., 2) vectors to unit length.

    Zero vectors stay zero.
    """
    vectors = vectors.astype(np.float32, copy=False)
    norms = np.sqrt(vectors[..., 0] ** 2 + vectors[..., 1] ** 2)
    out = np.zeros_like(vectors, dtype=np.float32)
    nonzero = norms > 0
    out[nonzero] = vectors[nonzero] / norms[nonzero, None]
    return out


def rotate_quarter_turn(vectors: np.ndarray) -> np.ndarray:
    """Rotate (..., 2) vectors by +90 degrees: (x, y) -> (y, -x)."""
    out = np.empty_like(vectors)
    out[..., 0] = vectors[..., 1]
    out[..., 1] = -vectors[..., 0]
    return out
