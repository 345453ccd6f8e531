from __future__ import annotations

from typing import Literal

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Passing this cutoff disables early stopping on the loss.
NO_CUTOFF = -1.0


class FitConfig(BaseModel):
    """Hyper-parameters of the gradient-descent Gaussian fit."""

    cutoff: float = Field(
        default=NO_CUTOFF,
        description="Stop once the loss drops below this value (-1 disables)",
    )
    eta: float = Field(default=1.0e-3, gt=0, description="Adam step size")
    beta1: float = Field(
        default=0.8, gt=0, lt=1, description="Decay of the first moment estimates"
    )
    beta2: float = Field(
        default=0.89, gt=0, lt=1, description="Decay of the second moment estimates"
    )
    epsilon: float = Field(default=1.0e-8, gt=0)
    clip_norm: float = Field(
        default=1.0, gt=0, description="Global gradient norm above which gradients are rescaled"
    )
    max_iterations: int = Field(default=1024, gt=0)
    max_inverse_iterations: int = Field(default=16 * 1024, gt=0)
    want_inverse: bool = False
    dtype: Literal["float32", "float64"] = "float64"

    model_config = ConfigDict(frozen=True)

    @field_validator("cutoff")
    @classmethod
    def validate_cutoff(cls, v: float) -> float:
        if v != NO_CUTOFF and v < 0:
            raise ValueError(f"cutoff must be non-negative or {NO_CUTOFF}, got {v}")
        return v

    @property
    def early_stop(self) -> bool:
        return self.cutoff != NO_CUTOFF

    @property
    def numpy_dtype(self) -> np.dtype:
        return np.dtype(self.dtype)
