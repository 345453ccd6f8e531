from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from blockevo.gaussian.config import FitConfig


class EngineConfig(BaseModel):
    """Configuration options controlling BlockNESEngine behaviour."""

    width: int = Field(gt=0, description="Length of the parameter vector")
    models: int = Field(
        default=1, gt=0, description="Number of blocks the vector is split into per generation"
    )
    population_size: int = Field(default=64, gt=1)
    cut: int = Field(
        default=8,
        gt=0,
        description="Elite individuals kept unscored and used as the next sample set",
    )
    seed: int = Field(default=1, ge=0, description="Seed of the coordinator random stream")
    initial_scale: float = Field(
        default=1.0, gt=0, description="Standard deviation of the initial state vectors"
    )
    max_workers: int | None = Field(
        default=None, gt=0, description="Worker threads (None = os.cpu_count())"
    )
    fit: FitConfig = Field(
        default_factory=lambda: FitConfig(cutoff=1.0e-4, eta=1.0e-1),
        description="Gaussian fit settings used for every block",
    )

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_shape(self):
        if self.models > self.width:
            raise ValueError(
                f"models ({self.models}) must not exceed width ({self.width})"
            )
        if self.cut >= self.population_size:
            raise ValueError(
                f"cut ({self.cut}) must be smaller than population_size ({self.population_size})"
            )
        return self
