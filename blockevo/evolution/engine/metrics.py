from __future__ import annotations

import math

from pydantic import BaseModel, Field


class EngineMetrics(BaseModel):
    """Counters accumulated across generations."""

    total_generations: int = Field(default=0, description="Generations completed")
    evaluations: int = Field(default=0, description="Fitness function calls")
    fits: int = Field(default=0, description="Per-block Gaussian fits")
    diverged_fits: int = Field(default=0, description="Fits stopped by a non-finite loss")
    best_fitness: float = Field(default=math.inf, description="Best fitness seen so far")
    last_generation_seconds: float = Field(default=0.0)
    last_mean_fit_loss: float | None = Field(
        default=None, description="Mean final loss of the last generation's fits"
    )

    def record_fit_metrics(self, fits: int, diverged: int, mean_loss: float | None) -> None:
        self.fits += fits
        self.diverged_fits += diverged
        self.last_mean_fit_loss = mean_loss

    def record_generation_metrics(
        self, evaluations: int, head_fitness: float, seconds: float
    ) -> None:
        self.total_generations += 1
        self.evaluations += evaluations
        self.last_generation_seconds = seconds
        if head_fitness < self.best_fitness:
            self.best_fitness = head_fitness

    def to_dict(self) -> dict[str, object]:
        return self.model_dump()
