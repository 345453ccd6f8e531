"""Gradient-descent factorisation of an empirical covariance.

Given a sample set the fitter estimates its mean ``u`` and covariance ``C`` and
then searches, with Adam-style updates, for a square matrix ``A`` such that
``A @ A.T`` approximates ``C``. Drawing ``g ~ N(0, I)`` and computing
``A @ g + u`` then approximates a draw from the sample distribution.

Optionally a second matrix ``AI`` is trained so that ``A @ AI`` approximates
the identity, which lets callers map an observation back to noise space with
``AI @ (x - u)``.

Both stages are best effort: they stop after a fixed number of iterations,
once the loss drops below the configured cutoff, or as soon as the loss stops
being finite. A diverging stage keeps the last weights that produced a finite
loss and never raises.
"""

from __future__ import annotations

import math
from typing import Callable

from loguru import logger
import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from blockevo.exceptions import ConfigurationError
from blockevo.gaussian.adam import AdamState, clip_scale
from blockevo.gaussian.config import NO_CUTOFF, FitConfig
from blockevo.gaussian.moments import SampleSet, empirical_moments
from blockevo.linalg.matrix import Matrix

__all__ = ["FactorizationResult", "GaussianFitter", "fit"]

Objective = Callable[[dict[str, np.ndarray]], tuple[float, dict[str, np.ndarray]]]


class FactorizationResult(BaseModel):
    """Fitted sampling matrix, its approximate inverse and the sample mean."""

    A: Matrix
    AI: Matrix
    mean: Matrix
    covariance: Matrix
    losses: list[float] = Field(default_factory=list, description="Loss per iteration of the A stage")
    inverse_losses: list[float] = Field(
        default_factory=list, description="Loss per iteration of the AI stage"
    )
    inverted: bool = False
    diverged: bool = False

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @property
    def size(self) -> int:
        return self.A.rows

    @property
    def final_loss(self) -> float | None:
        return self.losses[-1] if self.losses else None

    def project(self, noise: np.ndarray | Matrix) -> Matrix:
        """Map a noise vector through ``A`` and shift it by the mean."""
        noise = noise.data if isinstance(noise, Matrix) else np.asarray(noise)
        row = Matrix(1, self.size, noise, self.A.dtype)
        return self.A.mul_t(row).add(self.mean)

    def sample(self, rng: np.random.Generator) -> Matrix:
        """Draw one ``size x 1`` column from the fitted distribution."""
        return self.project(rng.standard_normal(self.size))

    def whiten(self, x: np.ndarray | Matrix) -> Matrix:
        """Map an observation back toward the noise that would generate it."""
        x = x.data if isinstance(x, Matrix) else np.asarray(x)
        centred = Matrix(1, self.size, x, self.A.dtype).sub(self.mean)
        return self.AI.mul_t(centred)

    def calibration(self) -> np.ndarray:
        """Column sums of ``A @ AI - I``; all zeros for an exact inverse."""
        residual = self.A.as_array() @ self.AI.as_array() - np.eye(self.size)
        return residual.sum(axis=0)


class GaussianFitter:
    """Fits a :class:`FactorizationResult` to a sample set."""

    def __init__(self, config: FitConfig | None = None):
        self.config = config or FitConfig()

    def fit(
        self,
        samples: SampleSet,
        size: int,
        rng: np.random.Generator | None = None,
        name: str = "gaussian",
    ) -> FactorizationResult:
        if size < 1:
            raise ConfigurationError(f"Cannot fit a Gaussian of size {size}")
        cfg = self.config
        dtype = cfg.numpy_dtype
        rng = rng if rng is not None else np.random.default_rng()

        mean, covariance = empirical_moments(samples, size, dtype)

        factor = math.sqrt(2.0 / size)
        params = {
            "A": (rng.standard_normal((size, size)) * factor).astype(dtype),
            "AI": (rng.standard_normal((size, size)) * factor).astype(dtype),
        }

        def covariance_objective(p: dict[str, np.ndarray]) -> tuple[float, dict[str, np.ndarray]]:
            A = p["A"]
            residual = A @ A.T - covariance
            gradient = 2 * (residual + residual.T) @ A
            return float(np.sum(residual * residual)), {"A": gradient}

        losses, diverged = self._descend(
            covariance_objective, params, "A", cfg.max_iterations, name
        )

        inverse_losses: list[float] = []
        if cfg.want_inverse:
            identity = np.eye(size, dtype=dtype)

            def inverse_objective(p: dict[str, np.ndarray]) -> tuple[float, dict[str, np.ndarray]]:
                A, AI = p["A"], p["AI"]
                residual = A @ AI - identity
                return float(np.sum(residual * residual)), {
                    "A": 2 * residual @ AI.T,
                    "AI": 2 * A.T @ residual,
                }

            inverse_losses, inverse_diverged = self._descend(
                inverse_objective, params, "AI", cfg.max_inverse_iterations, name
            )
            diverged = diverged or inverse_diverged
            AI = Matrix(size, size, params["AI"], dtype)
        else:
            AI = Matrix.zeros(size, size, dtype)

        return FactorizationResult(
            A=Matrix(size, size, params["A"], dtype),
            AI=AI,
            mean=Matrix(size, 1, mean, dtype),
            covariance=Matrix(size, size, covariance, dtype),
            losses=losses,
            inverse_losses=inverse_losses,
            inverted=cfg.want_inverse,
            diverged=diverged,
        )

    def _descend(
        self,
        objective: Objective,
        params: dict[str, np.ndarray],
        trained: str,
        max_iterations: int,
        name: str,
    ) -> tuple[list[float], bool]:
        """Run Adam on ``params[trained]`` in place; return the loss history and divergence."""
        cfg = self.config
        state = AdamState(
            params[trained].shape, cfg.beta1, cfg.beta2, cfg.epsilon, params[trained].dtype
        )
        losses: list[float] = []
        last_good = params[trained]

        for i in range(max_iterations):
            cost, gradients = objective(params)
            if not math.isfinite(cost):
                logger.warning(
                    "[GaussianFit] {}: {} loss diverged at iteration {} ({}); keeping last finite weights",
                    name,
                    trained,
                    i,
                    cost,
                )
                params[trained] = last_good
                return losses, True

            last_good = params[trained]
            # Clipping uses the norm over every gradient, trained or not.
            scaling = clip_scale(list(gradients.values()), cfg.clip_norm)
            params[trained] = state.step(
                params[trained], gradients[trained] * scaling, i, cfg.eta
            )
            losses.append(cost)
            if cfg.early_stop and cost < cfg.cutoff:
                break

        logger.debug(
            "[GaussianFit] {}: {} stopped after {} iteration(s) | loss={}",
            name,
            trained,
            len(losses),
            losses[-1] if losses else None,
        )
        return losses, False


def fit(
    samples: SampleSet,
    size: int,
    cutoff: float = NO_CUTOFF,
    eta: float = 1.0e-3,
    want_inverse: bool = False,
    *,
    rng: np.random.Generator | None = None,
    dtype: str = "float64",
    name: str = "gaussian",
) -> FactorizationResult:
    """Fit ``(A, AI, mean)`` to ``samples``; see :class:`GaussianFitter`."""
    config = FitConfig(cutoff=cutoff, eta=eta, want_inverse=want_inverse, dtype=dtype)
    return GaussianFitter(config).fit(samples, size, rng=rng, name=name)
