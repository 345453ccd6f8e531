from __future__ import annotations

import math

import numpy as np


def _bias_power(beta: float, step: int) -> float:
    """``beta ** (step + 1)``, treating overflow/underflow artefacts as zero."""
    try:
        value = math.pow(beta, step + 1)
    except OverflowError:
        return 0.0
    if math.isnan(value) or math.isinf(value):
        return 0.0
    return value


def clip_scale(gradients: list[np.ndarray], clip_norm: float = 1.0) -> float:
    """Factor that rescales ``gradients`` to a global L2 norm of at most ``clip_norm``."""
    norm = math.sqrt(sum(float(np.sum(np.square(g, dtype=np.float64))) for g in gradients))
    if norm > clip_norm:
        return clip_norm / norm
    return 1.0


class AdamState:
    """First and second moment estimates for one trainable matrix."""

    def __init__(
        self,
        shape: tuple[int, ...],
        beta1: float,
        beta2: float,
        epsilon: float = 1.0e-8,
        dtype=np.float64,
    ):
        self.beta1 = beta1
        self.beta2 = beta2
        self.epsilon = epsilon
        self.m = np.zeros(shape, dtype=dtype)
        self.v = np.zeros(shape, dtype=dtype)

    def step(
        self, weights: np.ndarray, gradient: np.ndarray, step: int, eta: float
    ) -> np.ndarray:
        """Return ``weights`` moved one bias-corrected Adam step against ``gradient``."""
        b1 = _bias_power(self.beta1, step)
        b2 = _bias_power(self.beta2, step)
        self.m = self.beta1 * self.m + (1 - self.beta1) * gradient
        self.v = self.beta2 * self.v + (1 - self.beta2) * gradient * gradient
        m_hat = self.m / (1 - b1)
        v_hat = np.maximum(self.v / (1 - b2), 0)
        update = eta * m_hat / (np.sqrt(v_hat) + self.epsilon)
        return (weights - update).astype(weights.dtype, copy=False)
