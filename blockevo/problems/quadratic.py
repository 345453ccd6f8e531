from __future__ import annotations

from typing import Sequence

import numpy as np

from blockevo.problems.base import Evaluation


class TargetDistance:
    """Squared Euclidean distance to a fixed target vector."""

    def __init__(self, target: Sequence[float]):
        self.target = np.array(target, dtype=np.float64)
        self.target.flags.writeable = False

    @property
    def width(self) -> int:
        return self.target.size

    def __call__(self, vector: np.ndarray) -> Evaluation:
        diff = np.asarray(vector, dtype=np.float64) - self.target
        return float(np.dot(diff, diff)), None
