from __future__ import annotations

import numpy as np

from blockevo.problems.base import Evaluation


def bits_to_int(vector: np.ndarray) -> int:
    """Read a vector as little-endian bits: coordinate ``i`` sets bit ``i`` when positive."""
    value = 0
    for i in np.flatnonzero(np.asarray(vector) > 0):
        value |= 1 << int(i)
    return value


def euclid_steps(a: int, b: int) -> tuple[int, int]:
    """Number of remainder steps of Euclid's algorithm and the resulting gcd."""
    steps = 0
    while b != 0:
        a, b = b, a % b
        steps += 1
    return steps, a


class SemiprimeFactorProblem:
    """Search for a non-trivial factor of ``target``.

    A candidate is decoded with :func:`bits_to_int`; its fitness is the number of
    Euclid steps needed to reach ``gcd(candidate, target)``. When that gcd is a
    proper factor the auxiliary output is ``(factor, target // factor)``.
    """

    def __init__(self, target: int):
        if target < 4:
            raise ValueError(f"target must be a composite above 3, got {target}")
        self.target = target

    def __call__(self, vector: np.ndarray) -> Evaluation:
        steps, divisor = euclid_steps(bits_to_int(vector), self.target)
        if 1 < divisor < self.target:
            return float(steps), (divisor, self.target // divisor)
        return float(steps), None

