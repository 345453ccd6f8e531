from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np

from blockevo.exceptions import ShapeMismatchError

SampleSet = Mapping[int, Sequence[float]] | Sequence[Sequence[float]]


def stack_samples(samples: SampleSet, size: int, dtype=np.float64) -> np.ndarray:
    """Stack a sample set into an ``n x size`` array, in index order for mappings."""
    if isinstance(samples, Mapping):
        vectors = [samples[key] for key in sorted(samples)]
    else:
        vectors = list(samples)
    if not vectors:
        return np.zeros((0, size), dtype=dtype)

    for index, vector in enumerate(vectors):
        if np.ndim(vector) != 1 or len(vector) != size:
            raise ShapeMismatchError(
                f"Sample vector {index} has shape {np.shape(vector)}, expected ({size},)"
            )
    return np.asarray(vectors, dtype=dtype)


def empirical_moments(
    samples: SampleSet, size: int, dtype=np.float64
) -> tuple[np.ndarray, np.ndarray]:
    """Mean vector and covariance matrix of ``samples``.

    The covariance is normalised by the sample count ``n`` (not ``n - 1``).
    An empty sample set yields a zero mean and a zero covariance.
    """
    stacked = stack_samples(samples, size, dtype)
    n = stacked.shape[0]
    if n == 0:
        return np.zeros(size, dtype=dtype), np.zeros((size, size), dtype=dtype)

    mean = stacked.mean(axis=0)
    centred = stacked - mean
    covariance = centred.T @ centred / n
    return mean.astype(dtype, copy=False), covariance.astype(dtype, copy=False)
