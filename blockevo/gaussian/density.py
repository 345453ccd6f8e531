from __future__ import annotations

from typing import Hashable, Mapping, Sequence

from loguru import logger
import numpy as np

from blockevo.exceptions import ConfigurationError
from blockevo.gaussian.config import FitConfig
from blockevo.gaussian.fitter import FactorizationResult, GaussianFitter
from blockevo.utils.worker_pool import WorkerPool

__all__ = ["GaussianClassifier"]


class GaussianClassifier:
    """One fitted Gaussian per label; predicts by repeated noisy reconstruction.

    A vector ``x`` is mapped to noise space with each label's ``AI``, the noise is
    scaled elementwise by fresh standard normal draws, projected back with
    ``A`` and compared to ``x``. The closest label wins the round and the label
    with most round wins is predicted.
    """

    def __init__(self, config: FitConfig | None = None, pool: WorkerPool | None = None):
        config = config or FitConfig(eta=1.0e-3)
        self.config = config.model_copy(update={"want_inverse": True})
        self._pool = pool or WorkerPool()
        self._owns_pool = pool is None
        self.labels: list[Hashable] = []
        self.models: dict[Hashable, FactorizationResult] = {}

    def close(self) -> None:
        if self._owns_pool:
            self._pool.close()

    def __enter__(self) -> GaussianClassifier:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def fit(
        self,
        samples_by_label: Mapping[Hashable, Sequence[Sequence[float]]],
        rng: np.random.Generator,
    ) -> GaussianClassifier:
        if not samples_by_label:
            raise ConfigurationError("At least one label is required")
        labels = list(samples_by_label)
        size = len(next(iter(samples_by_label[labels[0]])))
        fitter = GaussianFitter(self.config)

        def fit_label(index: int, task_rng: np.random.Generator) -> FactorizationResult:
            label = labels[index]
            return fitter.fit(samples_by_label[label], size, rng=task_rng, name=str(label))

        results = self._pool.map_sync(fit_label, len(labels), rng)
        self.labels = labels
        self.models = dict(zip(labels, results))
        for label, result in self.models.items():
            logger.info(
                "[GaussianClassifier] {}: loss={} calibration={}",
                label,
                result.final_loss,
                np.round(result.calibration(), 6).tolist(),
            )
        return self

    def _nearest(self, x: np.ndarray, candidates: dict[Hashable, np.ndarray]) -> int:
        distances = [float(np.sum((candidates[label] - x) ** 2)) for label in self.labels]
        return int(np.argmin(distances))

    def _tally(self, rounds: list[list[int]], count: int) -> list[Hashable]:
        votes = np.zeros((count, len(self.labels)), dtype=np.int64)
        for winners in rounds:
            for i, winner in enumerate(winners):
                votes[i, winner] += 1
        return [self.labels[int(np.argmax(row))] for row in votes]

    def predict(
        self, vectors: Sequence[Sequence[float]], rng: np.random.Generator, rounds: int = 16
    ) -> list[Hashable]:
        """Majority label over ``rounds`` noisy reconstructions of every vector."""
        if not self.models:
            raise ConfigurationError("GaussianClassifier.predict called before fit")
        data = [np.asarray(v, dtype=np.float64) for v in vectors]

        def run_round(_: int, task_rng: np.random.Generator) -> list[int]:
            winners = []
            for x in data:
                reconstructed = {}
                for label in self.labels:
                    model = self.models[label]
                    noise = model.whiten(x).data * task_rng.standard_normal(model.size)
                    reconstructed[label] = model.project(noise).data
                winners.append(self._nearest(x, reconstructed))
            return winners

        return self._tally(self._pool.map_sync(run_round, rounds, rng), len(data))

    def predict_by_sampling(
        self,
        vectors: Sequence[Sequence[float]],
        rng: np.random.Generator,
        draws: int = 512,
        rounds: int = 16,
    ) -> list[Hashable]:
        """Majority label whose fresh samples come closest to each vector."""
        if not self.models:
            raise ConfigurationError("GaussianClassifier.predict_by_sampling called before fit")
        data = [np.asarray(v, dtype=np.float64) for v in vectors]

        def run_round(_: int, task_rng: np.random.Generator) -> list[int]:
            winners = []
            for x in data:
                best, winner = np.inf, 0
                for _draw in range(draws):
                    for index, label in enumerate(self.labels):
                        sample = self.models[label].sample(task_rng).data
                        distance = float(np.sum((sample - x) ** 2))
                        if distance < best:
                            best, winner = distance, index
                winners.append(winner)
            return winners

        return self._tally(self._pool.map_sync(run_round, rounds, rng), len(data))
