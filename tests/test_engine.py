"""Tests for the generational BlockNESEngine loop."""

import asyncio
import math
import threading

import numpy as np
import pydantic
import pytest

from blockevo.evolution import BlockNESEngine, EngineConfig, Population
from blockevo.exceptions import ConfigurationError, EvolutionError, WorkerTaskError
from blockevo.gaussian import FitConfig
from blockevo.problems import TargetDistance

FAST_FIT = FitConfig(cutoff=1e-4, eta=1e-2)


class CountingProblem:
    """Squared distance to ones; counts calls across worker threads."""

    def __init__(self):
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, vector):
        with self._lock:
            self.calls += 1
        return float(np.sum((vector - 1.0) ** 2)), {"norm": float(np.linalg.norm(vector))}


def _config(**overrides):
    values = dict(width=6, models=1, population_size=8, cut=2, seed=3, max_workers=4, fit=FAST_FIT)
    values.update(overrides)
    return EngineConfig(**values)


def _evolve(engine, generations, population=None):
    async def _run():
        pop = population if population is not None else engine.new_population()
        heads = []
        for _ in range(generations):
            pop = await engine.run_generation(pop)
            heads.append(pop.best.fitness)
        return pop, heads

    return asyncio.run(_run())


class TestEngineConfig:
    def test_models_cannot_exceed_width(self):
        with pytest.raises(pydantic.ValidationError):
            EngineConfig(width=4, models=5)

    def test_cut_must_leave_room_for_offspring(self):
        with pytest.raises(pydantic.ValidationError):
            EngineConfig(width=4, population_size=8, cut=8)

    def test_default_fit_settings(self):
        config = EngineConfig(width=4, population_size=16, cut=4)
        assert config.fit.cutoff == pytest.approx(1e-4)
        assert config.fit.eta == pytest.approx(1e-1)


class TestGeneration:
    def test_first_generation_scores_everyone(self):
        problem = CountingProblem()
        with BlockNESEngine(problem, _config()) as engine:
            population, _ = _evolve(engine, 1)

        assert problem.calls == 8
        assert population.generation == 1
        assert all(ind.evaluated for ind in population)
        assert all(ind.vector.shape == (6, 1) for ind in population)
        fitnesses = population.fitnesses()
        assert np.all(np.diff(fitnesses) >= 0)

    def test_later_generations_only_score_the_tail(self):
        problem = CountingProblem()
        with BlockNESEngine(problem, _config()) as engine:
            first, _ = _evolve(engine, 1)
            elites = list(first.individuals[:2])
            second, _ = _evolve(engine, 1, population=first)

        assert problem.calls == 8 + 6
        for elite in elites:
            assert any(ind is elite for ind in second)
            assert elite.born == 0

    def test_auxiliary_output_is_kept(self):
        with BlockNESEngine(CountingProblem(), _config()) as engine:
            population, _ = _evolve(engine, 1)
        assert all("norm" in ind.auxiliary for ind in population)

    def test_head_fitness_is_monotone(self):
        with BlockNESEngine(CountingProblem(), _config(models=2)) as engine:
            _, heads = _evolve(engine, 12)
        assert all(later <= earlier for earlier, later in zip(heads, heads[1:]))

    def test_multiple_blocks_fill_every_coordinate(self):
        with BlockNESEngine(CountingProblem(), _config(width=9, models=3)) as engine:
            population, _ = _evolve(engine, 2)
        for ind in population:
            assert ind.parameters.shape == (9,)
            assert np.all(np.isfinite(ind.parameters))

    def test_same_seed_reproduces_run_regardless_of_workers(self):
        with BlockNESEngine(TargetDistance([1.0] * 6), _config(max_workers=1)) as serial:
            first, _ = _evolve(serial, 3)
        with BlockNESEngine(TargetDistance([1.0] * 6), _config(max_workers=8)) as wide:
            second, _ = _evolve(wide, 3)

        assert np.array_equal(first.fitnesses(), second.fitnesses())
        assert first.best.vector == second.best.vector

    def test_float32_vectors(self):
        config = _config(fit=FitConfig(cutoff=1e-4, eta=1e-2, dtype="float32"))
        with BlockNESEngine(TargetDistance([1.0] * 6), config) as engine:
            population, _ = _evolve(engine, 2)
        assert population.best.vector.dtype == np.float32

    def test_nan_fitness_ranks_last(self):
        def nan_when_negative(vector):
            return (math.nan if vector[0] < 0 else float(vector[0])), None

        with BlockNESEngine(nan_when_negative, _config(population_size=16, cut=2)) as engine:
            population, _ = _evolve(engine, 1)

        nan_mask = np.isnan(population.fitnesses())
        if nan_mask.any():
            assert nan_mask[int(np.argmax(nan_mask)):].all()

    def test_metrics_are_recorded(self):
        with BlockNESEngine(CountingProblem(), _config(models=2)) as engine:
            population, _ = _evolve(engine, 3)
            metrics = engine.metrics

        assert metrics.total_generations == 3
        assert metrics.evaluations == 8 + 6 + 6
        assert metrics.fits == 6
        assert metrics.best_fitness == population.best.fitness
        assert engine.get_status()["total_generations"] == 3


class TestFailures:
    def test_fitness_exception_becomes_evolution_error(self):
        def broken(vector):
            raise RuntimeError("collaborator failed")

        with BlockNESEngine(broken, _config()) as engine:
            with pytest.raises(EvolutionError) as info:
                _evolve(engine, 1)
        assert isinstance(info.value.__cause__, WorkerTaskError)

    def test_cut_must_fit_population(self):
        with BlockNESEngine(CountingProblem(), _config()) as engine:
            with pytest.raises(ConfigurationError):
                asyncio.run(engine.run_generation(Population.empty(2), cut=2))

    def test_models_override_checked(self):
        with BlockNESEngine(CountingProblem(), _config()) as engine:
            with pytest.raises(ConfigurationError):
                asyncio.run(engine.run_generation(engine.new_population(), models=7))

    @pytest.mark.parametrize("override", [{"cut": 0}, {"models": 0}, {"width": 0}])
    def test_explicit_zero_overrides_are_rejected(self, override):
        with BlockNESEngine(CountingProblem(), _config()) as engine:
            with pytest.raises(ConfigurationError):
                asyncio.run(engine.run_generation(engine.new_population(), **override))


class TestConvergence:
    def test_quadratic_target_improves(self):
        target = TargetDistance([1.0] * 6)
        with BlockNESEngine(target, _config(seed=1)) as engine:
            population, heads = _evolve(engine, 30)

        assert heads[-1] < heads[0]
        initial_gap = math.sqrt(heads[0])
        final_gap = np.linalg.norm(population.best.parameters - 1.0)
        assert final_gap < initial_gap

    def test_full_rank_elites_reach_the_target(self):
        target = TargetDistance([1.0, 1.0])
        config = _config(width=2, population_size=32, cut=4, seed=2)
        with BlockNESEngine(target, config) as engine:
            population, _ = _evolve(engine, 40)

        assert population.best.fitness < 0.1
        np.testing.assert_allclose(population.best.parameters, [1.0, 1.0], atol=0.35)

    def test_six_coordinate_target_converges(self):
        target = TargetDistance([1.0] * 6)
        config = _config(width=6, models=1, population_size=8, cut=2, seed=1)
        with BlockNESEngine(target, config) as engine:
            population, heads = _evolve(engine, 300)

        assert heads[-1] < 1e-2
        np.testing.assert_allclose(population.best.parameters, np.ones(6), atol=0.05)
