"""Tests for the bundled fitness collaborators."""

import numpy as np

from blockevo.problems import (
    CallableProblem,
    FitnessFunction,
    SemiprimeFactorProblem,
    TargetDistance,
    as_fitness_function,
    bits_to_int,
)


def _encode(value, width):
    return np.array([1.0 if value >> i & 1 else -1.0 for i in range(width)])


def test_bits_to_int_reads_sign_bits():
    assert bits_to_int(np.array([0.3, -2.0, 1.5])) == 5
    assert bits_to_int(np.zeros(8)) == 0
    assert bits_to_int(_encode(65521, 32)) == 65521


def test_target_distance():
    problem = TargetDistance([1.0, 1.0, 1.0])
    assert problem.width == 3
    assert problem(np.array([1.0, 1.0, 1.0])) == (0.0, None)
    assert problem(np.array([0.0, 1.0, 3.0]))[0] == 5.0


def test_factor_problem_reports_factor():
    problem = SemiprimeFactorProblem(65521 * 65519)
    fitness, auxiliary = problem(_encode(65521, 32))
    assert auxiliary == (65521, 65519)
    assert fitness >= 1


def test_factor_problem_scores_coprime_candidates():
    problem = SemiprimeFactorProblem(65521 * 65519)
    fitness, auxiliary = problem(_encode(2, 32))
    assert auxiliary is None
    assert fitness > 0


def test_callable_adapter():
    bare = as_fitness_function(lambda v: 3)
    paired = as_fitness_function(lambda v: (2.5, "aux"))
    assert bare(np.zeros(1)) == (3.0, None)
    assert paired(np.zeros(1)) == (2.5, "aux")
    assert isinstance(bare, CallableProblem)
    assert as_fitness_function(bare) is bare
    assert isinstance(TargetDistance([0.0]), FitnessFunction)
