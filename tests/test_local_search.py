"""Tests for iterative first / best improvement."""

import random

import pytest

from scpheur.alg_constructive import construct
from scpheur.alg_local_search import best_improvement, first_improvement, improve
from scpheur.problem import ProblemState
from scpheur.trace import QualityTrace


@pytest.fixture
def replace_state(replace_instance):
    state = ProblemState(replace_instance, random.Random(4))
    state.restore_covered_sets({0, 1})
    return state


class TestFirstImprovement:
    def test_replaces_two_sets_by_cheaper_one(self, replace_state):
        improved, meta = first_improvement(replace_state)
        assert improved.covered_sets == {2}
        assert improved.covered_sets_cost() == 4
        assert meta["accepted_moves"] == 1
        assert meta["rounds"] == 2

    def test_input_state_is_untouched(self, replace_state):
        first_improvement(replace_state)
        assert replace_state.covered_sets == {0, 1}

    def test_local_optimum_is_kept(self, toy_state):
        toy_state.restore_covered_sets({0, 1})
        improved, meta = first_improvement(toy_state)
        assert improved.covered_sets == {0, 1}
        assert improved.covered_sets_cost() == 4
        assert meta["accepted_moves"] == 0

    def test_records_trace(self, replace_state):
        trace = QualityTrace()
        first_improvement(replace_state, trace=trace)
        assert trace.costs() == [4.0, 4.0]


class TestBestImprovement:
    def test_replaces_two_sets_by_cheaper_one(self, replace_state):
        improved, meta = best_improvement(replace_state)
        assert improved.covered_sets == {2}
        assert improved.covered_sets_cost() == 4
        assert meta["accepted_moves"] == 1

    def test_local_optimum_is_kept(self, toy_state):
        toy_state.restore_covered_sets({0, 1})
        improved, _ = best_improvement(toy_state)
        assert improved.covered_sets == {0, 1}


@pytest.mark.parametrize("kind", ["fi", "bi"])
def test_result_is_feasible_and_not_worse(random_instance, kind):
    state = ProblemState(random_instance, random.Random(9))
    construct(state, "ch1", state.rng)
    state.redundancy_elimination()
    cost = state.covered_sets_cost()

    improved, _ = improve(state, kind)
    assert improved.is_feasible()
    assert improved.covered_sets_cost() <= cost
    assert improved.is_consistent()


def test_improve_none_returns_same_state(toy_state):
    state, meta = improve(toy_state, "none")
    assert state is toy_state
    assert meta["rounds"] == 0


def test_improve_unknown(toy_state):
    with pytest.raises(ValueError):
        improve(toy_state, "xi")
