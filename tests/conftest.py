"""Shared fixtures for the set covering tests."""

import random

import pytest

from scpheur.problem import ProblemState
from scpheur.types import build_instance


def make_random_instance(seed, n_elements=30, n_sets=40, max_size=8, max_cost=20):
    rng = random.Random(seed)
    set_elements = [
        rng.sample(range(n_elements), rng.randint(1, max_size)) for _ in range(n_sets)
    ]
    for element in range(n_elements):
        target = set_elements[rng.randrange(n_sets)]
        if element not in target:
            target.append(element)
    costs = [rng.randint(1, max_cost) for _ in range(n_sets)]
    return build_instance(costs, set_elements, n_elements, sample_id=f"random_{seed}")


@pytest.fixture
def toy_instance():
    """S0={0,1} cost 2, S1={1,2} cost 2, S2={0,1,2} cost 5."""
    return build_instance([2, 2, 5], [[0, 1], [1, 2], [0, 1, 2]], 3, sample_id="toy")


@pytest.fixture
def toy_state(toy_instance):
    return ProblemState(toy_instance, random.Random(1))


@pytest.fixture
def single_set_instance():
    return build_instance([7], [[0, 1, 2, 3]], 4, sample_id="single")


@pytest.fixture
def replace_instance():
    """Two cheap halves (3 + 3) that one set of cost 4 can replace."""
    return build_instance([3, 3, 4], [[0, 1], [2, 3], [0, 1, 2, 3]], 4, sample_id="replace")


@pytest.fixture
def random_instance():
    return make_random_instance(seed=11)
