from __future__ import annotations

import logging
import random
from typing import Callable

from scpheur.problem import ProblemState


logger = logging.getLogger(__name__)

CONSTRUCTIVE_HEURISTICS = ("ch1", "ch2", "ch3", "ch4")


def _infeasible(state: ProblemState) -> ValueError:
    return ValueError(
        f"no uncovered set can cover the remaining {state.n_uncovered_elements} elements; instance is infeasible"
    )


def ch1_random(state: ProblemState, rng: random.Random) -> list[int]:
    """Random uncovered element, then a random uncovered set containing it."""

    selected: list[int] = []
    while not state.is_feasible():
        element = state.random_uncovered_element()
        available = state.uncovered_sets_containing(element)
        if not available:
            raise _infeasible(state)
        chosen = available[rng.randrange(len(available))]
        state.cover_set(chosen)
        selected.append(chosen)
    return selected


def _greedy(state: ProblemState, metric: str) -> list[int]:
    selected: list[int] = []
    while not state.is_feasible():
        chosen = state.best_uncovered_set(metric)
        if chosen is None:
            raise _infeasible(state)
        state.cover_set(chosen)
        selected.append(chosen)
    return selected


def ch2_min_cost(state: ProblemState, rng: random.Random) -> list[int]:
    return _greedy(state, "cost")


def ch3_min_cost_elems_ratio(state: ProblemState, rng: random.Random) -> list[int]:
    return _greedy(state, "cost_elems_ratio")


def ch4_min_cost_additional_elems_ratio(state: ProblemState, rng: random.Random) -> list[int]:
    return _greedy(state, "cost_additional_elems_ratio")


HEURISTICS: dict[str, Callable[[ProblemState, random.Random], list[int]]] = {
    "ch1": ch1_random,
    "ch2": ch2_min_cost,
    "ch3": ch3_min_cost_elems_ratio,
    "ch4": ch4_min_cost_additional_elems_ratio,
}


def construct(state: ProblemState, heuristic: str, rng: random.Random) -> list[int]:
    """Covers sets with ``heuristic`` until no element is left uncovered.

    Works on top of whatever is already covered, so it doubles as the repair
    step of simulated annealing. Returns the sets in the order they were covered.
    """

    key = str(heuristic).strip().lower()
    if key not in HEURISTICS:
        raise ValueError(f"Unsupported constructive heuristic={heuristic}, expected {'|'.join(CONSTRUCTIVE_HEURISTICS)}")
    selected = HEURISTICS[key](state, rng)
    logger.debug("%s covered %d sets, cost=%s", key, len(selected), state.covered_sets_cost())
    return selected
