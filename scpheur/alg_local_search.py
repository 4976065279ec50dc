from __future__ import annotations

import logging
from typing import Any

from scpheur.problem import ProblemState
from scpheur.trace import QualityTrace


logger = logging.getLogger(__name__)

IMPROVEMENT_TYPES = ("none", "fi", "bi")


def _try_candidate(work: ProblemState, candidate: int) -> float | None:
    """Covers ``candidate`` and prunes; returns the cost when the result is a full cover."""

    work.cover_set(candidate)
    work.redundancy_elimination()
    if work.is_feasible():
        return work.covered_sets_cost()
    return None


def first_improvement(
    state: ProblemState,
    trace: QualityTrace | None = None,
) -> tuple[ProblemState, dict[str, Any]]:
    """Iterative first improvement.

    Each round removes one random covered set and tries the uncovered sets,
    cheapest first, as a replacement. The first full cover that is strictly
    cheaper is kept and a new round starts. A round without any improving
    candidate restores the cover and stops the search.
    """

    work = state.clone()
    current_cost = work.covered_sets_cost()
    rounds = 0
    accepted = 0

    improvement = True
    while improvement and work.covered_sets:
        improvement = False
        rounds += 1

        candidates = work.ordered_uncovered_sets()
        current_cover = work.covered_sets
        work.uncover_set(work.random_covered_set())
        gap_cover = work.covered_sets

        for candidate in candidates:
            cost = _try_candidate(work, candidate)
            if cost is not None and cost < current_cost:
                improvement = True
                accepted += 1
                current_cost = cost
                break
            work.restore_covered_sets(gap_cover)

        if not work.is_feasible():
            work.restore_covered_sets(current_cover)
        if trace is not None:
            trace.record(work.covered_sets_cost())

    logger.debug("first improvement final cost=%s rounds=%d", work.covered_sets_cost(), rounds)
    return work, {"rounds": rounds, "accepted_moves": accepted}


def best_improvement(
    state: ProblemState,
    trace: QualityTrace | None = None,
) -> tuple[ProblemState, dict[str, Any]]:
    """Iterative best improvement: evaluate a whole sweep, then commit to its best cover."""

    work = state.clone()
    best_cost = work.covered_sets_cost()
    best_cover = work.covered_sets
    rounds = 0
    accepted = 0

    improvement = True
    while improvement and work.covered_sets:
        improvement = False
        rounds += 1

        candidates = work.ordered_uncovered_sets()
        work.uncover_set(work.random_covered_set())
        gap_cover = work.covered_sets

        for candidate in candidates:
            cost = _try_candidate(work, candidate)
            if cost is not None and cost < best_cost:
                improvement = True
                best_cost = cost
                best_cover = work.covered_sets
            work.restore_covered_sets(gap_cover)

        if improvement:
            accepted += 1
        work.restore_covered_sets(best_cover)
        if trace is not None:
            trace.record(best_cost)

    logger.debug("best improvement final cost=%s rounds=%d", work.covered_sets_cost(), rounds)
    return work, {"rounds": rounds, "accepted_moves": accepted}


def improve(
    state: ProblemState,
    improvement: str,
    trace: QualityTrace | None = None,
) -> tuple[ProblemState, dict[str, Any]]:
    key = str(improvement or "none").strip().lower()
    if key == "none":
        return state, {"rounds": 0, "accepted_moves": 0}
    if key == "fi":
        return first_improvement(state, trace=trace)
    if key == "bi":
        return best_improvement(state, trace=trace)
    raise ValueError(f"Unsupported improvement={improvement}, expected {'|'.join(IMPROVEMENT_TYPES)}")
