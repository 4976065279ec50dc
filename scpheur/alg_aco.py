from __future__ import annotations

import logging
import random
import time
from typing import Any

import numpy as np

from scpheur.problem import ProblemState
from scpheur.trace import QualityTrace


logger = logging.getLogger(__name__)

HUGE_VALUE = 100000.0


class SelectionError(RuntimeError):
    """Roulette-wheel selection never reached the random draw."""


def pheromone_bounds(best_cost: float, rho: float, epsilon: float) -> tuple[float, float]:
    max_pheromone = 1.0 / ((1.0 - float(rho)) * float(best_cost))
    return float(epsilon) * max_pheromone, max_pheromone


def roulette_select(candidates: list[int], weights: np.ndarray, draw: float) -> int:
    """First candidate whose running share of the total weight reaches ``draw``."""

    total = float(np.sum(weights))
    if not np.isfinite(total) or total <= 0.0:
        raise SelectionError(f"selection weights do not normalize, total={total}")
    cumulative = 0.0
    for set_id, weight in zip(candidates, weights):
        cumulative += float(weight) / total
        if cumulative >= draw:
            return int(set_id)
    raise SelectionError(
        f"cumulative probability {cumulative!r} never reached draw {draw!r} over {len(candidates)} candidates"
    )


class Ant:
    """Builds one cover from the colony's pheromone and its own heuristic information."""

    def __init__(
        self,
        state: ProblemState,
        pheromone: np.ndarray,
        initial_heuristic: np.ndarray,
        beta: float,
        rng: random.Random,
    ) -> None:
        self.state = state
        self.pheromone = pheromone
        self.initial_heuristic = initial_heuristic
        self.heuristic = initial_heuristic.copy()
        self.beta = float(beta)
        self.rng = rng

    @property
    def cost(self) -> float:
        return self.state.covered_sets_cost()

    def _weights(self, candidates: list[int]) -> np.ndarray:
        idx = np.asarray(candidates, dtype=np.int64)
        return self.pheromone[idx] * np.power(self.heuristic[idx], self.beta)

    def probabilities(self, candidates: list[int]) -> np.ndarray:
        weights = self._weights(candidates)
        return weights / np.sum(weights)

    def select_set(self, candidates: list[int]) -> int:
        return roulette_select(candidates, self._weights(candidates), self.rng.random())

    def update_heuristic_information(self, newly_covered: np.ndarray) -> None:
        to_update: set[int] = set()
        for element in newly_covered.tolist():
            to_update.update(s for s in self.state.sets_containing(element) if not self.state.is_set_covered(s))
        for set_id in to_update:
            self.heuristic[set_id] = self.state.additional_elements_for(set_id) / self.state.set_cost(set_id)

    def solve(self) -> bool:
        """Constructs a cover from scratch. False when some element has no uncovered set left."""

        self.state.uncover_all_sets()
        self.heuristic[:] = self.initial_heuristic
        while not self.state.is_feasible():
            element = self.state.random_uncovered_element()
            candidates = self.state.uncovered_sets_containing(element)
            if not candidates:
                return False
            chosen = self.select_set(candidates)
            newly_covered = self.state.newly_covered_by(chosen)
            self.state.cover_set(chosen)
            self.update_heuristic_information(newly_covered)
        return True


class AntColony:
    """MAX-MIN style ant system for the set covering problem."""

    def __init__(
        self,
        state: ProblemState,
        rng: random.Random,
        n_ants: int = 20,
        beta: float = 5.0,
        rho: float = 0.99,
        epsilon: float = 0.005,
        duration_ms: float = 10000.0,
        max_generations: int = 1000,
        incumbent: ProblemState | None = None,
        trace: QualityTrace | None = None,
    ) -> None:
        if n_ants < 1:
            raise ValueError(f"n_ants must be >= 1, got {n_ants}")
        if not 0.0 < rho < 1.0:
            raise ValueError(f"rho must be in (0, 1), got {rho}")
        if max_generations < 1:
            raise ValueError(f"max_generations must be >= 1, got {max_generations}")

        self.rng = rng
        self.rho = float(rho)
        self.epsilon = float(epsilon)
        self.duration_ms = float(duration_ms)
        self.max_generations = int(max_generations)
        self.trace = trace

        template = state.clone()
        template.uncover_all_sets()
        data = template.data
        initial_heuristic = np.divide(
            data.sizes.astype(float),
            data.costs,
            out=np.zeros(data.n_sets),
            where=data.costs > 0,
        )

        self.pheromone = np.full(data.n_sets, HUGE_VALUE)
        self.max_pheromone = HUGE_VALUE
        self.min_pheromone = 0.0
        self.ants = [
            Ant(template.clone(), self.pheromone, initial_heuristic, beta, rng)
            for _ in range(int(n_ants))
        ]

        self.best: ProblemState | None = None
        self.best_cost = float("inf")
        if incumbent is not None and incumbent.is_feasible():
            self.best = incumbent.clone()
            self.best_cost = self.best.covered_sets_cost()
        self.generations = 0

    def evaporate(self) -> None:
        np.multiply(self.pheromone, self.rho, out=self.pheromone)
        np.maximum(self.pheromone, self.min_pheromone, out=self.pheromone)

    def update_pheromone(self, best_changed: bool) -> None:
        if self.best is None:
            raise ValueError("pheromone update needs a best-known cover")
        self.evaporate()
        delta = 1.0 / self.best_cost

        if best_changed:
            self.min_pheromone, self.max_pheromone = pheromone_bounds(self.best_cost, self.rho, self.epsilon)

        for set_id in sorted(self.best.covered_sets):
            value = self.rho * self.pheromone[set_id] + delta
            self.pheromone[set_id] = min(max(value, self.min_pheromone), self.max_pheromone)

    def run_generation(self) -> bool:
        """One generation over the whole colony; True when the best cover changed."""

        previous_cover = self.best.covered_sets if self.best is not None else None
        for ant in self.ants:
            if not ant.solve():
                continue
            ant.state.redundancy_elimination()
            cost = ant.cost
            if cost < self.best_cost:
                self.best = ant.state.clone()
                self.best_cost = cost

        if self.best is None:
            raise ValueError("no ant could build a full cover; instance is infeasible")

        best_changed = self.generations == 0 or previous_cover != self.best.covered_sets
        self.update_pheromone(best_changed)
        self.generations += 1
        if self.trace is not None:
            self.trace.record(self.best_cost)
        return best_changed

    def run(self) -> tuple[ProblemState, dict[str, Any]]:
        deadline = time.perf_counter() + self.duration_ms / 1000.0
        improvements = 0
        stop_reason = "max_generations"
        while self.generations < self.max_generations:
            if self.run_generation() and self.generations > 1:
                improvements += 1
            if self.generations % 20 == 0:
                logger.debug("ACO generation=%d best=%s", self.generations, self.best_cost)
            if time.perf_counter() > deadline and self.generations < self.max_generations:
                stop_reason = "deadline"
                break

        if self.best is None:
            raise ValueError("ant colony finished without a full cover")
        logger.info("ACO finished: cost=%s generations=%d stop=%s", self.best_cost, self.generations, stop_reason)
        meta = {
            "generations": int(self.generations),
            "best_improvements": int(improvements),
            "stop_reason": stop_reason,
            "min_pheromone": float(self.min_pheromone),
            "max_pheromone": float(self.max_pheromone),
        }
        return self.best.clone(), meta
