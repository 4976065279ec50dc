from __future__ import annotations

import logging
import math
import random
from typing import Any

from scpheur.alg_constructive import CONSTRUCTIVE_HEURISTICS, construct
from scpheur.problem import ProblemState
from scpheur.trace import QualityTrace


logger = logging.getLogger(__name__)

MAX_NO_CHANGE = 50
LOW_TEMPERATURE_RATIO = 0.003
MIN_ACCEPTANCE = 0.03


def acceptance_probability(current_cost: float, neighbor_cost: float, temperature: float) -> float:
    """Metropolis condition, with the raw cost difference used as energy."""

    if neighbor_cost <= current_cost:
        return 1.0
    return math.exp((current_cost - neighbor_cost) / temperature)


def accept(probability: float, draw: float) -> bool:
    return draw <= probability


def temperature_at(initial_temperature: float, cooling: float, iteration: int) -> float:
    return float(initial_temperature) - float(cooling) * int(iteration)


def generate_neighbor(state: ProblemState, rng: random.Random) -> tuple[ProblemState, str]:
    neighbor = state.clone()
    neighbor.uncover_set(neighbor.random_covered_set())
    heuristic = CONSTRUCTIVE_HEURISTICS[rng.randrange(len(CONSTRUCTIVE_HEURISTICS))]
    construct(neighbor, heuristic, rng)
    neighbor.redundancy_elimination()
    return neighbor, heuristic


def simulated_annealing(
    state: ProblemState,
    rng: random.Random,
    initial_temperature: float = 800.0,
    cooling: float = 0.95,
    max_no_change: int = MAX_NO_CHANGE,
    low_temperature_ratio: float = LOW_TEMPERATURE_RATIO,
    min_acceptance: float = MIN_ACCEPTANCE,
    trace: QualityTrace | None = None,
) -> tuple[ProblemState, dict[str, Any]]:
    """Simulated annealing over full covers with a linear cooling schedule.

    ``state`` must be a full cover. The best cover seen is returned as an
    independent snapshot, never the live working solution.
    """

    if initial_temperature <= 0:
        raise ValueError(f"initial_temperature must be > 0, got {initial_temperature}")

    current = state.clone()
    current_cost = current.covered_sets_cost()
    best = current.clone()
    best_cost = current_cost

    temperature = float(initial_temperature)
    low_temperature = float(initial_temperature) * float(low_temperature_ratio)
    iteration = 0
    accepted = 0
    no_change = 0
    stop_reason = "temperature"

    while temperature > 0 and current.covered_sets:
        neighbor, _heuristic = generate_neighbor(current, rng)
        neighbor_cost = neighbor.covered_sets_cost()
        probability = acceptance_probability(current_cost, neighbor_cost, temperature)

        if accept(probability, rng.random()):
            accepted += 1
            no_change = 0 if neighbor_cost != current_cost else no_change + 1
            current = neighbor
            current_cost = neighbor_cost
        else:
            no_change += 1

        if current_cost < best_cost:
            best = current.clone()
            best_cost = current_cost
        if trace is not None:
            trace.record(best_cost)

        iteration += 1
        temperature = temperature_at(initial_temperature, cooling, iteration)
        if temperature < low_temperature:
            if no_change > int(max_no_change):
                stop_reason = "no_change"
                break
            if probability < float(min_acceptance):
                stop_reason = "low_acceptance"
                break

        if iteration % 100 == 0:
            logger.debug("SA iteration=%d temperature=%.4f best=%s", iteration, temperature, best_cost)

    logger.info("SA finished: cost=%s iterations=%d stop=%s", best_cost, iteration, stop_reason)
    meta = {
        "iterations": int(iteration),
        "accepted_moves": int(accepted),
        "acceptance_rate": float(accepted / max(1, iteration)),
        "final_temp": float(temperature),
        "stop_reason": stop_reason,
    }
    return best, meta
