from __future__ import annotations

import logging
import random
import time
from pathlib import Path
from typing import Any

from scpheur.alg_aco import AntColony
from scpheur.alg_constructive import construct
from scpheur.alg_local_search import improve
from scpheur.alg_sa import simulated_annealing
from scpheur.config import SolverConfig, config_from_mapping
from scpheur.problem import ProblemState
from scpheur.trace import QualityTrace, trace_file_name
from scpheur.types import SetCoverInstance, SolveResult


logger = logging.getLogger(__name__)


class HeuristicSolver:
    """Runs the configured pipeline on one instance.

    constructive heuristic -> optional redundancy elimination -> optional
    local search, or a stochastic search (SA / ACO) in place of the local
    search. All randomness comes from one ``random.Random(config.seed)``.
    """

    def __init__(self, instance: SetCoverInstance, config: SolverConfig) -> None:
        self.instance = instance
        self.config = config.validate()
        self.rng = random.Random(self.config.seed)
        self.state = ProblemState(instance, self.rng)
        self.trace = QualityTrace()
        self.meta: dict[str, Any] = {}
        self.start_ms: int | None = None

    def _construct(self, state: ProblemState) -> None:
        construct(state, self.config.constructive, self.rng)
        cost_before_re = state.covered_sets_cost()
        if self.config.redundancy_elimination:
            state.redundancy_elimination()
        cost_after_re = state.covered_sets_cost()
        self.meta["cost_before_re"] = cost_before_re
        self.meta["cost_after_re"] = cost_after_re
        self.meta["re_profit"] = cost_before_re - cost_after_re
        self.trace.record(cost_after_re)

    def _improve(self, state: ProblemState) -> ProblemState:
        if self.config.improvement == "none":
            return state
        cost_before = state.covered_sets_cost()
        improved, ls_meta = improve(state, self.config.improvement, trace=self.trace)
        cost_after = improved.covered_sets_cost()
        self.meta["cost_before_improvement"] = cost_before
        self.meta["cost_after_improvement"] = cost_after
        self.meta["improvement_profit"] = cost_before - cost_after
        self.meta["local_search"] = ls_meta
        logger.info("improvement %s: %s -> %s", self.config.improvement, cost_before, cost_after)
        return improved

    def _aco_duration_ms(self) -> float:
        if self.config.duration_ms is not None:
            return float(self.config.duration_ms)
        timing_state = self.state.clone()
        timing_state.uncover_all_sets()
        start = time.perf_counter()
        construct(timing_state, "ch4", self.rng)
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        budget = max(1.0, elapsed_ms * self.config.duration_factor)
        logger.info("ACO time budget estimated from CH4: %.1f ms", budget)
        return budget

    def execute(self) -> SolveResult:
        start = time.perf_counter()
        self.start_ms = int(time.time() * 1000)
        cfg = self.config
        state = self.state

        if cfg.stochastic == "aco":
            incumbent = None
            if cfg.aco_seed_constructive:
                self._construct(state)
                incumbent = state
            colony = AntColony(
                state,
                rng=self.rng,
                n_ants=cfg.n_ants,
                beta=cfg.beta,
                rho=cfg.rho,
                epsilon=cfg.epsilon,
                duration_ms=self._aco_duration_ms(),
                max_generations=cfg.max_generations,
                incumbent=incumbent,
                trace=self.trace,
            )
            state, self.meta["aco"] = colony.run()
        elif cfg.stochastic == "sa":
            self._construct(state)
            state, self.meta["sa"] = simulated_annealing(
                state,
                self.rng,
                initial_temperature=cfg.temperature,
                cooling=cfg.cooling,
                trace=self.trace,
            )
        else:
            self._construct(state)
            state = self._improve(state)

        if cfg.stochastic != "none" and cfg.post_improvement:
            state = self._improve(state)

        self.state = state
        objective = state.covered_sets_cost()
        is_feasible = state.is_feasible()
        runtime_sec = time.perf_counter() - start
        logger.info("Total cost: %s", objective)
        logger.debug("Sets covered: %s", state.printable_covered_sets())

        meta = dict(self.meta)
        meta["config"] = cfg.to_dict()
        meta["trace_ms"] = [ms for ms, _ in self.trace.samples]
        return SolveResult(
            objective=float(objective) if is_feasible else float("inf"),
            runtime_sec=float(runtime_sec),
            is_feasible=bool(is_feasible),
            selected_sets=tuple(sorted(state.covered_sets)),
            convergence_curve=tuple(self.trace.costs()),
            meta=meta,
        )

    def write_trace(self, output_dir: str | Path) -> Path:
        if self.start_ms is None:
            raise ValueError("execute() must run before its trace can be written")
        return self.trace.write(trace_file_name(self.start_ms, self.instance.path or self.instance.sample_id, output_dir))


def solve(instance: SetCoverInstance, seed: int, **kwargs: Any) -> dict[str, Any]:
    """Runner entry point: solver parameters as keyword arguments."""

    params = dict(kwargs)
    params["seed"] = int(seed)
    result = HeuristicSolver(instance, config_from_mapping(params)).execute()
    return {
        "objective": result.objective,
        "runtime_sec": result.runtime_sec,
        "is_feasible": result.is_feasible,
        "selected_sets": list(result.selected_sets),
        "convergence_curve": list(result.convergence_curve),
        "meta": result.meta,
    }
