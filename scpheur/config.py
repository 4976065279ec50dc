from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping

from omegaconf import OmegaConf

from scpheur.alg_constructive import CONSTRUCTIVE_HEURISTICS
from scpheur.alg_local_search import IMPROVEMENT_TYPES


STOCHASTIC_SEARCHES = ("none", "sa", "aco")


@dataclass(frozen=True)
class SolverConfig:
    """Parameters of one solver run.

    constructive: ch1 (random), ch2 (min cost), ch3 (min cost/elements),
        ch4 (min cost/newly covered elements).
    redundancy_elimination: prune the constructed cover.
    improvement: none, fi (first improvement) or bi (best improvement).
    stochastic: none, sa (simulated annealing) or aco (ant colony).
    temperature, cooling: SA initial temperature and linear cooling step.
    beta, rho, epsilon, n_ants, max_generations, duration_ms: ACO parameters.
        duration_ms=None budgets ACO at ``duration_factor`` times the CH4 runtime.
    aco_seed_constructive: seed the colony's best-known cover with the
        constructive heuristic instead of starting from pheromone alone.
    post_improvement: run ``improvement`` on the SA/ACO result as well.
    """

    constructive: str = "ch1"
    redundancy_elimination: bool = False
    improvement: str = "none"
    stochastic: str = "none"
    seed: int = 1
    temperature: float = 800.0
    cooling: float = 0.95
    beta: float = 5.0
    rho: float = 0.99
    epsilon: float = 0.005
    n_ants: int = 20
    max_generations: int = 1000
    duration_ms: float | None = 10000.0
    duration_factor: float = 100.0
    aco_seed_constructive: bool = False
    post_improvement: bool = False

    def validate(self) -> SolverConfig:
        if self.constructive not in CONSTRUCTIVE_HEURISTICS:
            raise ValueError(f"constructive must be one of {CONSTRUCTIVE_HEURISTICS}, got {self.constructive}")
        if self.improvement not in IMPROVEMENT_TYPES:
            raise ValueError(f"improvement must be one of {IMPROVEMENT_TYPES}, got {self.improvement}")
        if self.stochastic not in STOCHASTIC_SEARCHES:
            raise ValueError(f"stochastic must be one of {STOCHASTIC_SEARCHES}, got {self.stochastic}")
        if self.temperature <= 0:
            raise ValueError(f"temperature must be > 0, got {self.temperature}")
        if self.cooling <= 0:
            raise ValueError(f"cooling must be > 0, got {self.cooling}")
        if not 0.0 < self.rho < 1.0:
            raise ValueError(f"rho must be in (0, 1), got {self.rho}")
        if not 0.0 < self.epsilon < 1.0:
            raise ValueError(f"epsilon must be in (0, 1), got {self.epsilon}")
        if self.beta < 0:
            raise ValueError(f"beta must be >= 0, got {self.beta}")
        if self.n_ants < 1:
            raise ValueError(f"n_ants must be >= 1, got {self.n_ants}")
        if self.max_generations < 1:
            raise ValueError(f"max_generations must be >= 1, got {self.max_generations}")
        if self.duration_ms is not None and self.duration_ms <= 0:
            raise ValueError(f"duration_ms must be > 0, got {self.duration_ms}")
        if self.duration_factor <= 0:
            raise ValueError(f"duration_factor must be > 0, got {self.duration_factor}")
        return self

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ValueError(f"expected a boolean, got {value!r}")


_CASTS = {
    "seed": int,
    "n_ants": int,
    "max_generations": int,
    "temperature": float,
    "cooling": float,
    "beta": float,
    "rho": float,
    "epsilon": float,
    "duration_factor": float,
    "redundancy_elimination": _to_bool,
    "aco_seed_constructive": _to_bool,
    "post_improvement": _to_bool,
}


def config_from_mapping(params: Mapping[str, Any]) -> SolverConfig:
    known = {f.name for f in fields(SolverConfig)}
    unknown = sorted(set(params) - known)
    if unknown:
        raise ValueError(f"unknown solver parameters: {unknown}")

    values: dict[str, Any] = {}
    for key, value in params.items():
        if value is None and key != "duration_ms":
            continue
        if key in ("constructive", "improvement", "stochastic"):
            value = str(value).strip().lower()
        elif key == "duration_ms":
            value = None if value is None else float(value)
        elif key in _CASTS:
            value = _CASTS[key](value)
        values[key] = value
    return SolverConfig(**values).validate()


def _set_nested(config: dict[str, Any], dotted_key: str, value: Any) -> None:
    parts = dotted_key.split(".")
    cur = config
    for part in parts[:-1]:
        node = cur.get(part)
        if not isinstance(node, dict):
            node = {}
            cur[part] = node
        cur = node
    cur[parts[-1]] = value


def apply_overrides(config: dict[str, Any], overrides: Mapping[str, Any] | None) -> dict[str, Any]:
    if not overrides:
        return config
    for key, value in overrides.items():
        if value is None:
            continue
        _set_nested(config, key, value)
    return config


def load_yaml(path: str | Path, overrides: Mapping[str, Any] | None = None) -> dict[str, Any]:
    cfg_obj = OmegaConf.load(str(path))
    cfg = OmegaConf.to_container(cfg_obj, resolve=True)
    if not isinstance(cfg, dict):
        raise ValueError(f"config root must be a mapping: {path}")
    return apply_overrides(cfg, overrides)


def load_solver_config(path: str | Path | None = None, overrides: Mapping[str, Any] | None = None) -> SolverConfig:
    """Reads the ``solver`` section of a YAML file, then applies ``solver.<name>`` overrides."""

    cfg: dict[str, Any] = load_yaml(path) if path is not None else {}
    cfg = apply_overrides(cfg, overrides)
    return config_from_mapping(dict(cfg.get("solver", {}) or {}))
