from __future__ import annotations

import importlib
import json
import logging
import time
from pathlib import Path
from typing import Any, Mapping

import pandas as pd

from scpheur.config import load_yaml
from scpheur.io_dataset import read_all_instances
from scpheur.metrics import add_gap_to_best, convergence_speed, normalize_result, summarize_by_config
from scpheur.trace import QualityTrace
from scpheur.utils import ensure_dir, safe_name, timestamp_id


logger = logging.getLogger(__name__)


def _load_solver(module_name: str):
    module = importlib.import_module(module_name)
    if not hasattr(module, "solve"):
        raise AttributeError(f"solver module has no solve(): {module_name}")
    return module.solve


def _configurations(cfg: dict[str, Any]) -> list[tuple[str, dict[str, Any]]]:
    raw = cfg["experiment"].get("configurations", [])
    if not raw:
        return [("default", dict(cfg.get("solver", {}) or {}))]

    base = dict(cfg.get("solver", {}) or {})
    points: list[tuple[str, dict[str, Any]]] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValueError(f"experiment.configurations[{idx}] must be a mapping")
        params = dict(base)
        params.update(item.get("params", {}) or {})
        points.append((str(item.get("id", f"config_{idx}")), params))
    ids = [config_id for config_id, _ in points]
    if len(set(ids)) != len(ids):
        raise ValueError(f"duplicate configuration ids: {ids}")
    return points


def _write_trace(curve: list[float], trace_ms: list[int], path: Path) -> None:
    trace = QualityTrace()
    trace.samples = list(zip((int(ms) for ms in trace_ms), curve))
    trace.write(path)


def run_experiment(
    config_path: str | Path,
    overrides: Mapping[str, Any] | None = None,
) -> Path:
    """Runs every configuration on every instance for every seed and writes CSV results."""

    cfg = load_yaml(config_path, overrides)

    solver = _load_solver(str(cfg.get("solver_module", "scpheur.solver")))

    run_id = timestamp_id(str(cfg["output"].get("run_id_prefix", "exp")))
    run_dir = ensure_dir(Path(cfg["output"].get("root", "outputs/experiments")) / run_id)
    results_dir = ensure_dir(run_dir / "results")
    write_traces = bool(cfg["output"].get("write_traces", False))
    traces_dir = ensure_dir(run_dir / "traces") if write_traces else None

    dataset_root = Path(cfg["dataset"]["root"])
    instances = read_all_instances(dataset_root, file_glob=str(cfg["dataset"].get("file_glob", "*.txt")))
    if not instances:
        raise ValueError(f"no instances found: dataset_root={dataset_root}")

    repeats = int(cfg["experiment"].get("repeats", 5))
    if repeats < 1:
        raise ValueError("repeats must be >= 1")
    seeds = [int(x) for x in cfg["experiment"].get("seeds", list(range(1, repeats + 1)))]
    if repeats > len(seeds):
        seeds = seeds + [seeds[-1] + i + 1 for i in range(repeats - len(seeds))]

    rows: list[dict[str, Any]] = []
    for config_id, params in _configurations(cfg):
        for repeat_idx in range(repeats):
            seed = int(seeds[repeat_idx])
            for inst in instances:
                start = time.perf_counter()
                raw = solver(inst, seed=seed, **params)
                result = normalize_result(raw, time.perf_counter() - start)
                meta = result["meta"]
                logger.info(
                    "%s seed=%d %s cost=%s time=%.3fs",
                    config_id, seed, inst.instance_id, result["objective"], result["runtime_sec"],
                )

                if traces_dir is not None:
                    name = f"{safe_name(config_id)}_{seed}_{safe_name(Path(inst.path).name or inst.sample_id)}"
                    _write_trace(result["convergence_curve"], meta.get("trace_ms", []), traces_dir / name)

                rows.append(
                    {
                        "run_id": run_id,
                        "config_id": config_id,
                        "dataset_id": inst.dataset_id,
                        "instance_id": inst.instance_id,
                        "source_path": inst.path,
                        "set_count": inst.n_sets,
                        "element_count": inst.n_elements,
                        "density": inst.density,
                        "seed": seed,
                        "repeat_idx": repeat_idx,
                        "params_json": json.dumps(params, ensure_ascii=False, sort_keys=True),
                        "runtime_sec": float(result["runtime_sec"]),
                        "objective": float(result["objective"]),
                        "feasible": bool(result["is_feasible"]),
                        "selected_set_count": len(result["selected_sets"]),
                        "selected_sets_json": json.dumps(result["selected_sets"]),
                        "convergence_speed": convergence_speed(result["convergence_curve"]),
                    }
                )

    runs_df = add_gap_to_best(pd.DataFrame(rows))
    runs_df.to_csv(results_dir / "runs.csv", index=False)
    summarize_by_config(runs_df).to_csv(results_dir / "summary.csv", index=False)
    pd.DataFrame(
        [
            {"key": "run_id", "value": run_id},
            {"key": "dataset_root", "value": str(dataset_root)},
            {"key": "repeats", "value": repeats},
            {"key": "seeds", "value": ",".join(str(s) for s in seeds[:repeats])},
        ]
    ).to_csv(results_dir / "run_meta.csv", index=False)
    return run_dir
