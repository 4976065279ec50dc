from __future__ import annotations

import math
from typing import Any

import numpy as np
import pandas as pd

from scpheur.types import SolveResult


DEFAULT_RESULT = {
    "objective": float("inf"),
    "runtime_sec": 0.0,
    "is_feasible": False,
    "selected_sets": [],
    "convergence_curve": [],
    "meta": {},
}


def normalize_result(raw_result: Any, elapsed: float | None = None) -> dict[str, Any]:
    """Accepts a solver dict or a ``SolveResult`` and fills in missing keys."""

    result = dict(DEFAULT_RESULT)
    if isinstance(raw_result, SolveResult):
        result.update(
            objective=raw_result.objective,
            runtime_sec=raw_result.runtime_sec,
            is_feasible=raw_result.is_feasible,
            selected_sets=raw_result.selected_sets,
            convergence_curve=raw_result.convergence_curve,
            meta=raw_result.meta,
        )
    elif isinstance(raw_result, dict):
        result.update(raw_result)
        if "runtime_sec" not in raw_result and elapsed is not None:
            result["runtime_sec"] = elapsed
    else:
        raise TypeError(f"unsupported solver result type: {type(raw_result).__name__}")

    result["objective"] = float(result["objective"])
    result["runtime_sec"] = float(result["runtime_sec"])
    result["is_feasible"] = bool(result["is_feasible"])
    result["selected_sets"] = [int(x) for x in (result["selected_sets"] or [])]
    result["convergence_curve"] = [float(x) for x in (result["convergence_curve"] or [])]

    meta = result.get("meta", {})
    result["meta"] = meta if isinstance(meta, dict) else {"raw_meta": meta}
    return result


def convergence_speed(curve: list[float]) -> float:
    """Index of the first sample within 5% of the total improvement from the final value."""

    if len(curve) < 2:
        return math.nan

    start = float(curve[0])
    final = float(min(curve))
    if start <= final:
        return 0.0

    target = final + (start - final) * 0.05
    for idx, value in enumerate(curve):
        if value <= target:
            return float(idx)
    return float(len(curve) - 1)


def add_gap_to_best(runs_df: pd.DataFrame) -> pd.DataFrame:
    df = runs_df.copy()
    feasible = df[df["feasible"]]
    best = feasible.groupby("instance_id", as_index=False)["objective"].min()
    best = best.rename(columns={"objective": "best_objective"})
    df = df.merge(best, on="instance_id", how="left")

    df["gap_to_best_pct"] = np.where(
        df["best_objective"].isna(),
        np.nan,
        np.where(
            df["best_objective"] == 0,
            0.0,
            (df["objective"] - df["best_objective"]) / df["best_objective"] * 100.0,
        ),
    )
    return df


def summarize_by_config(runs_df: pd.DataFrame) -> pd.DataFrame:
    if runs_df.empty:
        return pd.DataFrame()

    return (
        runs_df.groupby(["config_id", "instance_id"], as_index=False)
        .agg(
            run_count=("objective", "count"),
            feasible_rate=("feasible", "mean"),
            objective_min=("objective", "min"),
            objective_mean=("objective", "mean"),
            objective_std=("objective", "std"),
            runtime_sec_mean=("runtime_sec", "mean"),
            gap_to_best_pct_mean=("gap_to_best_pct", "mean"),
            convergence_speed_mean=("convergence_speed", "mean"),
        )
        .sort_values(["config_id", "instance_id"])
        .reset_index(drop=True)
    )
