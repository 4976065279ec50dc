from __future__ import annotations

import time
from pathlib import Path

import pandas as pd


class QualityTrace:
    """Quality-over-runtime samples: (elapsed_ms, best cost so far)."""

    def __init__(self, start: float | None = None) -> None:
        self.start = time.perf_counter() if start is None else float(start)
        self.samples: list[tuple[int, float]] = []

    def record(self, cost: float) -> None:
        elapsed_ms = int((time.perf_counter() - self.start) * 1000.0)
        self.samples.append((elapsed_ms, float(cost)))

    def costs(self) -> list[float]:
        return [cost for _, cost in self.samples]

    def __len__(self) -> int:
        return len(self.samples)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.samples, columns=["elapsed_ms", "cost"])

    def write(self, path: str | Path) -> Path:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        frame = self.to_frame()
        frame["cost"] = frame["cost"].map(lambda c: int(c) if float(c).is_integer() else c)
        frame.to_csv(p, sep=";", header=False, index=False)
        return p


def trace_file_name(start_ms: int, instance_path: str | Path, output_dir: str | Path) -> Path:
    return Path(output_dir) / f"{int(start_ms)}{Path(instance_path).name}"
