from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SetRecord:
    index: int
    cost: float
    elements: tuple[int, ...]

    @property
    def n_elements(self) -> int:
        return len(self.elements)


@dataclass(frozen=True)
class SetCoverInstance:
    dataset_id: str
    class_id: str
    sample_id: str
    path: str
    n_elements: int
    n_sets: int
    density: float
    sets: tuple[SetRecord, ...]

    @property
    def instance_id(self) -> str:
        return f"{self.class_id}/{self.sample_id}"


@dataclass(frozen=True)
class SolveResult:
    objective: float
    runtime_sec: float
    is_feasible: bool
    selected_sets: tuple[int, ...]
    convergence_curve: tuple[float, ...]
    meta: dict[str, Any]


def build_instance(
    costs: list[float],
    set_elements: list[list[int]],
    n_elements: int,
    sample_id: str = "inline",
) -> SetCoverInstance:
    """Builds an in-memory instance, mostly for tests and generated data."""

    if int(n_elements) < 1:
        raise ValueError(f"instance must have at least one element, got n_elements={n_elements}")
    if len(costs) != len(set_elements):
        raise ValueError(f"costs/sets length mismatch: {len(costs)} != {len(set_elements)}")

    records: list[SetRecord] = []
    for idx, (cost, elements) in enumerate(zip(costs, set_elements)):
        if float(cost) <= 0:
            raise ValueError(f"set cost must be positive, set={idx}, cost={cost}")
        unique = tuple(dict.fromkeys(int(e) for e in elements))
        for element in unique:
            if element < 0 or element >= n_elements:
                raise ValueError(f"element out of range, set={idx}, element={element}, n_elements={n_elements}")
        records.append(SetRecord(index=idx, cost=float(cost), elements=unique))

    nonzeros = sum(rec.n_elements for rec in records)
    n_sets = len(records)
    density = nonzeros / float(n_elements * n_sets) if n_elements > 0 and n_sets > 0 else 0.0
    return SetCoverInstance(
        dataset_id="inline",
        class_id="inline",
        sample_id=sample_id,
        path="",
        n_elements=int(n_elements),
        n_sets=n_sets,
        density=density,
        sets=tuple(records),
    )
