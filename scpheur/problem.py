from __future__ import annotations

import random
from typing import Iterable

import numpy as np

from scpheur.types import SetCoverInstance


RANKING_METRICS = ("cost", "cost_elems_ratio", "cost_additional_elems_ratio")


class ProblemData:
    """Read-only arrays derived once from an instance and shared by every clone."""

    def __init__(self, instance: SetCoverInstance) -> None:
        self.instance = instance
        self.n_elements = int(instance.n_elements)
        self.n_sets = int(instance.n_sets)

        self.a = np.zeros((self.n_elements, self.n_sets), dtype=np.int8)
        self.set_elements: list[np.ndarray] = []
        element_sets: list[list[int]] = [[] for _ in range(self.n_elements)]
        for j, rec in enumerate(instance.sets):
            elements = np.array(rec.elements, dtype=np.int64)
            self.set_elements.append(elements)
            for element in rec.elements:
                self.a[element, j] = 1
                element_sets[element].append(j)
        self.element_sets: list[tuple[int, ...]] = [tuple(sets) for sets in element_sets]

        self.costs = np.array([float(rec.cost) for rec in instance.sets], dtype=float)
        self.sizes = np.array([len(rec.elements) for rec in instance.sets], dtype=np.int64)
        self.cost_elems_ratio = np.divide(
            self.costs,
            self.sizes,
            out=np.full(self.n_sets, np.inf),
            where=self.sizes > 0,
        )


class ProblemState:
    """Coverage state of a set covering instance.

    Sets and elements are tracked with a boolean vector (covered sets) and an
    integer vector counting, per element, how many covered sets contain it.
    An element is covered iff its count is positive, so the covered and
    uncovered partitions are always derived from the same arrays and can
    never drift apart. Only ``cover_set``, ``uncover_set``,
    ``restore_covered_sets``, ``uncover_all_sets`` and
    ``redundancy_elimination`` write to them.

    Every randomized tie-break draws from ``rng``, which clones share.
    """

    def __init__(self, instance: SetCoverInstance | ProblemData, rng: random.Random) -> None:
        self.data = instance if isinstance(instance, ProblemData) else ProblemData(instance)
        self.rng = rng
        self._set_covered = np.zeros(self.data.n_sets, dtype=bool)
        self._cover_count = np.zeros(self.data.n_elements, dtype=np.int64)

    @property
    def n_elements(self) -> int:
        return self.data.n_elements

    @property
    def n_sets(self) -> int:
        return self.data.n_sets

    @property
    def covered_sets(self) -> set[int]:
        return {int(i) for i in np.flatnonzero(self._set_covered)}

    @property
    def uncovered_sets(self) -> set[int]:
        return {int(i) for i in np.flatnonzero(~self._set_covered)}

    @property
    def covered_elements(self) -> set[int]:
        return {int(i) for i in np.flatnonzero(self._cover_count > 0)}

    @property
    def uncovered_elements(self) -> set[int]:
        return {int(i) for i in np.flatnonzero(self._cover_count == 0)}

    @property
    def n_uncovered_elements(self) -> int:
        return int(np.count_nonzero(self._cover_count == 0))

    def is_set_covered(self, set_id: int) -> bool:
        return bool(self._set_covered[set_id])

    def is_feasible(self) -> bool:
        return self.n_uncovered_elements == 0

    def clone(self) -> ProblemState:
        other = ProblemState(self.data, self.rng)
        other._set_covered = self._set_covered.copy()
        other._cover_count = self._cover_count.copy()
        return other

    # mutations

    def cover_set(self, set_id: int) -> bool:
        if self._set_covered[set_id]:
            return False
        self._set_covered[set_id] = True
        self._cover_count[self.data.set_elements[set_id]] += 1
        return True

    def uncover_set(self, set_id: int) -> bool:
        if not self._set_covered[set_id]:
            return False
        self._set_covered[set_id] = False
        self._cover_count[self.data.set_elements[set_id]] -= 1
        return True

    def uncover_all_sets(self) -> None:
        self._set_covered[:] = False
        self._cover_count[:] = 0

    def restore_covered_sets(self, target_covered_sets: Iterable[int]) -> None:
        self.uncover_all_sets()
        for set_id in target_covered_sets:
            self.cover_set(int(set_id))

    def redundancy_elimination(self) -> list[int]:
        """Drops covered sets, most expensive first, whose elements stay covered without them.

        Single pass, ties broken by ascending set id. Returns the dropped sets.
        """

        selected = np.flatnonzero(self._set_covered)
        order = sorted((int(idx) for idx in selected), key=lambda idx: (-float(self.data.costs[idx]), idx))

        removed: list[int] = []
        for set_id in order:
            elements = self.data.set_elements[set_id]
            if np.all(self._cover_count[elements] >= 2):
                self.uncover_set(set_id)
                removed.append(set_id)
        return removed

    # costs

    def covered_sets_cost(self) -> float:
        return float(np.sum(self.data.costs[self._set_covered]))

    def sets_cost(self, set_ids: Iterable[int]) -> float:
        return float(sum(self.data.costs[int(i)] for i in set_ids))

    def set_cost(self, set_id: int) -> float:
        return float(self.data.costs[set_id])

    # queries

    def additional_elements(self) -> np.ndarray:
        """Number of currently uncovered elements each set would cover."""

        uncovered = (self._cover_count == 0).astype(np.int64)
        return uncovered @ self.data.a

    def additional_elements_for(self, set_id: int) -> int:
        return int(np.count_nonzero(self._cover_count[self.data.set_elements[set_id]] == 0))

    def newly_covered_by(self, set_id: int) -> np.ndarray:
        elements = self.data.set_elements[set_id]
        return elements[self._cover_count[elements] == 0]

    def sets_containing(self, element: int) -> tuple[int, ...]:
        return self.data.element_sets[element]

    def uncovered_sets_containing(self, element: int) -> list[int]:
        return [s for s in self.data.element_sets[element] if not self._set_covered[s]]

    def ordered_uncovered_sets(self) -> list[int]:
        uncovered = np.flatnonzero(~self._set_covered)
        order = np.lexsort((uncovered, self.data.costs[uncovered]))
        return [int(i) for i in uncovered[order]]

    def random_uncovered_element(self) -> int:
        return int(self.rng.choice(np.flatnonzero(self._cover_count == 0).tolist()))

    def random_covered_set(self) -> int:
        return int(self.rng.choice(np.flatnonzero(self._set_covered).tolist()))

    # rankings

    def _ranking_values(self, metric: str) -> np.ndarray:
        gains = self.additional_elements()
        candidates = (~self._set_covered) & (gains > 0)
        if metric == "cost":
            values = self.data.costs
        elif metric == "cost_elems_ratio":
            values = self.data.cost_elems_ratio
        elif metric == "cost_additional_elems_ratio":
            values = np.divide(self.data.costs, gains, out=np.full(self.n_sets, np.inf), where=gains > 0)
        else:
            raise ValueError(f"unknown ranking metric: {metric}, expected one of {RANKING_METRICS}")
        return np.where(candidates, values, np.inf)

    def _min_ranking(self, metric: str) -> float | None:
        values = self._ranking_values(metric)
        if values.size == 0:
            return None
        best = float(np.min(values))
        return best if np.isfinite(best) else None

    def _best_for(self, metric: str, value: float) -> int | None:
        values = self._ranking_values(metric)
        tied = np.flatnonzero(np.isfinite(values) & (values == value))
        if tied.size == 0:
            return None
        sizes = self.data.sizes[tied]
        widest = tied[sizes == sizes.max()]
        return int(self.rng.choice(widest.tolist()))

    def min_uncovered_set_cost(self) -> float | None:
        return self._min_ranking("cost")

    def min_uncovered_set_cost_elems_ratio(self) -> float | None:
        return self._min_ranking("cost_elems_ratio")

    def min_uncovered_set_cost_additional_elems_ratio(self) -> float | None:
        return self._min_ranking("cost_additional_elems_ratio")

    def best_uncovered_set_for_cost(self, cost: float) -> int | None:
        return self._best_for("cost", cost)

    def best_uncovered_set_for_cost_elems_ratio(self, ratio: float) -> int | None:
        return self._best_for("cost_elems_ratio", ratio)

    def best_uncovered_set_for_cost_additional_elems_ratio(self, ratio: float) -> int | None:
        return self._best_for("cost_additional_elems_ratio", ratio)

    def best_uncovered_set(self, metric: str) -> int | None:
        best = self._min_ranking(metric)
        if best is None:
            return None
        return self._best_for(metric, best)

    # diagnostics

    def is_consistent(self) -> bool:
        expected = self.data.a.astype(np.int64) @ self._set_covered.astype(np.int64)
        return bool(np.array_equal(expected, self._cover_count))

    def printable_covered_sets(self) -> str:
        return " ".join(str(s) for s in sorted(self.covered_sets))
