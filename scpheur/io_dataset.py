from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

from scpheur.types import SetCoverInstance, SetRecord


META_PATTERN = re.compile(r"(?P<key>[A-Za-z_]+)=(?P<value>\S+)")


def parse_meta_line(line: str) -> dict[str, str]:
    text = line.strip()
    if not text.startswith("#"):
        raise ValueError(f"meta line must start with '#': {line!r}")
    meta = {m.group("key"): m.group("value") for m in META_PATTERN.finditer(text)}
    for key in ("class", "sample"):
        if key not in meta:
            raise ValueError(
                "malformed meta line, expected: # class=<id> sample=<id> n=<elements> m=<sets> ..."
            )
    return meta


def _check_feasible(records: list[SetRecord], n_elements: int, p: Path) -> None:
    covered: set[int] = set()
    for rec in records:
        covered.update(rec.elements)
    if len(covered) < n_elements:
        raise ValueError(f"infeasible instance, uncoverable elements={n_elements - len(covered)}: {p}")


def _density(records: list[SetRecord], n_elements: int, n_sets: int) -> float:
    nonzeros = sum(rec.n_elements for rec in records)
    return nonzeros / float(n_elements * n_sets) if n_elements > 0 and n_sets > 0 else 0.0


def _read_meta_format(p: Path, lines: list[str], dataset_id: str) -> SetCoverInstance:
    meta = parse_meta_line(lines[0])

    header_parts = lines[1].split()
    if len(header_parts) != 2:
        raise ValueError(f"second line must be '<n_elements> <n_sets>': {p}")

    n_elements = int(header_parts[0])
    n_sets = int(header_parts[1])
    if n_elements < 1:
        raise ValueError(f"instance must have at least one element, got n_elements={n_elements}: {p}")
    if ("n" in meta and int(meta["n"]) != n_elements) or ("m" in meta and int(meta["m"]) != n_sets):
        raise ValueError(f"meta line and header disagree on sizes: {p}")

    set_lines = lines[2:]
    if len(set_lines) != n_sets:
        raise ValueError(f"set line count mismatch, declared={n_sets}, found={len(set_lines)}: {p}")

    records: list[SetRecord] = []
    for idx, raw in enumerate(set_lines):
        parts = raw.split()
        cost = float(parts[0])
        if cost <= 0:
            raise ValueError(f"set cost must be positive, set={idx}, cost={cost}: {p}")
        elements = tuple(dict.fromkeys(int(x) for x in parts[1:]))
        for element in elements:
            if element < 0 or element >= n_elements:
                raise ValueError(f"element out of range, set={idx}, element={element}, n_elements={n_elements}: {p}")
        records.append(SetRecord(index=idx, cost=cost, elements=elements))

    _check_feasible(records, n_elements, p)
    return SetCoverInstance(
        dataset_id=dataset_id,
        class_id=meta["class"],
        sample_id=meta["sample"],
        path=str(p),
        n_elements=n_elements,
        n_sets=n_sets,
        density=_density(records, n_elements, n_sets),
        sets=tuple(records),
    )


def _read_orlib_format(p: Path, lines: list[str], dataset_id: str) -> SetCoverInstance:
    """OR-Library layout: sizes, set costs, then per element a count and 1-based set ids."""

    tokens = [tok for line in lines for tok in line.split()]
    try:
        values = [int(tok) for tok in tokens]
    except ValueError as exc:
        raise ValueError(f"non-integer token in instance file: {p}") from exc
    if len(values) < 2:
        raise ValueError(f"missing '<n_elements> <n_sets>' header: {p}")

    n_elements, n_sets = values[0], values[1]
    if n_elements < 1:
        raise ValueError(f"instance must have at least one element, got n_elements={n_elements}: {p}")
    pos = 2
    if len(values) < pos + n_sets:
        raise ValueError(f"expected {n_sets} set costs, found {len(values) - pos}: {p}")
    costs = values[pos:pos + n_sets]
    pos += n_sets

    members: list[list[int]] = [[] for _ in range(n_sets)]
    for element in range(n_elements):
        if pos >= len(values):
            raise ValueError(f"missing row for element {element}, declared n_elements={n_elements}: {p}")
        count = values[pos]
        pos += 1
        row = values[pos:pos + count]
        if len(row) != count:
            raise ValueError(f"element {element} declares {count} sets, found {len(row)}: {p}")
        pos += count
        for set_id in row:
            if set_id < 1 or set_id > n_sets:
                raise ValueError(f"set id out of range, element={element}, set={set_id}, n_sets={n_sets}: {p}")
            members[set_id - 1].append(element)
    if pos != len(values):
        raise ValueError(f"trailing data after {n_elements} element rows: {p}")

    records: list[SetRecord] = []
    for idx, cost in enumerate(costs):
        if cost <= 0:
            raise ValueError(f"set cost must be positive, set={idx}, cost={cost}: {p}")
        records.append(SetRecord(index=idx, cost=float(cost), elements=tuple(dict.fromkeys(members[idx]))))

    _check_feasible(records, n_elements, p)
    return SetCoverInstance(
        dataset_id=dataset_id,
        class_id=p.parent.name or "orlib",
        sample_id=p.stem,
        path=str(p),
        n_elements=n_elements,
        n_sets=n_sets,
        density=_density(records, n_elements, n_sets),
        sets=tuple(records),
    )


def read_instance(path: str | Path, dataset_id: str | None = None) -> SetCoverInstance:
    p = Path(path)
    lines = [line.rstrip("\n") for line in p.read_text(encoding="utf-8").splitlines() if line.strip()]
    if len(lines) < 2:
        raise ValueError(f"instance file is too short: {p}")

    ds_id = dataset_id if dataset_id is not None else p.parent.name
    if lines[0].lstrip().startswith("#"):
        return _read_meta_format(p, lines, ds_id)
    return _read_orlib_format(p, lines, ds_id)


def iter_instances(
    dataset_root: str | Path,
    file_glob: str = "*.txt",
) -> Iterable[SetCoverInstance]:
    root = Path(dataset_root)
    if not root.exists():
        raise FileNotFoundError(f"dataset directory does not exist: {root}")

    for path in sorted(x for x in root.rglob(file_glob) if x.is_file()):
        yield read_instance(path, dataset_id=root.name)


def read_all_instances(dataset_root: str | Path, file_glob: str = "*.txt") -> list[SetCoverInstance]:
    return list(iter_instances(dataset_root=dataset_root, file_glob=file_glob))


def write_instance_file(
    path: str | Path,
    class_id: str,
    sample_id: str,
    costs: list[float],
    set_elements: list[list[int]],
    n_elements: int,
) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        f"# class={class_id} sample={sample_id} n={n_elements} m={len(costs)}",
        f"{n_elements} {len(costs)}",
    ]
    for cost, elements in zip(costs, set_elements):
        cost_text = str(int(cost)) if float(cost).is_integer() else str(cost)
        element_text = " ".join(str(e) for e in elements)
        lines.append(f"{cost_text} {element_text}" if element_text else cost_text)

    p.write_text("\n".join(lines) + "\n", encoding="utf-8")
