"""Tests for configuration, the solver pipeline, the batch runner and the CLI."""

import math

import pandas as pd
import pytest

import main
from scpheur.config import SolverConfig, config_from_mapping, load_solver_config
from scpheur.io_dataset import write_instance_file
from scpheur.metrics import convergence_speed, normalize_result
from scpheur.runner import run_experiment
from scpheur.solver import HeuristicSolver, solve
from scpheur.trace import QualityTrace, trace_file_name


class TestConfig:
    def test_defaults(self):
        cfg = SolverConfig().validate()
        assert cfg.constructive == "ch1"
        assert cfg.redundancy_elimination is False
        assert cfg.improvement == "none"
        assert cfg.stochastic == "none"
        assert cfg.temperature == 800.0
        assert cfg.cooling == 0.95
        assert cfg.max_generations == 1000

    def test_from_mapping_normalizes(self):
        cfg = config_from_mapping({"constructive": "CH4", "n_ants": "7", "duration_ms": None})
        assert cfg.constructive == "ch4"
        assert cfg.n_ants == 7
        assert cfg.duration_ms is None

    @pytest.mark.parametrize(
        "params",
        [
            {"constructive": "ch5"},
            {"improvement": "xi"},
            {"stochastic": "tabu"},
            {"rho": 1.0},
            {"temperature": 0},
            {"n_ants": 0},
            {"unknown_flag": 1},
        ],
    )
    def test_invalid_values(self, params):
        with pytest.raises(ValueError):
            config_from_mapping(params)

    @pytest.mark.parametrize(
        "raw, expected",
        [("false", False), ("no", False), ("0", False), ("true", True), ("Yes", True), (1, True), (False, False)],
    )
    def test_boolean_strings(self, raw, expected):
        cfg = config_from_mapping({"redundancy_elimination": raw, "post_improvement": raw})
        assert cfg.redundancy_elimination is expected
        assert cfg.post_improvement is expected

    @pytest.mark.parametrize("raw", ["maybe", 2, ""])
    def test_unparseable_boolean(self, raw):
        with pytest.raises(ValueError):
            config_from_mapping({"aco_seed_constructive": raw})

    def test_yaml_with_overrides(self, tmp_path):
        path = tmp_path / "solver.yaml"
        path.write_text("solver:\n  constructive: ch2\n  seed: 3\n  redundancy_elimination: true\n", encoding="utf-8")
        cfg = load_solver_config(path, {"solver.seed": 9, "solver.improvement": "bi"})
        assert cfg.constructive == "ch2"
        assert cfg.seed == 9
        assert cfg.improvement == "bi"
        assert cfg.redundancy_elimination is True


class TestHeuristicSolver:
    def test_ch2_toy_scenario(self, toy_instance):
        result = HeuristicSolver(toy_instance, SolverConfig(constructive="ch2")).execute()
        assert result.objective == 4
        assert result.selected_sets == (0, 1)
        assert result.is_feasible

    @pytest.mark.parametrize(
        "params",
        [
            {"constructive": "ch1", "redundancy_elimination": True, "improvement": "fi"},
            {"constructive": "ch3", "redundancy_elimination": True, "improvement": "bi"},
            {"constructive": "ch1", "stochastic": "sa", "temperature": 20.0, "cooling": 1.0},
            {"stochastic": "aco", "n_ants": 3, "max_generations": 4},
            {"constructive": "ch4", "stochastic": "aco", "n_ants": 3, "max_generations": 2,
             "aco_seed_constructive": True, "post_improvement": True, "improvement": "fi"},
        ],
    )
    def test_pipelines_produce_full_covers(self, random_instance, params):
        result = solve(random_instance, seed=5, **params)
        assert result["is_feasible"]
        assert result["convergence_curve"]
        cost = sum(random_instance.sets[i].cost for i in result["selected_sets"])
        assert result["objective"] == pytest.approx(cost)
        assert result["meta"]["config"]["seed"] == 5

    def test_same_seed_same_result(self, random_instance):
        params = {"constructive": "ch1", "stochastic": "sa", "temperature": 15.0, "cooling": 1.0}
        first = solve(random_instance, seed=8, **params)
        second = solve(random_instance, seed=8, **params)
        assert first["selected_sets"] == second["selected_sets"]
        assert first["objective"] == second["objective"]

    def test_redundancy_elimination_profit_reported(self, toy_instance):
        solver = HeuristicSolver(toy_instance, SolverConfig(constructive="ch2", redundancy_elimination=True))
        result = solver.execute()
        assert result.meta["re_profit"] == 0
        assert result.meta["cost_after_re"] == 4

    def test_aco_budget_from_ch4(self, toy_instance):
        cfg = SolverConfig(stochastic="aco", n_ants=2, max_generations=2, duration_ms=None)
        result = HeuristicSolver(toy_instance, cfg).execute()
        assert result.meta["aco"]["generations"] >= 1
        assert result.is_feasible

    def test_write_trace(self, toy_instance, tmp_path):
        solver = HeuristicSolver(toy_instance, SolverConfig(constructive="ch2"))
        solver.execute()
        path = solver.write_trace(tmp_path)
        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        assert lines[0].endswith(";4")
        assert path.name == f"{solver.start_ms}{toy_instance.sample_id}"

    def test_write_trace_before_execute(self, toy_instance, tmp_path):
        solver = HeuristicSolver(toy_instance, SolverConfig())
        with pytest.raises(ValueError, match="execute"):
            solver.write_trace(tmp_path)


class TestTraceAndMetrics:
    def test_trace_records_samples(self):
        trace = QualityTrace()
        trace.record(10)
        trace.record(8)
        assert trace.costs() == [10.0, 8.0]
        assert list(trace.to_frame().columns) == ["elapsed_ms", "cost"]

    def test_trace_file_name(self, tmp_path):
        assert trace_file_name(123, "/data/scp41.txt", tmp_path) == tmp_path / "123scp41.txt"

    def test_convergence_speed(self):
        assert convergence_speed([10, 8, 5, 5]) == 2.0
        assert math.isnan(convergence_speed([5]))

    def test_normalize_result_fills_defaults(self):
        result = normalize_result({"objective": 3, "is_feasible": 1}, elapsed=0.5)
        assert result["objective"] == 3.0
        assert result["runtime_sec"] == 0.5
        assert result["is_feasible"] is True
        assert result["selected_sets"] == []


def _write_dataset(root):
    write_instance_file(root / "c1" / "sc_a.txt", "c1", "a", [2, 2, 5], [[0, 1], [1, 2], [0, 1, 2]], 3)
    write_instance_file(root / "c1" / "sc_b.txt", "c1", "b", [3, 3, 4], [[0, 1], [2, 3], [0, 1, 2, 3]], 4)


def test_run_experiment_writes_results(tmp_path):
    data_root = tmp_path / "data"
    _write_dataset(data_root)
    config = tmp_path / "experiment.yaml"
    config.write_text(
        "dataset:\n"
        f"  root: {data_root.as_posix()}\n"
        "solver:\n"
        "  redundancy_elimination: true\n"
        "experiment:\n"
        "  repeats: 2\n"
        "  seeds: [1, 2]\n"
        "  configurations:\n"
        "    - id: greedy\n"
        "      params: {constructive: ch4}\n"
        "    - id: fi\n"
        "      params: {constructive: ch1, improvement: fi}\n"
        "output:\n"
        f"  root: {(tmp_path / 'out').as_posix()}\n"
        "  write_traces: true\n",
        encoding="utf-8",
    )

    run_dir = run_experiment(config)
    runs = pd.read_csv(run_dir / "results" / "runs.csv")
    assert len(runs) == 2 * 2 * 2
    assert set(runs["config_id"]) == {"greedy", "fi"}
    assert runs["feasible"].all()
    assert (runs["gap_to_best_pct"] >= 0).all()
    assert set(runs[runs["config_id"] == "greedy"]["objective"]) == {4.0}

    summary = pd.read_csv(run_dir / "results" / "summary.csv")
    assert len(summary) == 4
    assert len(list((run_dir / "traces").iterdir())) == 8


def test_cli_solve(tmp_path, capsys):
    path = tmp_path / "toy.txt"
    write_instance_file(path, "toy", "1", [2, 2, 5], [[0, 1], [1, 2], [0, 1, 2]], 3)

    main.main(["solve", "--instance", str(path), "--ch", "ch2", "--re", "--trace-dir", str(tmp_path / "qrtd")])
    out = capsys.readouterr().out
    assert "Total cost: 4" in out
    assert "Sets covered: 0 1" in out
    assert len(list((tmp_path / "qrtd").iterdir())) == 1
