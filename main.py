from __future__ import annotations

import argparse
import logging

from scpheur.utils import parse_csv_list


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Set covering heuristics: constructive, local search, SA and ACO")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default="WARNING")
    sub = parser.add_subparsers(dest="command", required=True)

    p_solve = sub.add_parser("solve", help="solve one instance")
    p_solve.add_argument("--instance", required=True, help="instance file (OR-Library or meta-header format)")
    p_solve.add_argument("--config", default=None, help="YAML file with a 'solver' section")
    p_solve.add_argument("--seed", type=int, default=None)
    p_solve.add_argument("--ch", choices=["ch1", "ch2", "ch3", "ch4"], type=str.lower, default=None,
                         help="constructive heuristic")
    p_solve.add_argument("--re", dest="re", action="store_true", default=None, help="redundancy elimination")
    p_solve.add_argument("--improvement", choices=["none", "fi", "bi"], type=str.lower, default=None)
    p_solve.add_argument("--sls", choices=["none", "sa", "aco"], type=str.lower, default=None,
                         help="stochastic local search")
    p_solve.add_argument("--temp", type=float, default=None, help="SA initial temperature")
    p_solve.add_argument("--cool", type=float, default=None, help="SA cooling per iteration")
    p_solve.add_argument("--beta", type=float, default=None)
    p_solve.add_argument("--rho", type=float, default=None)
    p_solve.add_argument("--epsilon", type=float, default=None)
    p_solve.add_argument("--ants", type=int, default=None)
    p_solve.add_argument("--loops", type=int, default=None, help="ACO max generations")
    p_solve.add_argument("--duration", type=float, default=None, help="ACO time budget in ms")
    p_solve.add_argument("--trace-dir", default=None, help="write the quality/runtime trace here")

    p_run = sub.add_parser("run", help="run a batch experiment over a dataset directory")
    p_run.add_argument("--config", default="configs/experiment.yaml")
    p_run.add_argument("--dataset-root", default=None)
    p_run.add_argument("--repeats", type=int, default=None)
    p_run.add_argument("--seeds", default=None, help="comma separated, e.g. 1,2,3")
    p_run.add_argument("--output-root", default=None)
    p_run.add_argument("--with-traces", dest="with_traces", action="store_true")
    p_run.add_argument("--no-traces", dest="with_traces", action="store_false")
    p_run.set_defaults(with_traces=None)

    return parser


def cmd_solve(args: argparse.Namespace) -> None:
    from scpheur.config import load_solver_config
    from scpheur.io_dataset import read_instance
    from scpheur.solver import HeuristicSolver

    flags = {
        "seed": args.seed,
        "constructive": args.ch,
        "redundancy_elimination": args.re,
        "improvement": args.improvement,
        "stochastic": args.sls,
        "temperature": args.temp,
        "cooling": args.cool,
        "beta": args.beta,
        "rho": args.rho,
        "epsilon": args.epsilon,
        "n_ants": args.ants,
        "max_generations": args.loops,
        "duration_ms": args.duration,
    }
    overrides = {f"solver.{key}": value for key, value in flags.items() if value is not None}
    config = load_solver_config(args.config, overrides)

    instance = read_instance(args.instance)
    solver = HeuristicSolver(instance, config)
    result = solver.execute()

    print(f"Total cost: {result.objective:g}")
    print(f"Sets covered: {' '.join(str(s) for s in result.selected_sets)}")
    for key in ("re_profit", "improvement_profit"):
        if key in result.meta:
            print(f"{key}: {result.meta[key]:g}")
    print(f"Exec time: {result.runtime_sec * 1000.0:.0f} ms")
    if args.trace_dir is not None:
        print(f"Trace written: {solver.write_trace(args.trace_dir)}")


def cmd_run(args: argparse.Namespace) -> None:
    from scpheur.runner import run_experiment

    overrides: dict[str, object] = {}
    if args.dataset_root is not None:
        overrides["dataset.root"] = args.dataset_root
    if args.repeats is not None:
        overrides["experiment.repeats"] = args.repeats
    if args.seeds is not None:
        overrides["experiment.seeds"] = parse_csv_list(args.seeds, cast=int)
    if args.output_root is not None:
        overrides["output.root"] = args.output_root
    if args.with_traces is not None:
        overrides["output.write_traces"] = bool(args.with_traces)

    run_dir = run_experiment(config_path=args.config, overrides=overrides)
    print(f"Experiment finished: {run_dir}")


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.command == "solve":
        cmd_solve(args)
    elif args.command == "run":
        cmd_run(args)
    else:
        parser.error(f"Unknown command: {args.command}")


if __name__ == "__main__":
    main()
