"""
Command line entry point, ``python -m lvbench`` or ``lvbench``.

Benchmarks the evaluator strategies on a random competition model and prints
the report.
"""

import argparse
import logging
import sys
from typing import List, Optional

import numpy as np

from .benchmark import Benchmark
from .constants import TRAJECTORY_TOLERANCE
from .engine import Method
from .evaluators import STRATEGIES
from .models import random_competition_model, random_initial_state

EXIT_OK = 0
EXIT_MISMATCH = 1
EXIT_FAILED_CASES = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lvbench",
        description=(
            "Time interpreted and compiled right-hand side evaluators on a "
            "random competitive Lotka-Volterra model."
        ),
    )
    parser.add_argument("--species", type=int, default=300, help="number of species")
    parser.add_argument("--t-end", type=float, default=10.0, help="end time")
    parser.add_argument(
        "--points", type=int, default=101, help="number of output time points"
    )
    parser.add_argument(
        "--method",
        action="append",
        choices=[m.value for m in Method],
        help="stepping method, may be repeated (default: all)",
    )
    parser.add_argument(
        "--strategy",
        action="append",
        choices=sorted(STRATEGIES),
        help="evaluator strategy, may be repeated (default: all)",
    )
    parser.add_argument(
        "--steps-per-interval",
        type=int,
        default=4,
        help="RK4 steps between two output points",
    )
    parser.add_argument("--repeats", type=int, default=3, help="timed runs per case")
    parser.add_argument(
        "--tolerance",
        type=float,
        default=TRAJECTORY_TOLERANCE,
        help="absolute tolerance for trajectory equivalence",
    )
    parser.add_argument("--seed", type=int, default=0, help="random model seed")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="logging level of the lvbench logger",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.getLogger("lvbench").setLevel(args.log_level)

    params = random_competition_model(args.species, seed=args.seed)
    y0 = random_initial_state(params, seed=args.seed)
    times = np.linspace(0.0, args.t_end, args.points)

    benchmark = Benchmark(
        y0,
        times,
        params,
        evaluators=args.strategy,
        methods=args.method,
        repeats=args.repeats,
        tolerance=args.tolerance,
        engine_options={"steps_per_interval": args.steps_per_interval},
    )
    report = benchmark.run(strict=False)

    print(report.format_table())

    if report.mismatches:
        return EXIT_MISMATCH
    if report.failures:
        return EXIT_FAILED_CASES
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
