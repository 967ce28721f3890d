"""
Timing the integration engine under different right-hand side evaluators.

Every (strategy, method) combination integrates the same initial value
problem. Compilation cost is timed separately from integration, and the
trajectories of different strategies under the same method are checked for
equivalence.
"""

import itertools
import logging
import time
from collections import namedtuple
from typing import Dict, Iterable, List, Optional

from .constants import TRAJECTORY_TOLERANCE
from .containers import ParameterBundle, Trajectory
from .engine import Engine, Method, check_grid, check_state
from .errors import CompilationError, EquivalenceError, LVBenchError
from .evaluators import EvaluatorInterface, make_evaluator

logger = logging.getLogger(__name__)

Comparison = namedtuple(
    "Comparison", ["method", "first", "second", "max_abs_diff", "ok"]
)
Comparison.__doc__ = "Outcome of comparing two strategies under one method."


class BenchmarkCase:
    """Result of one (strategy, method) combination.

    A case either holds a `trajectory` and its timings, or the `error` that
    prevented it from completing.
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        strategy: str,
        method: str,
        compile_time: Optional[float] = None,
        integration_time: Optional[float] = None,
        trajectory: Optional[Trajectory] = None,
        error: Optional[Exception] = None,
    ):
        self.strategy = strategy
        self.method = method
        self.compile_time = compile_time
        self.integration_time = integration_time
        self.trajectory = trajectory
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def total_time(self) -> Optional[float]:
        """Compilation plus integration time."""
        if self.integration_time is None:
            return None
        return (self.compile_time or 0.0) + self.integration_time

    @property
    def n_evaluations(self) -> Optional[int]:
        if self.trajectory is None:
            return None
        return self.trajectory.n_evaluations

    @property
    def time_per_evaluation(self) -> Optional[float]:
        if not self.n_evaluations:
            return None
        return self.integration_time / self.n_evaluations

    def __repr__(self):
        status = "ok" if self.ok else f"failed: {self.error}"
        return f"BenchmarkCase({self.strategy}/{self.method}, {status})"


def _seconds(value):
    return "-" if value is None else f"{value:.4f}"


class BenchmarkReport:
    """Timings and equivalence checks of a benchmark run."""

    def __init__(self, cases: List[BenchmarkCase], comparisons: List[Comparison]):
        self.cases = cases
        self.comparisons = comparisons

    @property
    def failures(self) -> List[BenchmarkCase]:
        """Cases that did not complete."""
        return [case for case in self.cases if not case.ok]

    @property
    def mismatches(self) -> List[Comparison]:
        """Comparisons that exceeded the tolerance."""
        return [comp for comp in self.comparisons if not comp.ok]

    @property
    def ok(self) -> bool:
        return not self.failures and not self.mismatches

    def case(self, strategy: str, method) -> BenchmarkCase:
        """Look up the case of `strategy` under `method`.

        Raises:
            KeyError: If there is no such case
        """
        if isinstance(method, Method):
            method = method.value
        for case in self.cases:
            if case.strategy == strategy and case.method == method:
                return case
        raise KeyError((strategy, method))

    def check(self) -> None:
        """Fail loudly if any two strategies disagree.

        Raises:
            EquivalenceError: If any comparison exceeded the tolerance
        """
        if self.mismatches:
            details = "; ".join(
                f"{comp.first} vs {comp.second} under {comp.method}: "
                f"max abs diff {comp.max_abs_diff:.3e}"
                for comp in self.mismatches
            )
            raise EquivalenceError(f"Trajectories differ: {details}", report=self)

    def format_table(self) -> str:
        """Render the report as a plain text table."""
        header = (
            f"{'strategy':<12} {'method':<6} {'compile [s]':>11} "
            f"{'integrate [s]':>13} {'total [s]':>10} {'evals':>8} "
            f"{'per eval [us]':>13}  status"
        )
        lines = [header, "-" * len(header)]

        for case in self.cases:
            per_eval = case.time_per_evaluation
            lines.append(
                f"{case.strategy:<12} {case.method:<6} "
                f"{_seconds(case.compile_time):>11} "
                f"{_seconds(case.integration_time):>13} "
                f"{_seconds(case.total_time):>10} "
                f"{'-' if case.n_evaluations is None else case.n_evaluations:>8} "
                f"{'-' if per_eval is None else f'{per_eval * 1e6:.2f}':>13}  "
                f"{'ok' if case.ok else f'FAILED ({type(case.error).__name__}: {case.error})'}"
            )

        if self.comparisons:
            lines.append("")
            for comp in self.comparisons:
                lines.append(
                    f"{comp.first} vs {comp.second} ({comp.method}): "
                    f"max abs diff {comp.max_abs_diff:.3e} "
                    f"{'ok' if comp.ok else 'MISMATCH'}"
                )

        return "\n".join(lines)

    def __str__(self):
        return self.format_table()


class Benchmark:
    """Compare evaluator strategies on one initial value problem.

    Args:
        y0: Initial state
        times: Time grid, see `Engine.integrate`
        params (ParameterBundle): Model coefficients
        evaluators (Optional[Iterable], optional): Evaluators or strategy names
            to compare. Defaults to all known strategies.
        methods (Optional[Iterable], optional): Stepping methods to run each
            strategy under. Defaults to all methods.
        repeats (int, optional): Number of timed runs per case, the fastest is
            reported. Defaults to 1.
        tolerance (float, optional): Absolute tolerance for trajectory equivalence.
        engine_options (Optional[Dict], optional): Keyword arguments for `Engine`.

    Raises:
        InvalidGrid: If `times` is malformed
        ValueError: If `y0` does not match `params`, `repeats` < 1, or two
            evaluators share a strategy name
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        y0,
        times,
        params: ParameterBundle,
        evaluators: Optional[Iterable] = None,
        methods: Optional[Iterable] = None,
        repeats: int = 1,
        tolerance: float = TRAJECTORY_TOLERANCE,
        engine_options: Optional[Dict] = None,
    ):
        self.times = check_grid(times)
        self.y0 = check_state(y0, params)
        self.params = params

        if evaluators is None:
            evaluators = ["interpreted", "compiled"]
        self.evaluators: List[EvaluatorInterface] = [
            make_evaluator(ev) if isinstance(ev, str) else ev for ev in evaluators
        ]
        names = [ev.name for ev in self.evaluators]
        if len(set(names)) != len(names):
            raise ValueError(f"Evaluator strategy names must be unique, got {names}")

        self.methods = [Method.parse(m) for m in (methods or list(Method))]

        if repeats < 1:
            raise ValueError(f"repeats must be >= 1, got {repeats}")
        self.repeats = repeats
        self.tolerance = tolerance
        self.engine_options = engine_options or {}

    def _prepare(self, evaluator):
        start = time.perf_counter()
        handle = evaluator.prepare(self.params.shape)
        if handle is None:
            return None
        compile_time = handle.compile_time or time.perf_counter() - start
        logger.info("Prepared %s evaluator in %.4fs", evaluator.name, compile_time)
        return compile_time

    def _run_case(self, evaluator, method, compile_time):
        engine = Engine(method, **self.engine_options)

        best = float("inf")
        trajectory = None
        try:
            for _ in range(self.repeats):
                start = time.perf_counter()
                trajectory = engine.integrate(self.y0, self.times, self.params, evaluator)
                best = min(best, time.perf_counter() - start)
        except LVBenchError as exc:
            logger.warning("%s/%s failed: %s", evaluator.name, method.value, exc)
            return BenchmarkCase(
                evaluator.name, method.value, compile_time=compile_time, error=exc
            )

        logger.info(
            "%s/%s integrated in %.4fs (%d evaluations)",
            evaluator.name,
            method.value,
            best,
            trajectory.n_evaluations,
        )
        return BenchmarkCase(
            evaluator.name,
            method.value,
            compile_time=compile_time,
            integration_time=best,
            trajectory=trajectory,
        )

    def _compare(self, cases):
        comparisons = []
        for method in self.methods:
            done = [c for c in cases if c.method == method.value and c.ok]
            for first, second in itertools.combinations(done, 2):
                diff = first.trajectory.max_abs_diff(second.trajectory)
                ok = first.trajectory.allclose(
                    second.trajectory, atol=self.tolerance, rtol=0.0
                )
                if not ok:
                    logger.warning(
                        "%s and %s disagree under %s: max abs diff %.3e",
                        first.strategy,
                        second.strategy,
                        method.value,
                        diff,
                    )
                comparisons.append(
                    Comparison(method.value, first.strategy, second.strategy, diff, ok)
                )
        return comparisons

    def run(self, strict: bool = True) -> BenchmarkReport:
        """Run every (strategy, method) combination.

        A strategy that fails to compile, or a case that fails to integrate, is
        recorded as a failed case and the remaining cases still run.

        Args:
            strict (bool, optional): Raise if strategies disagree. Defaults to True.

        Raises:
            EquivalenceError: If `strict` and two strategies produced
                trajectories differing by more than `tolerance`

        Returns:
            BenchmarkReport: The timings and comparisons
        """
        cases = []

        for evaluator in self.evaluators:
            try:
                compile_time = self._prepare(evaluator)
            except CompilationError as exc:
                logger.warning("%s evaluator unavailable: %s", evaluator.name, exc)
                cases.extend(
                    BenchmarkCase(evaluator.name, method.value, error=exc)
                    for method in self.methods
                )
                continue

            for method in self.methods:
                cases.append(self._run_case(evaluator, method, compile_time))

        report = BenchmarkReport(cases, self._compare(cases))
        if strict:
            report.check()
        return report
