"""
Solving initial value problems of competitive Lotka-Volterra models through
numerical integration with a swappable right-hand side evaluator.
"""

import logging
import math
from enum import Enum
from functools import partial
from typing import Callable, List, Optional

import numpy as np
from scipy.integrate import ode

from .constants import DEFAULT_ATOL, DEFAULT_NSTEPS, DEFAULT_RTOL
from .containers import ParameterBundle, Trajectory
from .errors import EvaluatorFailure, IntegrationFailure, InvalidGrid
from .evaluators import EvaluatorInterface

logger = logging.getLogger(__name__)


class Method(Enum):
    """Stepping methods supported by the `Engine`."""

    RK4 = "rk4"
    """Classic fixed-step explicit Runge-Kutta of order 4."""

    LSODA = "lsoda"
    """Adaptive multistep method switching between stiff and non-stiff formulas."""

    @classmethod
    def parse(cls, value) -> "Method":
        """Look up a method by member or by its string value.

        Raises:
            ValueError: If `value` does not name a method
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(
                f"Unknown method {value!r}, choose from {[m.value for m in cls]}"
            ) from None


def check_grid(times) -> np.ndarray:
    """Validate a time grid and return it as a float array.

    Raises:
        InvalidGrid: If `times` is not a 1-D, finite, strictly increasing
            sequence of at least 2 time points
    """
    try:
        grid = np.array(times, dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidGrid(f"Time grid is not a sequence of numbers: {exc}") from exc

    if grid.ndim != 1:
        raise InvalidGrid(f"Time grid must be 1-D, got shape {grid.shape}")

    if grid.size < 2:
        raise InvalidGrid(f"Need at least 2 time points, got {grid.size}")

    if not np.all(np.isfinite(grid)):
        raise InvalidGrid("Time grid contains non-finite values")

    steps = np.diff(grid)
    if np.any(steps <= 0):
        first = int(np.argmax(steps <= 0))
        raise InvalidGrid(
            f"Time grid must be strictly increasing, "
            f"times[{first}]={grid[first]} >= times[{first + 1}]={grid[first + 1]}"
        )

    return grid


def check_state(y0, params: ParameterBundle) -> np.ndarray:
    """Validate an initial state and return a private float copy of it.

    Raises:
        ValueError: If `y0` does not hold `params.species_count` finite values
    """
    state = np.array(y0, dtype=float)

    if state.shape != (params.species_count,):
        raise ValueError(
            f"Initial state has shape {state.shape}, "
            f"expected ({params.species_count},)"
        )

    if not np.all(np.isfinite(state)):
        raise ValueError("Initial state contains non-finite values")

    return state


class _RightHandSide:
    """Evaluator call site used by the stepping methods.

    Counts calls and turns any evaluator fault into an `EvaluatorFailure`.
    """

    def __init__(self, evaluator, params, method):
        self.evaluator = evaluator
        self.params = params
        self.method = method
        self.calls = 0
        self.failure = None

    def __call__(self, time, state):
        step = self.calls
        self.calls += 1

        try:
            with np.errstate(over="raise", divide="raise", invalid="raise"):
                ders = np.asarray(
                    self.evaluator.evaluate(time, state, self.params), dtype=float
                )
        except Exception as exc:
            self.failure = EvaluatorFailure(
                f"Evaluator raised {type(exc).__name__}: {exc}",
                strategy=self.evaluator.name,
                method=self.method.value,
                step=step,
                time=time,
            )
            raise self.failure from exc

        if ders.shape != state.shape:
            self.failure = EvaluatorFailure(
                f"Evaluator returned shape {ders.shape}, expected {state.shape}",
                strategy=self.evaluator.name,
                method=self.method.value,
                step=step,
                time=time,
            )
            raise self.failure

        if not np.all(np.isfinite(ders)):
            self.failure = EvaluatorFailure(
                "Evaluator returned non-finite derivative",
                strategy=self.evaluator.name,
                method=self.method.value,
                step=step,
                time=time,
            )
            raise self.failure

        return ders


class Engine:
    """An integration engine.

    Advances a state vector across a grid of time points with the selected
    stepping method, calling a right-hand side evaluator for the derivatives.

    Args:
        method (Method, optional): Stepping method, a `Method` or its string value.
            Defaults to Method.RK4.
        steps_per_interval (int, optional): Minimum number of RK4 steps between
            two consecutive time points. Defaults to 1.
        max_step (Optional[float], optional): Upper bound on the RK4 step size.
            Intervals are subdivided further until it holds. Defaults to None.
        rtol (float, optional): Relative tolerance of the adaptive method.
        atol (float, optional): Absolute tolerance of the adaptive method.
        nsteps (int, optional): Maximum number of adaptive steps per output interval.
        **kwargs: Further options forwarded to `scipy.integrate.ode.set_integrator`.

    Raises:
        ValueError: If the method is unknown, `steps_per_interval` < 1 or
            `max_step` <= 0
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        method=Method.RK4,
        steps_per_interval: int = 1,
        max_step: Optional[float] = None,
        rtol: float = DEFAULT_RTOL,
        atol: float = DEFAULT_ATOL,
        nsteps: int = DEFAULT_NSTEPS,
        **kwargs,
    ):
        self.method = Method.parse(method)

        if int(steps_per_interval) != steps_per_interval or steps_per_interval < 1:
            raise ValueError(
                f"steps_per_interval must be a positive integer, got {steps_per_interval!r}"
            )
        if max_step is not None and not max_step > 0:
            raise ValueError(f"max_step must be > 0, got {max_step!r}")

        self.steps_per_interval = int(steps_per_interval)
        self.max_step = max_step
        self.rtol = rtol
        self.atol = atol
        self.nsteps = nsteps
        self.integrator_options = kwargs

        self._observers = []

    def add_observer(self, observer: Callable) -> Callable:
        """Add an observer to the engine.

        An `observer` is a callable of the form:

        .. highlight:: python
        .. code-block:: python

            def observer(t : float, state : np.ndarray) -> None:

        It is called once for every sample of the trajectory, the initial one
        included, with a copy of the state. Its return value is ignored.

        Args:
            observer (Callable): A callable that will be called for every sample.

        Raises:
            ValueError: If `observer` has already been added to the engine.

        Returns:
            Callable: A de-registering function. By calling this, `observer`
                will be removed from the list of observers.
        """
        if observer in self._observers:
            raise ValueError(f"Observer({observer}) already registered!")

        self._observers.append(observer)
        return partial(self._observers.remove, observer)

    def _notify(self, time, state):
        for obs in self._observers:
            obs(float(time), state.copy())

    def substeps(self, interval: float) -> int:
        """Number of RK4 steps used to cross an interval of length `interval`."""
        if self.max_step is None:
            return self.steps_per_interval
        return max(self.steps_per_interval, math.ceil(interval / self.max_step))

    def integrate(
        self,
        y0,
        times,
        params: ParameterBundle,
        evaluator: EvaluatorInterface,
    ) -> Trajectory:
        """Integrate from `y0` across `times`.

        Args:
            y0: Initial state, one value per species
            times: Strictly increasing time points, at least 2. The first one is
                the time of `y0`.
            params (ParameterBundle): Model coefficients
            evaluator (EvaluatorInterface): The right-hand side evaluator

        Raises:
            InvalidGrid: If `times` is malformed
            ValueError: If `y0` does not match `params`
            CompilationError: If the evaluator fails to prepare for `params`
            EvaluatorFailure: If the evaluator raises or returns non-finite values
            IntegrationFailure: If the adaptive method fails on its own

        Returns:
            Trajectory: One sample per time point, the first equal to `y0`
        """
        times = check_grid(times)
        state = check_state(y0, params)

        evaluator.prepare(params.shape)

        rhs = _RightHandSide(evaluator, params, self.method)
        states = np.empty((times.size, state.size))
        states[0] = state

        logger.debug(
            "Integrating %d species over %d points with %s/%s",
            params.species_count,
            times.size,
            evaluator.name,
            self.method.value,
        )

        self._notify(times[0], state)

        if self.method is Method.RK4:
            self._integrate_rk4(rhs, times, states)
        else:
            self._integrate_lsoda(rhs, times, states)

        logger.debug(
            "Integration with %s/%s done after %d evaluations",
            evaluator.name,
            self.method.value,
            rhs.calls,
        )

        return Trajectory(
            times,
            states,
            method=self.method.value,
            strategy=evaluator.name,
            n_evaluations=rhs.calls,
        )

    # pylint: disable=invalid-name
    def _integrate_rk4(self, rhs, times, states):
        y = states[0].copy()

        for k in range(1, times.size):
            t0 = times[k - 1]
            n = self.substeps(times[k] - t0)
            h = (times[k] - t0) / n

            for s in range(n):
                t = t0 + s * h
                k1 = rhs(t, y)
                k2 = rhs(t + h / 2, y + h * k1 / 2)
                k3 = rhs(t + h / 2, y + h * k2 / 2)
                k4 = rhs(t + h, y + h * k3)
                y = y + (h / 6) * (k1 + 2 * k2 + 2 * k3 + k4)

            states[k] = y
            self._notify(times[k], y)

    def _integrate_lsoda(self, rhs, times, states):
        # Setup of solver
        solver = ode(rhs)
        solver.set_initial_value(states[0].copy(), t=times[0])
        solver.set_integrator(
            "lsoda",
            rtol=self.rtol,
            atol=self.atol,
            nsteps=self.nsteps,
            **self.integrator_options,
        )

        for k in range(1, times.size):
            try:
                solver.integrate(times[k])
            except EvaluatorFailure:
                raise
            except Exception:
                if rhs.failure is None:
                    raise
                raise rhs.failure

            # The solver may report a failed callback without re-raising it
            if rhs.failure is not None:
                raise rhs.failure

            if not solver.successful():
                raise IntegrationFailure(
                    f"Solver failed at t={solver.t} with return code "
                    f"{solver.get_return_code()}",
                    method=self.method.value,
                    time=solver.t,
                )

            states[k] = solver.y
            self._notify(times[k], states[k])


def integrate(
    y0,
    times,
    params: ParameterBundle,
    evaluator: EvaluatorInterface,
    method=Method.RK4,
    observers: Optional[List[Callable]] = None,
    **kwargs,
) -> Trajectory:
    """Integrate once with a throw-away `Engine`.

    `method` and `**kwargs` are passed to `Engine`, see `Engine.integrate` for
    the remaining arguments and the errors raised.
    """
    engine = Engine(method, **kwargs)
    for obs in observers or []:
        engine.add_observer(obs)
    return engine.integrate(y0, times, params, evaluator)
