from unittest import mock

import pytest
import numpy as np

from lvbench import (
    Engine,
    EvaluatorFailure,
    IntegrationFailure,
    InvalidGrid,
    Method,
    integrate,
)
from lvbench.constants import CROSS_METHOD_TOLERANCE, TRAJECTORY_TOLERANCE
from lvbench.engine import check_grid

from test_evaluators import (
    FailingEvaluator,
    MockEvaluator,
    NaNEvaluator,
    WrongShapeEvaluator,
)

METHODS = [Method.RK4, Method.LSODA]


def logistic(t, y0=1.0, r=1.0, k=2.0):
    return k / (1 + (k / y0 - 1) * np.exp(-r * t))


@pytest.mark.parametrize(
    "times", [[0.0], [], [1.0, 1.0, 2.0], [2.0, 1.0], [0.0, np.nan], [[0.0, 1.0]], "ab"]
)
@pytest.mark.parametrize("method", METHODS)
def test_invalid_grid(times, method, independent_params, interpreted):
    with pytest.raises(InvalidGrid):
        Engine(method).integrate([1, 1, 1], times, independent_params, interpreted)


def test_check_grid():
    grid = check_grid([0, 1, 3])

    assert grid.dtype == float
    assert np.array_equal(grid, [0.0, 1.0, 3.0])


def test_invalid_initial_state(independent_params, interpreted):
    engine = Engine()

    with pytest.raises(ValueError):
        engine.integrate([1, 1], [0, 1], independent_params, interpreted)

    with pytest.raises(ValueError):
        engine.integrate([1, 1, np.inf], [0, 1], independent_params, interpreted)


def test_method_parse():
    assert Method.parse("rk4") is Method.RK4
    assert Method.parse("LSODA") is Method.LSODA
    assert Method.parse(Method.LSODA) is Method.LSODA

    with pytest.raises(ValueError):
        Method.parse("euler")

    with pytest.raises(ValueError):
        Engine("dopri5")


def test_engine_options():
    with pytest.raises(ValueError):
        Engine(steps_per_interval=0)

    with pytest.raises(ValueError):
        Engine(steps_per_interval=1.5)

    with pytest.raises(ValueError):
        Engine(max_step=0)

    assert Engine(steps_per_interval=3).substeps(0.1) == 3
    assert Engine(max_step=0.03).substeps(0.1) == 4
    assert Engine(steps_per_interval=5, max_step=0.03).substeps(0.1) == 5


@pytest.mark.parametrize("method", METHODS)
def test_independent_species_logistic(method, independent_params, interpreted):
    """Without competition every species follows the logistic curve."""
    times = np.linspace(0, 10, 101)

    traj = Engine(method, steps_per_interval=4).integrate(
        [1.0, 1.0, 1.0], times, independent_params, interpreted
    )

    assert len(traj) == times.size
    assert np.array_equal(traj.times, times)
    assert np.array_equal(traj.states[0], [1.0, 1.0, 1.0])
    assert traj.method == method.value
    assert traj.strategy == "interpreted"

    assert np.all(np.diff(traj.states, axis=0) > 0)
    assert np.all(traj.states <= 2.0)

    for i in range(3):
        np.testing.assert_allclose(traj.states[:, i], logistic(times), atol=1e-6)


@pytest.mark.parametrize("method", METHODS)
def test_logistic_single_species(method, logistic_params, compiled):
    times = np.linspace(0, 8, 41)

    traj = integrate(
        [0.5], times, logistic_params, compiled, method=method, steps_per_interval=4
    )

    np.testing.assert_allclose(
        traj.states[:, 0], logistic(times, y0=0.5, r=0.7, k=3.0), atol=1e-5
    )


@pytest.mark.parametrize("method", METHODS)
def test_strategies_equivalent(method, large_params, large_y0, interpreted, compiled):
    times = np.linspace(0, 5, 51)
    engine = Engine(method, steps_per_interval=2)

    first = engine.integrate(large_y0, times, large_params, interpreted)
    second = engine.integrate(large_y0, times, large_params, compiled)

    assert first.strategy == "interpreted"
    assert second.strategy == "compiled"
    assert first.allclose(second, atol=TRAJECTORY_TOLERANCE)


def test_methods_agree(large_params, large_y0, interpreted):
    times = np.linspace(0, 5, 51)

    fixed = Engine(Method.RK4, steps_per_interval=4).integrate(
        large_y0, times, large_params, interpreted
    )
    adaptive = Engine(Method.LSODA).integrate(large_y0, times, large_params, interpreted)

    assert fixed.n_evaluations != adaptive.n_evaluations
    assert fixed.allclose(adaptive, atol=CROSS_METHOD_TOLERANCE)


def test_rk4_deterministic(small_params, compiled):
    times = np.linspace(0, 3, 31)
    y0 = np.full(small_params.species_count, 0.5)
    engine = Engine(Method.RK4)

    first = engine.integrate(y0, times, small_params, compiled)
    second = engine.integrate(y0, times, small_params, compiled)

    assert np.array_equal(first.states, second.states)


def test_rk4_evaluation_count(small_params):
    evaluator = MockEvaluator()
    times = np.linspace(0, 1, 11)

    traj = Engine(Method.RK4, steps_per_interval=2).integrate(
        np.ones(5), times, small_params, evaluator
    )

    assert evaluator.mock.call_count == 10 * 2 * 4
    assert traj.n_evaluations == evaluator.mock.call_count


def test_lsoda_evaluation_count(small_params):
    evaluator = MockEvaluator()

    traj = Engine(Method.LSODA).integrate(
        np.ones(5), np.linspace(0, 1, 11), small_params, evaluator
    )

    assert traj.n_evaluations == evaluator.mock.call_count > 0


def test_lsoda_uneven_grid(small_params, interpreted):
    times = [0.0, 0.01, 0.5, 0.51, 4.0, 10.0]

    traj = Engine(Method.LSODA).integrate(np.ones(5), times, small_params, interpreted)

    assert np.array_equal(traj.times, times)
    assert traj.states.shape == (6, 5)


def test_initial_state_not_aliased(small_params, interpreted):
    y0 = np.full(5, 0.5)

    traj = Engine().integrate(y0, [0, 1, 2], small_params, interpreted)

    assert np.array_equal(y0, np.full(5, 0.5))
    y0[0] = 10.0
    assert traj.states[0, 0] == 0.5


@pytest.mark.parametrize("method", METHODS)
def test_observers(method, small_params, interpreted):
    engine = Engine(method)
    obs = mock.Mock()
    remover = engine.add_observer(obs)

    traj = engine.integrate(np.ones(5), np.linspace(0, 1, 11), small_params, interpreted)

    assert obs.call_count == 11
    t, y = obs.call_args.args
    assert t == pytest.approx(1.0)
    assert np.array_equal(y, traj.final_state)

    remover()
    engine.integrate(np.ones(5), np.linspace(0, 1, 11), small_params, interpreted)
    assert obs.call_count == 11


def test_observer_twice():
    engine = Engine()
    obs = mock.Mock()
    engine.add_observer(obs)

    with pytest.raises(ValueError):
        engine.add_observer(obs)


def test_observer_gets_copy(small_params, interpreted):
    def meddle(t, y):
        y[:] = 100.0

    traj = integrate(
        np.ones(5), [0, 1, 2], small_params, interpreted, observers=[meddle]
    )

    assert np.all(traj.states < 100.0)


@pytest.mark.parametrize("method", METHODS)
def test_evaluator_raises(method, small_params):
    with pytest.raises(EvaluatorFailure) as excinfo:
        Engine(method).integrate(np.ones(5), [0, 1, 2], small_params, FailingEvaluator(3))

    assert excinfo.value.strategy == "failing"
    assert excinfo.value.method == method.value
    assert isinstance(excinfo.value.__cause__, ZeroDivisionError)


def test_evaluator_failure_context(small_params):
    with pytest.raises(EvaluatorFailure) as excinfo:
        Engine(Method.RK4).integrate(
            np.ones(5), np.linspace(0, 1, 11), small_params, FailingEvaluator(9)
        )

    failure = excinfo.value
    assert failure.step == 9
    # Call 9 is the second stage of the third step
    assert failure.time == pytest.approx(0.25)
    assert "step=9" in str(failure)


@pytest.mark.parametrize("method", METHODS)
@pytest.mark.parametrize("evaluator", [NaNEvaluator(), WrongShapeEvaluator()])
def test_evaluator_bad_output(method, evaluator, small_params):
    with pytest.raises(EvaluatorFailure):
        Engine(method).integrate(np.ones(5), [0, 1], small_params, evaluator)


def test_evaluator_overflow(independent_params, interpreted):
    with pytest.raises(EvaluatorFailure) as excinfo:
        Engine().integrate([1e300, 1, 1], [0, 1], independent_params, interpreted)

    assert isinstance(excinfo.value.__cause__, FloatingPointError)


def test_evaluator_failure_is_runtime_error(small_params):
    with pytest.raises(RuntimeError):
        Engine().integrate(np.ones(5), [0, 1], small_params, NaNEvaluator())


@pytest.mark.filterwarnings("ignore")
def test_lsoda_gives_up(logistic_params, interpreted):
    engine = Engine(Method.LSODA, nsteps=1)

    with pytest.raises(IntegrationFailure):
        engine.integrate([0.1], [0.0, 100.0], logistic_params, interpreted)


def test_integrate_forwards_engine_options(small_params):
    evaluator = MockEvaluator()

    integrate(np.ones(5), [0, 1], small_params, evaluator, steps_per_interval=3)

    assert evaluator.mock.call_count == 12
