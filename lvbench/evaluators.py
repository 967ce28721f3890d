"""
Right-hand side evaluators for the competitive Lotka-Volterra model.

Every evaluator computes

    dy[i] = r[i] * y[i] * (1 - sum_j(A[j, i] * y[j]) / K[i])

An `InterpretedEvaluator` does so with vectorized numpy expressions, a
`CompiledEvaluator` with a numba kernel compiled before the run starts.
"""

import logging
import time as _time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

import numpy as np
from numba import njit, types

from .containers import ParameterBundle, ParameterShape
from .errors import CompilationError

logger = logging.getLogger(__name__)

_LAYOUTS = ("C", "F", "A")


def competitive_lotka_volterra(time, state, matrix, rates, capacities):
    """Pure loop formulation of the competitive Lotka-Volterra law.

    Written for numba's nopython mode: plain loops over scalars, no Python
    objects. Also runs, slowly, as ordinary Python.
    """
    n = state.shape[0]
    ders = np.empty(n)
    for i in range(n):
        pressure = 0.0
        for j in range(n):
            pressure += matrix[j, i] * state[j]
        ders[i] = rates[i] * state[i] * (1.0 - pressure / capacities[i])
    return ders


def kernel_signature(shape: ParameterShape):
    """Explicit numba signature of a kernel for parameter bundles of `shape`.

    Array arguments are typed read-only, ParameterBundle arrays are not
    writeable and writeable arrays convert to read-only ones.
    """
    if shape.layout not in _LAYOUTS:
        raise CompilationError(
            f"Unsupported competition matrix layout {shape.layout!r}", shape=shape
        )

    vector = types.Array(types.float64, 1, "A", readonly=True)
    matrix = types.Array(types.float64, 2, shape.layout, readonly=True)
    return types.float64[:](types.float64, vector, matrix, vector, vector)


class CompiledHandle:
    """A kernel compiled for one ParameterShape.

    Returned by `CompiledEvaluator.prepare` and reused for every evaluation on
    bundles of the same shape.
    """

    __slots__ = ("shape", "kernel", "compile_time")

    def __init__(self, shape: ParameterShape, kernel: Callable, compile_time: float):
        object.__setattr__(self, "shape", shape)
        object.__setattr__(self, "kernel", kernel)
        object.__setattr__(self, "compile_time", compile_time)

    def __setattr__(self, key, value):
        raise AttributeError(f"CompiledHandle is immutable, can not set {key!r}")

    def __call__(self, time: float, state: np.ndarray, params: ParameterBundle):
        return self.kernel(
            float(time),
            state,
            params.competition_matrix,
            params.growth_rates,
            params.carrying_capacities,
        )

    def __repr__(self):
        return (
            f"CompiledHandle(shape={self.shape}, "
            f"compile_time={self.compile_time:.3f}s)"
        )


class EvaluatorInterface(ABC):
    """Abstract Base Class (ABC) defining the right-hand side evaluator interface.

    A child class must implement the `evaluate` method. Evaluators that need a
    one-time preparation per parameter shape override `prepare`.
    """

    name = "evaluator"

    def prepare(self, shape: ParameterShape) -> Optional[CompiledHandle]:
        """Prepare the evaluator for bundles of `shape`.

        Args:
            shape (ParameterShape): Shape of the bundles to be evaluated

        Returns:
            Optional[CompiledHandle]: The handle used for evaluation, or None if
                there is nothing to prepare.
        """
        return None

    @abstractmethod
    def evaluate(
        self, time: float, state: np.ndarray, params: ParameterBundle
    ) -> np.ndarray:
        """Abstract method to be implemented by child classes!

        Args:
            time (float): Current integration time
            state (np.ndarray): Current state vector
            params (ParameterBundle): Model coefficients

        Returns:
            np.ndarray: A new array holding the derivative of `state`
        """

    def __call__(self, time, state, params):
        return self.evaluate(time, state, params)

    def __repr__(self):
        return f"{type(self).__name__}()"


class InterpretedEvaluator(EvaluatorInterface):
    """Vectorized numpy evaluation, interpreted on every call."""

    name = "interpreted"

    def evaluate(self, time, state, params):
        pressure = state @ params.competition_matrix
        return params.growth_rates * state * (1.0 - pressure / params.carrying_capacities)


class CompiledEvaluator(EvaluatorInterface):
    """Evaluation through a numba kernel compiled ahead of the run.

    Compilation is eager: `prepare` compiles the kernel for an explicit
    signature and times it. Handles are kept per `ParameterShape` on this
    instance so each shape compiles once.

    Args:
        kernel (Callable, optional): A nopython compatible function with the
            signature of `competitive_lotka_volterra`. Defaults to
            `competitive_lotka_volterra`.
    """

    name = "compiled"

    def __init__(self, kernel: Callable = competitive_lotka_volterra):
        self._kernel = kernel
        self._handles: Dict[ParameterShape, CompiledHandle] = {}

    @property
    def compiled_shapes(self) -> List[ParameterShape]:
        """Shapes for which a kernel has been compiled."""
        return list(self._handles)

    def prepare(self, shape: ParameterShape) -> CompiledHandle:
        """Compile the kernel for bundles of `shape`, once.

        Args:
            shape (ParameterShape): Shape of the bundles to be evaluated

        Raises:
            CompilationError: If numba fails to compile the kernel

        Returns:
            CompiledHandle: The compiled kernel, shared by all later calls with
                the same shape.
        """
        shape = ParameterShape(*shape)
        handle = self._handles.get(shape)
        if handle is not None:
            return handle

        signature = kernel_signature(shape)

        logger.debug("Compiling %s for %s", self._kernel.__name__, shape)
        start = _time.perf_counter()
        try:
            kernel = njit(signature)(self._kernel)
        except Exception as exc:
            raise CompilationError(
                f"Failed to compile {self._kernel.__name__} for {shape}: {exc}",
                strategy=self.name,
                shape=shape,
            ) from exc
        elapsed = _time.perf_counter() - start

        logger.debug("Compiled %s in %.3fs", self._kernel.__name__, elapsed)

        handle = CompiledHandle(shape, kernel, elapsed)
        self._handles[shape] = handle
        return handle

    def evaluate(self, time, state, params):
        handle = self._handles.get(params.shape) or self.prepare(params.shape)
        return handle(time, state, params)

    def __repr__(self):
        return f"{type(self).__name__}(kernel={self._kernel.__name__})"


STRATEGIES = {
    InterpretedEvaluator.name: InterpretedEvaluator,
    CompiledEvaluator.name: CompiledEvaluator,
}


def make_evaluator(name: str) -> EvaluatorInterface:
    """Create a fresh evaluator from its strategy name.

    Raises:
        ValueError: If `name` is not a known strategy
    """
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown evaluator strategy {name!r}, choose from {sorted(STRATEGIES)}"
        ) from None
