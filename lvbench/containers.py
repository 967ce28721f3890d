"""Collection of data containers used by lvbench
"""
from collections import namedtuple
from collections.abc import Sequence
from typing import Iterator, Optional, Tuple

import numpy as np

from .errors import ConstructionError

ParameterShape = namedtuple("ParameterShape", ["species_count", "layout"])
ParameterShape.__doc__ = """Shape of a ParameterBundle.

Compiled evaluators are reused for every bundle with the same shape.
`layout` is the numpy memory layout of the competition matrix: "C", "F" or "A".
"""


def _as_float_array(name, value, copy=True):
    if np.isscalar(value):
        value = np.atleast_1d(value)

    if not isinstance(value, (Sequence, np.ndarray)):
        raise TypeError(f"{name} must be a scalar, a list or a np.ndarray!")

    array = np.array(value, dtype=float, copy=copy)
    array.flags.writeable = False
    return array


def _layout(matrix: np.ndarray) -> str:
    if matrix.flags.c_contiguous:
        return "C"
    if matrix.flags.f_contiguous:
        return "F"
    return "A"


class ParameterBundle:
    """Immutable coefficients of a competitive Lotka-Volterra model.

    `competition_matrix[j, i]` is the effect of species `j` on species `i`.

    Args:
        competition_matrix: N x N matrix of competition coefficients
        growth_rates: N intrinsic growth rates
        carrying_capacities: N strictly positive carrying capacities
        species_count (Optional[int]): N, inferred from `growth_rates` if omitted

    Raises:
        ConstructionError: If the dimensions disagree, a coefficient is not
            finite or a carrying capacity is not strictly positive.
    """

    __slots__ = (
        "species_count",
        "competition_matrix",
        "growth_rates",
        "carrying_capacities",
    )

    def __init__(
        self,
        competition_matrix,
        growth_rates,
        carrying_capacities,
        species_count: Optional[int] = None,
    ):
        try:
            matrix = _as_float_array("competition_matrix", competition_matrix)
            rates = _as_float_array("growth_rates", growth_rates)
            capacities = _as_float_array("carrying_capacities", carrying_capacities)
        except (TypeError, ValueError) as exc:
            raise ConstructionError(f"Invalid model coefficients: {exc}") from exc

        if species_count is None:
            species_count = rates.size

        if int(species_count) != species_count or species_count < 1:
            raise ConstructionError(
                f"species_count must be a positive integer, got {species_count!r}"
            )
        species_count = int(species_count)

        if matrix.ndim == 1 and matrix.size == 1 and species_count == 1:
            matrix = matrix.reshape(1, 1)

        if matrix.shape != (species_count, species_count):
            raise ConstructionError(
                f"competition_matrix has shape {matrix.shape}, "
                f"expected ({species_count}, {species_count})"
            )

        for name, vector in (
            ("growth_rates", rates),
            ("carrying_capacities", capacities),
        ):
            if vector.shape != (species_count,):
                raise ConstructionError(
                    f"{name} has length {vector.size}, expected {species_count}"
                )

        for name, array in (
            ("competition_matrix", matrix),
            ("growth_rates", rates),
            ("carrying_capacities", capacities),
        ):
            if not np.all(np.isfinite(array)):
                raise ConstructionError(f"{name} contains non-finite values")

        if np.any(capacities <= 0):
            raise ConstructionError("carrying_capacities must all be > 0")

        object.__setattr__(self, "species_count", species_count)
        object.__setattr__(self, "competition_matrix", matrix)
        object.__setattr__(self, "growth_rates", rates)
        object.__setattr__(self, "carrying_capacities", capacities)

    def __setattr__(self, key, value):
        raise AttributeError(f"ParameterBundle is immutable, can not set {key!r}")

    def __delattr__(self, key):
        raise AttributeError(f"ParameterBundle is immutable, can not delete {key!r}")

    @property
    def shape(self) -> ParameterShape:
        """The shape used to key compiled evaluators."""
        return ParameterShape(self.species_count, _layout(self.competition_matrix))

    def __repr__(self):
        return f"ParameterBundle(species_count={self.species_count})"


class Trajectory(Sequence):
    """Samples of the state produced by one integration run.

    A trajectory is read-only; `times` and `states` are non-writeable arrays of
    shape (T,) and (T, N). Iterating yields `(time, state)` pairs in increasing
    time order.
    """

    def __init__(
        self,
        times,
        states,
        method: Optional[str] = None,
        strategy: Optional[str] = None,
        n_evaluations: int = 0,
    ):
        times = _as_float_array("times", times)
        states = _as_float_array("states", states)

        if states.ndim != 2 or states.shape[0] != times.size:
            raise ValueError(
                f"states of shape {states.shape} do not match {times.size} time points"
            )

        self._times = times
        self._states = states
        self.method = method
        self.strategy = strategy
        self.n_evaluations = n_evaluations

    @property
    def times(self) -> np.ndarray:
        """Sample times, shape (T,)."""
        return self._times

    @property
    def states(self) -> np.ndarray:
        """Sampled states, shape (T, N)."""
        return self._states

    @property
    def final_state(self) -> np.ndarray:
        """The state at the last requested time point."""
        return self._states[-1]

    def __len__(self):
        return self._times.size

    def __getitem__(self, index) -> Tuple[float, np.ndarray]:
        if isinstance(index, slice):
            raise TypeError("Trajectory does not support slicing, use .times/.states")
        return float(self._times[index]), self._states[index]

    def __iter__(self) -> Iterator[Tuple[float, np.ndarray]]:
        for time, state in zip(self._times, self._states):
            yield float(time), state

    def _check_comparable(self, other: "Trajectory"):
        if self._times.shape != other.times.shape or not np.array_equal(
            self._times, other.times
        ):
            raise ValueError("Can only compare trajectories sampled on the same grid!")
        if self._states.shape != other.states.shape:
            raise ValueError("Can only compare trajectories of the same species count!")

    def max_abs_diff(self, other: "Trajectory") -> float:
        """Largest absolute difference between the states of two trajectories.

        Raises:
            ValueError: If the trajectories are sampled on different grids
        """
        self._check_comparable(other)
        return float(np.max(np.abs(self._states - other.states)))

    def allclose(self, other: "Trajectory", atol: float, rtol: float = 0.0) -> bool:
        """Whether two trajectories agree at every time point.

        Raises:
            ValueError: If the trajectories are sampled on different grids
        """
        self._check_comparable(other)
        return bool(np.allclose(self._states, other.states, atol=atol, rtol=rtol))

    def __repr__(self):
        return (
            f"Trajectory(samples={len(self)}, species={self._states.shape[1]}, "
            f"method={self.method!r}, strategy={self.strategy!r})"
        )
