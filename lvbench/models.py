"""
Ready made competitive Lotka-Volterra models.
"""

from typing import Optional, Sequence, Tuple

import numpy as np

from .containers import ParameterBundle


def logistic_model(growth_rate: float, carrying_capacity: float) -> ParameterBundle:
    """A single species, which reduces the model to logistic growth."""
    return ParameterBundle([[1.0]], [growth_rate], [carrying_capacity])


def independent_model(
    growth_rates: Sequence[float], carrying_capacities: Sequence[float]
) -> ParameterBundle:
    """Species that do not compete with each other (identity competition matrix)."""
    n = len(growth_rates)
    return ParameterBundle(np.eye(n), growth_rates, carrying_capacities)


def random_competition_model(
    n: int,
    seed: Optional[int] = None,
    coupling: float = 0.5,
    growth_range: Tuple[float, float] = (0.5, 1.5),
    capacity_range: Tuple[float, float] = (1.0, 2.0),
) -> ParameterBundle:
    """A model of `n` species with random competition between them.

    The competition matrix has a unit diagonal and off-diagonal entries drawn
    uniformly from `[0, coupling / n)`, so the total pressure from all other
    species stays below `coupling` times the largest abundance.

    Args:
        n (int): Number of species
        seed (Optional[int], optional): Seed for `numpy.random.default_rng`.
        coupling (float, optional): Scale of the inter-species competition.
        growth_range (Tuple[float, float], optional): Bounds of the growth rates.
        capacity_range (Tuple[float, float], optional): Bounds of the carrying
            capacities, must be positive.

    Returns:
        ParameterBundle: The random model
    """
    rng = np.random.default_rng(seed)

    matrix = rng.uniform(0.0, coupling / n, size=(n, n))
    np.fill_diagonal(matrix, 1.0)

    return ParameterBundle(
        matrix,
        rng.uniform(*growth_range, size=n),
        rng.uniform(*capacity_range, size=n),
    )


def random_initial_state(params: ParameterBundle, seed: Optional[int] = None):
    """Random abundances, each strictly between 0 and its carrying capacity."""
    rng = np.random.default_rng(seed)
    return rng.uniform(0.05, 0.95, size=params.species_count) * params.carrying_capacities
