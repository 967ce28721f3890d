"""Shared fixtures for the lvbench tests."""

import numpy as np
import pytest

from lvbench import CompiledEvaluator, InterpretedEvaluator
from lvbench.models import (
    independent_model,
    logistic_model,
    random_competition_model,
    random_initial_state,
)


@pytest.fixture
def logistic_params():
    return logistic_model(0.7, 3.0)


@pytest.fixture
def independent_params():
    """Three non-competing species with r=1 and K=2."""
    return independent_model([1.0, 1.0, 1.0], [2.0, 2.0, 2.0])


@pytest.fixture
def small_params():
    return random_competition_model(5, seed=1)


@pytest.fixture(scope="session")
def large_params():
    return random_competition_model(300, seed=42)


@pytest.fixture(scope="session")
def large_y0(large_params):
    return random_initial_state(large_params, seed=42)


@pytest.fixture
def grid():
    return np.linspace(0.0, 5.0, 51)


@pytest.fixture
def interpreted():
    return InterpretedEvaluator()


@pytest.fixture(scope="session")
def compiled():
    """Shared between tests so each shape is compiled once per session."""
    return CompiledEvaluator()
