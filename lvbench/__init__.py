"""
A benchmark of interpreted and natively compiled right-hand side evaluators
for the numerical integration of competitive Lotka-Volterra models.
"""

import logging
import sys

from .benchmark import Benchmark, BenchmarkCase, BenchmarkReport
from .containers import ParameterBundle, ParameterShape, Trajectory
from .engine import Engine, Method, integrate
from .errors import (
    CompilationError,
    ConstructionError,
    EquivalenceError,
    EvaluatorFailure,
    IntegrationFailure,
    InvalidGrid,
    LVBenchError,
)
from .evaluators import (
    CompiledEvaluator,
    CompiledHandle,
    EvaluatorInterface,
    InterpretedEvaluator,
)

# Configure library logger with default handler
_logger = logging.getLogger("lvbench")
if not _logger.handlers:
    _handler = logging.StreamHandler(sys.stdout)
    _logger.addHandler(_handler)
    _logger.setLevel(logging.INFO)

__all__ = [
    "Benchmark",
    "BenchmarkCase",
    "BenchmarkReport",
    "CompilationError",
    "CompiledEvaluator",
    "CompiledHandle",
    "ConstructionError",
    "Engine",
    "EquivalenceError",
    "EvaluatorFailure",
    "EvaluatorInterface",
    "IntegrationFailure",
    "InterpretedEvaluator",
    "InvalidGrid",
    "LVBenchError",
    "Method",
    "ParameterBundle",
    "ParameterShape",
    "Trajectory",
    "integrate",
]
