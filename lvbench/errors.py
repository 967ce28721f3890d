"""
Exceptions raised by lvbench.

Each error derives from the builtin exception a caller would expect
(`ValueError` for bad input, `RuntimeError` for failures during a run) as
well as from `LVBenchError`.
"""


class LVBenchError(Exception):
    """Base class for all lvbench errors."""


class ConstructionError(LVBenchError, ValueError):
    """A ParameterBundle was built from inconsistent or invalid coefficients."""


class InvalidGrid(LVBenchError, ValueError):
    """The requested time grid can not be integrated over."""


class EvaluatorFailure(LVBenchError, RuntimeError):
    """The right-hand side raised or produced a non-finite derivative.

    Args:
        message (str): Description of the failure
        strategy (str, optional): Name of the evaluator strategy
        method (str, optional): Name of the stepping method
        step (int, optional): Index of the failing evaluator call within the run
        time (float, optional): Integration time of the failing call
    """

    def __init__(self, message, strategy=None, method=None, step=None, time=None):
        self.strategy = strategy
        self.method = method
        self.step = step
        self.time = time

        context = ", ".join(
            f"{key}={value}"
            for key, value in (
                ("strategy", strategy),
                ("method", method),
                ("step", step),
                ("time", time),
            )
            if value is not None
        )
        super().__init__(f"{message} ({context})" if context else message)


class IntegrationFailure(LVBenchError, RuntimeError):
    """The stepping method gave up without the evaluator being at fault."""

    def __init__(self, message, method=None, time=None):
        self.method = method
        self.time = time
        super().__init__(message)


class CompilationError(LVBenchError, RuntimeError):
    """Ahead-of-time preparation of a compiled evaluator failed."""

    def __init__(self, message, strategy=None, shape=None):
        self.strategy = strategy
        self.shape = shape
        super().__init__(message)


class EquivalenceError(LVBenchError, AssertionError):
    """Two evaluator strategies produced trajectories that disagree."""

    def __init__(self, message, report=None):
        self.report = report
        super().__init__(message)
