"""Default settings used throughout lvbench."""

DEFAULT_RTOL = 1e-8
"""Relative tolerance handed to the adaptive solver."""

DEFAULT_ATOL = 1e-10
"""Absolute tolerance handed to the adaptive solver."""

DEFAULT_NSTEPS = 100000
"""Maximum number of internal adaptive steps between two output points."""

EVALUATOR_TOLERANCE = 1e-9
"""Absolute agreement expected between evaluator strategies for one call."""

TRAJECTORY_TOLERANCE = 1e-6
"""Absolute agreement expected between strategies over a whole trajectory."""

CROSS_METHOD_TOLERANCE = 1e-3
"""Absolute agreement expected between stepping methods for one strategy."""
