"""Explicit single-step ODE integrators.

Provides fixed-step Runge-Kutta-family integrators and a step-doubling
adaptive RK4 controller, all implemented in JAX.

Available integrators:

- :func:`rk4_step` / :class:`RK4Stepper` -- Classic 4th-order Runge-Kutta
  (fixed step)
- :func:`trapezoidal_step` / :class:`TrapezoidalStepper` -- Trapezoidal rule
  (fixed step, first order)
- :func:`adaptive_rk4_step` / :class:`AdaptiveRK4` -- RK4 with step-doubling
  step-size control

The pure step functions share a common interface::

    result = step_fn(dynamics, t, state, dt)

where ``dynamics(t, x) -> dx`` defines the ODE right-hand side, and the
result is a :class:`StepResult` named tuple.
"""

from stepjax.integrators._adaptive import compute_error_norm, compute_next_step_size
from stepjax.integrators._stepper import FixedStepper
from stepjax.integrators._types import (
    AdaptiveConfig,
    ErrorNorm,
    IntegrationDivergedError,
    StepResult,
)
from stepjax.integrators.adaptive_rk4 import AdaptiveRK4, adaptive_rk4_step
from stepjax.integrators.rk4 import RK4Stepper, rk4_step
from stepjax.integrators.trapezoidal import TrapezoidalStepper, trapezoidal_step

__all__ = [
    "AdaptiveConfig",
    "ErrorNorm",
    "IntegrationDivergedError",
    "StepResult",
    "FixedStepper",
    "compute_error_norm",
    "compute_next_step_size",
    "rk4_step",
    "RK4Stepper",
    "trapezoidal_step",
    "TrapezoidalStepper",
    "adaptive_rk4_step",
    "AdaptiveRK4",
]
