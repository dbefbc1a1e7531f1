"""Type definitions for numerical integrators.

Provides the core data types shared by the fixed-step and adaptive steppers:

- :class:`StepResult`: Output of every pure step function, containing the new
  state, timestep used, error estimate, and suggested next timestep.
- :class:`ErrorNorm`: Per-component error measure used by the step-doubling
  controller.
- :class:`AdaptiveConfig`: Numeric tunables of the step-doubling controller.
- :class:`IntegrationDivergedError`: Raised when divergence checking is
  enabled and a step produces non-finite values.

The named tuples are JAX pytrees. ``AdaptiveConfig`` holds an enum member,
so pass it to jitted code by closure rather than as a traced argument.
"""

from __future__ import annotations

import enum
from typing import NamedTuple

from jax import Array


class StepResult(NamedTuple):
    """Result of a single integrator step.

    For fixed-step methods (RK4, trapezoidal), ``error_estimate`` is always
    0.0 and ``dt_next`` equals ``dt_used``.

    Attributes:
        state: State vector at time ``t + dt_used``.
        dt_used: Timestep taken. The step-doubling controller never rejects
            a step, so this always equals the requested ``dt``.
        error_estimate: Infinity norm of the disagreement between the
            full-step and the two half-step candidates, floored to
            ``AdaptiveConfig.error_floor``. Always 0.0 for fixed-step methods.
        dt_next: Suggested timestep for the next step.
    """

    state: Array
    dt_used: Array
    error_estimate: Array
    dt_next: Array


class ErrorNorm(enum.Enum):
    """Per-component truncation error measure.

    Resolved in Python at trace time, not at runtime.

    Attributes:
        ABSOLUTE: ``|B_i - A_i|``.
        RELATIVE: ``|(B_i - A_i) / B_i|``, falling back to the absolute
            difference where ``B_i`` is exactly zero.
        MIXED: The smaller of the relative and absolute errors.
    """

    ABSOLUTE = "absolute"
    RELATIVE = "relative"
    MIXED = "mixed"


class AdaptiveConfig(NamedTuple):
    """Configuration for step-doubling step-size control.

    The next step size is::

        safety_factor * dt * clip((tol / (2 * err)) ** (1 / (order + 1)),
                                  min_scale_factor, max_scale_factor)

    Attributes:
        safety_factor: Multiplier applied after clamping. Keeps the step
            slightly below the size the error model predicts.
        min_scale_factor: Lower clamp of the raw growth factor.
        max_scale_factor: Upper clamp of the raw growth factor.
        error_floor: Value substituted for an error estimate of exactly zero.
        error_norm: Per-component error measure.
        check_finite: If ``True``, the :class:`AdaptiveRK4` session raises
            :class:`IntegrationDivergedError` instead of storing a
            non-finite state or step size, or holding an underflowed step
            size at its floor. The inner RK4 step counters still count the
            failed step.
    """

    safety_factor: float = 0.9
    min_scale_factor: float = 0.3
    max_scale_factor: float = 1.5
    error_floor: float = 1e-15
    error_norm: ErrorNorm = ErrorNorm.ABSOLUTE
    check_finite: bool = False


class IntegrationDivergedError(RuntimeError):
    """A step produced a non-finite state or step size."""
