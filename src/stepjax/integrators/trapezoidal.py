"""Trapezoidal single-step integrator.

Samples the derivative at the start and at the end of the step and averages
the two samples:

.. math::

    x_{n+1} = x_n + \\frac{h}{2}\\left(f(t_n, x_n) + f(t_n + h, x_n)\\right)

Both samples are taken at the starting state ``x_n``, so no intermediate
state is formed. The rule integrates derivatives that depend on time only
exactly up to degree 1 and is first-order accurate in general.
"""

from __future__ import annotations

from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from stepjax.config import get_dtype
from stepjax.integrators._stepper import FixedStepper, check_derivative_shape
from stepjax.integrators._types import StepResult


def trapezoidal_step(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: ArrayLike,
    dt: ArrayLike,
) -> StepResult:
    """Perform a single trapezoidal integration step.

    Compatible with ``jax.jit`` and ``jax.vmap``.

    Args:
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        t: Current time.
        state: Current state vector.
        dt: Timestep to take.

    Returns:
        StepResult: ``error_estimate`` is 0.0 and ``dt_next`` equals ``dt``.

    Raises:
        ValueError: If ``dynamics`` returns an array whose shape differs
            from the state's.
    """
    dtype = get_dtype()
    t = jnp.asarray(t, dtype=dtype)
    state = jnp.asarray(state, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)

    dxdt_start = check_derivative_shape(dynamics(t, state), state)
    dxdt_end = check_derivative_shape(dynamics(t + dt, state), state)

    state_new = state + 0.5 * dt * dxdt_start + 0.5 * dt * dxdt_end

    return StepResult(
        state=state_new,
        dt_used=dt,
        error_estimate=jnp.asarray(0.0, dtype=dtype),
        dt_next=dt,
    )


class TrapezoidalStepper(FixedStepper):
    """Stateful trapezoidal stepper."""

    order = 1
    _step_fn = staticmethod(trapezoidal_step)
