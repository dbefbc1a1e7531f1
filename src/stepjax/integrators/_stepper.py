"""Stateful wrapper shared by the fixed-step integrators.

The pure step functions (:func:`~stepjax.integrators.rk4_step`,
:func:`~stepjax.integrators.trapezoidal_step`) carry no state. A
:class:`FixedStepper` adds the bookkeeping the adaptive controller and the
loop drivers rely on: the order of the formula, a step counter, and eager
precondition checks that cannot run under ``jax.jit``.
"""

from __future__ import annotations

from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from stepjax.integrators._types import StepResult


def check_derivative_shape(dx: ArrayLike, state: Array) -> Array:
    """Return ``dx`` as an array, raising if its shape differs from ``state``.

    Shapes are static under JAX tracing, so this check is valid inside
    ``jax.jit``.

    Raises:
        ValueError: If the derivative and state shapes differ.
    """
    dx = jnp.asarray(dx, dtype=state.dtype)
    if dx.shape != state.shape:
        raise ValueError(
            f"Derivative shape {dx.shape} does not match state shape {state.shape}"
        )
    return dx


class FixedStepper:
    """Base class for single-step integrators with a fixed formula.

    Subclasses set ``order`` and ``_step_fn``.
    """

    order: int = 0
    _step_fn: Callable[..., StepResult]

    def __init__(self) -> None:
        self._steps = 0

    @property
    def steps(self) -> int:
        """Number of steps taken by this stepper so far."""
        return self._steps

    def do_step(
        self,
        dynamics: Callable[[ArrayLike, ArrayLike], Array],
        state: ArrayLike,
        t: ArrayLike,
        dt: ArrayLike,
    ) -> Array:
        """Advance ``state`` from ``t`` to ``t + dt``.

        Args:
            dynamics: ODE right-hand side ``f(t, x) -> dx/dt``.
            state: State vector at ``t``.
            t: Current time.
            dt: Step duration. Must be non-zero; may be negative.

        Returns:
            jax.Array: State estimate at ``t + dt``.

        Raises:
            ValueError: If ``dt`` is zero or the derivative shape does not
                match the state.
        """
        if float(dt) == 0.0:
            raise ValueError("Step size must be non-zero")
        result = self._step_fn(dynamics, t, state, dt)
        self._steps += 1
        return result.state

    def __repr__(self) -> str:
        return f"{type(self).__name__}(order={self.order}, steps={self._steps})"
