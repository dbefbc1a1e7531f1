"""Time loops driving a stepper over an interval.

:func:`integrate_const` advances a fixed-step stepper from ``t0`` to ``t1``;
:func:`integrate_adaptive` calls an :class:`~stepjax.integrators.AdaptiveRK4`
session until its time reaches a target. Both notify an optional observer
after every step.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from stepjax.config import get_dtype
from stepjax.integrators import AdaptiveRK4, FixedStepper
from stepjax.observers import Observer

logger = logging.getLogger(__name__)


def integrate_const(
    stepper: FixedStepper,
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    state: ArrayLike,
    t0: float,
    t1: float,
    dt: float,
    observer: Observer | None = None,
) -> tuple[Array, Array]:
    """Integrate from ``t0`` to ``t1`` with a constant step.

    The last step is shortened so that the integration ends exactly at
    ``t1``. The observer is called with the initial state and after every
    step.

    Args:
        stepper: Fixed-step stepper, e.g. :class:`~stepjax.integrators.RK4Stepper`.
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        state: Initial state vector.
        t0: Initial time.
        t1: Final time. Must not precede ``t0``.
        dt: Step size. Must be positive.
        observer: Optional observer.

    Returns:
        tuple[jax.Array, jax.Array]: State and time at the end of the run.

    Raises:
        ValueError: If ``dt`` is not positive or ``t1 < t0``.
    """
    if dt <= 0.0:
        raise ValueError(f"Step size must be positive, got {dt}")
    if t1 < t0:
        raise ValueError(f"Final time {t1} precedes initial time {t0}")

    dtype = get_dtype()
    state = jnp.asarray(state, dtype=dtype)
    t = jnp.asarray(t0, dtype=dtype)
    t_end = jnp.asarray(t1, dtype=dtype)

    logger.info("Fixed-step integration with %r from t=%s to t=%s, dt=%s", stepper, t0, t1, dt)

    if observer is not None:
        observer(state, t)

    dt = jnp.asarray(dt, dtype=dtype)
    n_steps = 0
    while t < t_end:
        remaining = t_end - t
        last = bool(remaining <= dt)
        h = remaining if last else dt
        state = stepper.do_step(dynamics, state, t, h)
        # Land exactly on t_end instead of accumulating round-off past it
        t = t_end if last else t + h
        n_steps += 1
        if observer is not None:
            observer(state, t)

    logger.info("Fixed-step integration finished after %d steps", n_steps)
    return state, t


def integrate_adaptive(
    controller: AdaptiveRK4,
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t_end: float,
    observer: Observer | None = None,
    max_steps: int = 100_000,
) -> int:
    """Step an initialized adaptive session until its time reaches ``t_end``.

    The controller chooses every step size itself, so the final time may
    overshoot ``t_end`` by up to one step.

    Args:
        controller: Session seeded with :meth:`AdaptiveRK4.initialize`.
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        t_end: Target time.
        observer: Optional observer, called after every step.
        max_steps: Maximum number of steps before giving up.

    Returns:
        int: Number of steps taken.

    Raises:
        RuntimeError: If ``t_end`` is not reached within ``max_steps``
            steps, or the controller was not initialized.
    """
    logger.info(
        "Adaptive integration from t=%s to t=%s, tol=%s",
        controller.current_time(),
        t_end,
        controller.tolerance,
    )

    n_steps = 0
    while controller.current_time() < t_end:
        if n_steps >= max_steps:
            raise RuntimeError(
                f"Adaptive integration exceeded {max_steps} steps at "
                f"t={float(controller.current_time())} (target {t_end})"
            )
        controller.step(dynamics)
        n_steps += 1
        if observer is not None:
            observer(controller.current_state(), controller.current_time())

    logger.info(
        "Adaptive integration finished after %d steps at t=%s, dt=%s",
        n_steps,
        controller.current_time(),
        controller.current_time_step(),
    )
    return n_steps
