"""Adaptive RK4 integrator with step-doubling error control.

Each step advances the state with the classic RK4 formula twice: once over
the full step ``dt`` and once as two consecutive half steps. The half-step
result is kept as the new state; the difference between the two results
estimates the local truncation error, which sets the size of the *next*
step. A step is never rejected or retried; a large error only shrinks the
step that follows.

Two interfaces are provided:

- :func:`adaptive_rk4_step`: a pure function returning a :class:`StepResult`,
  compatible with ``jax.jit`` and ``jax.vmap`` when ``config`` is closed over.
- :class:`AdaptiveRK4`: a session object that owns the evolving state, time
  and step size and is advanced by repeated calls to :meth:`AdaptiveRK4.step`.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from stepjax.config import get_dtype
from stepjax.integrators._adaptive import compute_error_norm, compute_next_step_size
from stepjax.integrators._types import AdaptiveConfig, IntegrationDivergedError, StepResult
from stepjax.integrators.rk4 import RK4Stepper, rk4_step

logger = logging.getLogger(__name__)

_DEFAULT_TOLERANCE = 1e-4
_DEFAULT_TIME_STEP = 1e-12

# (dynamics, state, t, dt) -> state at t + dt
_SingleStep = Callable[[Callable, Array, Array, Array], Array]


def _min_time_step(dtype) -> float:
    """Smallest step whose half is still a normal float of ``dtype``."""
    return 2.0 * float(jnp.finfo(dtype).tiny)


def _double_step(
    full_step: _SingleStep,
    half_step: _SingleStep,
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: Array,
    state: Array,
    dt: Array,
    tolerance: float,
    order: int,
    config: AdaptiveConfig,
) -> StepResult:
    """Run one full and two half steps and derive the error and next step size."""
    candidate_full = full_step(dynamics, state, t, dt)

    half = 0.5 * dt
    candidate_half = half_step(dynamics, state, t, half)
    candidate_half = half_step(dynamics, candidate_half, t + half, half)

    error = compute_error_norm(
        candidate_full, candidate_half, config.error_norm, config.error_floor
    )
    dt_next = compute_next_step_size(
        error,
        dt,
        tolerance,
        order,
        config.safety_factor,
        config.min_scale_factor,
        config.max_scale_factor,
    )

    return StepResult(
        state=candidate_half,
        dt_used=dt,
        error_estimate=error,
        dt_next=dt_next,
    )


def _rk4_state(dynamics, state, t, dt):
    return rk4_step(dynamics, t, state, dt).state


def adaptive_rk4_step(
    dynamics: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: ArrayLike,
    dt: ArrayLike,
    tolerance: float = _DEFAULT_TOLERANCE,
    config: AdaptiveConfig | None = None,
) -> StepResult:
    """Perform a single step-doubling RK4 step.

    Args:
        dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.
        t: Current time.
        state: Current state vector.
        dt: Step to take. Always taken in full.
        tolerance: Target bound on the truncation error estimate.
        config: Step-size control configuration. Uses default
            :class:`AdaptiveConfig` if ``None``.

    Returns:
        StepResult: Named tuple with fields:
            - ``state``: Two-half-step estimate at ``t + dt``.
            - ``dt_used``: Always equals ``dt``.
            - ``error_estimate``: Floored infinity norm of the difference
              between the full-step and half-step estimates.
            - ``dt_next``: Suggested step size for the next call.

    Examples:
        ```python
        import jax.numpy as jnp
        from stepjax.integrators import adaptive_rk4_step
        result = adaptive_rk4_step(lambda t, x: -x, 0.0, jnp.array([1.0]), 1e-3)
        result.state    # ~[exp(-1e-3)]
        result.dt_next  # between 0.27e-3 and 1.35e-3
        ```
    """
    if config is None:
        config = AdaptiveConfig()

    dtype = get_dtype()
    t = jnp.asarray(t, dtype=dtype)
    state = jnp.asarray(state, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)

    return _double_step(
        _rk4_state, _rk4_state, dynamics, t, state, dt, tolerance, RK4Stepper.order, config
    )


class AdaptiveRK4:
    """Step-doubling RK4 integration session.

    Holds the state, time and step size of one integration run. Each call to
    :meth:`step` advances time by the current step size and replaces the
    step size with the controller's suggestion for the next call. The caller
    decides when to stop.

    Not safe for concurrent use; run independent integrations on separate
    instances.

    Args:
        tolerance: Target bound on the per-step truncation error estimate.
            Fixed for the lifetime of the session.
        config: Step-size control configuration. Uses default
            :class:`AdaptiveConfig` if ``None``.

    Raises:
        ValueError: If ``tolerance`` is not a positive finite number.

    Examples:
        ```python
        controller = AdaptiveRK4(tolerance=1e-6)
        controller.initialize(jnp.array([1.0, 0.0]), 0.0, 1e-3)
        while controller.current_time() < 10.0:
            controller.step(lambda t, x: jnp.array([x[1], -x[0]]))
        ```
    """

    def __init__(
        self,
        tolerance: float = _DEFAULT_TOLERANCE,
        config: AdaptiveConfig | None = None,
    ) -> None:
        tolerance = float(tolerance)
        if not math.isfinite(tolerance) or tolerance <= 0.0:
            raise ValueError(f"Tolerance must be a positive finite number, got {tolerance}")

        dtype = get_dtype()
        self._tolerance = tolerance
        self._config = config if config is not None else AdaptiveConfig()
        self._stepper_full = RK4Stepper()
        self._stepper_half = RK4Stepper()
        self._state: Array | None = None
        self._time = jnp.asarray(0.0, dtype=dtype)
        self._time_step = jnp.asarray(_DEFAULT_TIME_STEP, dtype=dtype)
        self._steps = 0
        self._diverged = False
        self._underflowed = False

    @property
    def tolerance(self) -> float:
        """Error tolerance set at construction."""
        return self._tolerance

    @property
    def config(self) -> AdaptiveConfig:
        """Step-size control configuration."""
        return self._config

    @property
    def steps(self) -> int:
        """Number of :meth:`step` calls since the last :meth:`initialize`."""
        return self._steps

    def initialize(self, state: ArrayLike, time: ArrayLike, time_step: ArrayLike) -> None:
        """Seed the session for a new integration run.

        Args:
            state: Initial state vector (1-D).
            time: Initial time.
            time_step: Initial step size. Must be positive and large enough
                that half of it is a normal float of the active dtype.

        Raises:
            ValueError: If ``state`` is not 1-D or ``time_step`` is not a
                positive finite number, or is too small to halve.
        """
        dtype = get_dtype()
        state = jnp.asarray(state, dtype=dtype)
        if state.ndim != 1:
            raise ValueError(f"State must be a 1-D vector, got shape {state.shape}")
        if not math.isfinite(float(time_step)) or float(time_step) <= 0.0:
            raise ValueError(f"Time step must be a positive finite number, got {time_step}")
        if float(time_step) < _min_time_step(dtype):
            raise ValueError(
                f"Time step {time_step} is below the smallest usable step {_min_time_step(dtype)}"
            )

        self._state = state
        self._time = jnp.asarray(time, dtype=dtype)
        self._time_step = jnp.asarray(time_step, dtype=dtype)
        self._steps = 0
        self._diverged = False
        self._underflowed = False

    def step(self, dynamics: Callable[[ArrayLike, ArrayLike], Array]) -> StepResult:
        """Advance the session by one step.

        Runs one full RK4 step and two half RK4 steps from the current state,
        advances time by the current step size, stores the half-step estimate
        as the new state and stores the suggested next step size.

        Args:
            dynamics: ODE right-hand side function ``f(t, x) -> dx/dt``.

        Returns:
            StepResult: The step just taken. ``dt_next`` is the new
            :meth:`current_time_step`.

        Raises:
            RuntimeError: If called before :meth:`initialize`.
            IntegrationDivergedError: If ``config.check_finite`` is set and
                the step produced a non-finite state or step size, or the
                next step size underflowed. State, time, step size and
                :attr:`steps` are left unchanged; the step counters of the
                inner RK4 steppers still count the attempted step.

        A suggested step size too small to be halved in the active dtype
        (for example when ``tolerance`` is below ``2 * error_floor``) is
        raised to that minimum, with a warning logged once per session.
        """
        if self._state is None:
            raise RuntimeError("AdaptiveRK4.step() called before initialize()")

        result = _double_step(
            self._stepper_full.do_step,
            self._stepper_half.do_step,
            dynamics,
            self._time,
            self._state,
            self._time_step,
            self._tolerance,
            RK4Stepper.order,
            self._config,
        )

        finite = bool(jnp.all(jnp.isfinite(result.state))) and bool(jnp.isfinite(result.dt_next))
        if not finite:
            if self._config.check_finite:
                raise IntegrationDivergedError(
                    f"Non-finite state or step size after step from t={float(self._time)} "
                    f"with dt={float(self._time_step)}"
                )
            if not self._diverged:
                logger.warning(
                    "Non-finite state or step size after step from t=%s; values will propagate",
                    float(self._time),
                )
                self._diverged = True
        else:
            min_step = _min_time_step(result.dt_next.dtype)
            if bool(result.dt_next < min_step):
                if self._config.check_finite:
                    raise IntegrationDivergedError(
                        f"Step size underflowed to {float(result.dt_next)} after step from "
                        f"t={float(self._time)} with dt={float(self._time_step)}"
                    )
                if not self._underflowed:
                    logger.warning(
                        "Step size underflowed after step from t=%s; holding it at %s",
                        float(self._time),
                        min_step,
                    )
                    self._underflowed = True
                result = result._replace(
                    dt_next=jnp.asarray(min_step, dtype=result.dt_next.dtype)
                )

        self._time = self._time + result.dt_used
        self._time_step = result.dt_next
        self._state = result.state
        self._steps += 1

        logger.debug(
            "step %d: t=%s err=%s dt_next=%s",
            self._steps,
            self._time,
            result.error_estimate,
            result.dt_next,
        )
        return result

    def do_step(
        self,
        dynamics: Callable[[ArrayLike, ArrayLike], Array],
        state: ArrayLike,
        t: ArrayLike,
        dt: ArrayLike,
    ) -> Array:
        """Take a plain fixed RK4 step without touching the session."""
        return self._stepper_full.do_step(dynamics, state, t, dt)

    def current_state(self) -> Array | None:
        """Current state vector, or ``None`` before :meth:`initialize`."""
        return self._state

    def current_time(self) -> Array:
        """Current time."""
        return self._time

    def current_time_step(self) -> Array:
        """Step size the next :meth:`step` call will use."""
        return self._time_step

    def __repr__(self) -> str:
        return (
            f"AdaptiveRK4(tolerance={self._tolerance}, t={float(self._time)}, "
            f"dt={float(self._time_step)}, steps={self._steps})"
        )
