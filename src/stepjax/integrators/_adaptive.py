"""Step-doubling error control utilities.

Provides the error-norm computation and step-size update used by the
adaptive RK4 controller. The controller advances the same step twice:

1. Once over the full step ``dt``, giving candidate ``A``.
2. Twice over ``dt / 2``, giving the more accurate candidate ``B``.

The disagreement between ``A`` and ``B`` is a proxy for the local truncation
error. Its infinity norm is compared against the tolerance to predict the
next step size.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from stepjax.config import get_dtype
from stepjax.integrators._types import ErrorNorm


def compute_error_norm(
    candidate_full: ArrayLike,
    candidate_half: ArrayLike,
    error_norm: ErrorNorm = ErrorNorm.ABSOLUTE,
    error_floor: float = 1e-15,
) -> Array:
    """Compute the truncation error estimate of a step-doubling step.

    The per-component error depends on ``error_norm``:

    .. math::

        e^{\\text{abs}}_i = |B_i - A_i|, \\qquad
        e^{\\text{rel}}_i = \\left|\\frac{B_i - A_i}{B_i}\\right|, \\qquad
        e^{\\text{mix}}_i = \\min(e^{\\text{rel}}_i, e^{\\text{abs}}_i)

    Components where ``B_i`` is exactly zero use the absolute error in the
    relative and mixed norms. The estimate is the maximum over components.
    An estimate of exactly zero is replaced by ``error_floor``. Non-finite
    values are passed through unchanged.

    Args:
        candidate_full: State after one full step (``A``).
        candidate_half: State after two half steps (``B``).
        error_norm: Per-component error measure.
        error_floor: Value substituted for an exact zero.

    Returns:
        jax.Array: Scalar error estimate, strictly positive unless non-finite.

    Raises:
        ValueError: If ``error_norm`` is not an :class:`ErrorNorm` member.
    """
    dtype = get_dtype()
    candidate_full = jnp.asarray(candidate_full, dtype=dtype)
    candidate_half = jnp.asarray(candidate_half, dtype=dtype)

    diff = candidate_half - candidate_full
    abs_err = jnp.abs(diff)

    if error_norm is ErrorNorm.ABSOLUTE:
        err = abs_err
    elif error_norm in (ErrorNorm.RELATIVE, ErrorNorm.MIXED):
        nonzero = candidate_half != 0.0
        denom = jnp.where(nonzero, candidate_half, 1.0)
        rel_err = jnp.where(nonzero, jnp.abs(diff / denom), abs_err)
        if error_norm is ErrorNorm.RELATIVE:
            err = rel_err
        else:
            err = jnp.minimum(rel_err, abs_err)
    else:
        raise ValueError(f"Unknown error norm {error_norm!r}")

    t_err = jnp.max(err)
    return jnp.where(t_err == 0.0, jnp.asarray(error_floor, dtype=dtype), t_err)


def compute_next_step_size(
    error: ArrayLike,
    dt: ArrayLike,
    tolerance: float,
    order: float,
    safety_factor: float,
    min_scale_factor: float,
    max_scale_factor: float,
) -> Array:
    """Compute the next step size from a step-doubling error estimate.

    .. math::

        h_{\\text{next}} = S \\cdot h \\cdot
            \\operatorname{clip}\\left(
                \\left(\\frac{\\text{tol}}{2\\,\\text{error}}\\right)^{1/(p+1)},
                s_{\\min}, s_{\\max}\\right)

    where *S* is the safety factor and *p* the order of the underlying
    stepper. For RK4 the exponent is ``0.2``. The ratio ``h_next / h``
    therefore always lies in ``[S * s_min, S * s_max]``.

    Args:
        error: Error estimate from :func:`compute_error_norm`.
        dt: Step size that produced ``error``.
        tolerance: Target bound on the error estimate.
        order: Order of the underlying single-step method.
        safety_factor: Multiplier applied after clamping (typically 0.9).
        min_scale_factor: Lower clamp of the raw growth factor.
        max_scale_factor: Upper clamp of the raw growth factor.

    Returns:
        jax.Array: Suggested step size for the next call.
    """
    dtype = get_dtype()
    error = jnp.asarray(error, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)

    exponent = 1.0 / (order + 1.0)
    raw_scale = jnp.power(tolerance / (2.0 * error), exponent)
    scale = jnp.clip(raw_scale, min_scale_factor, max_scale_factor)

    return safety_factor * dt * scale
