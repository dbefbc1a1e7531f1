"""
stepjax is a small library of explicit single-step ODE integrators with step-doubling
step-size control, implemented in JAX.
"""

from .config import set_dtype, get_dtype

from .integrators import (
    StepResult,
    AdaptiveConfig,
    ErrorNorm,
    IntegrationDivergedError,
    rk4_step,
    RK4Stepper,
    trapezoidal_step,
    TrapezoidalStepper,
    adaptive_rk4_step,
    AdaptiveRK4,
)

from .observers import (
    Observer,
    SilentObserver,
    DecimatedObserver,
    PrintObserver,
    LoggingObserver,
)

from .integrate import integrate_const, integrate_adaptive

__all__ = [
    # Config
    "set_dtype",
    "get_dtype",
    # Integrators
    "StepResult",
    "AdaptiveConfig",
    "ErrorNorm",
    "IntegrationDivergedError",
    "rk4_step",
    "RK4Stepper",
    "trapezoidal_step",
    "TrapezoidalStepper",
    "adaptive_rk4_step",
    "AdaptiveRK4",
    # Observers
    "Observer",
    "SilentObserver",
    "DecimatedObserver",
    "PrintObserver",
    "LoggingObserver",
    # Loop drivers
    "integrate_const",
    "integrate_adaptive",
]
