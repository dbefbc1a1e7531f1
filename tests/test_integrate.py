"""Tests for the stepjax.integrate loop drivers."""

import jax.numpy as jnp
import pytest

from stepjax.integrate import integrate_adaptive, integrate_const
from stepjax.integrators import AdaptiveRK4, RK4Stepper, TrapezoidalStepper


def _harmonic_oscillator(t, x):
    """d^2q/dt^2 = -q. State: [q, dq/dt]. Solution: [cos(t), -sin(t)]."""
    return jnp.array([x[1], -x[0]])


def _ramp_dynamics(t, x):
    """dx/dt = 2t. Solution: x(t) = x0 + t^2."""
    return 2.0 * t * jnp.ones_like(x)


class _Recorder:
    def __init__(self):
        self.times = []

    def __call__(self, state, t):
        self.times.append(float(t))


class TestIntegrateConst:
    def test_harmonic_oscillator(self):
        """RK4 over [0, 1] with dt = 1/8 takes 8 steps and lands on t1."""
        stepper = RK4Stepper()
        observer = _Recorder()
        state, t = integrate_const(
            stepper, _harmonic_oscillator, jnp.array([1.0, 0.0]), 0.0, 1.0, 0.125, observer
        )
        assert float(t) == 1.0
        assert stepper.steps == 8
        assert observer.times[0] == 0.0
        assert len(observer.times) == 9
        assert jnp.allclose(state, jnp.array([jnp.cos(1.0), -jnp.sin(1.0)]), atol=1e-5)

    def test_shortened_last_step(self):
        """The last step is shortened to end exactly at t1."""
        stepper = TrapezoidalStepper()
        observer = _Recorder()
        state, t = integrate_const(
            stepper, _ramp_dynamics, jnp.array([0.0]), 0.0, 1.0, 0.375, observer
        )
        assert observer.times == [0.0, 0.375, 0.75, 1.0]
        assert float(t) == 1.0
        assert jnp.allclose(state, jnp.array([1.0]), atol=1e-12)

    def test_empty_interval(self):
        """t1 == t0 takes no steps."""
        stepper = RK4Stepper()
        observer = _Recorder()
        state, t = integrate_const(
            stepper, _harmonic_oscillator, jnp.array([1.0, 0.0]), 2.0, 2.0, 0.1, observer
        )
        assert stepper.steps == 0
        assert observer.times == [2.0]
        assert float(t) == 2.0

    def test_non_positive_dt_raises(self):
        with pytest.raises(ValueError, match="positive"):
            integrate_const(RK4Stepper(), _ramp_dynamics, jnp.array([0.0]), 0.0, 1.0, 0.0)

    def test_reversed_interval_raises(self):
        with pytest.raises(ValueError, match="precedes"):
            integrate_const(RK4Stepper(), _ramp_dynamics, jnp.array([0.0]), 1.0, 0.0, 0.1)


class TestIntegrateAdaptive:
    def test_harmonic_oscillator_full_period(self):
        """Adaptive RK4 follows the oscillator over one period."""
        controller = AdaptiveRK4(1e-8)
        controller.initialize(jnp.array([1.0, 0.0]), 0.0, 1e-3)
        observer = _Recorder()
        n_steps = integrate_adaptive(controller, _harmonic_oscillator, 2.0 * jnp.pi, observer)

        t_final = float(controller.current_time())
        assert t_final >= 2.0 * float(jnp.pi)
        assert n_steps == controller.steps == len(observer.times)
        expected = jnp.array([jnp.cos(t_final), -jnp.sin(t_final)])
        assert jnp.allclose(controller.current_state(), expected, atol=1e-5)

    def test_observer_times_increase(self):
        """Observed times are strictly increasing."""
        controller = AdaptiveRK4(1e-6)
        controller.initialize(jnp.array([1.0, 0.0]), 0.0, 1e-2)
        observer = _Recorder()
        integrate_adaptive(controller, _harmonic_oscillator, 1.0, observer)
        assert all(b > a for a, b in zip(observer.times, observer.times[1:]))

    def test_already_at_target(self):
        """No steps are taken when the session is already past t_end."""
        controller = AdaptiveRK4()
        controller.initialize(jnp.array([1.0]), 5.0, 0.1)
        assert integrate_adaptive(controller, _ramp_dynamics, 1.0) == 0

    def test_max_steps_exceeded(self):
        """Running out of the step budget raises."""
        controller = AdaptiveRK4()
        controller.initialize(jnp.array([1.0, 0.0]), 0.0, 1e-6)
        with pytest.raises(RuntimeError, match="exceeded 3 steps"):
            integrate_adaptive(controller, _harmonic_oscillator, 10.0, max_steps=3)
        assert controller.steps == 3

    def test_uninitialized_controller_raises(self):
        with pytest.raises(RuntimeError, match="initialize"):
            integrate_adaptive(AdaptiveRK4(), _harmonic_oscillator, 1.0)
