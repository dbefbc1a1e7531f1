# /// script
# requires-python = ">=3.11"
# dependencies = ["typer>=0.9.0", "stepjax"]
#
# [tool.uv.sources]
# stepjax = { path = ".." }
# ///
"""Integrate the Van der Pol oscillator with step-doubling adaptive RK4.

Requires stepjax to be installed (``uv pip install -e .`` from the repo root).

Usage:
    uv run examples/van_der_pol.py [OPTIONS]

Examples:
    # Default run: mu = 1, 20 time units, tolerance 1e-6
    uv run examples/van_der_pol.py

    # Stiffer oscillator, print every 10th step
    uv run examples/van_der_pol.py --mu 5 --print-every 10

    # Stop with an error instead of propagating NaN
    uv run examples/van_der_pol.py --check-finite
"""

import logging
import time
from typing import Annotated

import jax.numpy as jnp
import typer

from stepjax import (
    AdaptiveConfig,
    AdaptiveRK4,
    DecimatedObserver,
    PrintObserver,
    integrate_adaptive,
    set_dtype,
)

set_dtype(jnp.float64)

app = typer.Typer(add_completion=False)


def _van_der_pol(mu: float):
    def dynamics(t, x):
        return jnp.array([x[1], mu * (1.0 - x[0] ** 2) * x[1] - x[0]])

    return dynamics


@app.command()
def main(
    mu: Annotated[float, typer.Option(help="Damping parameter")] = 1.0,
    t_end: Annotated[float, typer.Option(help="Final time")] = 20.0,
    tolerance: Annotated[float, typer.Option(help="Per-step error tolerance")] = 1e-6,
    dt0: Annotated[float, typer.Option(help="Initial step size")] = 1e-3,
    print_every: Annotated[int, typer.Option(help="Print every N-th step (0 = never)")] = 0,
    check_finite: Annotated[bool, typer.Option(help="Raise if the integration diverges")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log progress")] = False,
) -> None:
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING)

    controller = AdaptiveRK4(tolerance, AdaptiveConfig(check_finite=check_finite))
    controller.initialize(jnp.array([2.0, 0.0]), 0.0, dt0)

    observer = DecimatedObserver(PrintObserver(), every=print_every) if print_every > 0 else None

    start = time.perf_counter()
    n_steps = integrate_adaptive(controller, _van_der_pol(mu), t_end, observer)
    elapsed = time.perf_counter() - start

    typer.echo(f"steps:      {n_steps}")
    typer.echo(f"final time: {float(controller.current_time()):.6f}")
    typer.echo(f"final dt:   {float(controller.current_time_step()):.3e}")
    typer.echo(f"state:      {controller.current_state()}")
    typer.echo(f"wall time:  {elapsed:.2f} s")


if __name__ == "__main__":
    app()
