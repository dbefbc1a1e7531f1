import jax.numpy as jnp
import pytest

from stepjax.config import set_dtype


@pytest.fixture(autouse=True)
def _ensure_float64():
    """Run every test in float64 unless the module overrides it.

    Exact-value checks (error floor, step-size ratios, accumulated time)
    need double precision. test_config.py resets to float32 with its own
    autouse fixture.
    """
    set_dtype(jnp.float64)
