import jax.numpy as jnp
import pytest

from orbitjax.config import set_dtype


@pytest.fixture(autouse=True)
def _ensure_float64():
    """Set float64 precision before every test.

    Reference vectors only agree to the metre level in double precision.
    Tests that exercise narrower dtypes set them explicitly and this
    fixture restores float64 for the next test.
    """
    set_dtype(jnp.float64)
    yield
    set_dtype(jnp.float64)
