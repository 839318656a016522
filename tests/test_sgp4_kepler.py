"""Tests for the modified Kepler equation solver."""

import jax
import jax.numpy as jnp
import pytest

from orbitjax.sgp4 import solve_kepler
from orbitjax.sgp4._constants import KEPLER_MAX_ITERATIONS


def _residual(x, u, axn, ayn):
    return u - (x + ayn * jnp.cos(x) - axn * jnp.sin(x))


class TestSolveKepler:
    def test_circular_returns_argument(self) -> None:
        x, _, _, k = solve_kepler(1.234, 0.0, 0.0)
        assert float(x) == pytest.approx(1.234, abs=1e-15)
        assert int(k) <= 2

    @pytest.mark.parametrize(
        "u, axn, ayn",
        [
            (0.3, 0.001, -0.002),
            (2.5, 0.05, 0.03),
            (-4.0, -0.2, 0.1),
            (10.0, 0.2, -0.2),
        ],
    )
    def test_residual(self, u: float, axn: float, ayn: float) -> None:
        x, _, _, k = solve_kepler(u, axn, ayn)
        assert abs(float(_residual(x, u, axn, ayn))) < 1e-10
        assert int(k) <= KEPLER_MAX_ITERATIONS

    def test_iteration_cap(self) -> None:
        # Strongly eccentric case needs the clamped steps and the cap
        _, _, _, k = solve_kepler(0.01, 0.0, 0.99)
        assert 1 <= int(k) <= KEPLER_MAX_ITERATIONS

    def test_high_eccentricity_finite(self) -> None:
        x, sin_x, cos_x, _ = solve_kepler(0.01, 0.7, 0.69)
        assert jnp.isfinite(x)
        assert jnp.isfinite(sin_x)
        assert jnp.isfinite(cos_x)

    def test_sin_cos_from_last_iteration(self) -> None:
        x, sin_x, cos_x, _ = solve_kepler(2.5, 0.05, 0.03)
        # Returned at the start of the final step, which was below tolerance
        assert float(sin_x) == pytest.approx(float(jnp.sin(x)), abs=1e-11)
        assert float(cos_x) == pytest.approx(float(jnp.cos(x)), abs=1e-11)

    def test_jit(self) -> None:
        x_jit, _, _, _ = jax.jit(solve_kepler)(2.5, 0.05, 0.03)
        x, _, _, _ = solve_kepler(2.5, 0.05, 0.03)
        assert float(x_jit) == pytest.approx(float(x), abs=1e-14)

    def test_vmap(self) -> None:
        u = jnp.linspace(-3.0, 3.0, 7)
        x, _, _, _ = jax.vmap(solve_kepler, in_axes=(0, None, None))(u, 0.1, -0.05)
        assert x.shape == (7,)
        assert jnp.all(jnp.abs(_residual(x, u, 0.1, -0.05)) < 1e-10)
