"""Tests for the orbitjax.config module."""

import logging

import jax
import jax.numpy as jnp
import pytest

from orbitjax.config import get_dtype, is_double_precision, set_dtype
from orbitjax.sgp4 import MeanElements, sgp4_init, sgp4_propagate
from orbitjax.time import gmst_from_jd


def _elements() -> MeanElements:
    return MeanElements.from_tle_units(
        2444514.48708465, 16.05824518, 0.0086731, 72.8435, 115.9689, 52.6988, 110.5714, 0.66816e-4
    )


class TestGetSetDtype:
    def test_default_dtype(self):
        assert get_dtype() == jnp.float64
        assert is_double_precision()

    def test_x64_enabled_on_import(self):
        assert jax.config.jax_enable_x64 is True

    def test_set_float32(self):
        set_dtype(jnp.float32)
        assert get_dtype() == jnp.float32
        assert not is_double_precision()

    def test_narrow_dtype_keeps_x64_enabled(self):
        set_dtype(jnp.float32)
        assert jax.config.jax_enable_x64 is True

    def test_roundtrip(self):
        for dtype in (jnp.float16, jnp.bfloat16, jnp.float32, jnp.float64):
            set_dtype(dtype)
            assert get_dtype() == dtype

    def test_invalid_dtype_raises(self):
        with pytest.raises(ValueError, match="Unsupported dtype"):
            set_dtype(jnp.int32)

    def test_invalid_dtype_string_raises(self):
        with pytest.raises(ValueError, match="Unsupported dtype"):
            set_dtype("float32")


class TestDtypeSwitchingOutputs:
    """Verify that state and output dtypes follow the configured dtype."""

    def test_state_dtype_float64(self):
        state = sgp4_init(_elements())
        assert state.c1.dtype == jnp.float64
        assert state.a.dtype == jnp.float64

    def test_state_dtype_float32(self):
        set_dtype(jnp.float32)
        state = sgp4_init(_elements())
        assert state.c1.dtype == jnp.float32
        r, v, _ = sgp4_propagate(state, 60.0)
        assert r.dtype == jnp.float32
        assert v.dtype == jnp.float32

    def test_gmst_dtype(self):
        assert gmst_from_jd(2444514.48708465).dtype == jnp.float64

    def test_narrow_dtype_init_warns(self, caplog):
        set_dtype(jnp.float32)
        with caplog.at_level(logging.WARNING, logger="orbitjax.sgp4._propagation"):
            sgp4_init(_elements())
        assert "float32" in caplog.text

    def test_float64_init_does_not_warn(self, caplog):
        with caplog.at_level(logging.WARNING, logger="orbitjax.sgp4._propagation"):
            sgp4_init(_elements())
        assert caplog.text == ""
