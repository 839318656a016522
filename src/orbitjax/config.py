"""Module-wide floating-point precision configuration.

Provides ``set_dtype`` and ``get_dtype`` to control the float dtype of the
state arrays built by orbitjax.  The default is ``jnp.float64``: SGP4
reference vectors are only reproducible to the metre level in double
precision.

Importing orbitjax enables JAX's 64-bit mode (``jax_enable_x64``) for the
whole process, not only for orbitjax.  Other JAX code in the same process
will then default to 64-bit arrays as well.  The GMST helpers in
:mod:`orbitjax.time` rely on this even when no state is ever built.
``set_dtype`` never turns the flag off: a narrower dtype only changes the
arrays orbitjax creates.

Call ``set_dtype`` **before** any JIT compilation, just like JAX's own
``jax.config.update("jax_enable_x64", True)``.  Under JIT, ``get_dtype()``
runs during tracing and its result is baked into the compiled program.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

_VALID_DTYPES = (jnp.float16, jnp.bfloat16, jnp.float32, jnp.float64)

jax.config.update("jax_enable_x64", True)

_dtype = jnp.float64


def set_dtype(dtype) -> None:
    """Set the module-wide float dtype for orbitjax.

    Must be called **before** any ``jax.jit`` compilation.  States created
    by ``sgp4_init`` after the call store their arrays in *dtype*.

    If *dtype* is ``jnp.float64``, JAX's 64-bit mode is (re-)enabled via
    ``jax.config.update("jax_enable_x64", True)``.

    Args:
        dtype: One of ``jnp.float16``, ``jnp.bfloat16``, ``jnp.float32``,
            or ``jnp.float64``.

    Raises:
        ValueError: If *dtype* is not a supported float type.
    """
    global _dtype
    if dtype not in _VALID_DTYPES:
        raise ValueError(
            f"Unsupported dtype {dtype}. Must be one of: "
            f"jnp.float16, jnp.bfloat16, jnp.float32, jnp.float64"
        )
    if dtype == jnp.float64:
        jax.config.update("jax_enable_x64", True)
    _dtype = dtype


def get_dtype():
    """Return the current module-wide float dtype.

    Returns:
        The active float dtype (default ``jnp.float64``).
    """
    return _dtype


def is_double_precision() -> bool:
    """Return ``True`` when the configured dtype is ``jnp.float64``."""
    return _dtype == jnp.float64
