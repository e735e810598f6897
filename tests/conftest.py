import jax
import jax.numpy as jnp
import pytest
from typing import Callable
from pytest_benchmark.fixture import BenchmarkFixture
import numpy as np

from geostax.linalg_ops import so_hat

_test_key = jax.random.PRNGKey(42)

BENCH_ROTATION_DIMS: list = [
    pytest.param(2, id="n-2"),
    pytest.param(3, id="n-3"),
    pytest.param(4, id="n-4"),
    pytest.param(6, id="n-6"),
]


def _block(x):
    return jax.tree_util.tree_map(lambda y: y.block_until_ready(), x)


def _maybe_device_put(x):
    # Put only array-like values on device; leave Python scalars/objects alone.
    if isinstance(x, (jax.Array, np.ndarray)):
        return jax.device_put(x)
    return x


def benchmark_wrapper(
    benchmark: BenchmarkFixture,
    func: Callable,
    *args,
    jit: bool = True,
    **kwargs,
):
    args = jax.tree_util.tree_map(_maybe_device_put, args)
    kwargs = jax.tree_util.tree_map(_maybe_device_put, kwargs)
    f = jax.jit(func) if jit else func

    # Warm-up: includes tracing/compile (if jit=True) and one execution
    warmed = _block(f(*args, **kwargs))

    def run():
        _block(f(*args, **kwargs))

    benchmark(run)
    return warmed


@pytest.fixture
def key() -> jax.Array:
    """Fresh PRNG key per test."""
    global _test_key
    _test_key, subkey = jax.random.split(_test_key)
    return subkey


def random_skew(key: jax.Array, n: int, scale: float = 1.0) -> jax.Array:
    """Gaussian skew-symmetric n×n matrix."""
    A = jax.random.normal(key, (n, n), dtype=jnp.float64) * scale
    return 0.5 * (A - A.T)


def skew_with_angles(angles: list[float], n: int) -> jax.Array:
    """Block-diagonal skew-symmetric matrix rotating plane (2i, 2i+1) by ``angles[i]``."""
    X = jnp.zeros((n, n), dtype=jnp.float64)
    for i, a in enumerate(angles):
        X = X.at[2 * i + 1, 2 * i].set(a).at[2 * i, 2 * i + 1].set(-a)
    return X


def so3_from_axis_angle(axis: list[float], angle: float) -> jax.Array:
    """Skew-symmetric 3×3 matrix of the rotation by ``angle`` around ``axis``."""
    w = jnp.asarray(axis, dtype=jnp.float64)
    w = w / jnp.linalg.norm(w)
    return so_hat(angle * w, 3)


def max_abs(x: jax.Array) -> float:
    return float(jnp.max(jnp.abs(x)).item())
