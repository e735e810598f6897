import jax.numpy as jnp
import jax.random as jrandom
import pytest
from pytest_benchmark.fixture import BenchmarkFixture

from geostax.groups import SpecialEuclidean
from geostax.lie_kernels import exp_so, log_so
from tests.conftest import BENCH_ROTATION_DIMS, benchmark_wrapper, random_skew


@pytest.mark.benchmark(group="so_exp")
@pytest.mark.parametrize("n", BENCH_ROTATION_DIMS)
def test_exp_so_benchmark(benchmark: BenchmarkFixture, n: int) -> None:
    """Benchmark the jitted closed-form exponential against dimension."""
    X = random_skew(jrandom.PRNGKey(0), n, 0.5)
    result = benchmark_wrapper(benchmark, exp_so, X)
    assert result.shape == (n, n), f"exp_so bench shape mismatch: got {result.shape}"


@pytest.mark.benchmark(group="so_log")
@pytest.mark.parametrize("n", BENCH_ROTATION_DIMS)
def test_log_so_benchmark(benchmark: BenchmarkFixture, n: int) -> None:
    """Benchmark the logarithm; branch selection is eager, so it is not jitted."""
    q = exp_so(random_skew(jrandom.PRNGKey(1), n, 0.5))
    result = benchmark_wrapper(benchmark, log_so, q, jit=False)
    assert result.shape == (n, n), f"log_so bench shape mismatch: got {result.shape}"


@pytest.mark.benchmark(group="se3")
def test_se3_compose_benchmark(benchmark: BenchmarkFixture) -> None:
    """Benchmark SE(3) composition of two random rigid motions."""
    G = SpecialEuclidean(3)
    p, q = G.sample(jrandom.PRNGKey(2)), G.sample(jrandom.PRNGKey(3))
    result = benchmark_wrapper(benchmark, G.compose, p, q)
    assert jnp.allclose(G.affine_matrix(result), G.affine_matrix(p) @ G.affine_matrix(q))


@pytest.mark.benchmark(group="se3")
def test_se3_exp_lie_benchmark(benchmark: BenchmarkFixture) -> None:
    """Benchmark the SE(3) group exponential."""
    G = SpecialEuclidean(3)
    X = G.sample(jrandom.PRNGKey(4), at=G.identity_element())
    result = benchmark_wrapper(benchmark, G.exp_lie, X)
    assert G.is_point(result)
