import jax.numpy as jnp
import jax.random as jrandom
import pytest

from geostax.errors import DomainError
from geostax.manifolds import (
    EuclideanSpace,
    PositiveArrays,
    PositiveMatrices,
    PositiveNumbers,
    PositiveVectors,
)
from tests.conftest import max_abs


STRICT_ATOL: float = 1e-12

MANIFOLDS: list = [
    pytest.param(PositiveNumbers(), id="scalar"),
    pytest.param(PositiveVectors(3), id="vectors-3"),
    pytest.param(PositiveMatrices(2, 3), id="matrices-2x3"),
    pytest.param(PositiveArrays(2, 2, 2), id="arrays-2x2x2"),
]


def test_factories() -> None:
    """The power-manifold factories fix the shape."""
    assert PositiveVectors(3) == PositiveNumbers((3,))
    assert PositiveMatrices(2, 3) == PositiveNumbers((2, 3))
    assert PositiveArrays(2, 2, 2).manifold_dimension() == 8
    assert PositiveNumbers().manifold_dimension() == 1
    assert PositiveNumbers().representation_size() == ()
    assert PositiveVectors(3).get_embedding() == EuclideanSpace((3,))


def test_scalar_closed_forms() -> None:
    """exp, log, distance and norm on R+ in closed form."""
    M = PositiveNumbers()
    p, q = jnp.array(2.0), jnp.array(8.0)
    assert abs(float(M.distance(p, q)) - float(jnp.log(4.0))) < STRICT_ATOL
    assert abs(float(M.log(p, q)) - 2.0 * float(jnp.log(4.0))) < STRICT_ATOL
    assert abs(float(M.exp(p, jnp.array(2.0))) - 2.0 * float(jnp.e)) < STRICT_ATOL
    assert abs(float(M.norm(p, jnp.array(3.0))) - 1.5) < STRICT_ATOL
    assert abs(float(M.mid_point(p, q)) - 4.0) < STRICT_ATOL


def test_check_point_and_vector() -> None:
    """Non-positive entries and wrongly shaped vectors are rejected."""
    M = PositiveVectors(3)
    err = M.check_point(jnp.array([1.0, 0.0, 2.0]))
    assert isinstance(err, DomainError) and err.constraint == "positive"
    err = M.check_vector(jnp.ones(3), jnp.ones(4))
    assert isinstance(err, DomainError) and err.constraint == "shape"
    assert not M.is_point(jnp.ones(2))
    assert M.is_point(jnp.array([0.1, 1.0, 10.0]))


@pytest.mark.parametrize("M", MANIFOLDS)
def test_exp_log_roundtrip(M: PositiveNumbers) -> None:
    """log inverts exp and the norm of log_p q is the distance."""
    p = M.sample(jrandom.PRNGKey(0))
    q = M.sample(jrandom.PRNGKey(1))
    X = M.log(p, q)
    assert max_abs(M.exp(p, X) - q) < 1e-10
    assert abs(float(M.norm(p, X)) - float(M.distance(p, q))) < 1e-10
    assert max_abs(M.retract(p, X) - M.exp(p, X)) == 0.0
    assert max_abs(M.inverse_retract(p, q) - X) == 0.0


@pytest.mark.parametrize("M", MANIFOLDS)
def test_parallel_transport_is_isometry(M: PositiveNumbers) -> None:
    """X q / p keeps inner products."""
    p = M.sample(jrandom.PRNGKey(2))
    q = M.sample(jrandom.PRNGKey(3))
    X = M.sample(jrandom.PRNGKey(4), at=p)
    Y = M.sample(jrandom.PRNGKey(5), at=p)
    PX = M.parallel_transport_to(p, X, q)
    PY = M.vector_transport_to(p, Y, q)
    assert abs(float(M.inner(q, PX, PY)) - float(M.inner(p, X, Y))) < 1e-10


@pytest.mark.parametrize("M", MANIFOLDS)
def test_coordinates_roundtrip(M: PositiveNumbers) -> None:
    """Coordinates X / p are orthonormal and invert get_vector."""
    p = M.sample(jrandom.PRNGKey(6))
    X = M.sample(jrandom.PRNGKey(7), at=p)
    c = M.get_coordinates(p, X)
    assert c.shape == (M.manifold_dimension(),)
    assert max_abs(M.get_vector(p, c) - X) < STRICT_ATOL
    assert abs(float(jnp.linalg.norm(c)) - float(M.norm(p, X))) < 1e-10
    assert max_abs(M.zero_vector(p)) == 0.0


def test_metric_conversions() -> None:
    """The Riesz representer is p X p and the metric conversion is p X."""
    M = PositiveVectors(2)
    p = jnp.array([2.0, 0.5])
    X = jnp.array([1.0, 4.0])
    assert max_abs(M.change_representer(p, X) - jnp.array([4.0, 1.0])) == 0.0
    assert max_abs(M.change_metric(p, X) - jnp.array([2.0, 2.0])) == 0.0
    G = jnp.array([1.0, -1.0])
    H = jnp.array([3.0, 2.0])
    assert max_abs(M.riemannian_hessian(p, G, H, X) - (p * H * p + X * G * p)) == 0.0


def test_riemannian_hessian_of_log() -> None:
    """f(p) = log p is a geodesic coordinate, so its Riemannian Hessian vanishes."""
    M = PositiveNumbers()
    p, X = jnp.array(3.0), jnp.array(0.7)
    G, H = 1.0 / p, -1.0 / p**2
    assert abs(float(M.riemannian_hessian(p, G, H * X, X))) < STRICT_ATOL


def test_volume_density_and_constants() -> None:
    """Volume density exp(X / p); the space is not flat and complete."""
    M = PositiveVectors(2)
    p = jnp.array([1.0, 2.0])
    X = jnp.array([0.5, 1.0])
    assert abs(float(M.volume_density(p, X)) - float(jnp.exp(1.0))) < STRICT_ATOL
    assert not M.is_flat()
    assert M.injectivity_radius() == float("inf")
    assert max_abs(M.project(p, X) - X) == 0.0
    assert max_abs(M.embed(p)) == max_abs(p)
