import jax
import jax.numpy as jnp
import jax.random as jrandom
import pytest

from geostax.errors import DimensionMismatchError, DomainError
from geostax.manifolds import CholeskySpace, EuclideanSpace, Hyperbolic, Rotations
from geostax.types import ProductManifold, ProductPoint
from tests.conftest import max_abs


STRICT_ATOL: float = 1e-10


@pytest.fixture
def product() -> ProductManifold:
    return ProductManifold((EuclideanSpace((2,)), Rotations(3), Hyperbolic(2)))


def _sample(M: ProductManifold, seed: int) -> tuple[ProductPoint, ProductPoint]:
    k1, k2 = jrandom.split(jrandom.PRNGKey(seed))
    p = M.sample(k1)
    return p, M.sample(k2, at=p, sigma=0.5)


def test_point_arithmetic() -> None:
    """ProductPoint arithmetic acts part by part and is a pytree."""
    a = ProductPoint((jnp.ones(2), jnp.eye(2)))
    b = ProductPoint((jnp.arange(2.0), 2.0 * jnp.eye(2)))
    c = 2.0 * a - b / 2.0 + (-a) * 1.0
    assert max_abs(c[0] - (jnp.ones(2) - jnp.arange(2.0) / 2.0)) == 0.0
    assert max_abs(c[1]) == 0.0
    assert len(c) == 2
    doubled = jax.tree_util.tree_map(lambda x: 2 * x, a)
    assert isinstance(doubled, ProductPoint)
    assert max_abs(doubled[1] - 2.0 * jnp.eye(2)) == 0.0


def test_membership(product: ProductManifold) -> None:
    """Samples are valid; an invalid component is reported with its index."""
    p, X = _sample(product, 0)
    assert product.is_point(p, error="raise")
    assert product.is_vector(p, X, error="raise")
    assert product.manifold_dimension() == 2 + 3 + 2
    bad = ProductPoint((p[0], 2.0 * p[1], p[2]))
    err = product.check_point(bad)
    assert isinstance(err, DomainError)
    assert "Component 1" in err.message
    assert isinstance(product.check_size(ProductPoint((p[0], p[1]))), DimensionMismatchError)
    assert isinstance(product.check_size(p[0]), DimensionMismatchError)


def test_exp_log_and_distance(product: ProductManifold) -> None:
    """exp/log round-trip and the distance combines the factor distances."""
    p, X = _sample(product, 1)
    q = product.exp(p, X)
    Y = product.log(p, q)
    for a, b in zip(X.parts, Y.parts):
        assert max_abs(a - b) < 1e-9
    d = product.distance(p, q)
    assert abs(float(d) - float(product.norm(p, X))) < 1e-9
    assert product.isapprox(q, product.exp(p, Y), atol=1e-9)


def test_coordinates(product: ProductManifold) -> None:
    """Coordinates concatenate the factor coordinates."""
    p, X = _sample(product, 2)
    c = product.get_coordinates(p, X)
    assert c.shape == (product.manifold_dimension(),)
    Y = product.get_vector(p, c)
    for a, b in zip(X.parts, Y.parts):
        assert max_abs(a - b) < STRICT_ATOL
    with pytest.raises(DimensionMismatchError):
        product.get_vector(p, jnp.zeros(3))


def test_parallel_transport_and_project() -> None:
    """Transport and projection act factor-wise."""
    M = ProductManifold((CholeskySpace(2), Hyperbolic(1)))
    p, X = _sample(M, 3)
    q, _ = _sample(M, 4)
    PX = M.parallel_transport_to(p, X, q)
    assert abs(float(M.inner(q, PX, PX)) - float(M.inner(p, X, X))) < STRICT_ATOL
    Z = M.zero_vector(p)
    assert all(max_abs(z) == 0.0 for z in Z.parts)
    A = ProductPoint((jnp.ones((2, 2)), jnp.array([0.3, 0.4])))
    P = M.project(p, A)
    assert M.is_vector(p, P, atol=1e-10)


def test_representation_size_lists_factor_shapes(product: ProductManifold) -> None:
    """A product reports the array shape of each factor in order."""
    assert product.representation_size() == ((2,), (3, 3), (3,))
    p, _ = _sample(product, 5)
    assert tuple(part.shape for part in p.parts) == product.representation_size()
