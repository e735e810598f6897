from __future__ import annotations

from dataclasses import dataclass
from math import prod

import jax
import jax.numpy as jnp

from geostax.dispatch import (
    CapabilityTable,
    EuclideanMetric,
    IsDefaultMetric,
    IsEmbeddedManifold,
    merge_traits,
)
from geostax.errors import DomainError
from geostax.manifolds.manifold_types import EuclideanSpace, Manifold


@dataclass(frozen=True)
class PositiveNumbers(Manifold):
    """
    Arrays of a fixed shape with positive entries, each entry a copy of the
    one-dimensional hyperbolic space with metric g_p(X, Y) = XY / p².

    ``shape=()`` is a single positive number; see :func:`PositiveVectors`,
    :func:`PositiveMatrices` and :func:`PositiveArrays` for the power manifolds.
    """

    shape: tuple[int, ...] = ()

    def build_capabilities(self) -> CapabilityTable:
        return CapabilityTable(merge_traits(IsDefaultMetric(EuclideanMetric()), IsEmbeddedManifold()))

    def get_embedding(self) -> Manifold:
        return EuclideanSpace(self.shape)

    def check_point(self, p: jax.Array, *, atol: float | None = None) -> DomainError | None:
        p_min = float(jnp.min(p))
        if p_min <= 0.0:
            return self._domain_error(
                p_min,
                f"The point {p} does not lie on {self!r}, since it has non-positive entries.",
                "positive",
            )
        return None

    def check_vector(
        self, p: jax.Array, X: jax.Array, *, atol: float | None = None
    ) -> DomainError | None:
        if jnp.shape(X) != self.shape:
            return self._domain_error(
                jnp.shape(X),
                f"The vector {X} is not a tangent vector at {p} on {self!r}, since its shape "
                f"{jnp.shape(X)} is not {self.shape}.",
                "shape",
            )
        return None

    def manifold_dimension(self) -> int:
        return prod(self.shape)

    def representation_size(self) -> tuple[int, ...]:
        return self.shape

    def embed(self, p: jax.Array, X: jax.Array | None = None) -> jax.Array:
        return p if X is None else X

    def exp(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return p * jnp.exp(X / p)

    def log(self, p: jax.Array, q: jax.Array) -> jax.Array:
        return p * jnp.log(q / p)

    def retract(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return self.exp(p, X)

    def inverse_retract(self, p: jax.Array, q: jax.Array) -> jax.Array:
        return self.log(p, q)

    def distance(self, p: jax.Array, q: jax.Array) -> jax.Array:
        return jnp.linalg.norm(jnp.ravel(jnp.log(p) - jnp.log(q)))

    def inner(self, p: jax.Array, X: jax.Array, Y: jax.Array) -> jax.Array:
        return jnp.sum(X * Y / p**2)

    def norm(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return jnp.sqrt(self.inner(p, X, X))

    def project(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return X

    def parallel_transport_to(self, p: jax.Array, X: jax.Array, q: jax.Array) -> jax.Array:
        return X * q / p

    def vector_transport_to(self, p: jax.Array, X: jax.Array, q: jax.Array) -> jax.Array:
        return self.parallel_transport_to(p, X, q)

    def change_representer(self, p: jax.Array, X: jax.Array) -> jax.Array:
        """Riesz representer of the Euclidean gradient ``X``: ``p X p``."""
        return p * X * p

    def change_metric(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return p * X

    def riemannian_hessian(
        self, p: jax.Array, G: jax.Array, H: jax.Array, X: jax.Array
    ) -> jax.Array:
        return p * H * p + X * G * p

    def get_coordinates(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return jnp.ravel(X / p)

    def get_vector(self, p: jax.Array, c: jax.Array) -> jax.Array:
        return p * jnp.reshape(c, self.shape)

    def mid_point(self, p: jax.Array, q: jax.Array) -> jax.Array:
        return self.exp(p, self.log(p, q) / 2.0)

    def volume_density(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return jnp.prod(jnp.exp(X / p))

    def zero_vector(self, p: jax.Array) -> jax.Array:
        return jnp.zeros_like(p)

    def is_flat(self) -> bool:
        return False

    def injectivity_radius(self) -> float:
        return float("inf")

    def sample(
        self, key: jax.Array, *, at: jax.Array | None = None, sigma: float = 1.0
    ) -> jax.Array:
        xi = jax.random.normal(key, self.shape, dtype=jnp.float64)
        if at is None:
            return jnp.exp(sigma * xi)
        return at * sigma * xi


def PositiveVectors(n: int) -> PositiveNumbers:
    return PositiveNumbers((n,))


def PositiveMatrices(m: int, n: int) -> PositiveNumbers:
    return PositiveNumbers((m, n))


def PositiveArrays(*shape: int) -> PositiveNumbers:
    return PositiveNumbers(tuple(shape))
