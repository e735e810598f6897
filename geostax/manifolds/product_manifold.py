from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import jax
import jax.numpy as jnp

from geostax.errors import DimensionMismatchError, DomainError
from geostax.manifolds.manifold_types import Manifold


@dataclass(frozen=True)
class ProductPoint:
    """Point or tangent vector of a product manifold, one part per factor."""

    parts: tuple[Any, ...]

    def __getitem__(self, i: int) -> Any:
        return self.parts[i]

    def __len__(self) -> int:
        return len(self.parts)

    def _map(self, fn: Callable[..., Any], *others: ProductPoint) -> ProductPoint:
        return ProductPoint(tuple(fn(*xs) for xs in zip(self.parts, *(o.parts for o in others))))

    def __add__(self, other: ProductPoint) -> ProductPoint:
        return self._map(lambda a, b: a + b, other)

    def __sub__(self, other: ProductPoint) -> ProductPoint:
        return self._map(lambda a, b: a - b, other)

    def __neg__(self) -> ProductPoint:
        return self._map(lambda a: -a)

    def __mul__(self, scalar: Any) -> ProductPoint:
        return self._map(lambda a: a * scalar)

    def __rmul__(self, scalar: Any) -> ProductPoint:
        return self._map(lambda a: scalar * a)

    def __truediv__(self, scalar: Any) -> ProductPoint:
        return self._map(lambda a: a / scalar)


jax.tree_util.register_pytree_node(
    ProductPoint,
    lambda p: (p.parts, None),
    lambda _, children: ProductPoint(tuple(children)),
)


@dataclass(frozen=True)
class ProductManifold(Manifold):
    """Cartesian product of manifolds with the product metric."""

    manifolds: tuple[Manifold, ...]

    def _parts(self, *values: Any) -> zip:
        return zip(self.manifolds, *(v.parts for v in values))

    def check_size(self, p: Any) -> DimensionMismatchError | None:
        if not isinstance(p, ProductPoint) or len(p) != len(self.manifolds):
            return DimensionMismatchError(
                f"{self!r} expects a ProductPoint with {len(self.manifolds)} parts, got {p!r}.",
                expected=len(self.manifolds),
                got=p,
            )
        for M, part in self._parts(p):
            err = M.check_size(part)
            if err is not None:
                return err
        return None

    def check_point(self, p: ProductPoint, *, atol: float | None = None) -> DomainError | None:
        for i, (M, part) in enumerate(self._parts(p)):
            err = M.check_point(part, atol=atol)
            if err is not None:
                return self._domain_error(
                    err.value, f"Component {i} of {p} is invalid: {err.message}", err.constraint or ""
                )
        return None

    def check_vector(
        self, p: ProductPoint, X: ProductPoint, *, atol: float | None = None
    ) -> DomainError | None:
        for i, (M, part, Xpart) in enumerate(self._parts(p, X)):
            err = M.check_vector(part, Xpart, atol=atol)
            if err is not None:
                return self._domain_error(
                    err.value, f"Component {i} of {X} is invalid: {err.message}", err.constraint or ""
                )
        return None

    def manifold_dimension(self) -> int:
        return sum(M.manifold_dimension() for M in self.manifolds)

    def representation_size(self) -> tuple[tuple[int, ...], ...]:
        """Shapes of the factors, in order; a product has no single array shape."""
        return tuple(M.representation_size() for M in self.manifolds)

    def exp(self, p: ProductPoint, X: ProductPoint) -> ProductPoint:
        return ProductPoint(tuple(M.exp(a, b) for M, a, b in self._parts(p, X)))

    def log(self, p: ProductPoint, q: ProductPoint) -> ProductPoint:
        return ProductPoint(tuple(M.log(a, b) for M, a, b in self._parts(p, q)))

    def inner(self, p: ProductPoint, X: ProductPoint, Y: ProductPoint) -> jax.Array:
        return sum(M.inner(a, x, y) for M, a, x, y in self._parts(p, X, Y))

    def norm(self, p: ProductPoint, X: ProductPoint) -> jax.Array:
        return jnp.sqrt(self.inner(p, X, X))

    def distance(self, p: ProductPoint, q: ProductPoint) -> jax.Array:
        return jnp.sqrt(sum(M.distance(a, b) ** 2 for M, a, b in self._parts(p, q)))

    def project(self, p: ProductPoint, X: ProductPoint) -> ProductPoint:
        return ProductPoint(tuple(M.project(a, b) for M, a, b in self._parts(p, X)))

    def parallel_transport_to(
        self, p: ProductPoint, X: ProductPoint, q: ProductPoint
    ) -> ProductPoint:
        return ProductPoint(
            tuple(M.parallel_transport_to(a, x, b) for M, a, x, b in self._parts(p, X, q))
        )

    def zero_vector(self, p: ProductPoint) -> ProductPoint:
        return ProductPoint(tuple(M.zero_vector(a) for M, a in self._parts(p)))

    def get_coordinates(self, p: ProductPoint, X: ProductPoint) -> jax.Array:
        return jnp.concatenate([M.get_coordinates(a, x) for M, a, x in self._parts(p, X)])

    def get_vector(self, p: ProductPoint, c: jax.Array) -> ProductPoint:
        if c.shape != (self.manifold_dimension(),):
            raise DimensionMismatchError(
                f"{self!r} expects {self.manifold_dimension()} coordinates, got shape {c.shape}.",
                expected=(self.manifold_dimension(),),
                got=c.shape,
            )
        parts = []
        offset = 0
        for M, a in self._parts(p):
            dim = M.manifold_dimension()
            parts.append(M.get_vector(a, c[offset : offset + dim]))
            offset += dim
        return ProductPoint(tuple(parts))

    def isapprox(self, p: ProductPoint, q: ProductPoint, *, atol: float = 1e-8) -> bool:
        return all(bool(jnp.allclose(a, b, atol=atol)) for _, a, b in self._parts(p, q))

    def sample(
        self, key: jax.Array, *, at: ProductPoint | None = None, sigma: float = 1.0
    ) -> ProductPoint:
        keys = jax.random.split(key, len(self.manifolds))
        if at is None:
            return ProductPoint(tuple(M.sample(k, sigma=sigma) for M, k in zip(self.manifolds, keys)))
        return ProductPoint(
            tuple(M.sample(k, at=a, sigma=sigma) for (M, a), k in zip(self._parts(at), keys))
        )
