from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

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
from geostax.lie_kernels import exp_so, log_so
from geostax.linalg_ops import random_orthogonal, skew, so_hat, so_vee, transpose
from geostax.manifolds.manifold_types import EuclideanSpace, Manifold

Basis = Literal["orthogonal", "orthonormal"]


@dataclass(frozen=True)
class GeneralUnitaryMatrices(Manifold):
    """
    Real n×n matrices with p^T p = I, optionally restricted to det(p) = 1.

    Tangent vectors are stored as Lie algebra elements: the tangent vector p X at p is
    represented by the skew-symmetric matrix X. The metric is the Frobenius inner
    product of these representatives, which is bi-invariant.

    Retract options:
      - "exp": the exponential map
      - "polar": nearest orthogonal matrix to p(I + X) via SVD (default)
      - "qr": Q factor of p(I + X) with a positive-diagonal R
    """

    n: int
    determinant: Literal["any", "one"] = "any"

    def check_point(self, p: jax.Array, *, atol: float | None = None) -> DomainError | None:
        atol = self._atol(atol)
        err = jnp.linalg.norm(transpose(p) @ p - jnp.eye(self.n, dtype=p.dtype))
        if float(err) > atol:
            return self._domain_error(
                float(err),
                f"The point {p} does not lie on {self!r}, since p^T p deviates from the identity "
                f"by {float(err):.3e}.",
                "orthogonality",
            )
        if self.determinant == "one":
            det = float(jnp.linalg.det(p))
            if abs(det - 1.0) > atol:
                return self._domain_error(
                    det,
                    f"The point {p} does not lie on {self!r}, since its determinant is {det:.6g}.",
                    "det = 1",
                )
        return None

    def check_vector(
        self, p: jax.Array, X: jax.Array, *, atol: float | None = None
    ) -> DomainError | None:
        atol = self._atol(atol)
        err = float(jnp.linalg.norm(X + transpose(X)))
        if err > atol:
            return self._domain_error(
                err,
                f"The matrix {X} is not a tangent vector at {p} on {self!r} (represented as an "
                f"element of the Lie algebra), since it deviates from skew-symmetry by {err:.3e}.",
                "skew-symmetry",
            )
        return None

    def manifold_dimension(self) -> int:
        return self.n * (self.n - 1) // 2

    def representation_size(self) -> tuple[int, ...]:
        return (self.n, self.n)

    def build_capabilities(self) -> CapabilityTable:
        return CapabilityTable(merge_traits(IsDefaultMetric(EuclideanMetric()), IsEmbeddedManifold()))

    def get_embedding(self) -> Manifold:
        return EuclideanSpace((self.n, self.n))

    def embed(self, p: jax.Array, X: jax.Array | None = None) -> jax.Array:
        return p if X is None else p @ X

    def exp(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return p @ exp_so(X)

    def log(self, p: jax.Array, q: jax.Array) -> jax.Array:
        return log_so(transpose(p) @ q)

    def retract(
        self,
        p: jax.Array,
        X: jax.Array,
        method: Literal["exp", "polar", "qr"] = "polar",
    ) -> jax.Array:
        match method:
            case "exp":
                return self.exp(p, X)
            case "polar":
                return self.project_point(p @ (jnp.eye(self.n, dtype=p.dtype) + X))
            case "qr":
                q, r = jnp.linalg.qr(p @ (jnp.eye(self.n, dtype=p.dtype) + X))
                d = jnp.diagonal(r)
                return q * jnp.where(d < 0, -1.0, 1.0)[None, :]
            case _:
                raise ValueError(f"Unknown method '{method}'. Must be 'exp', 'polar' or 'qr'.")

    def inverse_retract(
        self, p: jax.Array, q: jax.Array, method: Literal["log"] = "log"
    ) -> jax.Array:
        match method:
            case "log":
                return self.log(p, q)
            case _:
                raise ValueError(f"Unknown method '{method}'. Must be 'log'.")

    def inner(self, p: jax.Array, X: jax.Array, Y: jax.Array) -> jax.Array:
        return jnp.sum(X * Y)

    def norm(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return jnp.linalg.norm(X)

    def distance(self, p: jax.Array, q: jax.Array) -> jax.Array:
        return jnp.linalg.norm(self.log(p, q))

    def project(self, p: jax.Array, X: jax.Array) -> jax.Array:
        """
        Project an ambient matrix X at p to the Lie algebra representative skew(p^T X).
        """
        return skew(transpose(p) @ X)

    def project_point(self, x: jax.Array) -> jax.Array:
        """
        Nearest orthogonal matrix (Kabsch/Procrustes): U V^T, with the last column of U
        flipped when a unit determinant is required and det(U V^T) < 0.
        """
        u, _, vt = jnp.linalg.svd(x, full_matrices=False)
        if self.determinant == "one":
            det = jnp.linalg.det(u @ vt)
            u = u.at[..., :, -1].multiply(jnp.where(det < 0.0, -1.0, 1.0)[..., None])
        return u @ vt

    def parallel_transport_to(self, p: jax.Array, X: jax.Array, q: jax.Array) -> jax.Array:
        """
        Transport along the geodesic from p to q: with d = log_p(q),
        P(X) = exp(-d/2) X exp(d/2).
        """
        half = exp_so(0.5 * self.log(p, q))
        return transpose(half) @ X @ half

    def get_coordinates(self, p: jax.Array, X: jax.Array, basis: Basis = "orthogonal") -> jax.Array:
        c = so_vee(X)
        return c * jnp.sqrt(2.0) if basis == "orthonormal" else c

    def get_vector(self, p: jax.Array, c: jax.Array, basis: Basis = "orthogonal") -> jax.Array:
        if basis == "orthonormal":
            c = c / jnp.sqrt(2.0)
        return so_hat(c, self.n)

    def zero_vector(self, p: jax.Array) -> jax.Array:
        return jnp.zeros_like(p)

    def injectivity_radius(self) -> float:
        return float(jnp.pi * jnp.sqrt(2.0))

    def is_flat(self) -> bool:
        return self.n == 2

    def sample(
        self, key: jax.Array, *, at: jax.Array | None = None, sigma: float = 1.0
    ) -> jax.Array:
        if at is None:
            return random_orthogonal(key, self.n, special=self.determinant == "one")
        return sigma * skew(jax.random.normal(key, (self.n, self.n), dtype=at.dtype))


@dataclass(frozen=True)
class Rotations(GeneralUnitaryMatrices):
    """SO(n) as a Riemannian manifold."""

    determinant: Literal["any", "one"] = field(default="one", init=False)


@dataclass(frozen=True)
class OrthogonalMatrices(GeneralUnitaryMatrices):
    """O(n) as a Riemannian manifold."""

    determinant: Literal["any", "one"] = field(default="any", init=False)
