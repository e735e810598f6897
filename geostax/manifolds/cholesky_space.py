from __future__ import annotations

from dataclasses import dataclass

import jax
import jax.numpy as jnp

from geostax.dispatch import CapabilityTable, IsDefaultMetric, LogCholeskyMetric, merge_traits
from geostax.errors import DomainError
from geostax.linalg_ops import diag_matrix, strictly_lower, strictly_upper
from geostax.manifolds.manifold_types import Manifold


def _strictly_lower_indices(n: int) -> tuple[jax.Array, jax.Array]:
    """Row/column indices of the strictly lower triangle, column by column."""
    rows = [j for i in range(n) for j in range(i + 1, n)]
    cols = [i for i in range(n) for _ in range(i + 1, n)]
    return jnp.array(rows, dtype=jnp.int32), jnp.array(cols, dtype=jnp.int32)


@dataclass(frozen=True)
class CholeskySpace(Manifold):
    """
    Lower triangular n×n matrices with positive diagonal.

    The metric is flat Euclidean on the strictly lower part and Euclidean on the log
    scale for the diagonal:
    g_p(X, Y) = Σ_{i>j} X_ij Y_ij + Σ_i X_ii Y_ii / p_ii².
    The space is isometric to R^{n(n+1)/2}, so all geodesic quantities are closed form.
    """

    n: int

    def build_capabilities(self) -> CapabilityTable:
        return CapabilityTable(merge_traits(IsDefaultMetric(LogCholeskyMetric())))

    def check_point(self, p: jax.Array, *, atol: float | None = None) -> DomainError | None:
        atol = self._atol(atol)
        upper = float(jnp.linalg.norm(strictly_upper(p)))
        if upper > atol:
            return self._domain_error(
                upper,
                f"The point {p} does not lie on {self!r}, since it is not lower triangular.",
                "lower triangular",
            )
        d_min = float(jnp.min(jnp.diagonal(p)))
        if d_min <= 0.0:
            return self._domain_error(
                d_min,
                f"The point {p} does not lie on {self!r}, since not all diagonal elements are positive.",
                "positive diagonal",
            )
        return None

    def check_vector(
        self, p: jax.Array, X: jax.Array, *, atol: float | None = None
    ) -> DomainError | None:
        atol = self._atol(atol)
        upper = float(jnp.linalg.norm(strictly_upper(X)))
        if upper > atol:
            return self._domain_error(
                upper,
                f"The matrix {X} is not a tangent vector at {p} on {self!r}, since it is not lower triangular.",
                "lower triangular",
            )
        return None

    def manifold_dimension(self) -> int:
        return self.n * (self.n + 1) // 2

    def representation_size(self) -> tuple[int, ...]:
        return (self.n, self.n)

    def distance(self, p: jax.Array, q: jax.Array) -> jax.Array:
        lower = jnp.sum(strictly_lower(p - q) ** 2)
        diag = jnp.sum((jnp.log(jnp.diagonal(p)) - jnp.log(jnp.diagonal(q))) ** 2)
        return jnp.sqrt(lower + diag)

    def exp(self, p: jax.Array, X: jax.Array) -> jax.Array:
        dp = jnp.diagonal(p)
        return strictly_lower(p + X) + diag_matrix(dp * jnp.exp(jnp.diagonal(X) / dp))

    def log(self, p: jax.Array, q: jax.Array) -> jax.Array:
        dp = jnp.diagonal(p)
        return strictly_lower(q - p) + diag_matrix(dp * jnp.log(jnp.diagonal(q) / dp))

    def retract(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return self.exp(p, X)

    def inverse_retract(self, p: jax.Array, q: jax.Array) -> jax.Array:
        return self.log(p, q)

    def inner(self, p: jax.Array, X: jax.Array, Y: jax.Array) -> jax.Array:
        dp = jnp.diagonal(p)
        return jnp.sum(strictly_lower(X) * strictly_lower(Y)) + jnp.sum(
            jnp.diagonal(X) * jnp.diagonal(Y) / dp**2
        )

    def norm(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return jnp.sqrt(self.inner(p, X, X))

    def parallel_transport_to(self, p: jax.Array, X: jax.Array, q: jax.Array) -> jax.Array:
        """``⌊X⌋ + diag(q) diag(X) / diag(p)``; the strictly lower part is transported unchanged."""
        return strictly_lower(X) + diag_matrix(
            jnp.diagonal(q) * jnp.diagonal(X) / jnp.diagonal(p)
        )

    def vector_transport_to(self, p: jax.Array, X: jax.Array, q: jax.Array) -> jax.Array:
        return self.parallel_transport_to(p, X, q)

    def project(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return jnp.tril(X)

    def get_coordinates(self, p: jax.Array, X: jax.Array) -> jax.Array:
        """Orthonormal coordinates: ``diag(X) / diag(p)``, then the strictly lower part column by column."""
        rows, cols = _strictly_lower_indices(self.n)
        return jnp.concatenate([jnp.diagonal(X) / jnp.diagonal(p), X[rows, cols]])

    def get_vector(self, p: jax.Array, c: jax.Array) -> jax.Array:
        rows, cols = _strictly_lower_indices(self.n)
        X = diag_matrix(c[: self.n] * jnp.diagonal(p))
        return X.at[rows, cols].set(c[self.n :])

    def zero_vector(self, p: jax.Array) -> jax.Array:
        return jnp.zeros_like(p)

    def sectional_curvature(self, p: jax.Array, X: jax.Array, Y: jax.Array) -> float:
        return 0.0

    def is_flat(self) -> bool:
        return True

    def injectivity_radius(self) -> float:
        return float("inf")

    def sample(
        self, key: jax.Array, *, at: jax.Array | None = None, sigma: float = 1.0
    ) -> jax.Array:
        n = self.n
        if at is not None:
            return sigma * jnp.tril(jax.random.normal(key, (n, n), dtype=at.dtype))
        key_lower, key_diag = jax.random.split(key)
        lower = strictly_lower(sigma * jax.random.normal(key_lower, (n, n), dtype=jnp.float64))
        diag = jnp.exp(sigma * jax.random.normal(key_diag, (n,), dtype=jnp.float64))
        return lower + diag_matrix(diag)
