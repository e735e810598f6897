from __future__ import annotations

from dataclasses import dataclass

import jax
import jax.numpy as jnp

from geostax.dispatch import (
    CapabilityTable,
    IsDefaultMetric,
    IsEmbeddedManifold,
    MinkowskiMetric,
    merge_traits,
)
from geostax.errors import DomainError, GeostaxError
from geostax.linalg_ops import gram_schmidt, minkowski_metric
from geostax.manifolds.manifold_types import EuclideanSpace, Manifold


@dataclass(frozen=True)
class Hyperbolic(Manifold):
    """
    Hyperbolic space H^n in the hyperboloid model.

    Points are vectors p in R^{n+1} on the upper sheet of ⟨p, p⟩_M = -1, where
    ⟨x, y⟩_M = Σ_{i<n} x_i y_i - x_n y_n is the Minkowski form. Tangent vectors at p
    are the X with ⟨p, X⟩_M = 0; the Riemannian metric is the Minkowski form
    restricted to them.
    """

    n: int

    def build_capabilities(self) -> CapabilityTable:
        return CapabilityTable(merge_traits(IsDefaultMetric(MinkowskiMetric()), IsEmbeddedManifold()))

    def get_embedding(self) -> Manifold:
        return EuclideanSpace((self.n + 1,))

    def check_point(self, p: jax.Array, *, atol: float | None = None) -> DomainError | None:
        atol = self._atol(atol)
        mp = float(minkowski_metric(p, p))
        if abs(mp + 1.0) > atol:
            return self._domain_error(
                mp,
                f"The point {p} does not lie on {self!r} since its Minkowski inner product is "
                f"{mp:.6g}, not -1 (deviation {abs(mp + 1.0):.3e}).",
                "minkowski norm -1",
            )
        if float(p[-1]) <= 0.0:
            return self._domain_error(
                float(p[-1]),
                f"The point {p} lies on the lower sheet of the hyperboloid, not on {self!r}.",
                "upper sheet",
            )
        return None

    def check_vector(
        self, p: jax.Array, X: jax.Array, *, atol: float | None = None
    ) -> DomainError | None:
        atol = self._atol(atol)
        mpx = abs(float(minkowski_metric(p, X)))
        if mpx > atol:
            return self._domain_error(
                mpx,
                f"The vector {X} is not a tangent vector to {p} on {self!r}, since it is not "
                f"orthogonal (with respect to the Minkowski inner product) in the embedding; "
                f"⟨p, X⟩_M = {mpx:.3e}.",
                "minkowski orthogonality",
            )
        return None

    def manifold_dimension(self) -> int:
        return self.n

    def representation_size(self) -> tuple[int, ...]:
        return (self.n + 1,)

    def embed(self, p: jax.Array, X: jax.Array | None = None) -> jax.Array:
        return p if X is None else X

    def inner(self, p: jax.Array, X: jax.Array, Y: jax.Array) -> jax.Array:
        return minkowski_metric(X, Y)

    def norm(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return jnp.sqrt(jnp.maximum(minkowski_metric(X, X), 0.0))

    def distance(self, p: jax.Array, q: jax.Array) -> jax.Array:
        """``2 asinh(‖q - p‖_M / 2)``, which stays accurate for nearby points."""
        w = q - p
        m = jnp.sqrt(jnp.maximum(minkowski_metric(w, w), 0.0))
        return 2.0 * jnp.arcsinh(m / 2.0)

    def exp(self, p: jax.Array, X: jax.Array) -> jax.Array:
        vn = self.norm(p, X)
        safe = jnp.where(vn == 0, 1.0, vn)
        sn = jnp.where(vn == 0, 1.0, jnp.sinh(safe) / safe)
        return jnp.cosh(vn) * p + sn * X

    def log(self, p: jax.Array, q: jax.Array) -> jax.Array:
        d = self.distance(p, q)
        s = jnp.sinh(d)
        w = jnp.where(s == 0, 1.0, d / jnp.where(s == 0, 1.0, s))
        return self.project(p, w * q)

    def retract(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return self.exp(p, X)

    def inverse_retract(self, p: jax.Array, q: jax.Array) -> jax.Array:
        return self.log(p, q)

    def project(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return X + minkowski_metric(p, X) * p

    def parallel_transport_to(self, p: jax.Array, X: jax.Array, q: jax.Array) -> jax.Array:
        return X + minkowski_metric(q, X) / (1.0 - minkowski_metric(p, q)) * (p + q)

    def change_representer(self, p: jax.Array, X: jax.Array) -> jax.Array:
        """Riesz representer of the Euclidean gradient ``X`` under the Minkowski metric."""
        return X.at[-1].multiply(-1.0)

    def change_metric(self, p: jax.Array, X: jax.Array) -> jax.Array:
        raise GeostaxError(
            "Changing metric from Euclidean to Minkowski is not possible "
            "(see Sylvester's law of inertia).",
            {"manifold": repr(self)},
        )

    def riemannian_hessian(
        self, p: jax.Array, G: jax.Array, H: jax.Array, X: jax.Array
    ) -> jax.Array:
        """
        Riemannian Hessian from the Euclidean gradient ``G`` and Hessian ``H`` at p in
        direction X: ``proj_p(g⁻¹H + ⟨p, g⁻¹G⟩_M X)`` with ``g = diag(1, ..., 1, -1)``.
        """
        g_inv_h = H.at[-1].multiply(-1.0)
        return self.project(p, g_inv_h + jnp.dot(p, G) * X)

    def hyperbolize(self, q: jax.Array) -> jax.Array:
        """Lift ``q ∈ R^n`` to the hyperboloid point ``(q, sqrt(‖q‖² + 1))``."""
        return jnp.concatenate([q, jnp.sqrt(jnp.sum(q**2) + 1.0)[None]])

    def hyperbolize_vector(self, p: jax.Array, Y: jax.Array) -> jax.Array:
        """Lift ``Y ∈ R^n`` to the tangent vector ``(Y, ⟨p̃, Y⟩ / p_n)`` at p."""
        return jnp.concatenate([Y, (jnp.dot(p[:-1], Y) / p[-1])[None]])

    def get_basis(self, p: jax.Array) -> list[jax.Array]:
        """Minkowski-orthonormal basis of T_p H^n from the lifted coordinate directions."""
        eye = jnp.eye(self.n, dtype=p.dtype)
        lifted = [self.hyperbolize_vector(p, eye[i]) for i in range(self.n)]
        return gram_schmidt(lifted, minkowski_metric)

    def get_coordinates(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return jnp.stack([minkowski_metric(b, X) for b in self.get_basis(p)])

    def get_vector(self, p: jax.Array, c: jax.Array) -> jax.Array:
        return sum(c[i] * b for i, b in enumerate(self.get_basis(p)))

    def volume_density(self, p: jax.Array, X: jax.Array) -> jax.Array:
        """``(sinh ‖X‖ / ‖X‖)^(n-1)``, 1 at X = 0."""
        xn = self.norm(p, X)
        safe = jnp.where(xn == 0, 1.0, xn)
        return jnp.where(xn == 0, 1.0, (jnp.sinh(safe) / safe) ** (self.n - 1))

    def sectional_curvature(self, p: jax.Array, X: jax.Array, Y: jax.Array) -> float:
        return -1.0

    def zero_vector(self, p: jax.Array) -> jax.Array:
        return jnp.zeros_like(p)

    def injectivity_radius(self) -> float:
        return float("inf")

    def is_flat(self) -> bool:
        return False

    def sample(
        self, key: jax.Array, *, at: jax.Array | None = None, sigma: float = 1.0
    ) -> jax.Array:
        if at is not None:
            return self.project(at, sigma * jax.random.normal(key, at.shape, dtype=at.dtype))
        key_dir, key_height = jax.random.split(key)
        a = jax.random.normal(key_dir, (self.n,), dtype=jnp.float64)
        f = 1.0 + sigma * jnp.abs(jax.random.normal(key_height, (), dtype=jnp.float64))
        return jnp.concatenate([a * jnp.sqrt(f**2 - 1.0) / jnp.linalg.norm(a), f[None]])
