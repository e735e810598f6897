from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

import jax
import jax.numpy as jnp

from geostax.dispatch import (
    CapabilityTable,
    EuclideanMetric,
    IsDefaultMetric,
    IsEmbeddedManifold,
    merge_traits,
)
from geostax.errors import DimensionMismatchError, DomainError
from geostax.linalg_ops import adjoint, random_stiefel
from geostax.manifolds.manifold_types import EuclideanSpace, Manifold

Field = Literal["real", "complex"]
RetractionMethod = Literal["polar", "orthographic"]


@dataclass(frozen=True)
class SVDMPoint:
    """Point ``U diag(S) Vt`` stored by its (truncated) SVD factors."""

    U: jax.Array
    S: jax.Array
    Vt: jax.Array

    @classmethod
    def from_matrix(cls, A: jax.Array, k: int | None = None) -> SVDMPoint:
        """SVD factors of ``A``, truncated to the best rank-``k`` approximation when ``k`` is given."""
        U, S, Vt = jnp.linalg.svd(A, full_matrices=False)
        if k is not None:
            U, S, Vt = U[:, :k], S[:k], Vt[:k, :]
        return cls(U, S, Vt)


@dataclass(frozen=True)
class UMVTangentVector:
    """Tangent vector ``U_p M Vt_p + U Vt_p + U_p Vt`` at ``p = SVDMPoint(U_p, S, Vt_p)``.

    The base point is not stored; ``U`` is orthogonal to ``U_p`` and ``Vt`` to ``Vt_p``.
    """

    U: jax.Array
    M: jax.Array
    Vt: jax.Array

    def __add__(self, other: UMVTangentVector) -> UMVTangentVector:
        return UMVTangentVector(self.U + other.U, self.M + other.M, self.Vt + other.Vt)

    def __sub__(self, other: UMVTangentVector) -> UMVTangentVector:
        return UMVTangentVector(self.U - other.U, self.M - other.M, self.Vt - other.Vt)

    def __neg__(self) -> UMVTangentVector:
        return UMVTangentVector(-self.U, -self.M, -self.Vt)

    def __mul__(self, s: Any) -> UMVTangentVector:
        return UMVTangentVector(self.U * s, self.M * s, self.Vt * s)

    def __rmul__(self, s: Any) -> UMVTangentVector:
        return UMVTangentVector(s * self.U, s * self.M, s * self.Vt)

    def __truediv__(self, s: Any) -> UMVTangentVector:
        return UMVTangentVector(self.U / s, self.M / s, self.Vt / s)


jax.tree_util.register_pytree_node(
    SVDMPoint,
    lambda p: ((p.U, p.S, p.Vt), None),
    lambda _, children: SVDMPoint(*children),
)
jax.tree_util.register_pytree_node(
    UMVTangentVector,
    lambda X: ((X.U, X.M, X.Vt), None),
    lambda _, children: UMVTangentVector(*children),
)


@dataclass(frozen=True)
class FixedRankMatrices(Manifold):
    """
    The m×n matrices of rank exactly k over the real or complex numbers.

    Points are :class:`SVDMPoint`; tangent vectors are :class:`UMVTangentVector`. The
    metric is the Frobenius inner product of the embedding restricted to the tangent
    spaces. No operation forms an m×n matrix except ``embed``, ``project`` of an ambient
    matrix and ``inverse_retract``.

    Retract options:
      - "polar": best rank-k approximation of p + tX, via QR of the stacked factors and
        an SVD of a 2k×2k matrix (default)
      - "orthographic": orthographic projection retraction, requires S + tM invertible
    """

    m: int
    n: int
    k: int
    field: Field = "real"

    def __post_init__(self) -> None:
        if not 0 < self.k <= min(self.m, self.n):
            raise ValueError(f"Rank k={self.k} must satisfy 0 < k <= min(m, n) = {min(self.m, self.n)}.")
        if self.field not in ("real", "complex"):
            raise ValueError(f"Unknown field '{self.field}'. Must be 'real' or 'complex'.")

    @property
    def dtype(self) -> jnp.dtype:
        return jnp.complex128 if self.field == "complex" else jnp.float64

    def build_capabilities(self) -> CapabilityTable:
        return CapabilityTable(merge_traits(IsEmbeddedManifold(), IsDefaultMetric(EuclideanMetric())))

    def get_embedding(self) -> Manifold:
        return EuclideanSpace((self.m, self.n))

    def check_size(self, p: Any) -> DimensionMismatchError | None:
        if not isinstance(p, SVDMPoint):
            return super().check_size(p)
        m, n, k = self.m, self.n, self.k
        got = (p.U.shape, p.S.shape, p.Vt.shape)
        if got != ((m, k), (k,), (k, n)):
            return DimensionMismatchError(
                f"The point {p} does not lie on {self!r} since the dimensions do not fit "
                f"(expected U {(m, k)}, S {(k,)}, Vt {(k, n)}, got {got}).",
                expected=((m, k), (k,), (k, n)),
                got=got,
            )
        return None

    def check_point(self, p: Any, *, atol: float | None = None) -> DomainError | None:
        atol = self._atol(atol)
        if not isinstance(p, SVDMPoint):
            s = jnp.linalg.svd(p, compute_uv=False)
            rank = int(jnp.sum(s > atol * jnp.maximum(s[0], 1.0)))
            if rank != self.k:
                return self._domain_error(
                    rank, f"The point {p} does not lie on {self!r}, since its rank is {rank}.", "rank"
                )
            return None
        eye = jnp.eye(self.k, dtype=p.U.dtype)
        u_err = float(jnp.linalg.norm(adjoint(p.U) @ p.U - eye))
        if u_err > atol:
            return self._domain_error(
                u_err, f"The point {p} does not lie on {self!r}, since U is not orthonormal.", "U^H U = I"
            )
        v_err = float(jnp.linalg.norm(p.Vt @ adjoint(p.Vt) - eye))
        if v_err > atol:
            return self._domain_error(
                v_err, f"The point {p} does not lie on {self!r}, since V is not orthonormal.", "V^H V = I"
            )
        s_min = float(jnp.min(p.S))
        if s_min <= 0.0:
            return self._domain_error(
                s_min,
                f"The point {p} does not lie on {self!r}, since its singular values are not all positive.",
                "S > 0",
            )
        return None

    def check_vector(
        self, p: SVDMPoint, X: UMVTangentVector, *, atol: float | None = None
    ) -> DomainError | None:
        atol = self._atol(atol)
        m, n, k = self.m, self.n, self.k
        got = (X.U.shape, X.M.shape, X.Vt.shape)
        if got != ((m, k), (k, k), (k, n)):
            return self._domain_error(
                got,
                f"The tangent vector {X} is not a tangent vector to {p} on {self!r}, since matrix "
                f"dimensions do not agree (expected {(m, k)}, {(k, k)}, {(k, n)}).",
                "shape",
            )
        u_err = float(jnp.linalg.norm(adjoint(X.U) @ p.U))
        if u_err > atol:
            return self._domain_error(
                u_err,
                f"The tangent vector {X} is not a tangent vector to {p} on {self!r} since X.U^H p.U is not zero.",
                "U_X ⟂ U",
            )
        v_err = float(jnp.linalg.norm(X.Vt @ adjoint(p.Vt)))
        if v_err > atol:
            return self._domain_error(
                v_err,
                f"The tangent vector {X} is not a tangent vector to {p} on {self!r} since X.Vt p.Vt^H is not zero.",
                "V_X ⟂ V",
            )
        return None

    def manifold_dimension(self) -> int:
        return (self.m + self.n - self.k) * self.k * (2 if self.field == "complex" else 1)

    def representation_size(self) -> tuple[int, ...]:
        return (self.m, self.n)

    def embed(self, p: SVDMPoint, X: UMVTangentVector | None = None) -> jax.Array:
        if X is None:
            return (p.U * p.S[None, :]) @ p.Vt
        return (p.U @ X.M + X.U) @ p.Vt + p.U @ X.Vt

    def project(self, p: SVDMPoint, A: jax.Array) -> UMVTangentVector:
        """Tangent projection of an ambient m×n matrix into the UMV factors at p."""
        av = A @ adjoint(p.Vt)
        uh_av = adjoint(p.U) @ av
        ah_u = adjoint(A) @ p.U
        return UMVTangentVector(
            av - p.U @ uh_av,
            uh_av,
            adjoint(ah_u - adjoint(p.Vt) @ adjoint(uh_av)),
        )

    def inner(self, p: SVDMPoint, X: UMVTangentVector, Y: UMVTangentVector) -> jax.Array:
        return jnp.real(
            jnp.vdot(X.U, Y.U) + jnp.vdot(X.M, Y.M) + jnp.vdot(X.Vt, Y.Vt)
        )

    def norm(self, p: SVDMPoint, X: UMVTangentVector) -> jax.Array:
        return jnp.sqrt(self.inner(p, X, X))

    def zero_vector(self, p: SVDMPoint) -> UMVTangentVector:
        return UMVTangentVector(
            jnp.zeros_like(p.U),
            jnp.zeros((self.k, self.k), dtype=p.U.dtype),
            jnp.zeros_like(p.Vt),
        )

    def retract(
        self,
        p: SVDMPoint,
        X: UMVTangentVector,
        t: float = 1.0,
        method: RetractionMethod = "polar",
    ) -> SVDMPoint:
        match method:
            case "polar":
                return self._retract_polar(p, t * X)
            case "orthographic":
                return self._retract_orthographic(p, t * X)
            case _:
                raise ValueError(f"Unknown method '{method}'. Must be 'polar' or 'orthographic'.")

    def _retract_polar(self, p: SVDMPoint, X: UMVTangentVector) -> SVDMPoint:
        k = self.k
        QU, RU = jnp.linalg.qr(jnp.concatenate([p.U, X.U], axis=1))
        QV, RV = jnp.linalg.qr(jnp.concatenate([adjoint(p.Vt), adjoint(X.Vt)], axis=1))
        RU11, RU12 = RU[:, :k], RU[:, k:]
        RV11, RV12 = RV[:, :k], RV[:, k:]
        # RU [[S + M, I], [I, 0]] RV^H
        tmp = RU11 * p.S[None, :] + RU12 + RU11 @ X.M
        T = tmp @ adjoint(RV11) + RU11 @ adjoint(RV12)
        Tu, Ts, Tvt = jnp.linalg.svd(T, full_matrices=False)
        return SVDMPoint(QU @ Tu[:, :k], Ts[:k], Tvt[:k, :] @ adjoint(QV))

    def _retract_orthographic(self, p: SVDMPoint, X: UMVTangentVector) -> SVDMPoint:
        k = self.k
        SM = jnp.diag(p.S).astype(X.M.dtype) + X.M
        QU, RU = jnp.linalg.qr(p.U @ SM + X.U)
        QV, RV = jnp.linalg.qr(adjoint(p.Vt) @ adjoint(SM) + adjoint(X.Vt))
        Uk, Sk, Vtk = jnp.linalg.svd(RU @ jnp.linalg.inv(SM) @ adjoint(RV), full_matrices=False)
        return SVDMPoint(QU[:, :k] @ Uk, Sk[:k], Vtk @ adjoint(QV[:, :k]))

    def inverse_retract(
        self, p: SVDMPoint, q: SVDMPoint, method: RetractionMethod = "polar"
    ) -> UMVTangentVector:
        """Tangent projection at p of ``embed(q) - embed(p)`` for either retraction."""
        if method not in ("polar", "orthographic"):
            raise ValueError(f"Unknown method '{method}'. Must be 'polar' or 'orthographic'.")
        return self.project(p, self.embed(q) - self.embed(p))

    def vector_transport_to(
        self, p: SVDMPoint, X: UMVTangentVector, q: SVDMPoint
    ) -> UMVTangentVector:
        return self.project(q, self.embed(p, X))

    def riemannian_hessian(
        self, p: SVDMPoint, G: jax.Array, H: jax.Array, X: UMVTangentVector
    ) -> UMVTangentVector:
        """
        Riemannian Hessian from the Euclidean gradient ``G`` and Hessian ``H`` (both m×n)
        at p in direction X: the projection of H plus curvature terms in ``1/S``, which
        require all singular values of p to be positive.
        """
        Y = self.project(p, H)
        T1 = (G @ adjoint(X.Vt)) / p.S[None, :]
        T2 = (adjoint(G) @ X.U) / p.S[None, :]
        V = adjoint(p.Vt)
        return UMVTangentVector(
            Y.U + T1 - p.U @ (adjoint(p.U) @ T1),
            Y.M,
            Y.Vt + adjoint(T2 - V @ (p.Vt @ T2)),
        )

    def isapprox(self, p: SVDMPoint, q: SVDMPoint, *, atol: float = 1e-8) -> bool:
        return bool(jnp.allclose(self.embed(p), self.embed(q), atol=atol))

    def injectivity_radius(self) -> float:
        return 0.0

    def is_flat(self) -> bool:
        return False

    def sample(
        self, key: jax.Array, *, at: SVDMPoint | None = None, sigma: float = 1.0
    ) -> SVDMPoint | UMVTangentVector:
        m, n, k = self.m, self.n, self.k
        if at is None:
            key_u, key_s, key_v = jax.random.split(key, 3)
            U = random_stiefel(key_u, m, k, dtype=self.dtype)
            S = jnp.sort(jax.random.uniform(key_s, (k,), dtype=jnp.float64))[::-1]
            V = random_stiefel(key_v, n, k, dtype=self.dtype)
            return SVDMPoint(U, S, adjoint(V))
        key_u, key_m, key_v = jax.random.split(key, 3)
        Up = sigma * self._normal(key_u, (m, k))
        Vp = sigma * self._normal(key_v, (n, k))
        A = sigma * self._normal(key_m, (k, k))
        return UMVTangentVector(
            Up - at.U @ (adjoint(at.U) @ Up),
            A,
            adjoint(Vp) - (adjoint(Vp) @ adjoint(at.Vt)) @ at.Vt,
        )

    def _normal(self, key: jax.Array, shape: tuple[int, ...]) -> jax.Array:
        if self.field == "complex":
            key_re, key_im = jax.random.split(key)
            return (
                jax.random.normal(key_re, shape, dtype=jnp.float64)
                + 1j * jax.random.normal(key_im, shape, dtype=jnp.float64)
            ) / jnp.sqrt(2.0)
        return jax.random.normal(key, shape, dtype=jnp.float64)
