from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Any, ClassVar

import jax
import jax.numpy as jnp
from jax.scipy.linalg import expm

from geostax.errors import MethodNotApplicableError
from geostax.groups.general_unitary_groups import SpecialOrthogonal
from geostax.groups.group_actions import RotationAction
from geostax.groups.group_manifold import GroupManifold
from geostax.groups.group_types import (
    Convention,
    GroupAction,
    HybridTangentRepresentation,
    Identity,
    SemidirectProductOperation,
    Side,
)
from geostax.groups.translation_group import TranslationGroup
from geostax.manifolds.product_manifold import ProductManifold, ProductPoint


@dataclass(frozen=True)
class SemidirectProductGroup(GroupManifold):
    """
    Semidirect product N ⋊_θ H of a normal subgroup N and a group H acting on it.

    Points are ``ProductPoint((n, h))`` with
    ``(n, h) ∘ (n', h') = (n ∘ θ_h(n'), h ∘ h')`` and
    ``(n, h)⁻¹ = (θ_{h⁻¹}(n⁻¹), h⁻¹)``. Tangent vectors use the hybrid
    representation: each component is a tangent vector of its own factor.

    The adjoint action and Lie bracket assume N is abelian and θ is linear in n;
    the translation differential is only available for ``"left_forward"``.
    """

    N: GroupManifold
    H: GroupManifold
    action: GroupAction

    metric_on_decorated: ClassVar[bool] = True

    def __post_init__(self) -> None:
        if self.action.manifold != self.N:
            raise ValueError(
                f"Subgroup {self.N!r} must be the manifold acted on by {self.action!r}."
            )
        if self.action.group != self.H:
            raise ValueError(f"Subgroup {self.H!r} must be the group of {self.action!r}.")

    @cached_property
    def op(self) -> SemidirectProductOperation:
        return SemidirectProductOperation(self.action)

    @cached_property
    def manifold(self) -> ProductManifold:
        return ProductManifold((self.N, self.H))

    @property
    def vectors(self) -> HybridTangentRepresentation:
        return HybridTangentRepresentation()

    def identity_element(self) -> ProductPoint:
        return ProductPoint((self.N.identity_element(), self.H.identity_element()))

    def is_identity(self, p: Any, *, atol: float = 1e-8) -> bool:
        if isinstance(p, Identity):
            return p.op == self.op
        return self.N.is_identity(p[0], atol=atol) and self.H.is_identity(p[1], atol=atol)

    def _compose(self, p: ProductPoint, q: ProductPoint) -> ProductPoint:
        np_, hp = p
        nq, hq = q
        n = self.N.compose(np_, self.action.apply(hp, nq))
        return ProductPoint((n, self.H.compose(hp, hq)))

    def _inverse(self, p: ProductPoint) -> ProductPoint:
        n, h = p
        h_inv = self.H.inverse(h)
        return ProductPoint((self.action.apply(h_inv, self.N.inverse(n)), h_inv))

    def translate_diff(
        self, p: Any, q: Any, X: ProductPoint, conv: Convention = "left_forward"
    ) -> ProductPoint:
        if conv != "left_forward":
            raise MethodNotApplicableError(self, f"translate_diff[{conv}]")
        np_, hp = self._point(p)
        nq, hq = self._point(q)
        nX, hX = X
        hY = self.H.translate_diff(hp, hq, hX, conv)
        nZ = self.action.apply_diff(hp, nq, nX)
        nr = self.action.apply(hp, nq)
        return ProductPoint((self.N.translate_diff(np_, nr, nZ, conv), hY))

    def adjoint_action(self, p: Any, X: ProductPoint, side: Side = "left") -> ProductPoint:
        """``Ad_(n,h)(a, A) = (θ_h(a) - dθ_B(n), B)`` with ``B = Ad_h A``."""
        match side:
            case "left":
                pass
            case "right":
                return self.adjoint_action(self.inverse(p), X, "left")
            case _:
                raise ValueError(f"Unknown side '{side}'. Must be 'left' or 'right'.")
        n, h = self._point(p)
        a, A = X
        B = self.H.adjoint_action(h, A, "left")
        return ProductPoint((self.action.apply(h, a) - self.action.apply_diff_group(B, n), B))

    def lie_bracket(self, X: ProductPoint, Y: ProductPoint) -> ProductPoint:
        a, A = X
        b, B = Y
        n_part = (
            self.N.lie_bracket(a, b)
            + self.action.apply_diff_group(A, b)
            - self.action.apply_diff_group(B, a)
        )
        return ProductPoint((n_part, self.H.lie_bracket(A, B)))

    def exp_lie(self, X: ProductPoint) -> ProductPoint:
        raise MethodNotApplicableError(self, "exp_lie")

    def _log_lie(self, q: ProductPoint) -> ProductPoint:
        raise MethodNotApplicableError(self, "log_lie")

    def zero_vector(self, p: Any) -> ProductPoint:
        n, h = self._point(p)
        return ProductPoint((self.N.zero_vector(n), self.H.zero_vector(h)))

    def get_coordinates(self, p: Any, X: ProductPoint) -> jax.Array:
        n, h = self._point(p)
        return jnp.concatenate(
            [self.N.get_coordinates(n, X[0]), self.H.get_coordinates(h, X[1])]
        )

    def get_vector(self, p: Any, c: jax.Array) -> ProductPoint:
        n, h = self._point(p)
        k = self.N.manifold_dimension()
        return ProductPoint((self.N.get_vector(n, c[:k]), self.H.get_vector(h, c[k:])))


def _integrated_rotation(omega: jax.Array) -> jax.Array:
    """``V = Σ_k Ω^k/(k+1)!``, the top-right block of ``expm([[Ω, I], [0, 0]])``."""
    n = omega.shape[-1]
    block = jnp.zeros((2 * n, 2 * n), dtype=omega.dtype)
    block = block.at[:n, :n].set(omega).at[:n, n:].set(jnp.eye(n, dtype=omega.dtype))
    return expm(block)[:n, n:]


class SpecialEuclidean(SemidirectProductGroup):
    """SE(n) = T(n) ⋊ SO(n), rigid motions ``x ↦ R x + t``.

    Points are ``ProductPoint((t, R))``; algebra elements ``ProductPoint((v, Ω))``
    with skew-symmetric Ω.
    """

    def __init__(self, n: int):
        translations = TranslationGroup((n,))
        rotations = SpecialOrthogonal(n)
        super().__init__(translations, rotations, RotationAction(translations, rotations))

    @property
    def n(self) -> int:
        return self.H.n

    def __repr__(self) -> str:
        return f"SpecialEuclidean({self.n})"

    def affine_matrix(self, p: Any) -> jax.Array:
        """Homogeneous (n+1)×(n+1) matrix ``[[R, t], [0, 1]]`` of a point."""
        t, R = self._point(p)
        top = jnp.concatenate([R, t[:, None]], axis=1)
        bottom = jnp.zeros((1, self.n + 1), dtype=R.dtype).at[0, -1].set(1.0)
        return jnp.concatenate([top, bottom], axis=0)

    def algebra_matrix(self, X: ProductPoint) -> jax.Array:
        """Homogeneous matrix ``[[Ω, v], [0, 0]]`` of an algebra element."""
        v, omega = X
        top = jnp.concatenate([omega, v[:, None]], axis=1)
        return jnp.concatenate([top, jnp.zeros((1, self.n + 1), dtype=omega.dtype)], axis=0)

    def from_affine_matrix(self, A: jax.Array) -> ProductPoint:
        return ProductPoint((A[: self.n, self.n], A[: self.n, : self.n]))

    def exp_lie(self, X: ProductPoint) -> ProductPoint:
        v, omega = X
        R = self.H.exp_lie(omega)
        return ProductPoint((_integrated_rotation(omega) @ v, R))

    def _log_lie(self, q: ProductPoint) -> ProductPoint:
        t, R = q
        omega = self.H.log_lie(R)
        v = jnp.linalg.solve(_integrated_rotation(omega), t)
        return ProductPoint((v, omega))
