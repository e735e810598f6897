"""Group operation tags, tangent representations, the identity marker and group actions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

import jax
import jax.numpy as jnp
from jax.scipy.linalg import expm

from geostax.errors import MethodNotApplicableError

if TYPE_CHECKING:
    from geostax.groups.group_manifold import GroupManifold
    from geostax.manifolds.manifold_types import Manifold

Convention = Literal["left_forward", "right_forward", "left_backward", "right_backward"]
Side = Literal["left", "right"]


class GroupOperation(ABC):
    """Marker selecting the algebraic operation of a group; implements it on raw values."""

    def compose(self, p: Any, q: Any) -> Any:
        raise MethodNotApplicableError(self, "compose")

    def inverse(self, p: Any) -> Any:
        raise MethodNotApplicableError(self, "inverse")

    def identity_element(self, shape: tuple[int, ...]) -> Any:
        raise MethodNotApplicableError(self, "identity_element")

    def adjoint_action(self, G: GroupManifold, p: Any, X: Any, side: Side) -> Any:
        raise MethodNotApplicableError(self, "adjoint_action")

    def lie_bracket(self, X: Any, Y: Any) -> Any:
        raise MethodNotApplicableError(self, "lie_bracket")

    def exp_lie(self, X: Any) -> Any:
        raise MethodNotApplicableError(self, "exp_lie")

    def log_lie(self, q: Any) -> Any:
        raise MethodNotApplicableError(self, "log_lie")


@dataclass(frozen=True)
class MultiplicationOperation(GroupOperation):
    def compose(self, p: jax.Array, q: jax.Array) -> jax.Array:
        return p @ q

    def inverse(self, p: jax.Array) -> jax.Array:
        return jnp.linalg.inv(p)

    def identity_element(self, shape: tuple[int, ...]) -> jax.Array:
        return jnp.eye(shape[-1], dtype=jnp.float64)

    def adjoint_action(self, G: GroupManifold, p: jax.Array, X: jax.Array, side: Side) -> jax.Array:
        match side:
            case "left":
                return p @ X @ G.inverse(p)
            case "right":
                return G.inverse(p) @ X @ p
            case _:
                raise ValueError(f"Unknown side '{side}'. Must be 'left' or 'right'.")

    def lie_bracket(self, X: jax.Array, Y: jax.Array) -> jax.Array:
        return X @ Y - Y @ X

    def exp_lie(self, X: jax.Array) -> jax.Array:
        return expm(X)


@dataclass(frozen=True)
class AdditionOperation(GroupOperation):
    def compose(self, p: jax.Array, q: jax.Array) -> jax.Array:
        return p + q

    def inverse(self, p: jax.Array) -> jax.Array:
        return -p

    def identity_element(self, shape: tuple[int, ...]) -> jax.Array:
        return jnp.zeros(shape, dtype=jnp.float64)

    def adjoint_action(self, G: GroupManifold, p: jax.Array, X: jax.Array, side: Side) -> jax.Array:
        return X

    def lie_bracket(self, X: jax.Array, Y: jax.Array) -> jax.Array:
        return jnp.zeros_like(X)

    def exp_lie(self, X: jax.Array) -> jax.Array:
        return X

    def log_lie(self, q: jax.Array) -> jax.Array:
        return q


@dataclass(frozen=True)
class SemidirectProductOperation(GroupOperation):
    """Operation of a semidirect product; only the automorphism action is stored."""

    action: GroupAction


@dataclass(frozen=True)
class GroupVectorRepresentation:
    pass


@dataclass(frozen=True)
class LeftInvariantRepresentation(GroupVectorRepresentation):
    """Tangent vectors at p stored as the Lie algebra element X with tangent vector p∘X."""


@dataclass(frozen=True)
class HybridTangentRepresentation(GroupVectorRepresentation):
    """Tangent vectors of a semidirect product stored component-wise, as for the product manifold."""


@dataclass(frozen=True)
class Identity:
    """Identity element of any group with operation ``op``, without a concrete representation."""

    op: GroupOperation


class GroupAction(ABC):
    """Action θ of ``group`` on ``manifold``: θ_a(p) = apply(a, p)."""

    group: GroupManifold
    manifold: Manifold

    @abstractmethod
    def apply(self, a: Any, p: Any) -> Any:
        pass

    def inverse_apply(self, a: Any, p: Any) -> Any:
        return self.apply(self.group.inverse(a), p)

    @abstractmethod
    def apply_diff(self, a: Any, p: Any, X: Any) -> Any:
        """Differential of ``p ↦ apply(a, p)`` at ``p`` applied to ``X``."""

    @abstractmethod
    def apply_diff_group(self, X_a: Any, p: Any) -> Any:
        """Differential of ``a ↦ apply(a, p)`` at the identity applied to the algebra element ``X_a``."""
