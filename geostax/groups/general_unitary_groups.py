from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, ClassVar, Literal

import jax
import jax.numpy as jnp

from geostax.groups.group_manifold import GroupManifold
from geostax.groups.group_types import Convention, Identity, MultiplicationOperation, Side
from geostax.lie_kernels import exp_so, log_so
from geostax.linalg_ops import transpose
from geostax.log import get_logger
from geostax.manifolds.rotations import GeneralUnitaryMatrices

logger = get_logger(__name__)


@dataclass(frozen=True)
class GeneralUnitaryMultiplicationGroup(GroupManifold):
    """
    Orthogonal matrices under matrix multiplication, O(n) or SO(n).

    Tangent vectors are skew-symmetric Lie algebra elements. Metric operations
    (exp, log, distance, inner, transport, coordinates) are answered by the
    underlying :class:`GeneralUnitaryMatrices`; group operations use transposes in
    place of inverses and the closed-form kernels of :mod:`geostax.lie_kernels`.
    """

    n: int
    determinant: Literal["any", "one"] = "any"

    metric_on_decorated: ClassVar[bool] = True
    biinvariant: ClassVar[bool] = True

    @cached_property
    def op(self) -> MultiplicationOperation:
        return MultiplicationOperation()

    @cached_property
    def manifold(self) -> GeneralUnitaryMatrices:
        return GeneralUnitaryMatrices(self.n, self.determinant)

    def identity_element(self) -> jax.Array:
        return jnp.eye(self.n, dtype=jnp.float64)

    def _inverse(self, p: jax.Array) -> jax.Array:
        return transpose(p)

    def inverse_translate(
        self, p: Any, q: Any, conv: Convention = "left_forward"
    ) -> Any:
        if isinstance(p, Identity):
            return q
        if isinstance(q, Identity):
            q = self.identity_element()
        match conv:
            case "left_forward":
                return transpose(p) @ q
            case "right_backward":
                return q @ transpose(p)
            case "left_backward":
                return q @ p
            case "right_forward":
                return p @ q
            case _:
                raise ValueError(f"Unknown translation convention '{conv}'.")

    def translate_diff(
        self, p: Any, q: Any, X: jax.Array, conv: Convention = "left_forward"
    ) -> jax.Array:
        p = self._point(p)
        match conv:
            case "left_forward" | "right_forward":
                return X
            case "left_backward":
                return p @ X @ transpose(p)
            case "right_backward":
                return transpose(p) @ X @ p
            case _:
                raise ValueError(f"Unknown translation convention '{conv}'.")

    def adjoint_action(self, p: Any, X: jax.Array, side: Side = "left") -> jax.Array:
        p = self._point(p)
        match side:
            case "left":
                return p @ X @ transpose(p)
            case "right":
                return transpose(p) @ X @ p
            case _:
                raise ValueError(f"Unknown side '{side}'. Must be 'left' or 'right'.")

    def lie_bracket(self, X: jax.Array, Y: jax.Array) -> jax.Array:
        if self.n == 2:
            return jnp.zeros_like(X)
        return X @ Y - Y @ X

    def exp_lie(self, X: jax.Array) -> jax.Array:
        return exp_so(X)

    def _log_lie(self, q: jax.Array) -> jax.Array:
        logger.debug("log_lie on %r", self)
        return log_so(q)


@dataclass(frozen=True)
class Orthogonal(GeneralUnitaryMultiplicationGroup):
    """O(n); ``log_lie`` is only defined on the identity component."""

    determinant: Literal["any", "one"] = field(default="any", init=False)


@dataclass(frozen=True)
class SpecialOrthogonal(GeneralUnitaryMultiplicationGroup):
    """SO(n), the rotation group."""

    determinant: Literal["any", "one"] = field(default="one", init=False)
