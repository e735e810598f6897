from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import jax

from geostax.groups.group_manifold import GroupManifold
from geostax.groups.group_types import GroupAction, Identity
from geostax.linalg_ops import transpose
from geostax.manifolds.manifold_types import Manifold


@dataclass(frozen=True)
class RotationAction(GroupAction):
    """Left action of an orthogonal group on vectors by matrix multiplication."""

    manifold: Manifold
    group: GroupManifold

    def apply(self, a: Any, p: jax.Array) -> jax.Array:
        if isinstance(a, Identity):
            return p
        return a @ p

    def inverse_apply(self, a: Any, p: jax.Array) -> jax.Array:
        if isinstance(a, Identity):
            return p
        return transpose(a) @ p

    def apply_diff(self, a: Any, p: jax.Array, X: jax.Array) -> jax.Array:
        if isinstance(a, Identity):
            return X
        return a @ X

    def apply_diff_group(self, X_a: jax.Array, p: jax.Array) -> jax.Array:
        return X_a @ p
