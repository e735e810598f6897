from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import ClassVar

from geostax.groups.group_manifold import GroupManifold
from geostax.groups.group_types import AdditionOperation
from geostax.manifolds.manifold_types import EuclideanSpace


@dataclass(frozen=True)
class TranslationGroup(GroupManifold):
    """Arrays of a fixed shape under addition.

    Accepts an int for vectors: ``TranslationGroup(3)`` is ``TranslationGroup((3,))``.
    The Euclidean metric is bi-invariant, so exp/log/distance are resolved from the
    group structure.
    """

    shape: tuple[int, ...]

    biinvariant: ClassVar[bool] = True

    def __post_init__(self) -> None:
        shape = (self.shape,) if isinstance(self.shape, int) else tuple(self.shape)
        object.__setattr__(self, "shape", shape)

    @cached_property
    def op(self) -> AdditionOperation:
        return AdditionOperation()

    @cached_property
    def manifold(self) -> EuclideanSpace:
        return EuclideanSpace(self.shape)
