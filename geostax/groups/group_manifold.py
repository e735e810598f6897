from __future__ import annotations

from abc import abstractmethod
from typing import Any, ClassVar

import jax
import jax.numpy as jnp

from geostax.dispatch import (
    CapabilityTable,
    EuclideanMetric,
    HasBiinvariantMetric,
    IsDefaultMetric,
    IsExplicitDecorator,
    IsGroupManifold,
    merge_traits,
    resolve,
)
from geostax.errors import DimensionMismatchError, DomainError
from geostax.groups.group_types import (
    GroupOperation,
    GroupVectorRepresentation,
    Identity,
    LeftInvariantRepresentation,
)
from geostax.manifolds.manifold_types import Manifold


class GroupManifold(Manifold):
    """A Lie group decorating the manifold that carries its points.

    Group operations (``compose``, ``inverse``, ``exp_lie``, ``log_lie``) are defined
    here and in subclasses; translations, adjoint actions and the group exponential at
    arbitrary points come from the :class:`IsGroupManifold` trait. Any other operation
    is forwarded to ``manifold``. When ``metric_on_decorated`` is set, metric operations
    skip the group traits that would otherwise answer them and go to ``manifold``.

    Operations accept the :class:`Identity` marker wherever a point is expected.
    """

    metric_on_decorated: ClassVar[bool] = False
    biinvariant: ClassVar[bool] = False

    @property
    @abstractmethod
    def op(self) -> GroupOperation:
        pass

    @property
    @abstractmethod
    def manifold(self) -> Manifold:
        pass

    @property
    def vectors(self) -> GroupVectorRepresentation:
        return LeftInvariantRepresentation()

    def build_capabilities(self) -> CapabilityTable:
        group = IsGroupManifold(self.op, self.vectors)
        extra = (HasBiinvariantMetric(),) if self.biinvariant else ()
        default = merge_traits(
            group, *extra, IsDefaultMetric(EuclideanMetric()), IsExplicitDecorator()
        )
        metric = merge_traits(group, IsExplicitDecorator()) if self.metric_on_decorated else None
        return CapabilityTable(default, metric)

    def decorated_manifold(self) -> Manifold:
        return self.manifold

    def get_embedding(self) -> Manifold:
        return self.manifold.get_embedding()

    def _point(self, p: Any) -> Any:
        return self.identity_element() if isinstance(p, Identity) else p

    def check_size(self, p: Any) -> DimensionMismatchError | None:
        if isinstance(p, Identity):
            return None
        return self.manifold.check_size(p)

    def check_point(self, p: Any, *, atol: float | None = None) -> DomainError | None:
        if isinstance(p, Identity):
            if p.op != self.op:
                return self._domain_error(
                    p, f"The identity {p} does not belong to {self!r} with operation {self.op}.", "op"
                )
            return None
        return self.manifold.check_point(p, atol=atol)

    def check_vector(self, p: Any, X: Any, *, atol: float | None = None) -> DomainError | None:
        return self.manifold.check_vector(self._point(p), X, atol=atol)

    def manifold_dimension(self) -> int:
        return self.manifold.manifold_dimension()

    def representation_size(self) -> tuple[int, ...]:
        return self.manifold.representation_size()

    def sample(self, key: jax.Array, *, at: Any = None, sigma: float = 1.0) -> Any:
        if at is None:
            return self.manifold.sample(key, sigma=sigma)
        return self.manifold.sample(key, at=self._point(at), sigma=sigma)

    def identity_element(self) -> Any:
        return self.op.identity_element(self.representation_size())

    def is_identity(self, p: Any, *, atol: float = 1e-8) -> bool:
        if isinstance(p, Identity):
            return p.op == self.op
        return bool(jnp.allclose(p, self.identity_element(), atol=atol))

    def compose(self, p: Any, q: Any) -> Any:
        if isinstance(p, Identity):
            return q
        if isinstance(q, Identity):
            return p
        return self._compose(p, q)

    def _compose(self, p: Any, q: Any) -> Any:
        return self.op.compose(p, q)

    def inverse(self, p: Any) -> Any:
        if isinstance(p, Identity):
            return p
        return self._inverse(p)

    def _inverse(self, p: Any) -> Any:
        return self.op.inverse(p)

    def exp_lie(self, X: Any) -> Any:
        return self.op.exp_lie(X)

    def log_lie(self, q: Any) -> Any:
        """Lie algebra element X with ``exp_lie(X) == q``; zero for the identity."""
        if isinstance(q, Identity):
            return self.zero_vector(self.identity_element())
        return self._log_lie(q)

    def _log_lie(self, q: Any) -> Any:
        return self.op.log_lie(q)

    def exp(self, p: Any, X: Any) -> Any:
        return resolve(self, "exp")(self._point(p), X)

    def log(self, p: Any, q: Any) -> Any:
        return resolve(self, "log")(self._point(p), self._point(q))

    def distance(self, p: Any, q: Any) -> jax.Array:
        return resolve(self, "distance")(self._point(p), self._point(q))

    def zero_vector(self, p: Any) -> Any:
        return self.manifold.zero_vector(self._point(p))

    def isapprox(self, p: Any, q: Any, *, atol: float = 1e-8) -> bool:
        return self.manifold.isapprox(self._point(p), self._point(q), atol=atol)
