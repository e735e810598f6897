"""Capability traits attached to manifolds.

A trait is an immutable marker. Trait classes may define operation methods with the
signature ``op(self, M, *args, **kwargs)``; these become the generic implementation
of ``op`` for every manifold that lists the trait. The operations a trait class
provides are collected once, when the class is created.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from functools import partial
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, Mapping, TypeVar

import jax
import jax.numpy as jnp

if TYPE_CHECKING:
    from geostax.groups.group_types import GroupOperation, GroupVectorRepresentation
    from geostax.manifolds.manifold_types import Manifold

T = TypeVar("T", bound="Trait")


class Trait:
    operations: ClassVar[Mapping[str, Callable[..., Any]]] = MappingProxyType({})

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        ops: dict[str, Callable[..., Any]] = {}
        for base in reversed(cls.__mro__[1:]):
            ops.update(getattr(base, "operations", {}))
        for name, attr in vars(cls).items():
            if not name.startswith("_") and callable(attr):
                ops[name] = attr
        cls.operations = MappingProxyType(ops)

    def handler(self, op: str) -> Callable[..., Any] | None:
        """Return the implementation of ``op`` bound to this trait, if it has one."""
        fn = self.operations.get(op)
        return None if fn is None else partial(fn, self)


@dataclass(frozen=True)
class Metric:
    name: str = "euclidean"


@dataclass(frozen=True)
class EuclideanMetric(Metric):
    name: str = "euclidean"


@dataclass(frozen=True)
class MinkowskiMetric(Metric):
    name: str = "minkowski"


@dataclass(frozen=True)
class LogCholeskyMetric(Metric):
    name: str = "log_cholesky"


@dataclass(frozen=True)
class IsDefaultMetric(Trait):
    metric: Metric = EuclideanMetric()

    def default_metric(self, M: Manifold) -> Metric:
        return self.metric


@dataclass(frozen=True)
class IsExplicitDecorator(Trait):
    """Forward any otherwise unresolved operation to ``M.decorated_manifold()``.

    Resolution handles this trait directly; it provides no operations itself.
    """


@dataclass(frozen=True)
class IsEmbeddedManifold(Trait):
    """Generic operations of a manifold isometrically embedded in ``M.get_embedding()``."""

    def embed(self, M: Manifold, p: Any, X: Any = None) -> Any:
        return p if X is None else X

    def vector_transport_to(self, M: Manifold, p: Any, X: Any, q: Any) -> Any:
        """Transport by projecting the embedded vector onto the tangent space at ``q``."""
        return M.project(q, M.embed(p, X))

    def isapprox(self, M: Manifold, p: Any, q: Any, *, atol: float = 1e-8) -> bool:
        diff = M.embed(q) - M.embed(p)
        return bool(jnp.linalg.norm(diff) <= atol)


@dataclass(frozen=True)
class HasBiinvariantMetric(Trait):
    """Riemannian operations of a group whose metric is invariant under both translations.

    Tangent vectors are Lie algebra elements (left-invariant representation), so the
    Riemannian exponential agrees with the group exponential at every point.
    """

    def has_biinvariant_metric(self, G: Manifold) -> bool:
        return True

    def exp(self, G: Manifold, p: Any, X: Any) -> Any:
        return G.compose(p, G.exp_lie(X))

    def log(self, G: Manifold, p: Any, q: Any) -> Any:
        return G.log_lie(G.inverse_translate(p, q, "left_forward"))

    def distance(self, G: Manifold, p: Any, q: Any) -> jax.Array:
        X = G.log(p, q)
        return jnp.sqrt(jnp.maximum(G.inner(p, X, X), 0.0))

    def parallel_transport_to(self, G: Manifold, p: Any, X: Any, q: Any) -> Any:
        d = G.log(p, q)
        return G.adjoint_action(G.exp_lie(-0.5 * d), X, "left")


@dataclass(frozen=True)
class IsGroupManifold(Trait):
    """Generic group operations in terms of ``compose``, ``inverse`` and ``exp_lie``/``log_lie``.

    Translation conventions order the arguments of ``compose``:
    ``left_forward: p∘q``, ``right_backward: q∘p``, ``left_backward: q∘p⁻¹``,
    ``right_forward: p⁻¹∘q``.
    """

    op: GroupOperation
    vectors: GroupVectorRepresentation

    def is_group_manifold(self, G: Manifold) -> bool:
        return True

    def group_operation(self, G: Manifold) -> GroupOperation:
        return self.op

    def translate(self, G: Manifold, p: Any, q: Any, conv: str = "left_forward") -> Any:
        match conv:
            case "left_forward":
                return G.compose(p, q)
            case "right_backward":
                return G.compose(q, p)
            case "left_backward":
                return G.compose(q, G.inverse(p))
            case "right_forward":
                return G.compose(G.inverse(p), q)
            case _:
                raise ValueError(f"Unknown translation convention '{conv}'.")

    def inverse_translate(self, G: Manifold, p: Any, q: Any, conv: str = "left_forward") -> Any:
        return G.translate(G.inverse(p), q, conv)

    def translate_diff(
        self, G: Manifold, p: Any, q: Any, X: Any, conv: str = "left_forward"
    ) -> Any:
        """Differential of ``translate`` at ``q`` in the left-invariant representation."""
        match conv:
            case "left_forward" | "right_forward":
                return X
            case "left_backward":
                return G.adjoint_action(p, X, "left")
            case "right_backward":
                return G.adjoint_action(p, X, "right")
            case _:
                raise ValueError(f"Unknown translation convention '{conv}'.")

    def inverse_translate_diff(
        self, G: Manifold, p: Any, q: Any, X: Any, conv: str = "left_forward"
    ) -> Any:
        return G.translate_diff(G.inverse(p), G.translate(p, q, conv), X, conv)

    def adjoint_action(self, G: Manifold, p: Any, X: Any, side: str = "left") -> Any:
        return self.op.adjoint_action(G, p, X, side)

    def lie_bracket(self, G: Manifold, X: Any, Y: Any) -> Any:
        return self.op.lie_bracket(X, Y)

    def exp_inv(self, G: Manifold, p: Any, X: Any) -> Any:
        """Group exponential through ``p``: ``p ∘ exp_lie(X)``."""
        return G.compose(p, G.exp_lie(X))

    def log_inv(self, G: Manifold, p: Any, q: Any) -> Any:
        return G.log_lie(G.inverse_translate(p, q, "left_forward"))


@dataclass(frozen=True)
class TraitList:
    """Ordered traits; the first trait that provides an operation wins."""

    traits: tuple[Trait, ...] = ()

    def __iter__(self) -> Iterator[Trait]:
        return iter(self.traits)

    def __len__(self) -> int:
        return len(self.traits)

    def contains(self, trait_type: type[Trait]) -> bool:
        return any(isinstance(t, trait_type) for t in self.traits)

    def first(self, trait_type: type[T]) -> T | None:
        for t in self.traits:
            if isinstance(t, trait_type):
                return t
        return None


def merge_traits(*items: Trait | TraitList) -> TraitList:
    """Concatenate traits and trait lists, keeping the first occurrence of each trait type."""
    merged: list[Trait] = []
    seen: set[type[Trait]] = set()
    for item in items:
        for t in item if isinstance(item, TraitList) else (item,):
            if type(t) in seen:
                continue
            seen.add(type(t))
            merged.append(t)
    return TraitList(tuple(merged))


METRIC_FUNCTIONS: frozenset[str] = frozenset(
    {
        "change_metric",
        "change_representer",
        "distance",
        "exp",
        "get_basis",
        "get_coordinates",
        "get_vector",
        "injectivity_radius",
        "inner",
        "inverse_retract",
        "is_flat",
        "log",
        "norm",
        "parallel_transport_to",
        "retract",
        "riemannian_hessian",
        "sectional_curvature",
        "vector_transport_to",
        "volume_density",
    }
)


def is_metric_function(op: str) -> bool:
    """Whether ``op`` depends on the Riemannian metric rather than on the group structure."""
    return op in METRIC_FUNCTIONS
