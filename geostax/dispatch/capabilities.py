"""Per-manifold capability tables and operation resolution."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from functools import wraps
from typing import TYPE_CHECKING, Any

import jax
import numpy as np

from geostax.dispatch.traits import IsExplicitDecorator, TraitList, is_metric_function
from geostax.errors import DimensionMismatchError, MethodNotApplicableError
from geostax.log import get_logger

if TYPE_CHECKING:
    from geostax.manifolds.manifold_types import Manifold

logger = get_logger(__name__)


@dataclass(frozen=True)
class CapabilityTable:
    """Trait bundles of one manifold: one for metric operations, one for everything else."""

    default: TraitList = field(default_factory=TraitList)
    metric: TraitList | None = None

    def active_traits(self, op: str) -> TraitList:
        if self.metric is not None and is_metric_function(op):
            return self.metric
        return self.default


def resolve(manifold: Manifold, op: str) -> Callable[..., Any]:
    """Return the implementation of ``op`` for ``manifold``.

    Walks ``manifold.active_traits(op)`` in order. The first trait providing ``op``
    wins; an :class:`IsExplicitDecorator` entry forwards to the decorated manifold.

    Raises:
        MethodNotApplicableError: if no trait resolves ``op``.
    """
    for trait in manifold.active_traits(op):
        if isinstance(trait, IsExplicitDecorator):
            inner = manifold.decorated_manifold()
            logger.debug("%s: forwarding '%s' to decorated %s", manifold, op, inner)
            return getattr(inner, op)
        handler = trait.handler(op)
        if handler is not None:
            return lambda *args, **kwargs: handler(manifold, *args, **kwargs)
    raise MethodNotApplicableError(manifold, op)


def write_into(out: Any, value: Any) -> Any:
    """Overwrite the NumPy buffers in ``out`` with ``value`` (matching pytree structure)."""
    out_leaves, out_tree = jax.tree_util.tree_flatten(out)
    value_leaves, value_tree = jax.tree_util.tree_flatten(value)
    if out_tree != value_tree:
        raise DimensionMismatchError(
            f"Output buffer structure {out_tree} does not match result structure {value_tree}.",
            expected=value_tree,
            got=out_tree,
        )
    for buffer, leaf in zip(out_leaves, value_leaves):
        if not isinstance(buffer, np.ndarray):
            raise TypeError(f"Output buffers must be numpy.ndarray, got {type(buffer).__name__}.")
        leaf = np.asarray(leaf)
        if buffer.shape != leaf.shape:
            raise DimensionMismatchError(
                f"Output buffer has shape {buffer.shape}, result has shape {leaf.shape}.",
                expected=leaf.shape,
                got=buffer.shape,
            )
        np.copyto(buffer, leaf, casting="same_kind")
    return out


def into_variant(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Turn ``fn(*args)`` into ``fn_into(out, *args)`` writing the result into ``out``."""

    @wraps(fn)
    def call(out: Any, *args: Any, **kwargs: Any) -> Any:
        return write_into(out, fn(*args, **kwargs))

    return call
