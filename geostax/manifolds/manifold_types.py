from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import cached_property
from math import prod
from typing import Any, Literal

import jax
import jax.numpy as jnp

from geostax.config import get_config
from geostax.dispatch import CapabilityTable, TraitList, into_variant, resolve
from geostax.errors import DimensionMismatchError, DomainError, MethodNotApplicableError

_NON_OPERATIONS = frozenset({"capabilities", "op", "manifold", "vectors"})


class Manifold(ABC):
    """Base class for Riemannian manifolds.

    Subclasses implement the membership protocol (``check_point``, ``check_vector``,
    ``manifold_dimension``, ``representation_size``, ``sample``) and whatever
    operations they have closed forms for. Any other operation is resolved through the
    manifold's capability table (see :mod:`geostax.dispatch`), which may forward it to
    a decorated or embedding manifold. Every resolvable operation ``f`` also has an
    ``f_into(out, ...)`` variant that writes its result into caller-owned NumPy buffers.
    """

    @abstractmethod
    def check_point(self, p: Any, *, atol: float | None = None) -> DomainError | None:
        """Check whether ``p`` is a point on the manifold.

        Args:
            p: Candidate point.
            atol: Absolute tolerance; defaults to the configured ``default_atol``.

        Returns:
            ``None`` if ``p`` is valid, otherwise a :class:`DomainError` describing the
            violated constraint. The error is returned, not raised.
        """

    @abstractmethod
    def check_vector(
        self, p: Any, X: Any, *, atol: float | None = None
    ) -> DomainError | None:
        """Check whether ``X`` is a tangent vector at ``p``; same conventions as ``check_point``."""

    @abstractmethod
    def manifold_dimension(self) -> int:
        pass

    @abstractmethod
    def representation_size(self) -> tuple[int, ...]:
        pass

    @abstractmethod
    def sample(self, key: jax.Array, *, at: Any = None, sigma: float = 1.0) -> Any:
        """Draw a random point, or a random tangent vector at ``at`` when given.

        Args:
            key: JAX PRNGKey; identical keys give identical samples.
            at: Optional base point. If given, a tangent vector at ``at`` is returned.
            sigma: Spread of the underlying Gaussian.
        """

    def check_size(self, p: Any) -> DimensionMismatchError | None:
        expected = self.representation_size()
        shape = tuple(jnp.shape(p))
        if shape != expected:
            return DimensionMismatchError(
                f"{self!r} expects arrays of shape {expected}, got {shape}.",
                expected=expected,
                got=shape,
            )
        return None

    def is_point(self, p: Any, error: Literal["none", "raise"] = "none", **kwargs: Any) -> bool:
        err = self.check_size(p) or self.check_point(p, **kwargs)
        if err is not None and error == "raise":
            raise err
        return err is None

    def is_vector(
        self,
        p: Any,
        X: Any,
        error: Literal["none", "raise"] = "none",
        *,
        check_base_point: bool = True,
        **kwargs: Any,
    ) -> bool:
        err = None
        if check_base_point:
            err = self.check_size(p) or self.check_point(p, **kwargs)
        if err is None:
            err = self.check_vector(p, X, **kwargs)
        if err is not None and error == "raise":
            raise err
        return err is None

    def get_embedding(self) -> Manifold:
        return self

    def decorated_manifold(self) -> Manifold:
        raise MethodNotApplicableError(self, "decorated_manifold")

    def build_capabilities(self) -> CapabilityTable:
        return CapabilityTable()

    @cached_property
    def capabilities(self) -> CapabilityTable:
        return self.build_capabilities()

    def active_traits(self, op: str) -> TraitList:
        """Traits consulted for ``op``, most specific first."""
        return self.capabilities.active_traits(op)

    def _atol(self, atol: float | None) -> float:
        return get_config().default_atol if atol is None else atol

    def _domain_error(self, value: Any, message: str, constraint: str) -> DomainError:
        return DomainError(value, message, manifold=repr(self), constraint=constraint)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or name in _NON_OPERATIONS:
            raise AttributeError(name)
        if name.endswith("_into"):
            return into_variant(getattr(self, name.removesuffix("_into")))
        return resolve(self, name)


@dataclass(frozen=True)
class EuclideanSpace(Manifold):
    """Euclidean space of arrays with a fixed shape.

    The tangent space at any point is the entire ambient space, so exp/log are
    addition/subtraction and projections are identities.
    """

    shape: tuple[int, ...]

    def check_point(self, p: jax.Array, *, atol: float | None = None) -> DomainError | None:
        if not bool(jnp.all(jnp.isfinite(p))):
            return self._domain_error(p, f"The point {p} has non-finite entries.", "finite")
        return None

    def check_vector(
        self, p: jax.Array, X: jax.Array, *, atol: float | None = None
    ) -> DomainError | None:
        if tuple(jnp.shape(X)) != self.shape:
            return self._domain_error(
                jnp.shape(X), f"The vector has shape {jnp.shape(X)}, expected {self.shape}.", "shape"
            )
        return None

    def manifold_dimension(self) -> int:
        return prod(self.shape)

    def representation_size(self) -> tuple[int, ...]:
        return self.shape

    def exp(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return p + X

    def log(self, p: jax.Array, q: jax.Array) -> jax.Array:
        return q - p

    def retract(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return p + X

    def inverse_retract(self, p: jax.Array, q: jax.Array) -> jax.Array:
        return q - p

    def inner(self, p: jax.Array, X: jax.Array, Y: jax.Array) -> jax.Array:
        return jnp.real(jnp.sum(jnp.conj(X) * Y))

    def norm(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return jnp.linalg.norm(X)

    def distance(self, p: jax.Array, q: jax.Array) -> jax.Array:
        return jnp.linalg.norm(q - p)

    def project(self, p: jax.Array, X: jax.Array) -> jax.Array:
        """Identity projection for Euclidean space."""
        if jnp.shape(p) != jnp.shape(X):
            raise DimensionMismatchError(
                f"Shape mismatch: p.shape={jnp.shape(p)}, X.shape={jnp.shape(X)}",
                expected=jnp.shape(p),
                got=jnp.shape(X),
            )
        return X

    def project_point(self, x: jax.Array) -> jax.Array:
        return x

    def parallel_transport_to(self, p: jax.Array, X: jax.Array, q: jax.Array) -> jax.Array:
        return X

    def vector_transport_to(self, p: jax.Array, X: jax.Array, q: jax.Array) -> jax.Array:
        return X

    def zero_vector(self, p: jax.Array) -> jax.Array:
        return jnp.zeros_like(p)

    def get_coordinates(self, p: jax.Array, X: jax.Array) -> jax.Array:
        return jnp.reshape(X, (-1,))

    def get_vector(self, p: jax.Array, c: jax.Array) -> jax.Array:
        return jnp.reshape(c, self.shape)

    def embed(self, p: jax.Array, X: jax.Array | None = None) -> jax.Array:
        return p if X is None else X

    def is_flat(self) -> bool:
        return True

    def injectivity_radius(self) -> float:
        return float("inf")

    def isapprox(self, p: jax.Array, q: jax.Array, *, atol: float = 1e-8) -> bool:
        return bool(jnp.allclose(p, q, atol=atol))

    def sample(
        self, key: jax.Array, *, at: jax.Array | None = None, sigma: float = 1.0
    ) -> jax.Array:
        return sigma * jax.random.normal(key, self.shape, dtype=jnp.float64)
