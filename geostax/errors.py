"""Exception hierarchy for geostax.

Membership checks (``check_point``, ``check_vector``) return a :class:`DomainError`
instead of raising it, so callers decide whether an invalid value is fatal.
Operations whose input lies outside their domain (e.g. ``log_lie`` of an orthogonal
matrix with negative determinant) raise it.
"""

from __future__ import annotations

from typing import Any


class GeostaxError(Exception):
    """Base exception for all geostax errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class DomainError(GeostaxError, ValueError):
    """A point or tangent vector is not a member of the set an operation works on.

    Attributes:
        value: Magnitude of the violation (e.g. deviation of a Minkowski norm from -1).
        manifold: Representation of the manifold that rejected the value.
        constraint: Short name of the violated constraint.
    """

    def __init__(
        self,
        value: Any,
        message: str,
        *,
        manifold: str | None = None,
        constraint: str | None = None,
    ):
        details = {"value": value, "manifold": manifold, "constraint": constraint}
        super().__init__(message, details)
        self.value = value
        self.manifold = manifold
        self.constraint = constraint


class MethodNotApplicableError(GeostaxError, AttributeError):
    """No capability of a manifold resolves the requested operation."""

    def __init__(self, manifold: object, operation: str):
        message = f"No applicable method '{operation}' for {manifold!r}."
        super().__init__(message, {"manifold": repr(manifold), "operation": operation})
        self.manifold = manifold
        self.operation = operation


class DimensionMismatchError(GeostaxError, ValueError):
    """An array does not have the shape a manifold or buffer expects."""

    def __init__(self, message: str, *, expected: Any = None, got: Any = None):
        super().__init__(message, {"expected": expected, "got": got})
        self.expected = expected
        self.got = got


class ConfigurationError(GeostaxError, ValueError):
    """Invalid configuration option or environment value."""

    def __init__(self, message: str, parameter: str | None = None, value: Any = None):
        super().__init__(message, {"parameter": parameter, "value": value})
        self.parameter = parameter
        self.value = value
