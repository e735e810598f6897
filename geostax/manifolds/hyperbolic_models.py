"""Conversions between models of hyperbolic space.

- Hyperboloid: ``x ∈ R^{n+1}`` with ``⟨x, x⟩_M = -1`` and ``x_n > 0``.
- Poincaré ball: ``b ∈ R^n`` with ``‖b‖ < 1``.
- Poincaré half-space: ``h ∈ R^n`` with ``h_{n-1} > 0``.

Each point map is an exact closed-form isometry; the ``*_vector`` functions push a
tangent vector at the given point forward along the corresponding point map.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp


def poincare_ball_to_hyperboloid(b: jax.Array) -> jax.Array:
    """``(2b, 1 + ‖b‖²) / (1 - ‖b‖²)``."""
    nb = jnp.sum(b**2)
    return jnp.concatenate([2.0 * b, (1.0 + nb)[None]]) / (1.0 - nb)


def hyperboloid_to_poincare_ball(x: jax.Array) -> jax.Array:
    return x[:-1] / (1.0 + x[-1])


def poincare_ball_to_hyperboloid_vector(b: jax.Array, X: jax.Array) -> jax.Array:
    t = 1.0 - jnp.sum(b**2)
    den = 4.0 * jnp.dot(b, X) / t**2
    return jnp.concatenate([(2.0 / t) * X + den * b, den[None]])


def hyperboloid_to_poincare_ball_vector(x: jax.Array, X: jax.Array) -> jax.Array:
    s = 1.0 + x[-1]
    return X[:-1] / s - x[:-1] * X[-1] / s**2


def poincare_half_space_to_poincare_ball(h: jax.Array) -> jax.Array:
    """``(2h̃, ‖h‖² - 1) / (‖h̃‖² + (h_n + 1)²)`` with ``h̃`` all but the last entry."""
    den = jnp.sum(h[:-1] ** 2) + (h[-1] + 1.0) ** 2
    return jnp.concatenate([2.0 * h[:-1], (jnp.sum(h**2) - 1.0)[None]]) / den


def poincare_ball_to_poincare_half_space(b: jax.Array) -> jax.Array:
    """``(2b̃, 1 - ‖b‖²) / (‖b̃‖² + (b_n - 1)²)``."""
    den = jnp.sum(b[:-1] ** 2) + (b[-1] - 1.0) ** 2
    return jnp.concatenate([2.0 * b[:-1], (1.0 - jnp.sum(b**2))[None]]) / den


def poincare_half_space_to_poincare_ball_vector(h: jax.Array, X: jax.Array) -> jax.Array:
    _, Y = jax.jvp(poincare_half_space_to_poincare_ball, (h,), (X,))
    return Y


def poincare_ball_to_poincare_half_space_vector(b: jax.Array, X: jax.Array) -> jax.Array:
    _, Y = jax.jvp(poincare_ball_to_poincare_half_space, (b,), (X,))
    return Y


def poincare_half_space_to_hyperboloid(h: jax.Array) -> jax.Array:
    return poincare_ball_to_hyperboloid(poincare_half_space_to_poincare_ball(h))


def hyperboloid_to_poincare_half_space(x: jax.Array) -> jax.Array:
    return poincare_ball_to_poincare_half_space(hyperboloid_to_poincare_ball(x))


def poincare_half_space_to_hyperboloid_vector(h: jax.Array, X: jax.Array) -> jax.Array:
    b = poincare_half_space_to_poincare_ball(h)
    return poincare_ball_to_hyperboloid_vector(b, poincare_half_space_to_poincare_ball_vector(h, X))


def hyperboloid_to_poincare_half_space_vector(x: jax.Array, X: jax.Array) -> jax.Array:
    b = hyperboloid_to_poincare_ball(x)
    return poincare_ball_to_poincare_half_space_vector(b, hyperboloid_to_poincare_ball_vector(x, X))
