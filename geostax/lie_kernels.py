"""Closed-form exponential and logarithm of real orthogonal groups.

``exp_so*`` map a skew-symmetric matrix to a rotation and are branch-free
(``jnp.where``), so they can be traced by ``jax.jit``. ``log_so*`` map an orthogonal
matrix to a skew-symmetric one; they choose their branch eagerly and raise
:class:`~geostax.errors.DomainError` when ``det(q) < 0``.

Public API:
- exp_so2, exp_so3, exp_so4, exp_so
- log_so2, log_so3, log_so4, log_so
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax.scipy.linalg import expm

from geostax.errors import DomainError
from geostax.linalg_ops import (
    angles_4d_skew_sym_matrix,
    cos_angles_4d_rotation_matrix,
    evalpoly,
    log_orthogonal,
    skew,
    so_hat,
    so_vee,
    sym,
)
from geostax.log import get_logger

logger = get_logger(__name__)

# Below this rotation angle exp_so3 uses second-order Taylor coefficients.
SO3_TAYLOR_THRESHOLD: float = 1e-6
# |cos θ + 1| below which log_so3 recovers the axis from an eigendecomposition.
SO3_NEAR_PI_COS_TOL: float = 1.5e-8
# |β² - α²| above which exp_so4 uses the generic closed form.
SO4_SEPARATION_THRESHOLD: float = 1e-6
# α below which exp_so4 evaluates (sinc α - cos α)/α² by its Taylor series.
SO4_SERIES_THRESHOLD: float = 1e-2
# Taylor coefficients of (sin α/α - cos α)/α² in powers of α².
SO4_SERIES_COEFFS: tuple[float, ...] = (1 / 3, -1 / 30, 1 / 840, -1 / 45360)
# |π - β| below which log_so4 reconstructs the logarithm plane by plane.
SO4_NEAR_PI_TOL: float = 1e-4
# Smallest off-axis component of q·u used to pair u with its rotation partner.
SO4_PLANE_PAIRING_TOL: float = 1e-8


def _check_shape(x: jax.Array, n: int | None, name: str) -> int:
    if x.ndim != 2 or x.shape[0] != x.shape[1]:
        raise ValueError(f"{name} expects a square (n, n) matrix, got {x.shape}.")
    if n is not None and x.shape[-1] != n:
        raise ValueError(f"{name} expects ({n}, {n}), got {x.shape}.")
    return x.shape[-1]


def _check_determinant(q: jax.Array) -> None:
    det = float(jnp.linalg.det(q))
    if det < 0:
        n = q.shape[-1]
        logger.debug("log of O(%d) element with det %.3e rejected", n, det)
        raise DomainError(
            det,
            f"The Lie group logarithm is not defined for {q} with a negative determinant "
            f"({det:.6g}); it lies in a different connected component of O({n}) than the identity.",
            manifold=f"O({n})",
            constraint="det > 0",
        )


def exp_so2(X: jax.Array) -> jax.Array:
    _check_shape(X, 2, "exp_so2")
    theta = 0.5 * (X[1, 0] - X[0, 1])
    c, s = jnp.cos(theta), jnp.sin(theta)
    return jnp.stack([jnp.stack([c, -s]), jnp.stack([s, c])])


def exp_so3(X: jax.Array) -> jax.Array:
    """Rodrigues' formula ``I + a X + b X²`` with θ = ||X||_F / √2.

    ``a = sin θ / θ`` and ``b = (1 - cos θ) / θ²`` switch to their second-order
    Taylor expansions below :data:`SO3_TAYLOR_THRESHOLD`.
    """
    _check_shape(X, 3, "exp_so3")
    theta = jnp.linalg.norm(X) / jnp.sqrt(2.0)
    small = theta < SO3_TAYLOR_THRESHOLD
    safe = jnp.where(small, 1.0, theta)
    a = jnp.where(small, 1.0 - theta**2 / 6.0, jnp.sin(safe) / safe)
    b = jnp.where(small, 0.5 - theta**2 / 24.0, (1.0 - jnp.cos(safe)) / safe**2)
    return jnp.eye(3, dtype=X.dtype) + a * X + b * (X @ X)


def exp_so4(X: jax.Array) -> jax.Array:
    """Exponential of a 4×4 skew-symmetric matrix as ``a0 I + a1 X + a2 X² + a3 X³``.

    The coefficients depend on the principal angles ``α >= β`` of ``X``:

    1. ``|β² - α²| > 1e-6``: closed form in ``α, β``.
    2. ``α = β = 0``: ``(1, 1, 1/2, 1/6)``.
    3. ``α ≈ β``: first-order expansion around ``α = β``; the quotient
       ``(sinc α - cos α)/α²`` uses its Taylor series below ``α = 1e-2``.
    """
    _check_shape(X, 4, "exp_so4")
    alpha, beta = angles_4d_skew_sym_matrix(X)
    sin_a, cos_a = jnp.sin(alpha), jnp.cos(alpha)
    alpha_safe = jnp.where(alpha == 0, 1.0, alpha)
    beta_safe = jnp.where(beta == 0, 1.0, beta)
    sinc_a = jnp.where(alpha == 0, 1.0, sin_a / alpha_safe)
    sinc_b = jnp.where(beta == 0, 1.0, jnp.sin(beta) / beta_safe)
    cos_b = jnp.cos(beta)

    delta = beta**2 - alpha**2
    separated = jnp.abs(delta) > SO4_SEPARATION_THRESHOLD
    delta_safe = jnp.where(separated, delta, 1.0)
    g0 = (beta**2 * cos_a - alpha**2 * cos_b) / delta_safe
    g1 = (beta**2 * sinc_a - alpha**2 * sinc_b) / delta_safe
    g2 = (cos_a - cos_b) / delta_safe
    g3 = (sinc_a - sinc_b) / delta_safe

    r = beta / alpha_safe
    c = 1.0 / (1.0 + r)
    d = alpha * (alpha - beta) / 2.0
    e = jnp.where(
        alpha < SO4_SERIES_THRESHOLD,
        evalpoly(alpha**2, SO4_SERIES_COEFFS),
        (sinc_a - cos_a) / alpha_safe**2,
    )
    n0 = (alpha * sin_a + (1.0 + r - d) * cos_a) * c
    n1 = ((3.0 - d) * sinc_a - (2.0 - r) * cos_a) * c
    n2 = (sinc_a - (1.0 - r) / 2.0 * cos_a) * c
    n3 = (e + (1.0 - r) * (e - sinc_a / 2.0)) * c

    at_zero = alpha == 0

    def pick(generic: jax.Array, limit: float, near: jax.Array) -> jax.Array:
        return jnp.where(separated, generic, jnp.where(at_zero, limit, near))

    a0 = pick(g0, 1.0, n0)
    a1 = pick(g1, 1.0, n1)
    a2 = pick(g2, 0.5, n2)
    a3 = pick(g3, 1.0 / 6.0, n3)
    X2 = X @ X
    return a0 * jnp.eye(4, dtype=X.dtype) + a1 * X + a2 * X2 + a3 * (X2 @ X)


def exp_so(X: jax.Array) -> jax.Array:
    """Exponential of a real skew-symmetric matrix, specialised for n <= 4."""
    n = _check_shape(X, None, "exp_so")
    match n:
        case 1:
            return jnp.ones((1, 1), dtype=X.dtype)
        case 2:
            return exp_so2(X)
        case 3:
            return exp_so3(X)
        case 4:
            return exp_so4(X)
        case _:
            return expm(X)


def log_so2(q: jax.Array) -> jax.Array:
    _check_shape(q, 2, "log_so2")
    _check_determinant(q)
    theta = jnp.arctan2(q[1, 0], q[0, 0])
    return so_hat(theta[None], 2)


def log_so3(q: jax.Array) -> jax.Array:
    """Logarithm of a 3×3 rotation.

    For a rotation by θ = π the skew part of ``q`` vanishes and does not determine
    the axis; the axis is then the eigenvector of the symmetric part of ``q`` for
    the eigenvalue +1, oriented by the (tiny) skew part.
    """
    _check_shape(q, 3, "log_so3")
    _check_determinant(q)
    cos_theta = (jnp.trace(q) - 1.0) / 2.0
    if abs(float(cos_theta) + 1.0) <= SO3_NEAR_PI_COS_TOL:
        logger.debug("log_so3: rotation angle near pi, recovering axis from eigendecomposition")
        _, evecs = jnp.linalg.eigh(sym(q))
        axis = evecs[:, -1]
        w = so_vee(skew(q))
        axis = jnp.where(jnp.dot(axis, w) < 0, -axis, axis)
        theta = jnp.arctan2(jnp.linalg.norm(w), cos_theta)
        return so_hat(theta * axis, 3)
    K = skew(q)
    sin_theta = jnp.linalg.norm(so_vee(K))
    theta = jnp.arctan2(sin_theta, cos_theta)
    # θ/sin θ -> 1 as θ -> 0; the identity maps to zero.
    scale = jnp.where(sin_theta > 0, theta / jnp.where(sin_theta > 0, sin_theta, 1.0), 1.0)
    return scale * K


def _log_so4_planewise(q: jax.Array) -> jax.Array:
    """Logarithm assembled from the two invariant planes of ``q``.

    ``u`` is the eigenvector of ``sym((q - I)/2)`` with the smallest eigenvalue, so it
    lies in the plane rotated by the larger angle. Its partner ``v`` is the part of
    ``q·u`` orthogonal to ``u``, unless that part is no larger than
    :data:`SO4_PLANE_PAIRING_TOL` or the eigenvalue gap separating the two planes;
    then the rotation is a half turn on the plane of ``u`` or the eigenvalues already
    tell the planes apart, and the second eigenvector is used. The second plane is the
    orthogonal complement of ``span{u, v}``. Within a plane with orthonormal basis
    ``(a, b)`` the signed angle is ``atan2(b·qa, a·qa)``.
    """
    eye = jnp.eye(4, dtype=q.dtype)
    evals, evecs = jnp.linalg.eigh(sym((q - eye) / 2.0))
    u = evecs[:, 0]
    qu = q @ u
    r = qu - jnp.dot(u, qu) * u
    s = float(jnp.linalg.norm(r))
    gap = float(evals[2] - evals[1])
    v = r / s if s > max(gap, SO4_PLANE_PAIRING_TOL) else evecs[:, 1]
    _, rest = jnp.linalg.eigh(eye - jnp.outer(u, u) - jnp.outer(v, v))
    X = jnp.zeros_like(q)
    for a, b in ((u, v), (rest[:, 2], rest[:, 3])):
        qa = q @ a
        angle = jnp.arctan2(jnp.dot(b, qa), jnp.dot(a, qa))
        X = X + angle * (jnp.outer(b, a) - jnp.outer(a, b))
    return X


def log_so4(q: jax.Array) -> jax.Array:
    """Logarithm of a 4×4 rotation.

    A rotation by π in one invariant plane (``β ≈ π``, including the case ``α = 0``)
    has a repeated eigenvalue -1 and the spectral logarithm is undefined; the
    logarithm is then rebuilt from the invariant planes.
    """
    _check_shape(q, 4, "log_so4")
    _check_determinant(q)
    cos_a, cos_b = cos_angles_4d_rotation_matrix(q)
    alpha = jnp.arccos(jnp.clip(cos_a, -1.0, 1.0))
    beta = jnp.arccos(jnp.clip(cos_b, -1.0, 1.0))
    if abs(jnp.pi - float(beta)) < SO4_NEAR_PI_TOL:
        logger.debug(
            "log_so4: principal angles (%.3e, %.3e), reconstructing from invariant planes",
            float(alpha),
            float(beta),
        )
        X = _log_so4_planewise(q)
    else:
        X = log_orthogonal(q)
    return skew(X)


def log_so(q: jax.Array) -> jax.Array:
    """Logarithm of a real orthogonal matrix in the identity component, specialised for n <= 4."""
    n = _check_shape(q, None, "log_so")
    match n:
        case 1:
            _check_determinant(q)
            return jnp.zeros((1, 1), dtype=q.dtype)
        case 2:
            return log_so2(q)
        case 3:
            return log_so3(q)
        case 4:
            return log_so4(q)
        case _:
            _check_determinant(q)
            X = log_orthogonal(q)
            if not bool(jnp.all(jnp.isfinite(X))):
                raise DomainError(
                    q,
                    f"{q} has an eigenvalue at -1; its principal logarithm is not unique.",
                    manifold=f"SO({n})",
                    constraint="no eigenvalue -1",
                )
            return X
