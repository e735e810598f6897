"""Dense linear algebra helpers shared by the manifold and group modules."""

from __future__ import annotations

from collections.abc import Callable, Sequence

import jax
import jax.numpy as jnp


def transpose(x: jax.Array) -> jax.Array:
    return jnp.swapaxes(x, -2, -1)


def adjoint(x: jax.Array) -> jax.Array:
    """Conjugate transpose over the last two axes."""
    return jnp.conj(jnp.swapaxes(x, -2, -1))


def skew(x: jax.Array) -> jax.Array:
    return 0.5 * (x - transpose(x))


def sym(x: jax.Array) -> jax.Array:
    return 0.5 * (x + transpose(x))


def strictly_lower(x: jax.Array) -> jax.Array:
    return jnp.tril(x, k=-1)


def strictly_upper(x: jax.Array) -> jax.Array:
    return jnp.triu(x, k=1)


def diag_matrix(d: jax.Array) -> jax.Array:
    return d[..., :, None] * jnp.eye(d.shape[-1], dtype=d.dtype)


def evalpoly(x: jax.Array, coeffs: Sequence[float]) -> jax.Array:
    """Evaluate ``sum(c_i x^i)`` by Horner's rule, coefficients in ascending order."""
    acc = jnp.zeros_like(x) + coeffs[-1]
    for c in reversed(coeffs[:-1]):
        acc = acc * x + c
    return acc


def usinc(theta: jax.Array) -> jax.Array:
    """Unnormalized sinc ``sin(θ)/θ`` with value 1 at θ = 0."""
    small = jnp.abs(theta) < 1e-8
    safe = jnp.where(small, 1.0, theta)
    return jnp.where(small, 1.0 - theta**2 / 6.0, jnp.sin(safe) / safe)


def usinc_from_cos(x: jax.Array) -> jax.Array:
    """Evaluate ``sin(θ)/θ`` from ``x = cos(θ)`` for θ ∈ [0, π].

    Returns 1 at x >= 1 and 0 at x <= -1. The quotient depends on θ only through
    a function that is flat near θ = 0, so rounding in ``x`` does not cancel.
    """
    inside = (x < 1.0) & (x > -1.0)
    x_safe = jnp.where(inside, x, 0.0)
    value = jnp.sqrt(1.0 - x_safe**2) / jnp.arccos(x_safe)
    return jnp.where(x >= 1.0, 1.0, jnp.where(x <= -1.0, 0.0, value))


def so_hat(c: jax.Array, n: int) -> jax.Array:
    """Skew-symmetric n×n matrix from coordinates in the orthogonal basis.

    Coordinate order: ``(X[2,1], X[0,2], X[1,0])`` for the leading 3×3 block, then
    ``X[i, j]`` for ``i = 3..n-1``, ``j < i`` row by row. For n = 2 the single
    coordinate is ``X[1,0]``.
    """
    rows: list[int] = []
    cols: list[int] = []
    if n == 2:
        rows, cols = [1], [0]
    elif n > 2:
        rows, cols = [2, 0, 1], [1, 2, 0]
        for i in range(3, n):
            for j in range(i):
                rows.append(i)
                cols.append(j)
    x = jnp.zeros((n, n), dtype=c.dtype).at[jnp.array(rows), jnp.array(cols)].set(c)
    return x - transpose(x)


def so_vee(x: jax.Array) -> jax.Array:
    """Inverse of :func:`so_hat`."""
    n = x.shape[-1]
    if n == 2:
        return x[1, 0][None]
    coords = [x[2, 1], x[0, 2], x[1, 0]]
    for i in range(3, n):
        for j in range(i):
            coords.append(x[i, j])
    return jnp.stack(coords)


def angles_4d_skew_sym_matrix(a: jax.Array) -> tuple[jax.Array, jax.Array]:
    """Principal angles ``α >= β >= 0`` of a real 4×4 skew-symmetric matrix.

    The eigenvalues of ``a`` are ``±iα, ±iβ``; both are recovered from the two
    invariants ``||a||_F^2 / 2`` and the Pfaffian.
    """
    halfb = (
        a[0, 1] ** 2 + a[0, 2] ** 2 + a[1, 2] ** 2 + a[0, 3] ** 2 + a[1, 3] ** 2 + a[2, 3] ** 2
    ) / 2
    pfaffian_sq = (a[0, 1] * a[2, 3] - a[0, 2] * a[1, 3] + a[0, 3] * a[1, 2]) ** 2
    sqrtdisc = jnp.sqrt(jnp.maximum(halfb**2 - pfaffian_sq, 0.0))
    alpha = jnp.sqrt(halfb + sqrtdisc)
    beta = jnp.sqrt(jnp.maximum(halfb - sqrtdisc, 0.0))
    return alpha, beta


def cos_angles_4d_rotation_matrix(r: jax.Array) -> tuple[jax.Array, jax.Array]:
    """Cosines ``cos α >= cos β`` of the principal angles of a 4×4 rotation."""
    a = jnp.trace(r)
    b = jnp.sqrt(jnp.maximum(2 * jnp.trace(r @ r) - a**2 + 8, 0.0))
    return (a + b) / 4, (a - b) / 4


def log_orthogonal(q: jax.Array) -> jax.Array:
    """Real logarithm of an orthogonal matrix with no eigenvalue at -1.

    ``q`` is normal, so its skew part ``K`` commutes with its symmetric part ``S``
    and acts on each eigenspace of ``S`` (eigenvalue ``cos θ``) as ``sin θ`` times a
    complex structure. Hence ``log q = f(S) K`` with ``f(cos θ) = θ / sin θ``,
    computed spectrally from ``eigh(S)``.
    """
    s = sym(q)
    k = skew(q)
    evals, evecs = jnp.linalg.eigh(s)
    scale = 1.0 / usinc_from_cos(jnp.clip(evals, -1.0, 1.0))
    f_s = (evecs * scale[None, :]) @ transpose(evecs)
    return skew(f_s @ k)


def minkowski_metric(a: jax.Array, b: jax.Array) -> jax.Array:
    """Minkowski bilinear form ``Σ_{i<n} a_i b_i - a_n b_n`` over the last axis."""
    return jnp.sum(a[..., :-1] * b[..., :-1], axis=-1) - a[..., -1] * b[..., -1]


def gram_schmidt(
    vectors: Sequence[jax.Array],
    inner: Callable[[jax.Array, jax.Array], jax.Array],
) -> list[jax.Array]:
    """Orthonormalize ``vectors`` in order with respect to ``inner``."""
    basis: list[jax.Array] = []
    for v in vectors:
        w = v
        for b in basis:
            w = w - inner(b, w) * b
        basis.append(w / jnp.sqrt(inner(w, w)))
    return basis


def qr_positive(a: jax.Array) -> tuple[jax.Array, jax.Array]:
    """Reduced QR decomposition with a non-negative diagonal in R."""
    q, r = jnp.linalg.qr(a)
    d = jnp.diagonal(r, axis1=-2, axis2=-1)
    signs = jnp.where(d == 0, 1.0, d / jnp.abs(jnp.where(d == 0, 1.0, d)))
    return q * signs[..., None, :], jnp.conj(signs)[..., :, None] * r


def random_stiefel(
    key: jax.Array, n: int, k: int, *, dtype: jnp.dtype = jnp.float64
) -> jax.Array:
    """Haar-distributed n×k matrix with orthonormal columns."""
    if jnp.issubdtype(dtype, jnp.complexfloating):
        real_dtype = jnp.finfo(dtype).dtype
        key_re, key_im = jax.random.split(key)
        a = jax.random.normal(key_re, (n, k), dtype=real_dtype) + 1j * jax.random.normal(
            key_im, (n, k), dtype=real_dtype
        )
        a = a.astype(dtype)
    else:
        a = jax.random.normal(key, (n, k), dtype=dtype)
    q, _ = qr_positive(a)
    return q


def random_orthogonal(
    key: jax.Array, n: int, *, special: bool = False, dtype: jnp.dtype = jnp.float64
) -> jax.Array:
    """Haar-distributed element of O(n), or of SO(n) when ``special``."""
    q = random_stiefel(key, n, n, dtype=dtype)
    if special:
        flip = jnp.where(jnp.linalg.det(q) < 0, -1.0, 1.0).astype(dtype)
        q = q.at[:, 0].multiply(flip)
    return q
