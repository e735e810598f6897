import jax
import jax.numpy as jnp
import jax.random as jrandom
import pytest

from geostax.errors import DimensionMismatchError, DomainError
from geostax.manifolds import FixedRankMatrices, SVDMPoint, UMVTangentVector
from tests.conftest import max_abs


STRICT_ATOL: float = 1e-10

SHAPES: list = [
    pytest.param((5, 4, 2), id="5x4-rank2"),
    pytest.param((3, 6, 1), id="3x6-rank1"),
    pytest.param((6, 6, 3), id="6x6-rank3"),
]


def _well_conditioned_point(M: FixedRankMatrices, seed: int) -> SVDMPoint:
    p = M.sample(jrandom.PRNGKey(seed))
    return SVDMPoint(p.U, jnp.linspace(2.0, 1.0, M.k), p.Vt)


def _dense_projection(p: SVDMPoint, A: jax.Array) -> jax.Array:
    """``U Uᴴ A + A V Vᴴ - U Uᴴ A V Vᴴ``."""
    PU = p.U @ p.U.conj().T
    PV = p.Vt.conj().T @ p.Vt
    return PU @ A + A @ PV - PU @ A @ PV


def test_rank_must_fit() -> None:
    """k must lie in (0, min(m, n)]."""
    with pytest.raises(ValueError):
        FixedRankMatrices(3, 4, 0)
    with pytest.raises(ValueError):
        FixedRankMatrices(3, 4, 4)
    with pytest.raises(ValueError):
        FixedRankMatrices(3, 4, 2, "quaternion")


@pytest.mark.parametrize("shape", SHAPES)
def test_dimension(shape: tuple[int, int, int]) -> None:
    """(m + n - k) k real dimensions, doubled over the complex numbers."""
    m, n, k = shape
    assert FixedRankMatrices(m, n, k).manifold_dimension() == (m + n - k) * k
    assert FixedRankMatrices(m, n, k, "complex").manifold_dimension() == 2 * (m + n - k) * k
    assert FixedRankMatrices(m, n, k).representation_size() == (m, n)


@pytest.mark.parametrize("shape", SHAPES)
def test_samples_are_valid(shape: tuple[int, int, int]) -> None:
    """Sampled points and tangent vectors pass the membership checks."""
    M = FixedRankMatrices(*shape)
    p = M.sample(jrandom.PRNGKey(0))
    X = M.sample(jrandom.PRNGKey(1), at=p)
    assert M.is_point(p, error="raise")
    assert M.is_vector(p, X, error="raise")
    assert bool(jnp.all(p.S[:-1] >= p.S[1:])), "singular values should be sorted"
    assert M.is_point(M.embed(p)), "dense embedding should have rank k"


def test_check_point_failures() -> None:
    """Wrong factor sizes, non-orthonormal factors, zero singular values and wrong rank are reported."""
    M = FixedRankMatrices(5, 4, 2)
    p = M.sample(jrandom.PRNGKey(2))
    assert isinstance(M.check_size(SVDMPoint(p.U[:, :1], p.S, p.Vt)), DimensionMismatchError)
    err = M.check_point(SVDMPoint(2.0 * p.U, p.S, p.Vt))
    assert isinstance(err, DomainError) and err.constraint == "U^H U = I"
    err = M.check_point(SVDMPoint(p.U, p.S, 2.0 * p.Vt))
    assert isinstance(err, DomainError) and err.constraint == "V^H V = I"
    err = M.check_point(SVDMPoint(p.U, p.S.at[-1].set(0.0), p.Vt))
    assert isinstance(err, DomainError) and err.constraint == "S > 0"
    full = jrandom.normal(jrandom.PRNGKey(3), (5, 4))
    err = M.check_point(full)
    assert isinstance(err, DomainError) and err.value == 4


def test_check_vector_failures() -> None:
    """Factors that are not orthogonal to the base point are rejected."""
    M = FixedRankMatrices(5, 4, 2)
    p = M.sample(jrandom.PRNGKey(4))
    X = M.sample(jrandom.PRNGKey(5), at=p)
    err = M.check_vector(p, UMVTangentVector(p.U, X.M, X.Vt))
    assert isinstance(err, DomainError) and err.constraint == "U_X ⟂ U"
    err = M.check_vector(p, UMVTangentVector(X.U, X.M, p.Vt))
    assert isinstance(err, DomainError) and err.constraint == "V_X ⟂ V"
    err = M.check_vector(p, UMVTangentVector(X.U, X.M[:1], X.Vt))
    assert isinstance(err, DomainError) and err.constraint == "shape"


def test_from_matrix_truncates() -> None:
    """from_matrix with k recovers a rank-k point from its dense form."""
    M = FixedRankMatrices(5, 4, 2)
    p = M.sample(jrandom.PRNGKey(6))
    q = SVDMPoint.from_matrix(M.embed(p), k=2)
    assert M.is_point(q)
    assert M.isapprox(p, q)
    assert M.check_size(SVDMPoint.from_matrix(M.embed(p))) is not None


@pytest.mark.parametrize("shape", SHAPES)
def test_project_matches_dense_formula(shape: tuple[int, int, int]) -> None:
    """embed ∘ project is the orthogonal projection onto the tangent space."""
    M = FixedRankMatrices(*shape)
    p = M.sample(jrandom.PRNGKey(7))
    A = jrandom.normal(jrandom.PRNGKey(8), (M.m, M.n))
    X = M.project(p, A)
    assert M.is_vector(p, X, atol=1e-10)
    assert max_abs(M.embed(p, X) - _dense_projection(p, A)) < STRICT_ATOL
    assert max_abs(M.embed(p, M.project(p, M.embed(p, X))) - M.embed(p, X)) < STRICT_ATOL


@pytest.mark.parametrize("shape", SHAPES)
def test_inner_matches_frobenius(shape: tuple[int, int, int]) -> None:
    """The factor inner product equals the Frobenius product of the embedded vectors."""
    M = FixedRankMatrices(*shape)
    p = M.sample(jrandom.PRNGKey(9))
    X = M.sample(jrandom.PRNGKey(10), at=p)
    Y = M.sample(jrandom.PRNGKey(11), at=p)
    dense = jnp.sum(M.embed(p, X) * M.embed(p, Y))
    assert abs(float(M.inner(p, X, Y)) - float(dense)) < STRICT_ATOL
    assert abs(float(M.norm(p, X)) ** 2 - float(M.inner(p, X, X))) < STRICT_ATOL
    assert float(M.norm(p, M.zero_vector(p))) == 0.0


@pytest.mark.parametrize("method", ["polar", "orthographic"])
@pytest.mark.parametrize("shape", SHAPES)
def test_retraction_is_first_order(shape: tuple[int, int, int], method: str) -> None:
    """‖R_p(tX) - (p + tX)‖ shrinks quadratically in t."""
    M = FixedRankMatrices(*shape)
    p = _well_conditioned_point(M, 12)
    X = M.sample(jrandom.PRNGKey(13), at=p)
    assert max_abs(M.embed(M.retract(p, M.zero_vector(p), method=method)) - M.embed(p)) < 1e-12

    def err(t: float) -> float:
        q = M.retract(p, X, t, method=method)
        assert M.is_point(q, atol=1e-10)
        return float(jnp.linalg.norm(M.embed(q) - M.embed(p) - t * M.embed(p, X)))

    e1, e2 = err(1e-2), err(1e-3)
    assert e2 < 1e-4
    assert e2 < 0.02 * e1, f"{method} retraction is not first order: {e1:.3e} -> {e2:.3e}"


def test_orthographic_inverse_retract_is_exact() -> None:
    """The orthographic retraction differs from p + X by a normal vector only."""
    M = FixedRankMatrices(5, 4, 2)
    p = _well_conditioned_point(M, 14)
    X = M.sample(jrandom.PRNGKey(15), at=p, sigma=0.3)
    q = M.retract(p, X, method="orthographic")
    Y = M.inverse_retract(p, q, method="orthographic")
    assert isinstance(Y, UMVTangentVector)
    assert max_abs(M.embed(p, Y) - M.embed(p, X)) < 1e-10
    with pytest.raises(ValueError):
        M.inverse_retract(p, q, method="exp")
    with pytest.raises(ValueError):
        M.retract(p, X, method="exp")


def test_vector_transport_is_tangent() -> None:
    """Transport by projection lands in the tangent space at q."""
    M = FixedRankMatrices(5, 4, 2)
    p = M.sample(jrandom.PRNGKey(16))
    q = M.sample(jrandom.PRNGKey(17))
    X = M.sample(jrandom.PRNGKey(18), at=p)
    Y = M.vector_transport_to(p, X, q)
    assert M.is_vector(q, Y, atol=1e-10)
    assert float(M.norm(q, Y)) <= float(M.norm(p, X)) + STRICT_ATOL


def test_tangent_vector_arithmetic() -> None:
    """UMV vectors add and scale factor-wise, consistently with embed."""
    M = FixedRankMatrices(5, 4, 2)
    p = M.sample(jrandom.PRNGKey(19))
    X = M.sample(jrandom.PRNGKey(20), at=p)
    Y = M.sample(jrandom.PRNGKey(21), at=p)
    lhs = M.embed(p, 2.0 * X - Y / 2.0 + (-X))
    rhs = M.embed(p, X) - 0.5 * M.embed(p, Y)
    assert max_abs(lhs - rhs) < STRICT_ATOL
    leaves = jax.tree_util.tree_leaves(X * 3.0)
    assert len(leaves) == 3


def test_riemannian_hessian_shape_and_tangency() -> None:
    """The Hessian is a tangent vector; without a gradient it is the projected Euclidean Hessian."""
    M = FixedRankMatrices(5, 4, 2)
    p = _well_conditioned_point(M, 22)
    X = M.sample(jrandom.PRNGKey(23), at=p)
    G = jrandom.normal(jrandom.PRNGKey(24), (5, 4))
    H = jrandom.normal(jrandom.PRNGKey(25), (5, 4))
    hess = M.riemannian_hessian(p, G, H, X)
    assert (hess.U.shape, hess.M.shape, hess.Vt.shape) == ((5, 2), (2, 2), (2, 4))
    assert M.is_vector(p, hess, atol=1e-10)
    plain = M.riemannian_hessian(p, jnp.zeros((5, 4)), H, X)
    assert max_abs(M.embed(p, plain) - M.embed(p, M.project(p, H))) < STRICT_ATOL


@pytest.mark.parametrize("method", ["polar", "orthographic"])
def test_inverse_retract_is_first_order(method: str) -> None:
    """inverse_retract(p, retract(p, tX)) agrees with tX up to higher order in t."""
    M = FixedRankMatrices(6, 5, 2)
    p = _well_conditioned_point(M, 26)
    X = M.sample(jrandom.PRNGKey(27), at=p, sigma=0.3)

    def err(t: float) -> float:
        q = M.retract(p, t * X, method=method)
        Y = M.inverse_retract(p, q, method=method)
        return max_abs(M.embed(p, Y) - t * M.embed(p, X))

    e1, e2 = err(1e-2), err(1e-3)
    assert e2 < 1e-6
    assert e2 < 0.02 * e1 or e2 < 1e-13, f"{method} inverse retraction: {e1:.3e} -> {e2:.3e}"


def test_riemannian_hessian_matches_finite_differences() -> None:
    """For f(A) = ½‖A - B‖², the Hessian is the projected derivative of the Riemannian gradient."""
    M = FixedRankMatrices(5, 4, 2)
    p = _well_conditioned_point(M, 28)
    X = M.sample(jrandom.PRNGKey(29), at=p, sigma=0.5)
    B = jrandom.normal(jrandom.PRNGKey(30), (5, 4), dtype=jnp.float64)

    def riemannian_gradient(q: SVDMPoint) -> jax.Array:
        return M.embed(q, M.project(q, M.embed(q) - B))

    t = 1e-5
    ahead = riemannian_gradient(M.retract(p, t * X, method="orthographic"))
    behind = riemannian_gradient(M.retract(p, -t * X, method="orthographic"))
    expected = M.embed(p, M.project(p, (ahead - behind) / (2 * t)))
    hess = M.riemannian_hessian(p, M.embed(p) - B, M.embed(p, X), X)
    err = max_abs(M.embed(p, hess) - expected)
    assert err < 1e-7, f"Riemannian Hessian differs from finite differences by {err:.3e}"


def test_complex_field() -> None:
    """Complex points carry complex factors and a real inner product."""
    M = FixedRankMatrices(4, 3, 2, "complex")
    p = M.sample(jrandom.PRNGKey(26))
    assert jnp.iscomplexobj(p.U) and not jnp.iscomplexobj(p.S)
    X = M.sample(jrandom.PRNGKey(27), at=p)
    assert M.is_point(p) and M.is_vector(p, X)
    ip = M.inner(p, X, X)
    assert not jnp.iscomplexobj(ip) and float(ip) > 0.0


def test_metric_constants() -> None:
    """FixedRankMatrices is not flat and has zero injectivity radius."""
    M = FixedRankMatrices(5, 4, 2)
    assert not M.is_flat()
    assert M.injectivity_radius() == 0.0
