from .manifold_types import Manifold, EuclideanSpace
from .product_manifold import ProductManifold, ProductPoint
from .rotations import GeneralUnitaryMatrices, Rotations, OrthogonalMatrices
from .hyperbolic import Hyperbolic
from .fixed_rank import FixedRankMatrices, SVDMPoint, UMVTangentVector
from .cholesky_space import CholeskySpace
from .positive_numbers import (
    PositiveNumbers,
    PositiveVectors,
    PositiveMatrices,
    PositiveArrays,
)


__all__ = [
    "Manifold",
    "EuclideanSpace",
    "ProductManifold",
    "ProductPoint",
    "GeneralUnitaryMatrices",
    "Rotations",
    "OrthogonalMatrices",
    "Hyperbolic",
    "FixedRankMatrices",
    "SVDMPoint",
    "UMVTangentVector",
    "CholeskySpace",
    "PositiveNumbers",
    "PositiveVectors",
    "PositiveMatrices",
    "PositiveArrays",
]
