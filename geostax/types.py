"""Top level types for Geostax.

Public API:
- Manifolds: Manifold, EuclideanSpace, ProductManifold
- Groups: GroupManifold, GroupOperation, GroupAction, Identity
- Dispatch: Trait, TraitList, CapabilityTable
- Point and vector containers: ProductPoint, SVDMPoint, UMVTangentVector
"""

from geostax.manifolds.manifold_types import Manifold, EuclideanSpace
from geostax.manifolds.product_manifold import ProductManifold, ProductPoint
from geostax.manifolds.fixed_rank import SVDMPoint, UMVTangentVector
from geostax.groups.group_manifold import GroupManifold
from geostax.groups.group_types import GroupAction, GroupOperation, Identity
from geostax.dispatch import Trait, TraitList, CapabilityTable

__all__ = [
    # Manifolds
    "Manifold",
    "EuclideanSpace",
    "ProductManifold",
    # Groups
    "GroupManifold",
    "GroupOperation",
    "GroupAction",
    "Identity",
    # Dispatch
    "Trait",
    "TraitList",
    "CapabilityTable",
    # Containers
    "ProductPoint",
    "SVDMPoint",
    "UMVTangentVector",
]
