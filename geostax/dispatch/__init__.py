from .traits import (
    Trait,
    TraitList,
    merge_traits,
    is_metric_function,
    Metric,
    EuclideanMetric,
    MinkowskiMetric,
    LogCholeskyMetric,
    IsDefaultMetric,
    IsEmbeddedManifold,
    IsExplicitDecorator,
    IsGroupManifold,
    HasBiinvariantMetric,
)
from .capabilities import CapabilityTable, resolve, write_into, into_variant


__all__ = [
    "Trait",
    "TraitList",
    "merge_traits",
    "is_metric_function",
    "Metric",
    "EuclideanMetric",
    "MinkowskiMetric",
    "LogCholeskyMetric",
    "IsDefaultMetric",
    "IsEmbeddedManifold",
    "IsExplicitDecorator",
    "IsGroupManifold",
    "HasBiinvariantMetric",
    "CapabilityTable",
    "resolve",
    "write_into",
    "into_variant",
]
