from .group_types import (
    GroupOperation,
    MultiplicationOperation,
    AdditionOperation,
    SemidirectProductOperation,
    GroupVectorRepresentation,
    LeftInvariantRepresentation,
    HybridTangentRepresentation,
    Identity,
    GroupAction,
)
from .group_manifold import GroupManifold
from .general_unitary_groups import GeneralUnitaryMultiplicationGroup, Orthogonal, SpecialOrthogonal
from .translation_group import TranslationGroup
from .group_actions import RotationAction
from .semidirect_product_group import SemidirectProductGroup, SpecialEuclidean


__all__ = [
    "GroupOperation",
    "MultiplicationOperation",
    "AdditionOperation",
    "SemidirectProductOperation",
    "GroupVectorRepresentation",
    "LeftInvariantRepresentation",
    "HybridTangentRepresentation",
    "Identity",
    "GroupAction",
    "GroupManifold",
    "GeneralUnitaryMultiplicationGroup",
    "Orthogonal",
    "SpecialOrthogonal",
    "TranslationGroup",
    "RotationAction",
    "SemidirectProductGroup",
    "SpecialEuclidean",
]
