"""
Core data structures shared by every pipeline stage.

1. FeatureMatrix: immutable normalized feature matrix (subjects x features)
2. SemanticLabel: tagged enumeration of subtype labels
3. TraitDescriptor / FEATURES: the fixed set of eight clustering features
4. SubjectTransform: base class for pure subject-table cleaning stages
5. Error taxonomy for fatal pipeline failures
"""

from subtypeconsensus.core.errors import (
    SubtypingError,
    InsufficientDataError,
    DegenerateColumnError,
    LabelCollisionError,
)
from subtypeconsensus.core.features import FeatureMatrix
from subtypeconsensus.core.labels import SemanticLabel
from subtypeconsensus.core.traits import (
    TraitDescriptor,
    FEATURES,
    TRAITS,
    METABOLIC_FEATURES,
    REPRODUCTIVE_FEATURES,
    feature_names,
)
from subtypeconsensus.core.transform import SubjectTransform, StageResult

__all__ = [
    'SubtypingError',
    'InsufficientDataError',
    'DegenerateColumnError',
    'LabelCollisionError',
    'FeatureMatrix',
    'SemanticLabel',
    'TraitDescriptor',
    'FEATURES',
    'TRAITS',
    'METABOLIC_FEATURES',
    'REPRODUCTIVE_FEATURES',
    'feature_names',
    'SubjectTransform',
    'StageResult',
]
