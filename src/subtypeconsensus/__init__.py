"""
SubtypeConsensus - Consensus subtype assignment for clinical cohorts

Normalizes age- and assay-confounded trait measurements, clusters subjects
with three independent algorithms, maps each algorithm's arbitrary clusters
to Metabolic / Reproductive / Indeterminate subtypes, and votes on a
consensus subtype per subject.
"""

__version__ = "0.1.0"

from subtypeconsensus.core.features import FeatureMatrix
from subtypeconsensus.core.labels import SemanticLabel
from subtypeconsensus.core.errors import (
    SubtypingError,
    InsufficientDataError,
    DegenerateColumnError,
    LabelCollisionError,
)
from subtypeconsensus.config import PipelineConfig
from subtypeconsensus.pipeline import SubtypingPipeline, PipelineResult, ConsensusRecord

__all__ = [
    "FeatureMatrix",
    "SemanticLabel",
    "SubtypingError",
    "InsufficientDataError",
    "DegenerateColumnError",
    "LabelCollisionError",
    "PipelineConfig",
    "SubtypingPipeline",
    "PipelineResult",
    "ConsensusRecord",
]
