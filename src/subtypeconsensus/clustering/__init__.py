"""
Clustering, label canonicalization and consensus.

Components:
    ClusteringBackend: contract every clustering algorithm is wrapped in
    HierarchicalBackend / KMeansBackend / GaussianMixtureBackend: the three
        backend families (connectivity, centroid, distribution)
    LabelCanonicalizer: maps a Partition's arbitrary group indices to
        Metabolic / Reproductive / Indeterminate
    majority_consensus / strict_consensus: per-subject voting rules

Workflow:
    1. Run each backend on the same normalized FeatureMatrix
    2. Canonicalize every Partition (always, on every run)
    3. Wait for all three labelings, then vote per subject
"""

from subtypeconsensus.clustering.base import (
    Partition,
    ClusteringBackend,
    group_centroids,
    DEFAULT_K,
)
from subtypeconsensus.clustering.backends import (
    HierarchicalConfig,
    KMeansConfig,
    GaussianMixtureConfig,
    HierarchicalBackend,
    KMeansBackend,
    GaussianMixtureBackend,
    default_backends,
)
from subtypeconsensus.clustering.canonical import (
    CanonicalLabeling,
    LabelCanonicalizer,
    assign_group_labels,
)
from subtypeconsensus.clustering.consensus import (
    ConsensusMethod,
    majority_consensus,
    strict_consensus,
    consensus_function,
    consensus_frame,
    consensus_counts,
    agreement_table,
    NO_CONSENSUS,
)

__all__ = [
    'Partition',
    'ClusteringBackend',
    'group_centroids',
    'DEFAULT_K',
    'HierarchicalConfig',
    'KMeansConfig',
    'GaussianMixtureConfig',
    'HierarchicalBackend',
    'KMeansBackend',
    'GaussianMixtureBackend',
    'default_backends',
    'CanonicalLabeling',
    'LabelCanonicalizer',
    'assign_group_labels',
    'ConsensusMethod',
    'majority_consensus',
    'strict_consensus',
    'consensus_function',
    'consensus_frame',
    'consensus_counts',
    'agreement_table',
    'NO_CONSENSUS',
]
