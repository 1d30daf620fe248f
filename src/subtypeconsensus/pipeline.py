"""
Pipeline orchestrator: raw subjects -> consensus subtype per subject.

    Normalizer
        -> {hierarchical, kmeans, gmm} backends    (concurrent, independent)
        -> LabelCanonicalizer per backend          (inside each backend task)
        -> barrier: all three labelings complete
        -> majority + strict consensus per subject

The normalized FeatureMatrix is read-only and shared by the backend tasks
without locking. A run either returns a complete PipelineResult or raises;
no partial result is ever returned.

Examples:
    >>> from subtypeconsensus.pipeline import SubtypingPipeline
    >>> from subtypeconsensus.config import PipelineConfig
    >>>
    >>> pipeline = SubtypingPipeline(PipelineConfig(seed=7))
    >>> result = pipeline.run(subjects)
    >>> result.to_frame().head()
    >>> result.summary()["consensus_majority"]
    {'Metabolic': 120, 'Reproductive': 98, 'Indeterminate': 160, 'no_consensus': 34}
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd

from subtypeconsensus.clustering.backends import default_backends
from subtypeconsensus.clustering.base import ClusteringBackend, Partition
from subtypeconsensus.clustering.canonical import CanonicalLabeling, LabelCanonicalizer
from subtypeconsensus.clustering.consensus import (
    agreement_table,
    consensus_counts,
    majority_consensus,
    strict_consensus,
)
from subtypeconsensus.config import PipelineConfig
from subtypeconsensus.core.features import FeatureMatrix
from subtypeconsensus.core.labels import SemanticLabel, label_to_str
from subtypeconsensus.core.traits import ID_COLUMN
from subtypeconsensus.stats.normalization import Normalizer, QCReport
from subtypeconsensus.stats.residuals import ResidualFit

logger = logging.getLogger(__name__)

__all__ = [
    'ConsensusRecord',
    'PipelineResult',
    'SubtypingPipeline',
    'MAJORITY_COLUMN',
    'STRICT_COLUMN',
]

MAJORITY_COLUMN = "consensus_majority"
STRICT_COLUMN = "consensus_strict"


@dataclass(frozen=True)
class ConsensusRecord:
    """Terminal per-subject output.

    Attributes:
        subject_id: Opaque subject identity
        features: Normalized feature values (feature name -> value)
        backend_labels: Backend name -> SemanticLabel
        majority: Majority consensus label, None if no consensus
        strict: Unanimous consensus label, None if no consensus
    """

    subject_id: Any
    features: Dict[str, float]
    backend_labels: Dict[str, SemanticLabel]
    majority: Optional[SemanticLabel]
    strict: Optional[SemanticLabel]

    @property
    def has_majority(self) -> bool:
        return self.majority is not None

    @property
    def has_strict(self) -> bool:
        return self.strict is not None

    def to_dict(self) -> Dict[str, Any]:
        """Flat mapping: ID, features, backend labels, both consensus labels."""
        row: Dict[str, Any] = {ID_COLUMN: self.subject_id}
        row.update(self.features)
        row.update({name: label.value for name, label in self.backend_labels.items()})
        row[MAJORITY_COLUMN] = label_to_str(self.majority)
        row[STRICT_COLUMN] = label_to_str(self.strict)
        return row


@dataclass(frozen=True)
class PipelineResult:
    """Complete output of one pipeline run.

    Attributes:
        records: One ConsensusRecord per retained subject, in matrix order
        features: Normalized feature matrix the backends consumed
        qc: Data-quality counts from the Normalizer
        fits: Confound regression diagnostics per feature
        partitions: Backend name -> Partition
        labelings: Backend name -> CanonicalLabeling
        backend_order: Backend names in output column order
    """

    records: List[ConsensusRecord]
    features: FeatureMatrix
    qc: QCReport
    fits: List[ResidualFit]
    partitions: Dict[str, Partition]
    labelings: Dict[str, CanonicalLabeling]
    backend_order: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def n_subjects(self) -> int:
        return len(self.records)

    @property
    def collisions(self) -> List[str]:
        """Backends whose canonicalization hit a label collision."""
        return [name for name in self.backend_order if self.labelings[name].collision]

    def to_frame(self) -> pd.DataFrame:
        """
        Flat table for reporting collaborators.

        Columns: ID, 8 features, one label column per backend,
        consensus_majority, consensus_strict. No-consensus cells are None.
        """
        columns = (
            [ID_COLUMN]
            + list(self.features.feature_names)
            + list(self.backend_order)
            + [MAJORITY_COLUMN, STRICT_COLUMN]
        )
        return pd.DataFrame([record.to_dict() for record in self.records], columns=columns)

    def label_frame(self) -> pd.DataFrame:
        """Backend labels (strings) indexed by subject ID."""
        return pd.DataFrame(
            {name: self.labelings[name].to_series(self.features.subject_ids)
             for name in self.backend_order}
        )

    def agreement(self, first: str, second: str) -> pd.DataFrame:
        """Cross-tabulation of two backends' labels."""
        labels = self.label_frame()
        return agreement_table(labels[first], labels[second])

    def summary(self) -> Dict[str, Any]:
        """JSON-compatible run summary."""
        return {
            "n_subjects": self.n_subjects,
            "qc": self.qc.to_dict(),
            "fits": [fit.to_dict() for fit in self.fits],
            "backends": {
                name: {
                    "group_sizes": self.partitions[name].group_sizes,
                    "group_labels": {
                        str(g): label.value
                        for g, label in self.labelings[name].group_labels.items()
                    },
                    "label_counts": self.labelings[name].label_counts(),
                    "collision": self.labelings[name].collision,
                    "centroids": {
                        str(g): row
                        for g, row in self.labelings[name]
                        .score_table(self.features.feature_names)
                        .to_dict(orient="index")
                        .items()
                    },
                }
                for name in self.backend_order
            },
            MAJORITY_COLUMN: consensus_counts([r.majority for r in self.records]),
            STRICT_COLUMN: consensus_counts([r.strict for r in self.records]),
        }


class SubtypingPipeline:
    """
    Sequences Normalizer -> backends -> canonicalization -> consensus.

    Holds configuration only; every run() is independent.

    Args:
        config: Pipeline configuration
        backends: Optional replacement backends keyed by name. Any object
            honoring the ClusteringBackend contract can be swapped in.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        backends: Optional[Mapping[str, ClusteringBackend]] = None,
    ):
        self.config = config or PipelineConfig()
        if backends is None:
            backends = default_backends(
                hierarchical=self.config.hierarchical,
                kmeans=self.config.kmeans,
                gmm=self.config.gmm,
            )
        if not backends:
            raise ValueError("At least one clustering backend is required")
        self.backends: Dict[str, ClusteringBackend] = dict(backends)
        self.normalizer = Normalizer(self.config.normalizer)
        self.canonicalizer = LabelCanonicalizer(on_collision=self.config.on_collision)

    def _label_backend(
        self,
        name: str,
        backend: ClusteringBackend,
        features: FeatureMatrix,
    ) -> Tuple[Partition, CanonicalLabeling]:
        partition = backend.partition(features.data, k=self.config.k, seed=self.config.seed)
        if partition.backend != name:
            partition = Partition(backend=name, assignment=partition.assignment, k=partition.k)
        labeling = self.canonicalizer.canonicalize(features, partition)
        return partition, labeling

    def label(self, features: FeatureMatrix) -> Tuple[Dict[str, Partition], Dict[str, CanonicalLabeling]]:
        """
        Run every backend + canonicalization on a normalized matrix.

        Backends run concurrently; the call returns only after all of them
        finished. The first failure is re-raised.
        """
        partitions: Dict[str, Partition] = {}
        labelings: Dict[str, CanonicalLabeling] = {}

        workers = min(self.config.max_workers, len(self.backends))
        logger.info(f"Running {len(self.backends)} clustering backends "
                    f"(k={self.config.k}, seed={self.config.seed}, workers={workers})")

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._label_backend, name, backend, features): name
                for name, backend in self.backends.items()
            }
            for future in as_completed(futures):
                name = futures[future]
                partition, labeling = future.result()
                partitions[name] = partition
                labelings[name] = labeling

        return partitions, labelings

    def run(self, subjects: pd.DataFrame) -> PipelineResult:
        """
        Execute the full pipeline.

        Args:
            subjects: Raw subject table (ID, age, BMI, 7 traits, assay columns)

        Returns:
            PipelineResult with one ConsensusRecord per retained subject

        Raises:
            ValueError: Malformed input table
            InsufficientDataError / DegenerateColumnError /
            LabelCollisionError: Fatal pipeline errors (no partial output)
        """
        normalized = self.normalizer.run(subjects)
        features = normalized.features
        logger.info(f"Normalized feature matrix: {features.n_subjects} subjects x "
                    f"{features.n_features} features")

        partitions, labelings = self.label(features)
        order = tuple(self.backends)

        feature_names = list(features.feature_names)
        records: List[ConsensusRecord] = []
        for i, subject_id in enumerate(features.subject_ids):
            votes = [labelings[name].subject_labels[i] for name in order]
            records.append(
                ConsensusRecord(
                    subject_id=subject_id,
                    features=dict(zip(feature_names, features.data[i].tolist())),
                    backend_labels=dict(zip(order, votes)),
                    majority=majority_consensus(votes),
                    strict=strict_consensus(votes),
                )
            )

        result = PipelineResult(
            records=records,
            features=features,
            qc=normalized.qc,
            fits=normalized.fits,
            partitions=partitions,
            labelings=labelings,
            backend_order=order,
        )

        summary = result.summary()
        logger.info(f"Majority consensus: {summary[MAJORITY_COLUMN]}")
        logger.info(f"Strict consensus: {summary[STRICT_COLUMN]}")
        if result.collisions:
            logger.warning(f"Label collisions resolved by metabolic priority in: "
                           f"{result.collisions}")

        return result
