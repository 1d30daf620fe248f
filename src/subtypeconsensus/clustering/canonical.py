"""
Label canonicalization: arbitrary group indices -> semantic subtypes.

Clustering backends number their groups arbitrarily. Canonicalization gives
each group a fixed meaning from its centroid in normalized feature space:

    metabolic score     = centroid[BMI] + centroid[Ins0] + centroid[Glu0]
    reproductive score  = centroid[SHBG] + centroid[LH] + centroid[FSH]

    group with max metabolic score     -> Metabolic
    group with max reproductive score  -> Reproductive
    remaining group                    -> Indeterminate

Collision policy:
    If one group maximizes both scores the assignments collide. The
    metabolic assignment takes priority: that group is Metabolic, and
    Reproductive goes to the highest reproductive score among the other
    groups. The collision is recorded on the result and logged. With
    on_collision="raise" a LabelCollisionError is raised instead.

Exact score ties resolve to the lowest group index.

Examples:
    >>> canonicalizer = LabelCanonicalizer()
    >>> labeling = canonicalizer.canonicalize(features, partition)
    >>> labeling.group_labels
    {0: <SemanticLabel.REPRODUCTIVE: 'Reproductive'>,
     1: <SemanticLabel.INDETERMINATE: 'Indeterminate'>,
     2: <SemanticLabel.METABOLIC: 'Metabolic'>}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from subtypeconsensus.clustering.base import Partition, group_centroids
from subtypeconsensus.core.errors import LabelCollisionError
from subtypeconsensus.core.features import FeatureMatrix
from subtypeconsensus.core.labels import SemanticLabel
from subtypeconsensus.core.traits import METABOLIC_FEATURES, REPRODUCTIVE_FEATURES

logger = logging.getLogger(__name__)

__all__ = ['CanonicalLabeling', 'LabelCanonicalizer', 'assign_group_labels']


@dataclass(frozen=True)
class CanonicalLabeling:
    """Semantic labels for one backend's partition.

    Attributes:
        backend: Backend that produced the partition
        group_labels: Group index -> SemanticLabel
        subject_labels: SemanticLabel per subject, in matrix row order
        centroids: Group centroids (k x n_features)
        metabolic_scores: Metabolic score per group
        reproductive_scores: Reproductive score per group
        collision: True if one group maximized both scores
    """

    backend: str
    group_labels: Dict[int, SemanticLabel]
    subject_labels: Tuple[SemanticLabel, ...]
    centroids: NDArray[np.float64]
    metabolic_scores: NDArray[np.float64]
    reproductive_scores: NDArray[np.float64]
    collision: bool = False

    def group_for(self, label: SemanticLabel) -> int | None:
        """Group index carrying a label, or None if no group has it."""
        for group, assigned in self.group_labels.items():
            if assigned is label:
                return group
        return None

    def label_counts(self) -> Dict[str, int]:
        counts = {label.value: 0 for label in SemanticLabel}
        for label in self.subject_labels:
            counts[label.value] += 1
        return counts

    def to_series(self, subject_ids: pd.Index) -> pd.Series:
        """Labels as strings, indexed by subject ID."""
        return pd.Series(
            [label.value for label in self.subject_labels],
            index=subject_ids,
            name=self.backend,
            dtype=object,
        )

    def score_table(self, feature_names: Sequence[str]) -> pd.DataFrame:
        """Centroids, scores and labels per group (one row per group)."""
        table = pd.DataFrame(self.centroids, columns=list(feature_names))
        table.index.name = "group"
        table["metabolic_score"] = self.metabolic_scores
        table["reproductive_score"] = self.reproductive_scores
        table["label"] = [self.group_labels[g].value for g in range(len(table))]
        return table


def assign_group_labels(
    metabolic_scores: NDArray[np.float64],
    reproductive_scores: NDArray[np.float64],
) -> Tuple[Dict[int, SemanticLabel], bool]:
    """
    Map group indices to semantic labels from their scores.

    Returns:
        Tuple of (group -> label mapping, collision flag). Every group gets
        exactly one label; Metabolic and Reproductive are each used once,
        the remaining groups are Indeterminate.
    """
    metabolic_scores = np.asarray(metabolic_scores, dtype=np.float64)
    reproductive_scores = np.asarray(reproductive_scores, dtype=np.float64)
    k = metabolic_scores.shape[0]
    if k < 2:
        raise ValueError(f"Canonicalization needs at least 2 groups, got {k}")
    if reproductive_scores.shape[0] != k:
        raise ValueError("Score arrays must have one entry per group")

    metabolic_group = int(np.argmax(metabolic_scores))
    reproductive_group = int(np.argmax(reproductive_scores))
    collision = metabolic_group == reproductive_group

    if collision:
        masked = reproductive_scores.copy()
        masked[metabolic_group] = -np.inf
        reproductive_group = int(np.argmax(masked))

    labels = {g: SemanticLabel.INDETERMINATE for g in range(k)}
    labels[metabolic_group] = SemanticLabel.METABOLIC
    labels[reproductive_group] = SemanticLabel.REPRODUCTIVE
    return labels, collision


class LabelCanonicalizer:
    """
    Assigns SemanticLabels to the groups of a Partition.

    Params:
        on_collision: "priority" (metabolic assignment wins, collision is
            recorded) or "raise" (LabelCollisionError)
    """

    _VALID_POLICIES = frozenset({"priority", "raise"})

    def __init__(self, on_collision: str = "priority"):
        if on_collision not in self._VALID_POLICIES:
            raise ValueError(
                f"Invalid collision policy '{on_collision}'. "
                f"Valid: {sorted(self._VALID_POLICIES)}"
            )
        self.on_collision = on_collision

    def canonicalize(self, features: FeatureMatrix, partition: Partition) -> CanonicalLabeling:
        """
        Label every group of a partition and propagate labels to subjects.

        Raises:
            KeyError: If a score feature is missing from the matrix
            LabelCollisionError: On collision when on_collision="raise"
        """
        centroids = group_centroids(features.data, partition)

        names = list(features.feature_names)
        missing = [f for f in METABOLIC_FEATURES + REPRODUCTIVE_FEATURES if f not in names]
        if missing:
            raise KeyError(f"Score features missing from matrix: {missing}")
        metabolic_idx = [names.index(f) for f in METABOLIC_FEATURES]
        reproductive_idx = [names.index(f) for f in REPRODUCTIVE_FEATURES]

        metabolic_scores = centroids[:, metabolic_idx].sum(axis=1)
        reproductive_scores = centroids[:, reproductive_idx].sum(axis=1)

        group_labels, collision = assign_group_labels(metabolic_scores, reproductive_scores)

        if collision and self.on_collision == "raise":
            raise LabelCollisionError(partition.backend, int(np.argmax(metabolic_scores)))

        labeling = CanonicalLabeling(
            backend=partition.backend,
            group_labels=group_labels,
            subject_labels=tuple(group_labels[int(g)] for g in partition.assignment),
            centroids=centroids,
            metabolic_scores=metabolic_scores,
            reproductive_scores=reproductive_scores,
            collision=collision,
        )

        if collision:
            logger.warning(
                f"Backend '{partition.backend}': group "
                f"{labeling.group_for(SemanticLabel.METABOLIC)} maximizes both scores; "
                f"labeled Metabolic, Reproductive reassigned to group "
                f"{labeling.group_for(SemanticLabel.REPRODUCTIVE)}"
            )

        logger.info(
            f"Backend '{partition.backend}' labels: "
            + ", ".join(f"group {g} -> {label.value}" for g, label in sorted(group_labels.items()))
        )

        return labeling
