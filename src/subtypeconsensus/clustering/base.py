"""
Clustering backend contract.

A backend receives the normalized feature matrix (subjects x 8 features) and
a group count k, and returns an assignment of every subject to one of k
opaque group indices. Nothing about which index means what is guaranteed,
not even across two calls of the same backend; canonicalization
(LabelCanonicalizer) must run on every Partition.

Seeded backends must be deterministic: identical input + seed yields an
identical Partition.

Examples:
    >>> class FirstFeatureSplit(ClusteringBackend):
    ...     name = "split"
    ...     def _assign(self, features, k, seed):
    ...         order = np.argsort(np.argsort(features[:, 0]))
    ...         return order * k // len(order)
    >>>
    >>> partition = FirstFeatureSplit().partition(matrix.data, k=3)
    >>> partition.group_sizes
    {0: 34, 1: 33, 2: 33}
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
from numpy.typing import NDArray

from subtypeconsensus.core.errors import InsufficientDataError

logger = logging.getLogger(__name__)

__all__ = ['Partition', 'ClusteringBackend', 'group_centroids', 'DEFAULT_K']

DEFAULT_K = 3


@dataclass(frozen=True)
class Partition:
    """Unlabeled assignment of subjects to k groups from one backend run.

    Attributes:
        backend: Name of the backend that produced the partition
        assignment: Group index per subject (n_subjects,), values in 0..k-1
        k: Number of groups

    Invariants (checked on construction):
        - every subject has exactly one index in 0..k-1
        - all k groups are non-empty
    """

    backend: str
    assignment: NDArray[np.int64]
    k: int

    def __post_init__(self):
        assignment = np.array(self.assignment, dtype=np.int64, copy=True)
        if assignment.ndim != 1:
            raise ValueError(f"assignment must be 1D, got shape {assignment.shape}")
        if self.k < 1:
            raise ValueError(f"k must be positive, got {self.k}")
        if assignment.size and (assignment.min() < 0 or assignment.max() >= self.k):
            raise ValueError(
                f"Backend '{self.backend}': group indices must lie in 0..{self.k - 1}, "
                f"got range {assignment.min()}..{assignment.max()}"
            )

        sizes = np.bincount(assignment, minlength=self.k)
        empty = [int(g) for g in np.flatnonzero(sizes == 0)]
        if empty:
            raise InsufficientDataError(
                f"Backend '{self.backend}' produced {self.k - len(empty)} non-empty groups "
                f"(expected {self.k}); empty groups: {empty}"
            )

        assignment.flags.writeable = False
        object.__setattr__(self, "assignment", assignment)

    @property
    def n_subjects(self) -> int:
        return int(self.assignment.shape[0])

    @property
    def group_sizes(self) -> Dict[int, int]:
        """Number of subjects per group index."""
        sizes = np.bincount(self.assignment, minlength=self.k)
        return {g: int(n) for g, n in enumerate(sizes)}

    def members(self, group: int) -> NDArray[np.int64]:
        """Row indices of subjects in one group."""
        return np.flatnonzero(self.assignment == group)


def group_centroids(features: NDArray[np.float64], partition: Partition) -> NDArray[np.float64]:
    """
    Mean feature vector per group.

    Args:
        features: Matrix the partition was computed on (n_subjects x n_features)
        partition: Partition of the same subjects

    Returns:
        Array (k x n_features); row g is the centroid of group g
    """
    features = np.asarray(features, dtype=np.float64)
    if features.shape[0] != partition.n_subjects:
        raise ValueError(
            f"features has {features.shape[0]} rows but partition covers "
            f"{partition.n_subjects} subjects"
        )
    centroids = np.zeros((partition.k, features.shape[1]), dtype=np.float64)
    for g in range(partition.k):
        centroids[g] = features[partition.assignment == g].mean(axis=0)
    return centroids


class ClusteringBackend(ABC):
    """
    Polymorphic clustering capability.

    Subclasses implement _assign(); partition() validates the input,
    wraps the raw assignment in a Partition and enforces its invariants.

    Attributes:
        name: Short backend identifier used as a column name in outputs
        seeded: Whether the backend consumes a seed
    """

    name: str = "backend"
    seeded: bool = False

    def partition(
        self,
        features: NDArray[np.float64],
        k: int = DEFAULT_K,
        seed: Optional[int] = None,
    ) -> Partition:
        """
        Partition subjects into k groups.

        Args:
            features: Normalized feature matrix (n_subjects x n_features)
            k: Number of groups
            seed: Random seed (ignored by deterministic backends)

        Returns:
            Partition with opaque group indices 0..k-1

        Raises:
            InsufficientDataError: If n_subjects < k or a group comes back empty
            ValueError: If features is not a finite 2D matrix
        """
        features = np.asarray(features, dtype=np.float64)
        if features.ndim != 2:
            raise ValueError(f"features must be 2D, got shape {features.shape}")
        if not np.all(np.isfinite(features)):
            raise ValueError("features contain NaN or infinite values")
        if features.shape[0] < k:
            raise InsufficientDataError(
                f"Backend '{self.name}': cannot form {k} groups from "
                f"{features.shape[0]} subjects"
            )

        raw = self._assign(features, k, seed)
        partition = Partition(backend=self.name, assignment=np.asarray(raw), k=k)
        logger.info(f"Backend '{self.name}' group sizes: {partition.group_sizes}")
        return partition

    @abstractmethod
    def _assign(
        self,
        features: NDArray[np.float64],
        k: int,
        seed: Optional[int],
    ) -> NDArray[np.int64]:
        """Return one group index in 0..k-1 per row of features."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
