"""
Concrete clustering backends.

Three independent families, each wrapped behind the ClusteringBackend
contract:

- HierarchicalBackend (connectivity-based): agglomerative clustering on
  Manhattan distances, tree cut at k groups. Deterministic.
- KMeansBackend (centroid-based): Lloyd k-means with multiple restarts.
  Seeded.
- GaussianMixtureBackend (distribution-based): EM fit of a k-component
  Gaussian mixture, hard assignment by maximum posterior. Seeded.

The algorithms themselves come from scipy and scikit-learn; this module only
configures them and normalizes their output to 0-based group indices.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
from numpy.typing import NDArray

from subtypeconsensus.clustering.base import ClusteringBackend

__all__ = [
    'HierarchicalConfig',
    'KMeansConfig',
    'GaussianMixtureConfig',
    'HierarchicalBackend',
    'KMeansBackend',
    'GaussianMixtureBackend',
    'default_backends',
]


@dataclass
class HierarchicalConfig:
    """Configuration for the connectivity-based backend.

    Attributes:
        metric: Distance metric passed to scipy pdist ("cityblock" = Manhattan)
        linkage: Agglomeration rule passed to scipy linkage
            (ward, complete, average, single, weighted, centroid, median)

    Ward, centroid and median linkage are only well defined on Euclidean
    distances. The default ward on cityblock distances reproduces R's
    ``hclust(dist(x, method="manhattan"), method="ward.D2")`` used by the
    published subtyping; scipy applies the Lance-Williams update to the
    Manhattan matrix exactly as R does, so merge heights are not true
    within-cluster variances. Use metric="euclidean" for textbook Ward.
    """

    metric: str = "cityblock"
    linkage: str = "ward"

    _VALID_LINKAGES = frozenset(
        {"ward", "complete", "average", "single", "weighted", "centroid", "median"}
    )

    def __post_init__(self):
        if self.linkage not in self._VALID_LINKAGES:
            raise ValueError(
                f"Invalid linkage '{self.linkage}'. Valid: {sorted(self._VALID_LINKAGES)}"
            )


@dataclass
class KMeansConfig:
    """Configuration for the centroid-based backend.

    Attributes:
        metric: Distance metric. k-means minimizes squared Euclidean
            distance, so only "euclidean" is accepted.
        n_init: Number of restarts; the best (lowest inertia) is kept
        max_iter: Iteration cap per restart
    """

    metric: str = "euclidean"
    n_init: int = 25
    max_iter: int = 300

    def __post_init__(self):
        if self.metric != "euclidean":
            raise ValueError(
                f"KMeans supports only the euclidean metric, got '{self.metric}'"
            )
        if self.n_init < 1 or self.max_iter < 1:
            raise ValueError("n_init and max_iter must be positive")


@dataclass
class GaussianMixtureConfig:
    """Configuration for the distribution-based backend.

    Attributes:
        covariance_type: full, tied, diag or spherical
        n_init: Number of EM initializations; the best likelihood is kept
        max_iter: EM iteration cap
        tol: Convergence threshold on the lower-bound gain
        reg_covar: Non-negative regularization added to covariance diagonals
    """

    covariance_type: str = "full"
    n_init: int = 10
    max_iter: int = 200
    tol: float = 1e-3
    reg_covar: float = 1e-6

    _VALID_COVARIANCES = frozenset({"full", "tied", "diag", "spherical"})

    def __post_init__(self):
        if self.covariance_type not in self._VALID_COVARIANCES:
            raise ValueError(
                f"Invalid covariance_type '{self.covariance_type}'. "
                f"Valid: {sorted(self._VALID_COVARIANCES)}"
            )
        if self.n_init < 1 or self.max_iter < 1:
            raise ValueError("n_init and max_iter must be positive")


class HierarchicalBackend(ClusteringBackend):
    """Agglomerative hierarchical clustering (scipy)."""

    name = "hierarchical"
    seeded = False

    def __init__(self, config: Optional[HierarchicalConfig] = None):
        self.config = config or HierarchicalConfig()

    def _assign(self, features: NDArray[np.float64], k: int, seed: Optional[int]) -> NDArray[np.int64]:
        from scipy.cluster.hierarchy import fcluster, linkage
        from scipy.spatial.distance import pdist

        distances = pdist(features, metric=self.config.metric)
        tree = linkage(distances, method=self.config.linkage)
        # fcluster numbers clusters from 1
        return fcluster(tree, t=k, criterion="maxclust").astype(np.int64) - 1


class KMeansBackend(ClusteringBackend):
    """k-means clustering (scikit-learn)."""

    name = "kmeans"
    seeded = True

    def __init__(self, config: Optional[KMeansConfig] = None):
        self.config = config or KMeansConfig()

    def _assign(self, features: NDArray[np.float64], k: int, seed: Optional[int]) -> NDArray[np.int64]:
        from sklearn.cluster import KMeans

        kmeans = KMeans(
            n_clusters=k,
            n_init=self.config.n_init,
            max_iter=self.config.max_iter,
            random_state=seed,
        )
        return kmeans.fit_predict(features).astype(np.int64)


class GaussianMixtureBackend(ClusteringBackend):
    """Gaussian mixture model clustering (scikit-learn)."""

    name = "gmm"
    seeded = True

    def __init__(self, config: Optional[GaussianMixtureConfig] = None):
        self.config = config or GaussianMixtureConfig()

    def _assign(self, features: NDArray[np.float64], k: int, seed: Optional[int]) -> NDArray[np.int64]:
        from sklearn.mixture import GaussianMixture

        gmm = GaussianMixture(
            n_components=k,
            covariance_type=self.config.covariance_type,
            n_init=self.config.n_init,
            max_iter=self.config.max_iter,
            tol=self.config.tol,
            reg_covar=self.config.reg_covar,
            random_state=seed,
        )
        return gmm.fit_predict(features).astype(np.int64)


def default_backends(
    hierarchical: Optional[HierarchicalConfig] = None,
    kmeans: Optional[KMeansConfig] = None,
    gmm: Optional[GaussianMixtureConfig] = None,
) -> Dict[str, ClusteringBackend]:
    """The three backends keyed by name, in canonical output order."""
    backends = [
        HierarchicalBackend(hierarchical),
        KMeansBackend(kmeans),
        GaussianMixtureBackend(gmm),
    ]
    return {backend.name: backend for backend in backends}
