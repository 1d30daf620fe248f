"""Tests for the clustering backend contract and the three backends."""

import numpy as np
import pytest

from subtypeconsensus.clustering.backends import (
    GaussianMixtureBackend,
    GaussianMixtureConfig,
    HierarchicalBackend,
    HierarchicalConfig,
    KMeansBackend,
    KMeansConfig,
    default_backends,
)
from subtypeconsensus.clustering.base import ClusteringBackend, Partition, group_centroids
from subtypeconsensus.core.errors import InsufficientDataError


def planted_blobs(n_per_group=30, seed=42):
    """Three well-separated blobs in 8 dimensions."""
    rng = np.random.default_rng(seed)
    centers = np.zeros((3, 8))
    centers[0, :3] = 3.0
    centers[1, 5:] = 3.0
    data = np.vstack([c + rng.normal(0, 0.3, size=(n_per_group, 8)) for c in centers])
    truth = np.repeat([0, 1, 2], n_per_group)
    return data, truth


def same_partition(a, b):
    """True if two assignments agree up to a renaming of groups."""
    pairs = set(zip(a.tolist(), b.tolist()))
    return len(pairs) == len(set(a.tolist())) == len(set(b.tolist()))


class TestPartition:

    def test_group_sizes_and_members(self):
        partition = Partition("test", np.array([0, 1, 1, 2, 2, 2]), k=3)
        assert partition.group_sizes == {0: 1, 1: 2, 2: 3}
        assert partition.members(2).tolist() == [3, 4, 5]
        assert partition.n_subjects == 6

    def test_empty_group_raises(self):
        with pytest.raises(InsufficientDataError, match="empty groups"):
            Partition("test", np.array([0, 0, 2, 2]), k=3)

    def test_out_of_range_raises(self):
        with pytest.raises(ValueError, match="0..2"):
            Partition("test", np.array([0, 1, 3]), k=3)

    def test_assignment_immutable(self):
        raw = np.array([0, 1, 2])
        partition = Partition("test", raw, k=3)
        raw[0] = 2
        assert partition.assignment[0] == 0
        with pytest.raises(ValueError):
            partition.assignment[0] = 1

    def test_group_centroids(self):
        data = np.array([[0.0, 0.0], [2.0, 2.0], [10.0, 4.0]])
        partition = Partition("test", np.array([0, 0, 1]), k=2)
        np.testing.assert_allclose(group_centroids(data, partition), [[1.0, 1.0], [10.0, 4.0]])


class TestBackendContract:

    @pytest.mark.parametrize("backend", [
        HierarchicalBackend(), KMeansBackend(), GaussianMixtureBackend()
    ], ids=lambda b: b.name)
    def test_recovers_planted_groups(self, backend):
        data, truth = planted_blobs()
        partition = backend.partition(data, k=3, seed=42)

        assert partition.backend == backend.name
        assert partition.k == 3
        assert partition.n_subjects == len(truth)
        assert same_partition(partition.assignment, truth)

    @pytest.mark.parametrize("backend", [
        HierarchicalBackend(), KMeansBackend(), GaussianMixtureBackend()
    ], ids=lambda b: b.name)
    def test_fewer_subjects_than_groups(self, backend):
        with pytest.raises(InsufficientDataError):
            backend.partition(np.zeros((2, 8)), k=3, seed=0)

    def test_rejects_non_finite(self):
        data, _ = planted_blobs()
        data[0, 0] = np.nan
        with pytest.raises(ValueError, match="NaN"):
            KMeansBackend().partition(data, k=3, seed=0)

    @pytest.mark.parametrize("backend", [KMeansBackend(), GaussianMixtureBackend()],
                             ids=lambda b: b.name)
    def test_seeded_backends_deterministic(self, backend):
        rng = np.random.default_rng(3)
        data = rng.normal(size=(120, 8))

        first = backend.partition(data, k=3, seed=11)
        second = backend.partition(data, k=3, seed=11)

        assert backend.seeded
        np.testing.assert_array_equal(first.assignment, second.assignment)

    def test_hierarchical_ignores_seed(self):
        rng = np.random.default_rng(3)
        data = rng.normal(size=(60, 8))
        backend = HierarchicalBackend()

        assert not backend.seeded
        np.testing.assert_array_equal(
            backend.partition(data, k=3, seed=1).assignment,
            backend.partition(data, k=3, seed=2).assignment,
        )

    def test_custom_backend(self):
        class FirstFeatureTertiles(ClusteringBackend):
            name = "tertiles"

            def _assign(self, features, k, seed):
                ranks = np.argsort(np.argsort(features[:, 0]))
                return ranks * k // len(ranks)

        data = np.arange(9, dtype=float).reshape(9, 1)
        partition = FirstFeatureTertiles().partition(data, k=3)
        assert partition.assignment.tolist() == [0, 0, 0, 1, 1, 1, 2, 2, 2]


class TestBackendConfig:

    def test_defaults(self):
        assert HierarchicalConfig().metric == "cityblock"
        assert HierarchicalConfig().linkage == "ward"
        assert KMeansConfig().metric == "euclidean"
        assert GaussianMixtureConfig().covariance_type == "full"

    def test_invalid_linkage(self):
        with pytest.raises(ValueError, match="Invalid linkage"):
            HierarchicalConfig(linkage="upgma")

    def test_kmeans_only_euclidean(self):
        with pytest.raises(ValueError, match="euclidean"):
            KMeansConfig(metric="cityblock")

    def test_invalid_covariance(self):
        with pytest.raises(ValueError, match="covariance_type"):
            GaussianMixtureConfig(covariance_type="banded")

    def test_hierarchical_average_linkage(self):
        data, truth = planted_blobs()
        backend = HierarchicalBackend(HierarchicalConfig(metric="euclidean", linkage="average"))
        assert same_partition(backend.partition(data, k=3).assignment, truth)

    def test_manhattan_and_euclidean_ward_agree_on_separated_groups(self):
        data, truth = planted_blobs()
        manhattan = HierarchicalBackend().partition(data, k=3).assignment
        euclidean = HierarchicalBackend(
            HierarchicalConfig(metric="euclidean", linkage="ward")
        ).partition(data, k=3).assignment

        assert same_partition(manhattan, truth)
        assert same_partition(euclidean, truth)

    def test_default_backends_order(self):
        assert list(default_backends()) == ["hierarchical", "kmeans", "gmm"]
