"""Tests for mapping partition groups to semantic subtype labels."""

import numpy as np
import pytest

from subtypeconsensus.clustering.base import Partition
from subtypeconsensus.clustering.canonical import LabelCanonicalizer, assign_group_labels
from subtypeconsensus.core.errors import LabelCollisionError
from subtypeconsensus.core.labels import SemanticLabel

from conftest import make_feature_matrix

M, R, I = SemanticLabel.METABOLIC, SemanticLabel.REPRODUCTIVE, SemanticLabel.INDETERMINATE

# Column order: BMI, T, DHEAS, Ins0, Glu0, SHBG, LH, FSH
METABOLIC_ROW = [1.0, 0.0, 0.0, 1.0, 1.0, -0.5, -0.5, -0.5]
REPRODUCTIVE_ROW = [-0.5, 0.0, 0.0, -0.5, -0.5, 1.0, 1.0, 1.0]
NEUTRAL_ROW = [-0.5, 0.0, 0.0, -0.5, -0.5, -0.5, -0.5, -0.5]


def three_group_matrix():
    rows = [METABOLIC_ROW] * 2 + [REPRODUCTIVE_ROW] * 2 + [NEUTRAL_ROW] * 2
    return make_feature_matrix(np.array(rows))


class TestAssignGroupLabels:

    def test_distinct_maxima(self):
        labels, collision = assign_group_labels(
            np.array([0.1, 3.0, -1.0]), np.array([2.0, 0.0, -1.0])
        )
        assert labels == {0: R, 1: M, 2: I}
        assert not collision

    def test_each_label_once_for_k3(self):
        rng = np.random.default_rng(0)
        for _ in range(50):
            labels, _ = assign_group_labels(rng.normal(size=3), rng.normal(size=3))
            assert sorted(label.value for label in labels.values()) == [
                "Indeterminate", "Metabolic", "Reproductive"
            ]

    def test_collision_metabolic_priority(self):
        labels, collision = assign_group_labels(
            np.array([3.0, 0.0, 1.0]), np.array([3.0, 2.0, 1.0])
        )
        assert collision
        assert labels == {0: M, 1: R, 2: I}

    def test_ties_resolve_to_lowest_index(self):
        labels, _ = assign_group_labels(np.array([1.0, 1.0, 0.0]), np.array([0.0, 2.0, 2.0]))
        assert labels == {0: M, 1: R, 2: I}

    def test_k4_extra_groups_indeterminate(self):
        labels, _ = assign_group_labels(
            np.array([0.0, 5.0, 1.0, 2.0]), np.array([4.0, 0.0, 1.0, 2.0])
        )
        assert labels == {0: R, 1: M, 2: I, 3: I}

    def test_single_group_rejected(self):
        with pytest.raises(ValueError, match="at least 2 groups"):
            assign_group_labels(np.array([1.0]), np.array([1.0]))


class TestLabelCanonicalizer:

    def test_labels_follow_centroids(self):
        features = three_group_matrix()
        partition = Partition("kmeans", np.array([0, 0, 1, 1, 2, 2]), k=3)

        labeling = LabelCanonicalizer().canonicalize(features, partition)

        assert labeling.group_labels == {0: M, 1: R, 2: I}
        assert labeling.subject_labels == (M, M, R, R, I, I)
        assert not labeling.collision
        np.testing.assert_allclose(labeling.metabolic_scores, [3.0, -1.5, -1.5])
        np.testing.assert_allclose(labeling.reproductive_scores, [-1.5, 3.0, -1.5])

    def test_invariant_to_group_numbering(self):
        features = three_group_matrix()
        canonicalizer = LabelCanonicalizer()
        original = canonicalizer.canonicalize(
            features, Partition("gmm", np.array([0, 0, 1, 1, 2, 2]), k=3)
        )
        renamed = canonicalizer.canonicalize(
            features, Partition("gmm", np.array([2, 2, 0, 0, 1, 1]), k=3)
        )
        assert original.subject_labels == renamed.subject_labels
        assert renamed.group_for(M) == 2

    def test_collision_recorded(self):
        rows = [[1.0] * 8] * 2 + [REPRODUCTIVE_ROW] * 2 + [NEUTRAL_ROW] * 2
        features = make_feature_matrix(np.array(rows))
        partition = Partition("hierarchical", np.array([0, 0, 1, 1, 2, 2]), k=3)

        labeling = LabelCanonicalizer().canonicalize(features, partition)

        assert labeling.collision
        assert labeling.group_labels == {0: M, 1: R, 2: I}

    def test_collision_warning_names_groups(self, caplog):
        rows = [[1.0] * 8] * 2 + [NEUTRAL_ROW] * 2 + [REPRODUCTIVE_ROW] * 2
        features = make_feature_matrix(np.array(rows))
        partition = Partition("kmeans", np.array([0, 0, 1, 1, 2, 2]), k=3)

        with caplog.at_level("WARNING", logger="subtypeconsensus.clustering.canonical"):
            labeling = LabelCanonicalizer().canonicalize(features, partition)

        assert labeling.group_for(R) == 2
        assert "group 0 maximizes both scores" in caplog.text
        assert "reassigned to group 2" in caplog.text

    def test_collision_raise_policy(self):
        rows = [[1.0] * 8] * 2 + [NEUTRAL_ROW] * 4
        features = make_feature_matrix(np.array(rows))
        partition = Partition("hierarchical", np.array([0, 0, 1, 1, 2, 2]), k=3)

        with pytest.raises(LabelCollisionError) as exc_info:
            LabelCanonicalizer(on_collision="raise").canonicalize(features, partition)

        assert exc_info.value.backend == "hierarchical"
        assert exc_info.value.group == 0

    def test_invalid_policy(self):
        with pytest.raises(ValueError, match="collision policy"):
            LabelCanonicalizer(on_collision="ignore")

    def test_outputs(self):
        features = three_group_matrix()
        labeling = LabelCanonicalizer().canonicalize(
            features, Partition("kmeans", np.array([0, 0, 1, 1, 2, 2]), k=3)
        )

        assert labeling.label_counts() == {"Metabolic": 2, "Reproductive": 2, "Indeterminate": 2}

        series = labeling.to_series(features.subject_ids)
        assert series.name == "kmeans"
        assert series.tolist() == ["Metabolic"] * 2 + ["Reproductive"] * 2 + ["Indeterminate"] * 2

        table = labeling.score_table(features.feature_names)
        assert table["label"].tolist() == ["Metabolic", "Reproductive", "Indeterminate"]
        assert table.loc[0, "metabolic_score"] == pytest.approx(3.0)
