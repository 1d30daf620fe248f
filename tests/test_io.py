"""Tests for subject loading and consensus result writing."""

import json

import numpy as np
import pytest

from subtypeconsensus.core.labels import SemanticLabel
from subtypeconsensus.io.loaders import load_subjects, sniff_delimiter
from subtypeconsensus.io.writers import read_consensus_records, write_results
from subtypeconsensus.pipeline import MAJORITY_COLUMN, STRICT_COLUMN, SubtypingPipeline


@pytest.fixture
def subject_file(tmp_path, small_subjects):
    path = tmp_path / "cohort.csv"
    small_subjects.to_csv(path, index=False, na_rep="NA")
    return path


class TestLoadSubjects:

    def test_round_trip(self, subject_file, small_subjects):
        table = load_subjects(subject_file)

        assert table.shape == small_subjects.shape
        assert table["ID"].tolist() == small_subjects["ID"].tolist()
        assert np.isnan(table.loc[4, "age"])
        assert table["Glu0"].dtype == float

    def test_tab_delimited(self, tmp_path, small_subjects):
        path = tmp_path / "cohort.tsv"
        small_subjects.to_csv(path, sep="\t", index=False)

        assert sniff_delimiter(path) == "\t"
        assert len(load_subjects(path)) == len(small_subjects)

    def test_pipe_delimited(self, tmp_path, small_subjects):
        path = tmp_path / "cohort.txt"
        small_subjects.to_csv(path, sep="|", index=False)

        assert sniff_delimiter(path) == "|"
        assert load_subjects(path)["ID"].tolist() == small_subjects["ID"].tolist()

    def test_pipe_header_only(self, tmp_path):
        path = tmp_path / "header.txt"
        path.write_text("ID|age|BMI|T\n")
        assert sniff_delimiter(path) == "|"

    def test_undetectable_delimiter(self, tmp_path):
        path = tmp_path / "single.txt"
        path.write_text("ID\nS01\nS02\n")
        with pytest.raises(ValueError, match="Could not detect delimiter"):
            sniff_delimiter(path)

    def test_codes_stay_strings(self, tmp_path, small_subjects):
        table = small_subjects.copy()
        table["ID"] = [f"{i:03d}" for i in range(len(table))]
        table["T_assay"] = "01"
        path = tmp_path / "codes.csv"
        table.to_csv(path, index=False)

        loaded = load_subjects(path)
        assert loaded["ID"].iloc[0] == "000"
        assert loaded["T_assay"].iloc[0] == "01"

    def test_missing_markers(self, tmp_path, small_subjects):
        table = small_subjects.copy().astype({"LH": object})
        table.loc[0, "LH"] = "."
        path = tmp_path / "markers.csv"
        table.to_csv(path, index=False)

        assert np.isnan(load_subjects(path).loc[0, "LH"])

    def test_non_numeric_value(self, tmp_path, small_subjects):
        table = small_subjects.copy().astype({"FSH": object})
        table.loc[0, "FSH"] = "high"
        path = tmp_path / "bad.csv"
        table.to_csv(path, index=False)

        with pytest.raises(ValueError, match="'FSH'"):
            load_subjects(path)

    def test_missing_column(self, tmp_path, small_subjects):
        path = tmp_path / "nobmi.csv"
        small_subjects.drop(columns="BMI").to_csv(path, index=False)
        with pytest.raises(ValueError, match="BMI"):
            load_subjects(path)

    def test_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_subjects(tmp_path / "absent.csv")


class TestWriteResults:

    @pytest.fixture
    def result(self, subjects):
        return SubtypingPipeline().run(subjects)

    def test_files_written(self, tmp_path, result):
        paths = write_results(result, tmp_path / "out" / "cohort")

        assert paths["consensus"].name == "cohort.consensus.csv"
        assert paths["summary"].name == "cohort.summary.json"
        assert all(p.exists() for p in paths.values())
        assert not list((tmp_path / "out").glob("*.tmp"))

    def test_consensus_round_trip(self, tmp_path, result):
        paths = write_results(result, tmp_path / "cohort")
        frame = read_consensus_records(paths["consensus"])

        assert frame["ID"].tolist() == [str(i) for i in result.features.subject_ids]
        np.testing.assert_array_equal(
            frame[list(result.features.feature_names)].to_numpy(), result.features.data
        )
        for record, (_, row) in zip(result.records, frame.iterrows()):
            assert row[MAJORITY_COLUMN] is record.majority
            assert row[STRICT_COLUMN] is record.strict
            for name, label in record.backend_labels.items():
                assert row[name] is label

    def test_labels_are_semantic(self, tmp_path, result):
        paths = write_results(result, tmp_path / "cohort")
        frame = read_consensus_records(paths["consensus"])
        values = set(frame[MAJORITY_COLUMN])
        assert values <= {None, *SemanticLabel}

    def test_summary_json(self, tmp_path, result):
        paths = write_results(result, tmp_path / "cohort")
        summary = json.loads(paths["summary"].read_text())

        assert summary["n_subjects"] == result.n_subjects
        assert summary["qc"]["n_retained"] == result.n_subjects
        assert len(summary["fits"]) == 8
        assert summary["backends"]["kmeans"]["group_sizes"]
