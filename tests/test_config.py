"""Tests for pipeline configuration loading."""

import json

import pytest
import yaml

from subtypeconsensus.config import PipelineConfig, load_config
from subtypeconsensus.quality.outliers import OutlierRule


class TestPipelineConfig:

    def test_defaults(self):
        config = PipelineConfig()
        assert config.k == 3
        assert config.seed == 42
        assert config.on_collision == "priority"
        assert config.hierarchical.metric == "cityblock"
        assert config.normalizer.rank_offset == 0.5

    def test_partial_dict(self):
        config = PipelineConfig.from_dict({"seed": 7, "kmeans": {"n_init": 5}})
        assert config.seed == 7
        assert config.kmeans.n_init == 5
        assert config.kmeans.max_iter == 300

    def test_outlier_rules_from_dict(self):
        config = PipelineConfig.from_dict({
            "normalizer": {"outlier_rules": [{"column": "Glu0", "operator": "gte", "threshold": 110}]}
        })
        assert config.normalizer.resolved_rules() == [OutlierRule("Glu0", "gte", 110.0)]

    def test_unknown_top_level_key(self):
        with pytest.raises(ValueError, match="Unknown top-level"):
            PipelineConfig.from_dict({"clusters": 3})

    def test_unknown_section_key(self):
        with pytest.raises(ValueError, match="'gmm'"):
            PipelineConfig.from_dict({"gmm": {"components": 3}})

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            PipelineConfig(k=1)
        with pytest.raises(ValueError):
            PipelineConfig.from_dict({"hierarchical": {"linkage": "upgma"}})

    def test_dict_round_trip(self):
        config = PipelineConfig.from_dict({"seed": 3, "gmm": {"covariance_type": "diag"}})
        restored = PipelineConfig.from_dict(config.to_dict())
        assert restored.to_dict() == config.to_dict()

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "run.yaml"
        path.write_text(yaml.safe_dump({"seed": 11, "on_collision": "raise"}))

        config = PipelineConfig.from_file(path)
        assert config.seed == 11
        assert config.on_collision == "raise"


class TestLoadConfig:

    def test_json(self, tmp_path):
        path = tmp_path / "run.json"
        path.write_text(json.dumps({"k": 3}))
        assert load_config(path) == {"k": 3}

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == {}

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "run.toml"
        path.write_text("k = 3")
        with pytest.raises(ValueError, match="Unsupported config format"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")
