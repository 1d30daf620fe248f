"""
Pipeline configuration.

All tunables live in dataclasses that can be built programmatically or
loaded from a YAML or JSON file. Explicit CLI arguments override file
values (see cli/classify.py).

Example config (YAML):

    k: 3
    seed: 42
    on_collision: priority
    normalizer:
      rank_offset: 0.5
      outlier_rules:
        - {column: Glu0, operator: gt, threshold: 126}
    hierarchical: {metric: cityblock, linkage: ward}
    kmeans: {n_init: 25, max_iter: 300}
    gmm: {covariance_type: full, n_init: 10, max_iter: 200}
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict

import yaml

from subtypeconsensus.clustering.backends import (
    GaussianMixtureConfig,
    HierarchicalConfig,
    KMeansConfig,
)
from subtypeconsensus.clustering.base import DEFAULT_K
from subtypeconsensus.quality.outliers import OutlierRule
from subtypeconsensus.stats.normalization import NormalizerConfig

logger = logging.getLogger(__name__)

__all__ = ['PipelineConfig', 'load_config']


_PARSERS = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.loads,
}


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Read a run configuration file into a plain mapping.

    The format follows the suffix (.yaml, .yml or .json). An empty file is
    an empty configuration; every key is optional and falls back to the
    PipelineConfig default.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If the suffix is unsupported, the content does not parse,
            or the top level is not a mapping
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    parse = _PARSERS.get(config_path.suffix.lower())
    if parse is None:
        raise ValueError(
            f"Unsupported config format: {config_path.suffix}. "
            f"Use one of {sorted(_PARSERS)}"
        )

    text = config_path.read_text()
    if not text.strip():
        return {}

    try:
        config = parse(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ValueError(f"Could not parse config file {config_path}: {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ValueError(
            f"Config file {config_path} must contain a mapping at top level, "
            f"got {type(config).__name__}"
        )

    logger.info(f"Loaded configuration from {config_path}: keys {sorted(config)}")
    return config


def _build(cls, data: Dict[str, Any] | None, section: str):
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f"Config section '{section}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown keys in config section '{section}': {unknown}")
    return cls(**data)


@dataclass
class PipelineConfig:
    """
    Complete configuration for one subtyping run.

    Attributes:
        k: Number of groups per backend (the three subtypes)
        seed: Seed passed to the seeded backends
        on_collision: Label collision policy ("priority" or "raise")
        max_workers: Threads used to run the backends concurrently
        normalizer: Normalizer settings
        hierarchical / kmeans / gmm: Backend settings
    """

    k: int = DEFAULT_K
    seed: int = 42
    on_collision: str = "priority"
    max_workers: int = 3
    normalizer: NormalizerConfig = field(default_factory=NormalizerConfig)
    hierarchical: HierarchicalConfig = field(default_factory=HierarchicalConfig)
    kmeans: KMeansConfig = field(default_factory=KMeansConfig)
    gmm: GaussianMixtureConfig = field(default_factory=GaussianMixtureConfig)

    def __post_init__(self):
        if self.k < 2:
            raise ValueError(f"k must be at least 2, got {self.k}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PipelineConfig:
        """Build from a (possibly partial) nested mapping."""
        data = dict(data or {})
        sections = {"normalizer", "hierarchical", "kmeans", "gmm"}
        scalars = {f.name for f in fields(cls)} - sections
        unknown = sorted(set(data) - sections - scalars)
        if unknown:
            raise ValueError(f"Unknown top-level config keys: {unknown}")

        normalizer_data = dict(data.get("normalizer") or {})
        if "outlier_rules" in normalizer_data and normalizer_data["outlier_rules"] is not None:
            normalizer_data["outlier_rules"] = [
                OutlierRule.from_dict(rule) for rule in normalizer_data["outlier_rules"]
            ]

        return cls(
            **{key: data[key] for key in scalars if key in data},
            normalizer=_build(NormalizerConfig, normalizer_data, "normalizer"),
            hierarchical=_build(HierarchicalConfig, data.get("hierarchical"), "hierarchical"),
            kmeans=_build(KMeansConfig, data.get("kmeans"), "kmeans"),
            gmm=_build(GaussianMixtureConfig, data.get("gmm"), "gmm"),
        )

    @classmethod
    def from_file(cls, path: Path) -> PipelineConfig:
        return cls.from_dict(load_config(Path(path)))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON/YAML-compatible dict."""
        rules = self.normalizer.resolved_rules()
        return {
            "k": self.k,
            "seed": self.seed,
            "on_collision": self.on_collision,
            "max_workers": self.max_workers,
            "normalizer": {
                "rank_offset": self.normalizer.rank_offset,
                "variance_tol": self.normalizer.variance_tol,
                "outlier_rules": [rule.to_dict() for rule in rules],
            },
            "hierarchical": asdict(self.hierarchical),
            "kmeans": asdict(self.kmeans),
            "gmm": asdict(self.gmm),
        }
