"""
Normalizer: raw subject records -> standardized, confound-adjusted features.

Pipeline (deterministic, order-sensitive):
    1. DuplicateFilter          collapse identical records (first kept)
    2. CompletenessFilter       drop subjects missing age, BMI or a trait
    3. ClinicalOutlierFlagger   null implausible values (not subjects)
    4. CompletenessFilter       drop subjects with nulled values
    5. Confound adjustment      per-feature OLS residual of log(value)
    6. Inverse-normal transform per residual column, independently

Counts from every stage are returned in a QCReport rather than accumulated
in shared state. Subjects dropped at step 2 and at step 4 are reported
separately.

The transform is leakage-free in the sense that each feature's regression
and rank transform see only that feature (and age / its own assay method).

Examples:
    >>> from subtypeconsensus.stats.normalization import Normalizer
    >>>
    >>> result = Normalizer().run(raw_subjects)
    >>> result.features.shape
    (412, 8)
    >>> print(result.qc.summary())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from subtypeconsensus.core.errors import InsufficientDataError
from subtypeconsensus.core.features import FeatureMatrix
from subtypeconsensus.core.traits import FEATURES, ID_COLUMN, measurement_columns
from subtypeconsensus.quality.filtering import CompletenessFilter, DuplicateFilter
from subtypeconsensus.quality.outliers import (
    ClinicalOutlierFlagger,
    OutlierRule,
    default_outlier_rules,
)
from subtypeconsensus.stats.rank_normal import (
    DEFAULT_RANK_OFFSET,
    check_column_variance,
    inverse_normal_transform,
)
from subtypeconsensus.stats.residuals import ResidualFit, fit_confound_residuals

logger = logging.getLogger(__name__)

__all__ = ['NormalizerConfig', 'QCReport', 'NormalizationResult', 'Normalizer']


@dataclass
class NormalizerConfig:
    """Configuration for the Normalizer.

    Attributes:
        outlier_rules: Clinical rules applied at step 3. None uses
            default_outlier_rules(). The positivity_rules() guard is
            always applied in addition and cannot be configured away.
        rank_offset: Offset c of the inverse-normal transform
            (0.5 -> (r - 0.5)/n, 0.375 -> Blom)
        variance_tol: Residual variance at or below which a column is
            considered degenerate
    """

    outlier_rules: Optional[List[OutlierRule]] = None
    rank_offset: float = DEFAULT_RANK_OFFSET
    variance_tol: float = 1e-12

    def resolved_rules(self) -> List[OutlierRule]:
        return list(self.outlier_rules) if self.outlier_rules is not None else default_outlier_rules()


@dataclass(frozen=True)
class QCReport:
    """Data-quality audit counts from one Normalizer run.

    Attributes:
        n_input: Raw records received
        n_duplicates: Records removed as duplicates (step 1)
        n_missing_initial: Subjects removed for missing fields (step 2)
        n_flagged_values: Values nulled by outlier rules (step 3)
        n_removed_outliers: Subjects removed because a value was nulled (step 4)
        n_retained: Subjects in the normalized feature matrix
        flagged_per_column: Nulled values per raw column
        missing_per_column: Missing values per column seen at step 2
        removed_ids: Removed subject IDs by stage ("duplicates",
            "missing", "outliers")
    """

    n_input: int
    n_duplicates: int
    n_missing_initial: int
    n_flagged_values: int
    n_removed_outliers: int
    n_retained: int
    flagged_per_column: Dict[str, int] = field(default_factory=dict)
    missing_per_column: Dict[str, int] = field(default_factory=dict)
    removed_ids: Dict[str, List[Any]] = field(default_factory=dict)

    @property
    def n_removed(self) -> int:
        return self.n_duplicates + self.n_missing_initial + self.n_removed_outliers

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "n_input": self.n_input,
            "n_duplicates": self.n_duplicates,
            "n_missing_initial": self.n_missing_initial,
            "n_flagged_values": self.n_flagged_values,
            "n_removed_outliers": self.n_removed_outliers,
            "n_retained": self.n_retained,
            "flagged_per_column": dict(self.flagged_per_column),
            "missing_per_column": dict(self.missing_per_column),
            "removed_ids": {
                stage: [str(i) for i in ids] for stage, ids in self.removed_ids.items()
            },
        }

    def summary(self) -> str:
        lines = [
            f"Records received:               {self.n_input}",
            f"Duplicates removed:             {self.n_duplicates}",
            f"Removed for missing data:       {self.n_missing_initial}",
            f"Values nulled as outliers:      {self.n_flagged_values}",
            f"Removed due to outliers:        {self.n_removed_outliers}",
            f"Subjects retained:              {self.n_retained}",
        ]
        return "\n".join(lines)


@dataclass(frozen=True)
class NormalizationResult:
    """Output of Normalizer.run().

    Attributes:
        features: Normalized feature matrix (retained subjects x 8 features)
        residuals: Confound-adjusted residuals before rank transformation
        fits: Per-feature regression diagnostics
        qc: Data-quality counts
        cleaned: Cleaned subject table the features were computed from
    """

    features: FeatureMatrix
    residuals: pd.DataFrame
    fits: List[ResidualFit]
    qc: QCReport
    cleaned: pd.DataFrame


def _coerce_numeric(table: pd.DataFrame) -> pd.DataFrame:
    numeric = table.copy()
    for col in measurement_columns():
        try:
            numeric[col] = pd.to_numeric(numeric[col], errors="raise").astype(float)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Column '{col}' contains non-numeric values: {e}") from e
    return numeric


class Normalizer:
    """
    Converts raw subject records into a NormalizedFeatureVector per subject.

    Output rows follow the input order of the retained subjects; output
    columns follow FEATURES (BMI, T, DHEAS, Ins0, Glu0, SHBG, LH, FSH).
    """

    def __init__(self, config: Optional[NormalizerConfig] = None):
        self.config = config or NormalizerConfig()

    def clean(self, subjects: pd.DataFrame) -> tuple[pd.DataFrame, QCReport]:
        """
        Run the filtering stages (steps 1-4) only.

        Returns:
            Tuple of (cleaned table, QCReport)

        Raises:
            ValueError: If required columns are missing or non-numeric
        """
        required = [ID_COLUMN] + measurement_columns()
        missing_cols = [c for c in required if c not in subjects.columns]
        if missing_cols:
            raise ValueError(f"Subject table is missing required columns: {missing_cols}")

        table = _coerce_numeric(subjects)
        n_input = len(table)
        logger.info(f"Normalizing {n_input} subject records")

        dedup = DuplicateFilter().apply(table)
        initial = CompletenessFilter(stage="initial").apply(dedup.table)
        flagged = ClinicalOutlierFlagger(self.config.resolved_rules()).apply(initial.table)
        final = CompletenessFilter(stage="post-outlier").apply(flagged.table)

        qc = QCReport(
            n_input=n_input,
            n_duplicates=dedup.n_removed,
            n_missing_initial=initial.n_removed,
            n_flagged_values=flagged.details["n_flagged_values"],
            n_removed_outliers=final.n_removed,
            n_retained=len(final.table),
            flagged_per_column=flagged.details["flagged_per_column"],
            missing_per_column=initial.details["missing_per_column"],
            removed_ids={
                "duplicates": dedup.details["removed_ids"],
                "missing": initial.details["removed_ids"],
                "outliers": final.details["removed_ids"],
            },
        )

        logger.info(f"Duplicates removed: {qc.n_duplicates}; removed for missing data: "
                    f"{qc.n_missing_initial}; removed due to outliers: "
                    f"{qc.n_removed_outliers}; retained: {qc.n_retained}")

        ids = final.table[ID_COLUMN]
        if ids.duplicated().any():
            logger.warning(f"{int(ids.duplicated().sum())} retained subjects share an ID "
                           f"with another record that differs in its measurements")

        return final.table, qc

    def run(self, subjects: pd.DataFrame) -> NormalizationResult:
        """
        Run all six steps.

        Raises:
            ValueError: If required columns are missing or non-numeric
            InsufficientDataError: If too few subjects remain to fit a regression
            DegenerateColumnError: If a residual column has zero variance
        """
        cleaned, qc = self.clean(subjects)

        if cleaned.empty:
            raise InsufficientDataError("No complete subjects remain after filtering")

        residual_cols = {}
        fits: List[ResidualFit] = []
        for feature in FEATURES:
            resid, fit = fit_confound_residuals(cleaned, feature)
            residual_cols[feature.name] = resid
            fits.append(fit)
            if fit.assay_adjusted:
                logger.info(f"  {feature.name}: adjusted for age + assay "
                            f"({len(fit.assay_levels)} levels), R²={fit.r_squared:.3f}")
            else:
                logger.info(f"  {feature.name}: adjusted for age, R²={fit.r_squared:.3f}")

        residuals = pd.DataFrame(residual_cols, index=cleaned.index)

        transformed = np.empty(residuals.shape, dtype=np.float64)
        for j, name in enumerate(residuals.columns):
            column = residuals[name].to_numpy()
            check_column_variance(column, name, tol=self.config.variance_tol)
            transformed[:, j] = inverse_normal_transform(column, offset=self.config.rank_offset)

        subject_ids = pd.Index(cleaned[ID_COLUMN].tolist(), name=ID_COLUMN)
        features = FeatureMatrix(
            data=transformed,
            subject_ids=subject_ids,
            feature_names=pd.Index(list(residuals.columns)),
        )

        residuals_out = residuals.copy()
        residuals_out.index = subject_ids

        return NormalizationResult(
            features=features,
            residuals=residuals_out,
            fits=fits,
            qc=qc,
            cleaned=cleaned,
        )
