"""
Statistical transformations for feature normalization.

- residuals: per-feature OLS confound adjustment of log measurements
- rank_normal: rank-based inverse-normal transformation
- normalization: the Normalizer that chains QC filters, adjustment and
  transformation into one reproducible run
"""

from subtypeconsensus.stats.rank_normal import (
    inverse_normal_transform,
    quantile_grid,
    check_column_variance,
    DEFAULT_RANK_OFFSET,
    BLOM_OFFSET,
)
from subtypeconsensus.stats.residuals import ResidualFit, fit_confound_residuals
from subtypeconsensus.stats.normalization import (
    NormalizerConfig,
    QCReport,
    NormalizationResult,
    Normalizer,
)

__all__ = [
    'inverse_normal_transform',
    'quantile_grid',
    'check_column_variance',
    'DEFAULT_RANK_OFFSET',
    'BLOM_OFFSET',
    'ResidualFit',
    'fit_confound_residuals',
    'NormalizerConfig',
    'QCReport',
    'NormalizationResult',
    'Normalizer',
]
