"""
Quality control for raw subject records.

Components:
    DuplicateFilter: Collapse repeated records (first occurrence kept)
    CompletenessFilter: Drop subjects missing age, BMI or any trait
    ClinicalOutlierFlagger: Null implausible values using fixed clinical rules

Quality control workflow:
    1. DuplicateFilter
    2. CompletenessFilter (initial)
    3. ClinicalOutlierFlagger - nulls values, not subjects
    4. CompletenessFilter (post-outlier) - subjects with nulled values drop here

Every stage returns its own counts (StageResult); nothing is imputed.
"""

from subtypeconsensus.quality.filtering import (
    DuplicateFilter,
    CompletenessFilter,
    default_record_key,
)
from subtypeconsensus.quality.outliers import (
    OutlierRule,
    ClinicalOutlierFlagger,
    default_outlier_rules,
    positivity_rules,
    GLUCOSE_CEILING,
)

__all__ = [
    'DuplicateFilter',
    'CompletenessFilter',
    'default_record_key',
    'OutlierRule',
    'ClinicalOutlierFlagger',
    'default_outlier_rules',
    'positivity_rules',
    'GLUCOSE_CEILING',
]
