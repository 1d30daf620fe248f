"""
Rule-based flagging of physiologically implausible trait values.

Unlike statistical outlier detection, these are fixed clinical predicates:
a fasting glucose above the diabetic threshold, or a non-positive value for
a measurement that will be log-transformed. A flagged value is set to
missing; the subject itself is left in place, and the second completeness
filter decides whether it survives. Values are never clipped.

Biological Context:
    Fasting glucose >= 126 mg/dL meets the diagnostic criterion for type 2
    diabetes. Subtype discovery is run on non-diabetic subjects, so values
    above the ceiling exclude the subject rather than pulling the metabolic
    axis toward overt disease.

Examples:
    >>> from subtypeconsensus.quality.outliers import OutlierRule, ClinicalOutlierFlagger
    >>>
    >>> flagger = ClinicalOutlierFlagger(rules=[OutlierRule("Glu0", "gt", 126)])
    >>> result = flagger.apply(subjects)
    >>> result.details["flagged_per_column"]
    {'Glu0': 3}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from subtypeconsensus.core.traits import FEATURES
from subtypeconsensus.core.transform import SubjectTransform, StageResult

logger = logging.getLogger(__name__)

__all__ = [
    'OutlierRule',
    'ClinicalOutlierFlagger',
    'default_outlier_rules',
    'positivity_rules',
    'GLUCOSE_CEILING',
]

# Fasting glucose diagnostic threshold for diabetes (mg/dL)
GLUCOSE_CEILING = 126.0


@dataclass(frozen=True)
class OutlierRule:
    """Single predicate marking a raw value as implausible.

    Operators:
        gt  : value > threshold
        gte : value >= threshold
        lt  : value < threshold
        lte : value <= threshold

    Missing values never match.
    """

    column: str
    operator: str
    threshold: float

    _VALID_OPERATORS = frozenset({"gt", "gte", "lt", "lte"})

    def __post_init__(self):
        if self.operator not in self._VALID_OPERATORS:
            raise ValueError(
                f"Invalid operator '{self.operator}' for rule on column "
                f"'{self.column}'. Valid operators: {sorted(self._VALID_OPERATORS)}"
            )

    def evaluate(self, series: pd.Series) -> pd.Series:
        """Boolean Series, True where the value is flagged."""
        values = pd.to_numeric(series, errors="coerce").to_numpy(dtype=float)
        with np.errstate(invalid="ignore"):
            if self.operator == "gt":
                flagged = values > self.threshold
            elif self.operator == "gte":
                flagged = values >= self.threshold
            elif self.operator == "lt":
                flagged = values < self.threshold
            else:
                flagged = values <= self.threshold
        flagged &= ~np.isnan(values)
        return pd.Series(flagged, index=series.index, dtype=bool)

    def to_dict(self) -> Dict[str, Any]:
        return {"column": self.column, "operator": self.operator, "threshold": self.threshold}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> OutlierRule:
        return cls(
            column=data["column"],
            operator=data["operator"],
            threshold=float(data["threshold"]),
        )

    def __str__(self) -> str:
        return f"{self.column} {self.operator} {self.threshold:g}"


def default_outlier_rules() -> List[OutlierRule]:
    """Default clinical rule set: Glu0 > 126 (diabetic fasting glucose)."""
    return [OutlierRule(column="Glu0", operator="gt", threshold=GLUCOSE_CEILING)]


def positivity_rules() -> List[OutlierRule]:
    """
    Log-domain guard: every log-transformed measurement <= 0.

    Always applied by ClinicalOutlierFlagger, whatever clinical rules are
    configured, so a non-positive value is filtered and counted instead of
    reaching the confound regression.
    """
    return [
        OutlierRule(column=feature.column, operator="lte", threshold=0.0)
        for feature in FEATURES
    ]


class ClinicalOutlierFlagger(SubjectTransform):
    """
    Null out individual values that match any outlier rule.

    The StageResult never removes subjects (n_removed == 0); its details
    carry the number of nulled values per column and the number of
    affected subjects.

    Params:
        rules: Clinical outlier rules. Defaults to default_outlier_rules().
            The positivity_rules() guard is applied in addition.
    """

    def __init__(self, rules: Optional[Sequence[OutlierRule]] = None):
        clinical = list(rules) if rules is not None else default_outlier_rules()
        rules = positivity_rules() + clinical
        super().__init__(
            name="ClinicalOutlierFlagger",
            params={"rules": [str(r) for r in rules]},
        )
        self.rules = rules

    def required_columns(self) -> list[str]:
        return sorted({rule.column for rule in self.rules})

    def apply(self, table: pd.DataFrame) -> StageResult:
        errors = self.validate(table)
        if errors:
            raise ValueError(f"{self.name}: {'; '.join(errors)}")

        cleaned = table.copy()
        flagged_per_column: Dict[str, int] = {}
        affected = pd.Series(False, index=table.index)

        for rule in self.rules:
            # Evaluate on the original values so rule order does not matter
            mask = rule.evaluate(table[rule.column]) & cleaned[rule.column].notna()
            n_flagged = int(mask.sum())
            if n_flagged == 0:
                continue
            cleaned.loc[mask, rule.column] = np.nan
            flagged_per_column[rule.column] = flagged_per_column.get(rule.column, 0) + n_flagged
            affected |= mask
            logger.info(f"Outlier rule '{rule}': nulled {n_flagged} values")

        n_values = sum(flagged_per_column.values())
        logger.info(f"Outlier flagging: nulled {n_values} values in "
                    f"{int(affected.sum())} subjects")

        return StageResult(
            table=cleaned,
            n_removed=0,
            details={
                "flagged_per_column": flagged_per_column,
                "n_flagged_values": n_values,
                "n_flagged_subjects": int(affected.sum()),
            },
        )
