"""
Subject-level filters: duplicate removal and completeness checks.

Both filters are pure stages (SubjectTransform): they return a new table and
the number of subjects they removed. Neither imputes anything. A subject
lacking age, BMI or any trait is dropped, never filled in.

Engineering Design:
    - Deduplication keys on identity + measurements; assay columns are
      metadata and do not distinguish records
    - First occurrence wins and input order is preserved, so the retained
      set is reproducible across runs
    - The same CompletenessFilter class runs twice in the Normalizer (before
      and after outlier flagging); the two StageResults are reported
      separately
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import pandas as pd

from subtypeconsensus.core.traits import FEATURES, ID_COLUMN, AGE_COLUMN
from subtypeconsensus.core.transform import SubjectTransform, StageResult

logger = logging.getLogger(__name__)

__all__ = ['DuplicateFilter', 'CompletenessFilter', 'default_record_key']


def default_record_key() -> list[str]:
    """Columns that identify a record: ID, age, BMI and the seven traits."""
    return [ID_COLUMN, AGE_COLUMN] + [f.column for f in FEATURES]


class DuplicateFilter(SubjectTransform):
    """
    Collapse records identical across the key columns, keeping the first.

    Params:
        key_columns: Columns compared for identity. Defaults to
            (ID, age, BMI, 7 traits).

    Examples:
        >>> result = DuplicateFilter().apply(raw_subjects)
        >>> print(f"Removed {result.n_removed} duplicates")
    """

    def __init__(self, key_columns: Optional[Sequence[str]] = None):
        key_columns = list(key_columns) if key_columns else default_record_key()
        super().__init__(name="DuplicateFilter", params={"key_columns": key_columns})
        self.key_columns = key_columns

    def required_columns(self) -> list[str]:
        return list(self.key_columns)

    def apply(self, table: pd.DataFrame) -> StageResult:
        errors = self.validate(table)
        if errors:
            raise ValueError(f"{self.name}: {'; '.join(errors)}")

        duplicated = table.duplicated(subset=self.key_columns, keep="first")
        n_removed = int(duplicated.sum())

        if n_removed:
            dup_ids = table.loc[duplicated, ID_COLUMN].astype(str).tolist()
            logger.info(f"Removed {n_removed} duplicate records (IDs: {dup_ids[:10]}"
                        f"{'...' if len(dup_ids) > 10 else ''})")
        else:
            logger.info("No duplicate records found")

        return StageResult(
            table=table.loc[~duplicated].copy(),
            n_removed=n_removed,
            details={"removed_ids": table.loc[duplicated, ID_COLUMN].tolist()},
        )


class CompletenessFilter(SubjectTransform):
    """
    Drop subjects missing the ID, age, BMI or any of the seven traits.

    Params:
        columns: Columns that must be non-missing. Defaults to
            (ID, age, BMI, 7 traits).
        stage: Label used in log messages ("initial", "post-outlier")

    The StageResult details hold the number of missing values per column,
    counted before any subject is dropped, and the IDs of removed subjects.
    """

    def __init__(self, columns: Optional[Sequence[str]] = None, stage: str = "initial"):
        columns = list(columns) if columns else default_record_key()
        super().__init__(
            name="CompletenessFilter",
            params={"columns": columns, "stage": stage},
        )
        self.columns = columns
        self.stage = stage

    def required_columns(self) -> list[str]:
        return list(self.columns)

    def apply(self, table: pd.DataFrame) -> StageResult:
        errors = self.validate(table)
        if errors:
            raise ValueError(f"{self.name}: {'; '.join(errors)}")

        present = table[self.columns].notna()
        complete = present.all(axis=1)
        n_removed = int((~complete).sum())

        missing_per_column = {
            col: int(n) for col, n in (~present).sum().items() if n > 0
        }

        logger.info(f"Completeness filter ({self.stage}): kept {int(complete.sum())}/"
                    f"{len(table)} subjects, removed {n_removed}")
        if missing_per_column:
            logger.info(f"  Missing values per column: {missing_per_column}")

        return StageResult(
            table=table.loc[complete].copy(),
            n_removed=n_removed,
            details={
                "missing_per_column": missing_per_column,
                "removed_ids": table.loc[~complete, ID_COLUMN].tolist(),
            },
        )
