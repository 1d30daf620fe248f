"""
Base transformation framework for subject-table cleaning stages.

Each cleaning stage of the Normalizer (deduplication, completeness filtering,
outlier flagging) is a pure function over the raw subject table: it takes a
DataFrame and returns a new DataFrame together with the counts it produced.
Inputs are never modified.

Counts are returned, not accumulated in shared state. The Normalizer threads
StageResult values through its stages and assembles the QC report from them.

Examples:
    >>> from subtypeconsensus.core.transform import SubjectTransform, StageResult
    >>>
    >>> class DropFirst(SubjectTransform):
    ...     def __init__(self):
    ...         super().__init__(name="DropFirst", params={})
    ...
    ...     def apply(self, table):
    ...         return StageResult(table=table.iloc[1:].copy(), n_removed=1)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

__all__ = ['SubjectTransform', 'StageResult']


@dataclass(frozen=True)
class StageResult:
    """
    Output of one cleaning stage.

    Attributes:
        table: Subject table after the stage (new object)
        n_removed: Subjects removed by this stage
        details: Stage-specific counts (e.g., nulled values per column)
    """

    table: pd.DataFrame
    n_removed: int = 0
    details: dict[str, Any] = field(default_factory=dict)


class SubjectTransform(ABC):
    """
    Abstract base class for subject-table transformations.

    Attributes:
        name: Human-readable stage name (e.g., "DuplicateFilter")
        params: Parameters used by this stage, kept for the audit log
    """

    def __init__(self, name: str, params: dict[str, Any]) -> None:
        self.name = name
        self.params = params

    @abstractmethod
    def apply(self, table: pd.DataFrame) -> StageResult:
        """
        Execute the stage and return a new table plus counts.

        Must never modify the input table.
        """
        pass

    def validate(self, table: pd.DataFrame) -> list[str]:
        """
        Check preconditions before applying the stage.

        Returns:
            List of error messages (empty list = valid)
        """
        errors: list[str] = []
        missing = [c for c in self.required_columns() if c not in table.columns]
        if missing:
            errors.append(f"Missing required columns: {missing}")
        return errors

    def required_columns(self) -> list[str]:
        """Columns this stage reads. Subclasses override."""
        return []

    def __repr__(self) -> str:
        params_str = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.name}({params_str})"
