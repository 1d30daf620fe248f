"""
Semantic subtype labels.

Clustering backends emit arbitrary group indices. After canonicalization every
group carries exactly one SemanticLabel, and consensus operates on these
labels only (never on raw indices).

Examples:
    >>> from subtypeconsensus.core.labels import SemanticLabel
    >>> SemanticLabel.METABOLIC.value
    'Metabolic'
    >>> SemanticLabel.from_value("Reproductive")
    <SemanticLabel.REPRODUCTIVE: 'Reproductive'>
    >>> SemanticLabel.from_value(None) is None
    True
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

import pandas as pd

__all__ = ['SemanticLabel', 'label_to_str']


class SemanticLabel(Enum):
    """Clinically meaningful subtype assigned to a canonicalized group."""

    METABOLIC = "Metabolic"
    REPRODUCTIVE = "Reproductive"
    INDETERMINATE = "Indeterminate"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_value(cls, value) -> Optional["SemanticLabel"]:
        """
        Total mapping from a stored representation back to a label.

        Accepts a SemanticLabel, its string value (case-insensitive) or a
        missing marker (None/NaN/empty string), which maps to None
        ("no consensus").

        Raises:
            ValueError: If value is a non-empty string that names no label
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        if not isinstance(value, str) and pd.isna(value):
            return None
        text = str(value).strip()
        if not text:
            return None
        for label in cls:
            if label.value.lower() == text.lower() or label.name.lower() == text.lower():
                return label
        raise ValueError(
            f"Unknown subtype label '{value}'. "
            f"Valid labels: {[label.value for label in cls]}"
        )


def label_to_str(label: Optional[SemanticLabel]) -> Optional[str]:
    """String form for tabular output; None stays None."""
    return None if label is None else label.value
