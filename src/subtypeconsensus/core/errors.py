"""
Error taxonomy for the subtyping pipeline.

Data-quality problems (duplicates, missing fields, implausible values) are not
raised: the Normalizer filters them and reports counts. The exceptions below
are fatal to a pipeline run and carry no partial results.

"No consensus" is a valid output value (None), never an exception.
"""

from __future__ import annotations

__all__ = [
    'SubtypingError',
    'InsufficientDataError',
    'DegenerateColumnError',
    'LabelCollisionError',
]


class SubtypingError(Exception):
    """Base class for fatal pipeline errors."""
    pass


class InsufficientDataError(SubtypingError):
    """Raised when too few subjects remain to fit a regression or form k groups."""
    pass


class DegenerateColumnError(SubtypingError):
    """Raised when a feature column has zero variance."""

    def __init__(self, column: str, message: str | None = None):
        self.column = column
        super().__init__(message or f"Feature column '{column}' has zero variance")


class LabelCollisionError(SubtypingError):
    """Raised when one group maximizes both subtype scores and collisions are not tolerated."""

    def __init__(self, backend: str, group: int):
        self.backend = backend
        self.group = group
        super().__init__(
            f"Backend '{backend}': group {group} maximizes both the metabolic "
            f"and reproductive scores"
        )
