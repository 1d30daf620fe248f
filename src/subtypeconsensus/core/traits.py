"""
Fixed feature descriptors for the eight clustering features.

The feature set is known up front: BMI plus seven clinical traits. Each
descriptor records the raw column, its assay-method column (if any) and
whether the assay method enters the confound regression. Downstream code
iterates FEATURES explicitly instead of building column names at runtime.

Biological Context:
    - Metabolic axis: BMI, fasting insulin (Ins0), fasting glucose (Glu0)
    - Reproductive axis: SHBG, LH, FSH
    - Androgens (T, DHEAS) are clustered on but do not enter either score

Examples:
    >>> from subtypeconsensus.core.traits import FEATURES, feature_names
    >>> feature_names()
    ['BMI', 'T', 'DHEAS', 'Ins0', 'Glu0', 'SHBG', 'LH', 'FSH']
    >>> [f.name for f in FEATURES if f.assay_column]
    ['T', 'DHEAS', 'Ins0', 'Glu0', 'SHBG', 'LH', 'FSH']
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

__all__ = [
    'TraitDescriptor',
    'ID_COLUMN',
    'AGE_COLUMN',
    'BMI',
    'TRAITS',
    'FEATURES',
    'METABOLIC_FEATURES',
    'REPRODUCTIVE_FEATURES',
    'feature_names',
    'measurement_columns',
    'get_feature',
]

ID_COLUMN = "ID"
AGE_COLUMN = "age"


@dataclass(frozen=True)
class TraitDescriptor:
    """
    One clustering feature.

    Attributes:
        name: Feature name used in the normalized matrix
        column: Raw measurement column in the subject table
        assay_column: Column holding the assay-method category, or None
            when the measurement has no assay confound (BMI)
    """

    name: str
    column: str
    assay_column: Optional[str] = None

    @property
    def assay_dependent(self) -> bool:
        """True if an assay-method term may enter this feature's regression."""
        return self.assay_column is not None


def _trait(name: str) -> TraitDescriptor:
    return TraitDescriptor(name=name, column=name, assay_column=f"{name}_assay")


BMI = TraitDescriptor(name="BMI", column="BMI")

TRAITS: tuple[TraitDescriptor, ...] = (
    _trait("T"),
    _trait("DHEAS"),
    _trait("Ins0"),
    _trait("Glu0"),
    _trait("SHBG"),
    _trait("LH"),
    _trait("FSH"),
)

FEATURES: tuple[TraitDescriptor, ...] = (BMI,) + TRAITS

METABOLIC_FEATURES: tuple[str, ...] = ("BMI", "Ins0", "Glu0")
REPRODUCTIVE_FEATURES: tuple[str, ...] = ("SHBG", "LH", "FSH")


def feature_names() -> list[str]:
    """Names of the eight features in matrix column order."""
    return [f.name for f in FEATURES]


def measurement_columns() -> list[str]:
    """Raw columns that must be present for a subject to be complete (age + 8 measurements)."""
    return [AGE_COLUMN] + [f.column for f in FEATURES]


def get_feature(name: str) -> TraitDescriptor:
    """Look up a descriptor by feature name."""
    for feature in FEATURES:
        if feature.name == name:
            return feature
    raise KeyError(f"Unknown feature '{name}'. Known features: {feature_names()}")
