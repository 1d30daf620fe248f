"""
Pytest configuration and shared fixtures.

Provides a synthetic cohort generator with three planted subtypes so that
normalization, clustering and consensus can be exercised end to end.
"""

import numpy as np
import pandas as pd
import pytest

from subtypeconsensus.core.features import FeatureMatrix
from subtypeconsensus.core.traits import FEATURES, feature_names

# Typical fasting-state values (log-normal centers)
BASELINE = {
    "BMI": 24.0,
    "T": 1.5,
    "DHEAS": 200.0,
    "Ins0": 9.0,
    "Glu0": 88.0,
    "SHBG": 50.0,
    "LH": 7.0,
    "FSH": 6.0,
}

# Log-scale shift applied to the planted subtype's own axis
SHIFTS = {
    0: {"BMI": 0.5, "Ins0": 0.6, "Glu0": 0.12},         # metabolic
    1: {"SHBG": 0.6, "LH": 0.6, "FSH": 0.6, "T": 0.4},   # reproductive
    2: {"DHEAS": 0.5},                                  # background
}

SPREAD = {"Glu0": 0.04}
DEFAULT_SPREAD = 0.1


def generate_synthetic_cohort(
    n_per_group: int = 60,
    n_assays: int = 2,
    seed: int = 42,
) -> tuple[pd.DataFrame, np.ndarray]:
    """
    Generate a raw subject table with three well-separated subtypes.

    Args:
        n_per_group: Subjects per planted subtype
        n_assays: Number of assay methods per trait
        seed: Random seed for reproducibility

    Returns:
        Tuple of (subject table, planted group per row). Group 0 is
        metabolic, 1 reproductive, 2 background. All values are positive
        and every fasting glucose stays below the diabetic ceiling.
    """
    rng = np.random.default_rng(seed)
    groups = np.repeat([0, 1, 2], n_per_group)
    n = len(groups)

    table = pd.DataFrame({
        "ID": [f"S{i:04d}" for i in range(n)],
        "age": rng.uniform(20, 45, size=n).round(1),
    })

    for name in feature_names():
        shift = np.array([SHIFTS[g].get(name, 0.0) for g in groups])
        spread = SPREAD.get(name, DEFAULT_SPREAD)
        table[name] = BASELINE[name] * np.exp(shift + rng.normal(0, spread, size=n))

    assays = [chr(ord("A") + i) for i in range(n_assays)]
    for feature in FEATURES:
        if feature.assay_column:
            table[feature.assay_column] = rng.choice(assays, size=n)

    return table, groups


def make_feature_matrix(data: np.ndarray) -> FeatureMatrix:
    """Wrap a (n x 8) array as a FeatureMatrix with the standard feature names."""
    return FeatureMatrix(
        data=np.asarray(data, dtype=np.float64),
        subject_ids=pd.Index([f"S{i}" for i in range(len(data))], name="ID"),
        feature_names=pd.Index(feature_names()),
    )


@pytest.fixture
def cohort():
    """Synthetic cohort (180 subjects, 3 planted subtypes, 2 assays)."""
    return generate_synthetic_cohort()


@pytest.fixture
def subjects(cohort):
    """Raw subject table only."""
    table, _ = cohort
    return table.copy()


@pytest.fixture
def planted_groups(cohort):
    _, groups = cohort
    return groups


@pytest.fixture
def small_subjects():
    """Ten hand-written subject records with known QC outcomes.

    - S03 duplicates S02 exactly (dropped as duplicate)
    - S05 has no age (dropped for missing data)
    - S07 has Glu0 = 130 (nulled as outlier, then dropped)
    - S09 has LH = 0 (nulled as outlier, then dropped)
    """
    rows = [
        ("S01", 25.0, 22.1, 1.2, 180.0, 8.0, 85.0, 55.0, 6.0, 5.5, "A"),
        ("S02", 31.0, 27.4, 1.9, 240.0, 12.0, 95.0, 40.0, 8.0, 6.1, "A"),
        ("S02", 31.0, 27.4, 1.9, 240.0, 12.0, 95.0, 40.0, 8.0, 6.1, "A"),
        ("S04", 28.0, 24.0, 1.4, 210.0, 9.5, 90.0, 48.0, 7.2, 6.4, "B"),
        ("S05", np.nan, 23.2, 1.6, 190.0, 7.4, 86.0, 61.0, 5.1, 4.9, "B"),
        ("S06", 36.0, 31.5, 2.4, 260.0, 15.0, 101.0, 35.0, 9.1, 7.0, "A"),
        ("S07", 40.0, 29.9, 1.7, 230.0, 14.0, 130.0, 44.0, 6.6, 6.8, "B"),
        ("S08", 22.0, 20.5, 1.1, 170.0, 6.2, 80.0, 70.0, 4.4, 4.1, "B"),
        ("S09", 27.0, 25.5, 1.3, 205.0, 10.1, 92.0, 52.0, 0.0, 5.0, "A"),
        ("S10", 33.0, 26.8, 2.0, 220.0, 11.3, 97.0, 46.0, 7.9, 6.3, "B"),
    ]
    columns = ["ID", "age", "BMI", "T", "DHEAS", "Ins0", "Glu0", "SHBG", "LH", "FSH", "assay"]
    table = pd.DataFrame(rows, columns=columns)
    for feature in FEATURES:
        if feature.assay_column:
            table[feature.assay_column] = table["assay"]
    return table.drop(columns="assay")
