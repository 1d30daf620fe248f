"""
Loader for raw subject tables.

Reads a delimited text file with one row per subject record into a
DataFrame ready for the Normalizer:

    ID, age, BMI, T, DHEAS, Ins0, Glu0, SHBG, LH, FSH,
    T_assay, DHEAS_assay, Ins0_assay, Glu0_assay, SHBG_assay, LH_assay, FSH_assay

Engineering Design:
    - Delimiter auto-detected (comma, tab, semicolon, pipe)
    - Recognized missing-value markers become NaN
    - IDs and assay methods are read as strings (an assay code like "01"
      must not become the number 1)
    - Measurement columns are parsed as numbers; a non-numeric entry that is
      not a missing marker is an error, reported with its column
    - Extra columns are kept untouched

Examples:
    >>> from pathlib import Path
    >>> from subtypeconsensus.io.loaders import load_subjects
    >>> subjects = load_subjects(Path("cohort.csv"))
    >>> subjects.shape
    (893, 17)
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from subtypeconsensus.core.traits import FEATURES, ID_COLUMN, measurement_columns

logger = logging.getLogger(__name__)

__all__ = ['load_subjects', 'sniff_delimiter', 'DEFAULT_MISSING_MARKERS']

DEFAULT_MISSING_MARKERS = ("", "NA", "N/A", "NaN", "nan", "NULL", "null", ".")

DELIMITERS = "\t,;|"


def sniff_delimiter(path: Path, sample_size: int = 8192) -> str:
    """Guess the field delimiter, falling back to header-row counts."""
    with open(path, 'r', encoding='utf-8', errors='ignore') as f:
        sample = f.read(sample_size)

    try:
        return csv.Sniffer().sniff(sample, delimiters=DELIMITERS).delimiter
    except csv.Error:
        header = sample.partition('\n')[0]
        counts = {d: header.count(d) for d in DELIMITERS}

    if not any(counts.values()):
        raise ValueError(f"Could not detect delimiter in {path}; pass one explicitly")
    return max(counts, key=counts.get)


def load_subjects(
    path: Path,
    delimiter: Optional[str] = None,
    missing_markers: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """
    Load raw subject records.

    Args:
        path: Delimited text file with a header row
        delimiter: Field separator; auto-detected when None
        missing_markers: Strings treated as missing. Defaults to
            DEFAULT_MISSING_MARKERS.

    Returns:
        DataFrame with one row per record, in file order

    Raises:
        FileNotFoundError: If path doesn't exist
        ValueError: If required columns are absent or a measurement
            column holds non-numeric text
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Subject file not found: {path}")

    delimiter = delimiter or sniff_delimiter(path)
    markers = list(missing_markers) if missing_markers is not None else list(DEFAULT_MISSING_MARKERS)

    string_columns = [ID_COLUMN] + [f.assay_column for f in FEATURES if f.assay_column]

    table = pd.read_csv(
        path,
        sep=delimiter,
        dtype={col: str for col in string_columns},
        na_values=markers,
        keep_default_na=False,
    )
    table.columns = [str(c).strip() for c in table.columns]

    required = [ID_COLUMN] + measurement_columns()
    missing_cols = [c for c in required if c not in table.columns]
    if missing_cols:
        raise ValueError(
            f"Subject file {path} is missing required columns: {missing_cols}. "
            f"Found: {list(table.columns)}"
        )

    for col in measurement_columns():
        try:
            table[col] = pd.to_numeric(table[col], errors="raise").astype(float)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Column '{col}' in {path} contains non-numeric values: {e}") from e

    absent_assays = [f.assay_column for f in FEATURES
                     if f.assay_column and f.assay_column not in table.columns]
    if absent_assays:
        logger.info(f"No assay-method columns for: {absent_assays} (age-only adjustment)")

    logger.info(f"Loaded {len(table)} subject records from {path}")
    return table
