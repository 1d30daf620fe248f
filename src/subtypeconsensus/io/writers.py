"""
Writers for consensus results.

Output Files:
    {base}.consensus.csv
        One row per retained subject: ID, the 8 normalized features, one
        label column per backend, consensus_majority, consensus_strict.
        No-consensus cells are empty.
    {base}.summary.json
        QC counts, regression diagnostics, per-backend group labels and
        consensus counts (PipelineResult.summary()).

The CSV round-trips losslessly through read_consensus_records(): floats
are written with full precision and labels are read back as
SemanticLabel values (None for no consensus).

Examples:
    >>> from pathlib import Path
    >>> from subtypeconsensus.io.writers import write_results
    >>> paths = write_results(result, Path("results/cohort"))
    >>> sorted(paths)
    ['consensus', 'summary']
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

import pandas as pd

from subtypeconsensus.core.labels import SemanticLabel
from subtypeconsensus.core.traits import ID_COLUMN, feature_names
from subtypeconsensus.utils.fileio import atomic_write_json, atomic_write_text

logger = logging.getLogger(__name__)

__all__ = ['write_consensus_records', 'read_consensus_records', 'write_results']


def write_consensus_records(frame: pd.DataFrame, path: Path) -> Path:
    """
    Write the flat consensus table (PipelineResult.to_frame()) to CSV.

    Returns:
        Path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    content = frame.to_csv(index=False, float_format="%.17g", na_rep="")
    atomic_write_text(path, content)
    logger.info(f"Wrote {len(frame)} consensus records to {path}")
    return path


def read_consensus_records(
    path: Path,
    label_columns: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """
    Read a consensus table written by write_consensus_records().

    Args:
        path: CSV path
        label_columns: Columns holding SemanticLabels. Defaults to every
            column that is neither the ID nor a feature.

    Returns:
        DataFrame with IDs as strings, features as floats and label columns
        as SemanticLabel (None where empty)
    """
    path = Path(path)
    frame = pd.read_csv(
        path,
        dtype={ID_COLUMN: str},
        keep_default_na=False,
        na_values=[""],
        float_precision="round_trip",
    )

    features = [c for c in feature_names() if c in frame.columns]
    for col in features:
        frame[col] = frame[col].astype(float)

    if label_columns is None:
        label_columns = [c for c in frame.columns if c != ID_COLUMN and c not in features]

    for col in label_columns:
        frame[col] = pd.Series(
            [SemanticLabel.from_value(v) for v in frame[col]],
            index=frame.index,
            dtype=object,
        )

    return frame


def write_results(result, output_base: Path) -> Dict[str, Path]:
    """
    Write consensus CSV and JSON summary for a PipelineResult.

    Args:
        result: PipelineResult
        output_base: Base path without extension

    Returns:
        Mapping of output kind -> path
    """
    output_base = Path(output_base)
    output_base.parent.mkdir(parents=True, exist_ok=True)

    consensus_path = write_consensus_records(
        result.to_frame(), output_base.with_name(output_base.name + ".consensus.csv")
    )

    summary_path = output_base.with_name(output_base.name + ".summary.json")
    atomic_write_json(summary_path, result.summary())
    logger.info(f"Wrote run summary to {summary_path}")

    return {"consensus": consensus_path, "summary": summary_path}
