"""
Input/output for subject tables and consensus results.

- load_subjects: raw subject records from delimited text
- write_results: consensus CSV + JSON summary for a pipeline run
- read_consensus_records: lossless reader for the consensus CSV
"""

from subtypeconsensus.io.loaders import load_subjects, sniff_delimiter, DEFAULT_MISSING_MARKERS
from subtypeconsensus.io.writers import (
    write_consensus_records,
    read_consensus_records,
    write_results,
)

__all__ = [
    'load_subjects',
    'sniff_delimiter',
    'DEFAULT_MISSING_MARKERS',
    'write_consensus_records',
    'read_consensus_records',
    'write_results',
]
