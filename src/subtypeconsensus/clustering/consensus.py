"""
Consensus voting across canonicalized backend labels.

Two pure, total, per-subject rules over the tuple of backend labels:

- Majority: a label wins if it holds a strict majority of the votes
  (count > n/2; 2 or 3 of 3). A 1-1-1 split has no consensus.
- Strict: a label wins only if every backend agrees on it.

"No consensus" is returned as None. It is an expected outcome, not an
error, and never raises.

Examples:
    >>> from subtypeconsensus.core.labels import SemanticLabel as L
    >>> majority_consensus([L.METABOLIC, L.METABOLIC, L.REPRODUCTIVE])
    <SemanticLabel.METABOLIC: 'Metabolic'>
    >>> strict_consensus([L.METABOLIC, L.METABOLIC, L.REPRODUCTIVE]) is None
    True
    >>> majority_consensus([L.METABOLIC, L.REPRODUCTIVE, L.INDETERMINATE]) is None
    True
"""

from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import Callable, Dict, Optional, Sequence

import pandas as pd

from subtypeconsensus.core.labels import SemanticLabel

__all__ = [
    'ConsensusMethod',
    'majority_consensus',
    'strict_consensus',
    'consensus_function',
    'consensus_frame',
    'consensus_counts',
    'agreement_table',
    'NO_CONSENSUS',
]

# Key used for "no consensus" in count summaries
NO_CONSENSUS = "no_consensus"

LabelVotes = Sequence[Optional[SemanticLabel]]


class ConsensusMethod(Enum):
    """Available consensus rules."""

    MAJORITY = "majority"
    STRICT = "strict"


def majority_consensus(labels: LabelVotes) -> Optional[SemanticLabel]:
    """
    Label held by a strict majority of voters, else None.

    Missing votes (None) count as voters that support no label.
    """
    if not labels:
        return None
    votes = Counter(label for label in labels if label is not None)
    if not votes:
        return None
    label, count = votes.most_common(1)[0]
    if count * 2 > len(labels):
        return label
    return None


def strict_consensus(labels: LabelVotes) -> Optional[SemanticLabel]:
    """Label shared by every voter, else None."""
    if not labels:
        return None
    first = labels[0]
    if first is None:
        return None
    if all(label is first for label in labels):
        return first
    return None


_RULES: Dict[ConsensusMethod, Callable[[LabelVotes], Optional[SemanticLabel]]] = {
    ConsensusMethod.MAJORITY: majority_consensus,
    ConsensusMethod.STRICT: strict_consensus,
}


def consensus_function(
    method: ConsensusMethod | str,
) -> Callable[[LabelVotes], Optional[SemanticLabel]]:
    """Look up the voting rule for a method (enum or its string value)."""
    if isinstance(method, str):
        method = ConsensusMethod(method)
    return _RULES[method]


def consensus_frame(
    label_frame: pd.DataFrame,
    method: ConsensusMethod | str = ConsensusMethod.MAJORITY,
) -> pd.Series:
    """
    Row-wise consensus over a table of backend labels.

    Args:
        label_frame: One row per subject, one column per backend; cells are
            SemanticLabels or their string values
        method: Consensus rule

    Returns:
        Series of SemanticLabel or None, indexed like label_frame
    """
    rule = consensus_function(method)
    votes = label_frame.apply(lambda col: col.map(SemanticLabel.from_value))
    result = [rule(list(row)) for row in votes.itertuples(index=False, name=None)]
    return pd.Series(result, index=label_frame.index, dtype=object)


def consensus_counts(labels: Sequence[Optional[SemanticLabel]]) -> Dict[str, int]:
    """Number of subjects per consensus label, plus the no-consensus count."""
    counts = {label.value: 0 for label in SemanticLabel}
    counts[NO_CONSENSUS] = 0
    for label in labels:
        if label is None:
            counts[NO_CONSENSUS] += 1
        else:
            counts[label.value] += 1
    return counts


def agreement_table(first: pd.Series, second: pd.Series) -> pd.DataFrame:
    """
    Cross-tabulation of two label assignments over the same subjects.

    Rows follow first, columns follow second, both in SemanticLabel order.
    """
    order = [label.value for label in SemanticLabel]

    def _as_category(series: pd.Series) -> pd.Categorical:
        labels = [SemanticLabel.from_value(v) for v in series]
        return pd.Categorical(
            [None if label is None else label.value for label in labels],
            categories=order,
        )

    return pd.crosstab(
        _as_category(first),
        _as_category(second),
        rownames=[first.name or "first"],
        colnames=[second.name or "second"],
        dropna=False,
    )
