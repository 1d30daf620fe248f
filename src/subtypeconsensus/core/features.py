"""
Core data structure for the normalized feature matrix.

FeatureMatrix couples the standardized feature values with the subject
identities they belong to. It is produced once by the Normalizer and then
shared, read-only, by all clustering backends.

Engineering Design:
    - Immutable: the data array is copied on construction and marked
      read-only, so concurrent backends can share it without locking
    - Validated: constructor checks shape and index consistency
    - Rows = subjects, columns = features (the orientation clustering
      libraries expect)

Examples:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from subtypeconsensus.core.features import FeatureMatrix
    >>>
    >>> matrix = FeatureMatrix(
    ...     data=np.zeros((2, 8)),
    ...     subject_ids=pd.Index(["S1", "S2"]),
    ...     feature_names=pd.Index(["BMI", "T", "DHEAS", "Ins0", "Glu0", "SHBG", "LH", "FSH"]),
    ... )
    >>> matrix.shape
    (2, 8)
    >>> matrix.column("Glu0").shape
    (2,)
"""

from __future__ import annotations

import numpy as np
import pandas as pd

__all__ = ['FeatureMatrix']


class FeatureMatrix:
    """
    Immutable container for normalized features + subject identities.

    Attributes:
        data: Feature values (n_subjects x n_features), read-only
        subject_ids: Row identifiers (subject IDs)
        feature_names: Column identifiers (feature names)

    Shape Invariants:
        - data.shape[0] == len(subject_ids)
        - data.shape[1] == len(feature_names)
    """

    def __init__(
        self,
        data: np.ndarray,
        subject_ids: pd.Index,
        feature_names: pd.Index,
    ):
        """
        Initialize FeatureMatrix with validation.

        Args:
            data: Feature matrix (subjects x features)
            subject_ids: Row identifiers
            feature_names: Column identifiers

        Raises:
            TypeError: If argument types are incorrect
            ValueError: If shapes are inconsistent
        """
        if not isinstance(data, np.ndarray):
            raise TypeError(f"data must be np.ndarray, got {type(data)}")
        if not isinstance(subject_ids, pd.Index):
            raise TypeError(f"subject_ids must be pd.Index, got {type(subject_ids)}")
        if not isinstance(feature_names, pd.Index):
            raise TypeError(f"feature_names must be pd.Index, got {type(feature_names)}")

        if data.ndim != 2:
            raise ValueError(f"data must be 2D, got shape {data.shape}")

        n_subjects, n_features = data.shape
        if len(subject_ids) != n_subjects:
            raise ValueError(
                f"subject_ids length ({len(subject_ids)}) must match data rows ({n_subjects})"
            )
        if len(feature_names) != n_features:
            raise ValueError(
                f"feature_names length ({len(feature_names)}) must match data columns ({n_features})"
            )

        frozen = np.array(data, dtype=np.float64, copy=True)
        frozen.flags.writeable = False

        self._data = frozen
        self._subject_ids = subject_ids
        self._feature_names = feature_names

    @property
    def data(self) -> np.ndarray:
        """Feature values (subjects x features)."""
        return self._data

    @property
    def subject_ids(self) -> pd.Index:
        """Row identifiers."""
        return self._subject_ids

    @property
    def feature_names(self) -> pd.Index:
        """Column identifiers."""
        return self._feature_names

    @property
    def shape(self) -> tuple[int, int]:
        """Matrix dimensions (n_subjects, n_features)."""
        return self._data.shape

    @property
    def n_subjects(self) -> int:
        return self._data.shape[0]

    @property
    def n_features(self) -> int:
        return self._data.shape[1]

    def column(self, name: str) -> np.ndarray:
        """Values of one feature across all subjects."""
        if name not in self._feature_names:
            raise KeyError(f"Feature '{name}' not in matrix: {list(self._feature_names)}")
        return self._data[:, self._feature_names.get_loc(name)]

    def __repr__(self) -> str:
        return f"FeatureMatrix(n_subjects={self.n_subjects}, n_features={self.n_features})"
