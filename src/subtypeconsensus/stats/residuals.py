"""
Confound adjustment: per-feature OLS residuals of log measurements.

For each feature the log-transformed value is regressed on age, plus the
assay-method category when the feature has more than one observed assay
level among the retained subjects:

    log(BMI)   ~ age
    log(trait) ~ age [+ C(assay)]

The residual is the part of the measurement not explained by the
confounders. Each feature is fitted on its own; no feature ever enters
another feature's design matrix.

Engineering Design:
    - patsy builds the design matrix (treatment coding for C(assay))
    - statsmodels OLS fits it; only residuals and R^2 are kept
    - Fits are independent, so the call order of features does not matter
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd

from subtypeconsensus.core.errors import InsufficientDataError
from subtypeconsensus.core.traits import AGE_COLUMN, TraitDescriptor

logger = logging.getLogger(__name__)

__all__ = ['ResidualFit', 'fit_confound_residuals', 'MISSING_ASSAY_LEVEL']

# Design-matrix level for an empty assay-method cell; never counted as an observed level
MISSING_ASSAY_LEVEL = "unknown"


@dataclass(frozen=True)
class ResidualFit:
    """Diagnostics for one confound regression.

    Attributes:
        feature: Feature name
        formula: Model formula that was fitted
        n: Number of subjects in the fit
        n_params: Number of design-matrix columns
        r_squared: Proportion of log-variance explained by the confounders
        assay_levels: Assay levels (sorted). Adjustment applies only when
            more than one level is observed; the design then also carries
            MISSING_ASSAY_LEVEL for subjects without a recorded method.
    """

    feature: str
    formula: str
    n: int
    n_params: int
    r_squared: float
    assay_levels: Tuple[str, ...] = ()

    @property
    def assay_adjusted(self) -> bool:
        return len(self.assay_levels) > 1

    def to_dict(self) -> dict:
        return {
            "feature": self.feature,
            "formula": self.formula,
            "n": self.n,
            "n_params": self.n_params,
            "r_squared": self.r_squared,
            "assay_levels": list(self.assay_levels),
            "assay_adjusted": self.assay_adjusted,
        }


def _assay_column(table: pd.DataFrame, feature: TraitDescriptor) -> pd.Series | None:
    if not feature.assay_dependent or feature.assay_column not in table.columns:
        return None
    return table[feature.assay_column].astype("string")


def fit_confound_residuals(
    table: pd.DataFrame,
    feature: TraitDescriptor,
) -> Tuple[pd.Series, ResidualFit]:
    """
    Regress log(feature) on age (+ assay method) and return the residuals.

    Args:
        table: Complete, cleaned subject table (no missing age or feature
            values, all feature values strictly positive)
        feature: Feature to adjust

    Returns:
        Tuple of (residuals indexed like table, ResidualFit diagnostics)

    Raises:
        InsufficientDataError: If there are not more subjects than
            regression parameters
        ValueError: If the table has missing or non-positive values
    """
    import patsy
    import statsmodels.api as sm

    y_raw = table[feature.column].astype(float)
    age = table[AGE_COLUMN].astype(float)

    if y_raw.isna().any() or age.isna().any():
        raise ValueError(
            f"Feature '{feature.name}': missing values reached confound adjustment; "
            f"run the completeness filter first"
        )
    if (y_raw <= 0).any():
        raise ValueError(
            f"Feature '{feature.name}': non-positive values cannot be log-transformed"
        )

    data = pd.DataFrame({"y": np.log(y_raw.to_numpy()), "age": age.to_numpy()})

    # Only observed methods decide whether the assay term enters the model
    assay = _assay_column(table, feature)
    levels: Tuple[str, ...] = ()
    if assay is not None:
        levels = tuple(sorted(str(v) for v in assay.dropna().unique()))

    if len(levels) > 1:
        filled = assay.fillna(MISSING_ASSAY_LEVEL).astype(str)
        levels = tuple(sorted(filled.unique()))
        data["assay"] = filled.to_numpy()
        formula = "y ~ age + C(assay)"
    else:
        formula = "y ~ age"

    y, X = patsy.dmatrices(formula, data=data, return_type="dataframe", NA_action="raise")

    n, n_params = X.shape
    if n <= n_params:
        raise InsufficientDataError(
            f"Feature '{feature.name}': {n} subjects cannot fit '{formula}' "
            f"with {n_params} parameters"
        )

    model = sm.OLS(y, X).fit()
    residuals = pd.Series(np.asarray(model.resid, dtype=np.float64), index=table.index,
                          name=feature.name)

    fit = ResidualFit(
        feature=feature.name,
        formula=formula.replace("y", f"log({feature.column})", 1),
        n=int(n),
        n_params=int(n_params),
        r_squared=float(model.rsquared),
        assay_levels=levels,
    )

    logger.debug(f"Confound fit {fit.formula}: n={fit.n}, R²={fit.r_squared:.3f}")
    return residuals, fit
