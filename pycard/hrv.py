"""
Linear models for each HRV measure.

One model per HRV measure (HF, LF, SDNN, ...) with the same covariates,
optionally replacing covariate adjustment with propensity weighting.
"""

import logging
from typing import Dict, Sequence

import numpy as np
import pandas as pd

from ._core.formula import as_names, build_formula
from ._utils import check_columns
from .errors import EmptySpecError, SpecificationError
from .glm import glm
from .lm import LinearModel, lm

logger = logging.getLogger(__name__)


def propensity_weights(
    data: pd.DataFrame,
    exposure: str,
    covariates: Sequence[str],
    **glm_kwargs
) -> pd.DataFrame:
    """
    Inverse probability of treatment weights for a binary exposure.

    The propensity score is P(exposure = 1 | covariates) from a logistic
    regression. Exposed rows get weight 1/score, unexposed rows
    1/(1 - score).

    Parameters
    ----------
    data : DataFrame
        Dataset (not modified)
    exposure : str
        Binary (0/1) exposure column
    covariates : sequence of str
        Confounders the propensity model adjusts for

    Returns
    -------
    DataFrame
        PROP_SCORE and PROP_WEIGHT, indexed like data. Rows with missing
        values in the propensity model are NaN.
    """
    covariates = list(as_names(covariates))
    if not covariates:
        raise SpecificationError("Propensity weighting needs at least one covariate besides the exposure")
    check_columns(data, [exposure] + covariates)

    observed = data[exposure].dropna()
    if not set(np.unique(observed.astype(float))) <= {0.0, 1.0}:
        raise SpecificationError(
            f"Propensity weighting needs a binary (0/1) exposure; '{exposure}' is not"
        )

    model = glm(build_formula(exposure, covariates), data, family='binomial', **glm_kwargs)
    score = pd.Series(np.nan, index=data.index)
    score.loc[model.model_frame.index] = model.fitted_values

    treated = data[exposure].astype(float)
    weight = treated / score + (1 - treated) / (1 - score)
    return pd.DataFrame({'PROP_SCORE': score, 'PROP_WEIGHT': weight}, index=data.index)


def hrv_linear_model(
    data: pd.DataFrame,
    covar: Sequence[str],
    hrv: Sequence[str],
    prop_weight: bool = False,
    **lm_kwargs
) -> Dict[str, LinearModel]:
    """
    Fit one linear model per HRV measure.

    Parameters
    ----------
    data : DataFrame
        All covariates and outcomes
    covar : sequence of str
        Covariates; the first is the primary exposure
    hrv : sequence of str
        HRV measures (any set of dependent variables)
    prop_weight : bool
        If True, fit ``hrv ~ exposure`` weighted by the inverse
        probability of exposure given the other covariates, instead of
        adjusting for them
    **lm_kwargs
        Passed to lm()

    Returns
    -------
    dict
        Fitted models keyed by HRV measure, in `hrv` order
    """
    covar = list(as_names(covar))
    hrv = list(as_names(hrv))
    if not covar:
        raise EmptySpecError("No covariates given")
    if not hrv:
        raise EmptySpecError("No HRV measures given")
    check_columns(data, hrv + covar)

    if prop_weight:
        exposure = covar[0]
        weights = propensity_weights(data, exposure, covar[1:])['PROP_WEIGHT'].values
        models = {
            measure: lm(build_formula(measure, [exposure]), data,
                        weights=weights, **lm_kwargs)
            for measure in hrv
        }
    else:
        models = {
            measure: lm(build_formula(measure, covar), data, **lm_kwargs)
            for measure in hrv
        }

    logger.debug("Fitted %d HRV model(s): %s", len(models), ', '.join(models))
    return models
