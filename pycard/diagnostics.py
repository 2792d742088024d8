"""
Residual diagnostics data.

Builds the tables that residual charts are drawn from. The model family
is resolved once (it is tagged on the model when it is fitted) and each
family has its own handler; families without one fail immediately.
"""

import numpy as np
import pandas as pd

from ._core.families import ModelFamily
from .errors import UnsupportedFamilyError
from .summaries import augment


def resolve_family(model) -> ModelFamily:
    """Family tag of a fitted model; UNSUPPORTED for anything unknown."""
    tag = getattr(model, 'family_tag', None)
    if isinstance(tag, ModelFamily):
        return tag
    return ModelFamily.UNSUPPORTED


def _gaussian_error_frame(model) -> pd.DataFrame:
    m = augment(model)
    outcome = model.formula.outcome
    exposure = model.formula.predictors[0]
    out = m[[outcome, exposure, '.fitted', '.resid']].copy()
    out['abs_resid'] = np.abs(out['.resid'])
    return out


def _gaussian_residual_frame(model) -> pd.DataFrame:
    return augment(model)[['.fitted', '.resid']]


def _prior_weights(model):
    w = model.weights_values
    return np.ones(model.n_obs) if w is None else w


def _binomial_error_frame(model) -> pd.DataFrame:
    m = augment(model)
    outcome = model.formula.outcome
    exposure = model.formula.predictors[0]
    out = m[[outcome, exposure, '.fitted']].copy()
    out['.link'] = model.linear_predictors
    out['.resid'] = m['.resid']
    out['abs_resid'] = np.abs(out['.resid'])
    return out


def _binomial_residual_frame(model) -> pd.DataFrame:
    y = model.y_values
    mu = model.fitted_values
    prior = _prior_weights(model)
    # Unit deviances can round to tiny negatives when y == mu
    unit_dev = np.maximum(model.family.dev_resids(y, mu, prior), 0)

    out = augment(model)[['.fitted']].copy()
    out['.resid'] = np.sign(y - mu) * np.sqrt(unit_dev)
    out['.pearson'] = (y - mu) * np.sqrt(prior) / np.sqrt(model.family.variance(mu))
    return out


_ERROR_FRAMES = {
    ModelFamily.GAUSSIAN: _gaussian_error_frame,
    ModelFamily.BINOMIAL: _binomial_error_frame,
}

_RESIDUAL_FRAMES = {
    ModelFamily.GAUSSIAN: _gaussian_residual_frame,
    ModelFamily.BINOMIAL: _binomial_residual_frame,
}


def _dispatch(handlers, model):
    family = resolve_family(model)
    try:
        handler = handlers[family]
    except KeyError:
        raise UnsupportedFamilyError(
            "Neither a linear (gaussian) nor a logistic (binomial) model: "
            f"{type(model).__name__} with family "
            f"'{getattr(getattr(model, 'family', None), 'name', 'unknown')}'"
        ) from None
    return handler(model)


def error_frame(model) -> pd.DataFrame:
    """
    Observed values, fitted values and residuals against the exposure.

    Columns: outcome, first predictor, '.fitted', '.resid', 'abs_resid'.
    This is what a chart of residual error around the regression line
    plots (points sized and colored by abs_resid). For logistic models
    '.fitted' is the fitted probability, '.resid' the response residual
    y - p, and a '.link' column holds the fitted log-odds.

    Raises
    ------
    UnsupportedFamilyError
        Neither a linear nor a logistic model
    """
    return _dispatch(_ERROR_FRAMES, model)


def residual_frame(model) -> pd.DataFrame:
    """
    '.fitted' and '.resid' for a residual-versus-fitted chart.

    Linear models give response residuals. Logistic models give fitted
    probabilities against deviance residuals (what R's residuals() and
    broom's augment() return for a glm) plus a '.pearson' column.
    Same family policy as error_frame.
    """
    return _dispatch(_RESIDUAL_FRAMES, model)
