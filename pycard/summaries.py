"""
Tidy model output (in the spirit of R's broom package).

tidy() gives one row per model term; augment() gives one row per
observation with fitted values and residuals attached.
"""

import pandas as pd

from .errors import UnsupportedFamilyError


def _check_model(model):
    if not hasattr(model, 'tidy') or not hasattr(model, 'model_frame'):
        raise UnsupportedFamilyError(
            f"Expected a fitted pycard model, got {type(model).__name__}"
        )


def tidy(model, conf_level: float = 0.95) -> pd.DataFrame:
    """
    Summarize a fitted model into a coefficient table.

    Parameters
    ----------
    model : LinearModel or GeneralizedLinearModel
        Fitted model
    conf_level : float
        Confidence level for conf_low/conf_high

    Returns
    -------
    DataFrame
        term, estimate, std_error, statistic, p_value, conf_low, conf_high
    """
    _check_model(model)
    return model.tidy(conf_level=conf_level)


def augment(model) -> pd.DataFrame:
    """
    Model variables with '.fitted' and '.resid' columns.

    Fitted values and residuals are on the response scale. Rows are the
    complete cases the model was fitted on, indexed like the input data.
    """
    _check_model(model)
    out = model.model_frame.copy()
    out['.fitted'] = model.fitted_values
    out['.resid'] = model.residuals
    return out
