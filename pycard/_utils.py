"""
Utility functions.
"""

import numpy as np
import pandas as pd

from .errors import MissingVariableError, ModelFitError


def check_array(X, name='X', dtype=np.float64):
    """Validate array input."""
    X = np.asarray(X, dtype=dtype)
    if X.ndim != 2:
        raise ValueError(f"{name} must be 2-dimensional")
    if not np.all(np.isfinite(X)):
        raise ValueError(f"{name} contains NaN or Inf")
    return X


def check_vector(y, name='y', dtype=np.float64):
    """Validate vector input."""
    y = np.asarray(y, dtype=dtype)
    if y.ndim != 1:
        raise ValueError(f"{name} must be 1-dimensional")
    if not np.all(np.isfinite(y)):
        raise ValueError(f"{name} contains NaN or Inf")
    return y


def check_columns(data, names):
    """Raise MissingVariableError unless every name is a column of data."""
    if not isinstance(data, pd.DataFrame):
        raise TypeError(f"data must be a pandas DataFrame, got {type(data).__name__}")
    missing = [n for n in dict.fromkeys(names) if n not in data.columns]
    if missing:
        raise MissingVariableError(missing)


def check_conf_level(conf_level):
    """Validate a confidence level."""
    if not 0 < conf_level < 1:
        raise ValueError(f"conf_level must be in (0, 1), got {conf_level}")
    return float(conf_level)


def model_frame(data, names, weights=None):
    """
    Complete-case frame for a model (like R's model.frame).

    Rows with a missing value in any of `names` (or in the weights) are
    dropped. The input frame is never modified.

    Parameters
    ----------
    data : DataFrame
        Source data
    names : sequence of str
        Columns the model uses
    weights : str or array, optional
        Weight column name, or values aligned with the rows of data

    Returns
    -------
    frame : DataFrame
        Columns `names`, complete cases only; numeric columns as
        float64, factor columns (see is_factor) unchanged
    w : ndarray or None
        Weights for the rows of frame
    """
    names = list(dict.fromkeys(names))
    check_columns(data, names + ([weights] if isinstance(weights, str) else []))

    frame = data.loc[:, names]
    if weights is None:
        w = None
    elif isinstance(weights, str):
        w = data[weights]
    else:
        w = pd.Series(np.asarray(weights), index=data.index)
        if len(w) != len(data):
            raise ValueError("weights must have one value per row of data")

    complete = frame.notna().all(axis=1)
    if w is not None:
        complete &= w.notna()
    frame = frame.loc[complete]

    numeric = [c for c in frame.columns if not is_factor(frame[c])]
    frame = frame.astype({c: np.float64 for c in numeric})

    if len(frame) == 0:
        raise ModelFitError("No complete observations for model variables")
    if not np.all(np.isfinite(frame[numeric].values)):
        raise ModelFitError("Model variables contain Inf")

    if w is not None:
        w = np.asarray(w.loc[complete], dtype=np.float64)
        if np.any(w < 0) or not np.all(np.isfinite(w)):
            raise ModelFitError("Weights must be finite and non-negative")

    return frame, w


def _is_logical(values):
    return pd.api.types.infer_dtype(values, skipna=True) == 'boolean'


def is_factor(values):
    """True for columns that enter a model as factors: strings, categoricals, booleans."""
    if _is_logical(values):
        return True
    return not pd.api.types.is_numeric_dtype(values)


def response_vector(frame, outcome):
    """Outcome column of a model frame as float64; booleans become 0/1."""
    values = frame[outcome]
    if _is_logical(values):
        return values.astype(np.float64).values
    if is_factor(values):
        raise ModelFitError(f"Outcome '{outcome}' must be numeric, got {values.dtype}")
    return values.values


def design_matrix(frame, predictors):
    """
    Predictor columns of the design matrix (intercept excluded).

    Numeric predictors enter unchanged. Factors are treatment coded
    against their first level, so a factor with k levels gives k - 1
    indicator columns. Level L of column c is named cL as in R
    (``sexM``, ``smokerTRUE``); string levels are sorted, categorical
    levels keep their declared order and unused ones are dropped.

    Parameters
    ----------
    frame : DataFrame
        Model frame from model_frame
    predictors : sequence of str
        Predictor columns, in model order

    Returns
    -------
    DataFrame
        float64 design columns, one per coefficient after the intercept
    """
    columns = []
    for name in predictors:
        values = frame[name]
        if not is_factor(values):
            columns.append(values.astype(np.float64))
            continue

        if _is_logical(values):
            values = values.astype(bool).map({False: 'FALSE', True: 'TRUE'})
        elif isinstance(values.dtype, pd.CategoricalDtype):
            values = values.cat.remove_unused_categories()

        dummies = pd.get_dummies(values, prefix=name, prefix_sep='',
                                 drop_first=True, dtype=np.float64)
        if dummies.shape[1] == 0:
            raise ModelFitError(
                f"Factor '{name}' needs at least two levels, found {values.nunique()}"
            )
        columns.append(dummies)

    return pd.concat(columns, axis=1)
