"""
Sequential model building.

Fits the chain of increasingly adjusted models used in causal
epidemiology: for every outcome, first the exposure alone, then the
exposure plus the next covariate, and so on until every predictor is in
the model. The coefficient tables of all models are stacked into one
tidy DataFrame.
"""

import logging
from typing import Callable, List, Optional, Union

import numpy as np
import pandas as pd

from ._core.families import get_family
from ._core.formula import Formula, ModelSpec, build_formula, parse_formula, predictor_chain
from ._utils import check_columns, check_conf_level
from .errors import FitFailureError, ModelFitError, UnsupportedEngineError
from .glm import glm
from .lm import lm, TIDY_COLUMNS

logger = logging.getLogger(__name__)

ENGINES = {
    'lm': lm,
    'glm': glm,
}

RESULT_COLUMNS = ['outcome', 'covar'] + TIDY_COLUMNS


def get_engine(engine: str) -> Callable:
    """Regression function for an engine name."""
    try:
        return ENGINES[engine]
    except (KeyError, TypeError):
        raise UnsupportedEngineError(engine, ENGINES) from None


def sequential_formulas(spec: ModelSpec, exposure: Optional[str] = None) -> List[Formula]:
    """
    Every formula of a sequential build, in result order.

    Outer loop over outcomes (source order), inner loop over chain
    length 1..N of the predictor chain.

    Examples
    --------
    >>> spec = parse_formula('HF ~ age + bmi')
    >>> [str(f) for f in sequential_formulas(spec, exposure='bmi')]
    ['HF ~ bmi', 'HF ~ bmi + age']
    """
    chain = predictor_chain(spec.predictors, exposure)
    return [
        build_formula(outcome, chain[:j])
        for outcome in spec.outcomes
        for j in range(1, len(chain) + 1)
    ]


def fit_unit(
    formula: Formula,
    data: pd.DataFrame,
    engine: str = 'lm',
    conf_level: float = 0.95,
    **fit_kwargs
) -> pd.DataFrame:
    """
    Fit and summarize one model of the sequence.

    Returns the model's coefficient table with `outcome` and `covar`
    (number of predictors) columns in front.

    Raises
    ------
    FitFailureError
        The regression engine could not fit the model
    """
    fit = get_engine(engine)
    chain_length = len(formula.predictors)
    try:
        model = fit(formula, data, **fit_kwargs)
        table = model.tidy(conf_level=conf_level)
    except (ModelFitError, np.linalg.LinAlgError) as err:
        raise FitFailureError(formula.outcome, chain_length, formula, err) from err

    logger.debug("Fitted %s (n=%d, engine=%s)", formula, model.n_obs, engine)
    return table.assign(outcome=formula.outcome, covar=chain_length)[RESULT_COLUMNS]


def build_sequential_models(
    formula: Union[str, ModelSpec],
    data: pd.DataFrame,
    exposure: Optional[str] = None,
    engine: str = 'lm',
    conf_level: float = 0.95,
    **fit_kwargs
) -> pd.DataFrame:
    """
    Build models sequentially, adding one predictor at a time.

    Every predictor should be part of the causal model for the
    exposure-outcome relationship; the exposure is kept in every model.

    Parameters
    ----------
    formula : str or ModelSpec
        Outcomes (one or more) and ordered predictors, e.g.
        ``'HF + LF ~ age + bmi + hba1c'``
    data : DataFrame
        Dataset containing every variable in the formula. Not modified.
    exposure : str, optional
        Predictor forced into position 1 of every model
    engine : str
        Regression engine: 'lm' (linear) or 'glm' (logistic by default,
        pass ``family=`` to change)
    conf_level : float
        Confidence level for conf_low/conf_high
    **fit_kwargs
        Passed to the engine (e.g. weights, backend). Singular designs
        fail unless ``singular_ok=True`` is passed.

    Returns
    -------
    DataFrame
        Columns outcome, covar, term, estimate, std_error, statistic,
        p_value, conf_low, conf_high. One block of rows per model,
        ordered by outcome then covar (1..N); within a model the
        intercept comes first, then predictors in chain order.

    Raises
    ------
    EmptySpecError, DuplicatePredictorError, FormulaError
        Invalid formula
    InvalidExposureError
        Exposure is not one of the predictors
    UnsupportedEngineError
        Unknown engine
    UnknownFamilyError
        Unknown family for the glm engine
    MissingVariableError
        A variable is not a column of data
    FitFailureError
        A model could not be fitted; no partial result is returned

    Examples
    --------
    >>> results = build_sequential_models(
    ...     'HF + LF ~ age + bmi + hba1c', data=cohort, exposure='bmi')
    >>> results[results.term == 'bmi'][['outcome', 'covar', 'estimate']]
    """
    spec = parse_formula(formula)
    formulas = sequential_formulas(spec, exposure)
    if get_engine(engine) is glm:
        get_family(fit_kwargs.get('family', 'binomial'))
    check_columns(data, spec.variables)
    conf_level = check_conf_level(conf_level)
    fit_kwargs.setdefault('singular_ok', False)

    tables = [
        fit_unit(f, data, engine=engine, conf_level=conf_level, **fit_kwargs)
        for f in formulas
    ]

    logger.info(
        "Built %d sequential models (%d outcome(s) x %d predictor(s)) with engine '%s'",
        len(tables), len(spec.outcomes), len(spec.predictors), engine
    )
    return pd.concat(tables, ignore_index=True)
