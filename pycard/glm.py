"""
Generalized linear model API.

Fits GLMs by iteratively reweighted least squares (R's glm.fit),
reusing the weighted least-squares backend at every step.
"""

import warnings

import numpy as np
import pandas as pd
from typing import Optional, Union
from dataclasses import dataclass
from scipy import stats

from ._backends import get_backend
from ._core.families import Family, get_family
from ._core.formula import Formula, single_formula
from ._core.lm_solver import fit_linear_model, unscaled_covariance
from ._utils import check_conf_level, design_matrix, model_frame, response_vector
from .errors import ModelFitError
from .lm import INTERCEPT, TIDY_COLUMNS


@dataclass
class GLMResult:
    """Results from GLM fitting."""
    coef: np.ndarray          # Coefficients
    residuals: np.ndarray     # Working residuals
    fitted_values: np.ndarray # Fitted values (μ)
    linear_predictors: np.ndarray  # Linear predictors (η)
    working_weights: np.ndarray    # IRLS weights at convergence

    rank: int                 # Rank
    df_residual: int          # Residual df

    deviance: float           # Deviance
    converged: bool           # Converged?
    iterations: int           # IRLS iterations

    lm_result: object = None  # Final weighted least-squares fit


def irls(
    X: np.ndarray,
    y: np.ndarray,
    family: Family,
    weights: Optional[np.ndarray] = None,
    maxit: int = 25,
    epsilon: float = 1e-8,
    tol: Optional[float] = None,
    singular_ok: bool = True,
    backend=None,
) -> GLMResult:
    """
    Iteratively reweighted least squares.

    Uses R's convergence criterion:
        |dev - dev_old| / (0.1 + |dev|) < epsilon

    Parameters
    ----------
    X : ndarray, shape (n, p)
        Design matrix (WITHOUT intercept)
    y : ndarray, shape (n,)
        Response vector
    family : Family
        GLM family
    weights : ndarray, optional
        Prior weights
    maxit : int
        Maximum IRLS iterations
    epsilon : float
        Convergence tolerance

    Returns
    -------
    GLMResult
    """
    n = len(y)
    prior = np.ones(n) if weights is None else weights
    X_full = np.column_stack([np.ones(n), X])

    mu = family.initialize(y, prior)
    eta = family.linkfun(mu)
    dev_old = np.sum(family.dev_resids(y, mu, prior))

    converged = False
    for iteration in range(1, maxit + 1):
        mu_eta = family.mu_eta(eta)
        z = eta + (y - mu) / mu_eta
        w = prior * mu_eta**2 / family.variance(mu)

        fit = fit_linear_model(X, z, weights=w, tol=tol,
                               singular_ok=singular_ok, backend=backend)

        valid = ~np.isnan(fit.coef)
        eta = X_full[:, valid] @ fit.coef[valid]
        mu = family.linkinv(eta)
        dev = np.sum(family.dev_resids(y, mu, prior))

        if not np.isfinite(dev):
            raise ModelFitError("Non-finite deviance during IRLS")

        if abs(dev - dev_old) / (abs(dev) + 0.1) < epsilon:
            converged = True
            break
        dev_old = dev

    return GLMResult(
        coef=fit.coef,
        residuals=(y - mu) / family.mu_eta(eta),
        fitted_values=mu,
        linear_predictors=eta,
        working_weights=w,
        rank=fit.rank,
        df_residual=int(np.sum(prior > 0)) - fit.rank,
        deviance=dev,
        converged=converged,
        iterations=iteration,
        lm_result=fit,
    )


class GeneralizedLinearModel:
    """
    Generalized linear model via IRLS (like R's glm()).

    Examples
    --------
    >>> model = glm('diabetic ~ bmi + age', data=cohort, family='binomial')
    >>> model.tidy()
    """

    def __init__(
        self,
        formula: Union[str, Formula],
        data: pd.DataFrame,
        family: Union[str, Family] = 'binomial',
        weights: Optional[Union[str, np.ndarray]] = None,
        backend: str = 'auto',
        maxit: int = 25,
        epsilon: float = 1e-8,
        tol: Optional[float] = None,
        singular_ok: bool = True
    ):
        """
        Fit generalized linear model.

        Parameters
        ----------
        formula : str or Formula
            Single-outcome model
        data : DataFrame
            Dataset containing every variable in the formula
        family : str or Family, default='binomial'
            'gaussian', 'binomial' or 'poisson'
        weights : str or array, optional
            Prior weights
        backend : str, default='auto'
            Backend: 'auto', 'cpu'
        maxit : int, default=25
            Maximum IRLS iterations
        epsilon : float, default=1e-8
            Convergence tolerance
        singular_ok : bool, default=True
            If False, raise ModelFitError on singular fit
        """
        self.formula = single_formula(formula)
        self.family = get_family(family)
        self.family_tag = self.family.tag
        self.y_name = self.formula.outcome

        frame, w = model_frame(data, self.formula.variables, weights=weights)
        self.model_frame = frame
        self.y_values = response_vector(frame, self.y_name)
        design = design_matrix(frame, self.formula.predictors)
        self.X_names = list(design.columns)
        self.X_values = design.values
        self.weights_values = w

        try:
            self.family.validate_response(self.y_values)
        except ValueError as err:
            raise ModelFitError(str(err)) from err

        self.n_obs = len(self.y_values)
        self.n_coef = self.X_values.shape[1] + 1
        self.var_names = [INTERCEPT] + self.X_names

        self.backend = get_backend(backend)
        result = irls(
            self.X_values, self.y_values, self.family,
            weights=self.weights_values,
            maxit=maxit, epsilon=epsilon, tol=tol,
            singular_ok=singular_ok, backend=self.backend,
        )

        if not result.converged:
            raise ModelFitError(
                f"IRLS did not converge in {maxit} iterations for {self.formula}"
            )
        if result.df_residual <= 0:
            raise ModelFitError(
                f"Too few observations for {self.formula}: "
                f"{self.n_obs} observations, {result.rank} coefficients"
            )

        if self.family.name == 'binomial':
            eps = 10 * np.finfo(np.float64).eps
            mu = result.fitted_values
            if np.any((mu > 1 - eps) | (mu < eps)):
                warnings.warn("fitted probabilities numerically 0 or 1 occurred")

        self._result = result
        self._compute_statistics()

    def _compute_statistics(self):
        """Standard errors, Wald statistics, deviance and AIC."""
        result = self._result
        prior = self.weights_values if self.weights_values is not None else np.ones(self.n_obs)

        self.coefficients = result.coef
        self.fitted_values = result.fitted_values
        self.linear_predictors = result.linear_predictors
        self.residuals = self.y_values - result.fitted_values  # response scale
        self.rank = result.rank
        self.df_residual = result.df_residual
        self.deviance = result.deviance
        self.iterations = result.iterations
        self.converged = result.converged

        # Null deviance: intercept-only model
        mu_null = np.full(self.n_obs, np.sum(prior * self.y_values) / np.sum(prior))
        self.null_deviance = np.sum(self.family.dev_resids(self.y_values, mu_null, prior))

        self.aic = (self.family.aic(self.y_values, self.fitted_values, prior, self.deviance)
                    + 2 * self.rank)

        # Dispersion: 1 for binomial/poisson, Pearson estimate otherwise
        if self.family.fixed_dispersion:
            self.dispersion = 1.0
            dist = stats.norm
        else:
            self.dispersion = (np.sum(result.working_weights * result.residuals**2)
                               / self.df_residual)
            dist = stats.t(self.df_residual)
        self._dist = dist

        self.vcov = unscaled_covariance(result.lm_result, self.n_coef) * self.dispersion
        self.std_errors = np.sqrt(np.diag(self.vcov))
        self.z_values = self.coefficients / self.std_errors
        self.pvalues = 2 * dist.sf(np.abs(self.z_values))

    @property
    def coef(self):
        """Named coefficients (pandas Series)."""
        return pd.Series(self.coefficients, index=self.var_names)

    def conf_int(self, alpha: float = 0.05):
        """
        Wald confidence intervals (R's confint.default).

        Returns
        -------
        DataFrame
            Columns 'lower' and 'upper'
        """
        crit = self._dist.ppf(1 - alpha/2)
        return pd.DataFrame({
            'lower': self.coefficients - crit * self.std_errors,
            'upper': self.coefficients + crit * self.std_errors,
        }, index=self.var_names)

    def tidy(self, conf_level: float = 0.95) -> pd.DataFrame:
        """Coefficient table, one row per term (like broom::tidy)."""
        conf_level = check_conf_level(conf_level)
        ci = self.conf_int(alpha=1 - conf_level)
        return pd.DataFrame({
            'term': self.var_names,
            'estimate': self.coefficients,
            'std_error': self.std_errors,
            'statistic': self.z_values,
            'p_value': self.pvalues,
            'conf_low': ci['lower'].values,
            'conf_high': ci['upper'].values,
        }, columns=TIDY_COLUMNS)

    def __repr__(self):
        return (f"GeneralizedLinearModel({self.formula}, family={self.family.name}, "
                f"n={self.n_obs}, AIC={self.aic:.2f})")


def glm(formula, data, family='binomial', **kwargs):
    """
    Fit generalized linear model (convenience function).

    Parameters
    ----------
    formula : str or Formula
        Single-outcome model
    data : DataFrame
        Dataset
    family : str or Family
        'gaussian', 'binomial' (default) or 'poisson'
    **kwargs
        Additional arguments passed to GeneralizedLinearModel

    Returns
    -------
    GeneralizedLinearModel
    """
    return GeneralizedLinearModel(formula, data, family=family, **kwargs)
