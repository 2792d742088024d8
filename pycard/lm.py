"""
Linear regression with R-style interface and output.

This is the regression primitive used by the sequential builder.
"""

import warnings

import numpy as np
import pandas as pd
from typing import Optional, Union
from scipy import stats

from ._backends import get_backend
from ._core.families import Gaussian, ModelFamily
from ._core.formula import Formula, single_formula
from ._core.lm_solver import fit_linear_model, unscaled_covariance
from ._utils import check_conf_level, design_matrix, model_frame, response_vector
from .errors import ModelFitError

INTERCEPT = "(Intercept)"

TIDY_COLUMNS = [
    'term', 'estimate', 'std_error', 'statistic', 'p_value',
    'conf_low', 'conf_high',
]


class LinearModel:
    """
    Fit linear regression model (like R's lm()).

    Examples
    --------
    >>> import pandas as pd
    >>> from pycard import lm
    >>>
    >>> data = pd.read_csv('hrv_cohort.csv')
    >>> model = lm('HF ~ bmi + age', data=data)
    >>>
    >>> model.summary()      # Prints table like R
    >>> model.coef           # Named coefficients
    >>> model.conf_int()     # Confidence intervals
    >>> model.tidy()         # One row per term, like broom::tidy
    """

    def __init__(
        self,
        formula: Union[str, Formula],
        data: pd.DataFrame,
        weights: Optional[Union[str, np.ndarray]] = None,
        backend: str = 'auto',
        tol: Optional[float] = None,
        singular_ok: bool = True
    ):
        """
        Fit linear regression model.

        Parameters
        ----------
        formula : str or Formula
            Single-outcome model, e.g. ``'HF ~ bmi + age'``
        data : DataFrame
            Dataset containing every variable in the formula. Rows with
            missing values in those variables are dropped.
        weights : str or array, optional
            Observation weights (column name, or one value per row)
        backend : str
            Computational backend: 'auto', 'cpu'
        tol : float, optional
            Tolerance for rank determination
        singular_ok : bool
            If False, an aliased (linearly dependent) predictor raises
            ModelFitError instead of getting a NaN coefficient
        """
        self.formula = single_formula(formula)
        self.y_name = self.formula.outcome

        frame, w = model_frame(data, self.formula.variables, weights=weights)
        self.model_frame = frame
        self.y_values = response_vector(frame, self.y_name)
        design = design_matrix(frame, self.formula.predictors)
        self.X_names = list(design.columns)
        self.X_values = design.values
        self.weights_values = w

        # Store metadata
        self.n_obs = len(self.y_values)
        self.n_coef = self.X_values.shape[1] + 1  # +1 for intercept
        self.var_names = [INTERCEPT] + self.X_names
        self.family = Gaussian()
        self.family_tag = ModelFamily.GAUSSIAN

        # Fit model using backend
        self.backend = get_backend(backend)
        self._backend_result = fit_linear_model(
            self.X_values,
            self.y_values,
            weights=self.weights_values,
            tol=tol,
            singular_ok=singular_ok,
            backend=self.backend
        )

        if self._backend_result.df_residual <= 0:
            raise ModelFitError(
                f"Too few observations for {self.formula}: "
                f"{self.n_obs} observations, {self._backend_result.rank} coefficients"
            )

        # Compute statistical inference
        self._compute_statistics()

    def _compute_statistics(self):
        """Compute standard errors, t-stats, p-values, etc."""
        result = self._backend_result

        # Extract from backend
        self.coefficients = result.coef
        self.residuals = result.residuals
        self.fitted_values = result.fitted_values
        self.rank = result.rank
        self.df_residual = result.df_residual

        aliased = [n for n, c in zip(self.var_names, self.coefficients) if np.isnan(c)]
        if aliased:
            warnings.warn(
                f"Coefficients not defined because of singularities: {', '.join(aliased)}"
            )

        w = self.weights_values if self.weights_values is not None else np.ones(self.n_obs)

        # Residual standard error
        rss = np.sum(w * self.residuals**2)
        self.sigma = np.sqrt(rss / self.df_residual)

        # Var(β) = σ² (X'WX)⁻¹
        self.vcov = unscaled_covariance(result, self.n_coef) * self.sigma**2

        # Standard errors
        self.std_errors = np.sqrt(np.diag(self.vcov))

        # t-statistics
        self.t_values = self.coefficients / self.std_errors

        # p-values (two-tailed)
        self.pvalues = 2 * stats.t.sf(np.abs(self.t_values), self.df_residual)

        # R-squared
        y_bar = np.sum(w * self.y_values) / np.sum(w)
        tss = np.sum(w * (self.y_values - y_bar)**2)
        self.r_squared = 1 - (rss / tss) if tss > 0 else 0.0

        # Adjusted R-squared
        n = self.n_obs if self.weights_values is None else int(np.sum(w > 0))
        p = self.rank - 1  # Exclude intercept
        self.adj_r_squared = 1 - (1 - self.r_squared) * (n - 1) / self.df_residual

        # F-statistic
        if p > 0:
            self.f_statistic = ((tss - rss) / p) / (rss / self.df_residual)
            self.f_pvalue = stats.f.sf(self.f_statistic, p, self.df_residual)
        else:
            self.f_statistic = np.nan
            self.f_pvalue = np.nan

    @property
    def coef(self):
        """Named coefficients (pandas Series)."""
        return pd.Series(self.coefficients, index=self.var_names)

    def conf_int(self, alpha: float = 0.05):
        """
        Confidence intervals for coefficients.

        Parameters
        ----------
        alpha : float
            Significance level (default: 0.05 for 95% CI)

        Returns
        -------
        DataFrame
            Confidence intervals with columns 'lower' and 'upper'
        """
        t_crit = stats.t.ppf(1 - alpha/2, self.df_residual)
        lower = self.coefficients - t_crit * self.std_errors
        upper = self.coefficients + t_crit * self.std_errors

        return pd.DataFrame({
            'lower': lower,
            'upper': upper
        }, index=self.var_names)

    def tidy(self, conf_level: float = 0.95) -> pd.DataFrame:
        """
        Coefficient table, one row per term (like broom::tidy).

        Terms are in fit order: intercept first, then predictors in
        formula order.

        Parameters
        ----------
        conf_level : float
            Confidence level of conf_low/conf_high (default: 0.95)

        Returns
        -------
        DataFrame
            Columns term, estimate, std_error, statistic, p_value,
            conf_low, conf_high
        """
        conf_level = check_conf_level(conf_level)
        ci = self.conf_int(alpha=1 - conf_level)
        return pd.DataFrame({
            'term': self.var_names,
            'estimate': self.coefficients,
            'std_error': self.std_errors,
            'statistic': self.t_values,
            'p_value': self.pvalues,
            'conf_low': ci['lower'].values,
            'conf_high': ci['upper'].values,
        }, columns=TIDY_COLUMNS)

    def summary(self):
        """
        Print summary of regression results (like R's summary.lm).
        """
        print()
        print("="*80)
        print("LINEAR REGRESSION RESULTS")
        print("="*80)
        print()

        # Model info
        print(f"Formula: {self.formula}")
        print(f"Number of observations: {self.n_obs}")
        print(f"Degrees of freedom: {self.df_residual} (residual), {self.rank - 1} (model)")
        print()

        # Residuals
        print("Residuals:")
        residual_summary = pd.Series(self.residuals).describe()
        print(f"  Min:    {residual_summary['min']:>10.4f}")
        print(f"  1Q:     {residual_summary['25%']:>10.4f}")
        print(f"  Median: {residual_summary['50%']:>10.4f}")
        print(f"  3Q:     {residual_summary['75%']:>10.4f}")
        print(f"  Max:    {residual_summary['max']:>10.4f}")
        print()

        # Coefficients table
        print("Coefficients:")
        print("-"*80)
        print(f"{'Variable':<20} {'Estimate':>12} {'Std. Error':>12} {'t value':>10} {'Pr(>|t|)':>12}")
        print("-"*80)

        for i, name in enumerate(self.var_names):
            print(_coef_line(name, self.coefficients[i], self.std_errors[i],
                             self.t_values[i], self.pvalues[i]))

        print("-"*80)
        print("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")
        print()

        # Model fit statistics
        print(f"Residual standard error: {self.sigma:.4f} on {self.df_residual} degrees of freedom")
        print(f"Multiple R-squared:      {self.r_squared:.4f}")
        print(f"Adjusted R-squared:      {self.adj_r_squared:.4f}")

        if not np.isnan(self.f_statistic):
            f_pval_str = f"{self.f_pvalue:.4e}" if self.f_pvalue >= 2.2e-16 else "< 2.2e-16"
            print(f"F-statistic:             {self.f_statistic:.2f} on {self.rank-1} and {self.df_residual} DF, p-value: {f_pval_str}")

        print()
        print(f"Backend: {self.backend.name}")
        print("="*80)
        print()

    def __repr__(self):
        return f"LinearModel({self.formula}, n={self.n_obs}, R²={self.r_squared:.3f})"


def _coef_line(name, estimate, std_error, statistic, p):
    """One row of a printed coefficient table, with significance stars."""
    if np.isnan(p):
        return f"{name:<20} {'NA':>12} {'NA':>12} {'NA':>10} {'NA':>12} (aliased)"

    if p < 0.001:
        sig = ' ***'
    elif p < 0.01:
        sig = ' **'
    elif p < 0.05:
        sig = ' *'
    elif p < 0.1:
        sig = ' .'
    else:
        sig = ''

    p_str = f"{p:.4f}" if p >= 0.0001 else "<.0001"
    return (f"{name:<20} {estimate:>12.4f} {std_error:>12.4f} "
            f"{statistic:>10.3f} {p_str:>12}{sig}")


def lm(formula, data, **kwargs):
    """
    Fit linear regression model (convenience function).

    Parameters
    ----------
    formula : str or Formula
        Single-outcome model, e.g. ``'HF ~ bmi + age'``
    data : DataFrame
        Dataset
    **kwargs
        Additional arguments passed to LinearModel

    Returns
    -------
    LinearModel
        Fitted model object

    Examples
    --------
    >>> model = lm('HF ~ bmi + age', data=cohort)
    >>> model.tidy(conf_level=0.9)
    """
    return LinearModel(formula, data, **kwargs)
