"""
Test generalized linear models fitted by IRLS.
"""

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from pycard import (
    GeneralizedLinearModel,
    ModelFamily,
    ModelFitError,
    SpecificationError,
    UnknownFamilyError,
    glm,
    lm,
)
from pycard._core.families import Binomial, Gaussian, Poisson, get_family


class TestBinomialGLM:
    """Test logistic regression."""

    def test_score_equations(self, cohort):
        """Test the likelihood is maximized: X'(y - μ) = 0."""
        model = glm('diabetic ~ bmi + age', data=cohort)
        Xd = np.column_stack([np.ones(len(cohort)), cohort[['bmi', 'age']].values])
        score = Xd.T @ (cohort['diabetic'].values - model.fitted_values)
        np.testing.assert_allclose(score, 0, atol=1e-5)
        assert model.converged
        assert model.iterations < 25

    def test_fitted_are_probabilities(self, cohort):
        model = glm('diabetic ~ bmi', data=cohort)
        assert np.all((model.fitted_values > 0) & (model.fitted_values < 1))
        np.testing.assert_allclose(
            model.fitted_values, 1 / (1 + np.exp(-model.linear_predictors)))

    def test_deviance_and_aic(self, cohort):
        """Test deviance = -2 loglik for 0/1 responses and AIC = dev + 2p."""
        model = glm('diabetic ~ bmi', data=cohort)
        y = cohort['diabetic'].values
        mu = model.fitted_values
        loglik = np.sum(stats.binom.logpmf(y, 1, mu))
        np.testing.assert_allclose(model.deviance, -2 * loglik, rtol=1e-10)
        np.testing.assert_allclose(model.aic, model.deviance + 2 * 2, rtol=1e-10)
        assert model.null_deviance > model.deviance

    def test_wald_inference(self, cohort):
        """Test z statistics and normal-based intervals."""
        model = glm('diabetic ~ bmi', data=cohort)
        table = model.tidy(conf_level=0.95)
        z = stats.norm.ppf(0.975)
        np.testing.assert_allclose(table['statistic'], table['estimate'] / table['std_error'])
        np.testing.assert_allclose(table['conf_low'], table['estimate'] - z * table['std_error'])
        np.testing.assert_allclose(table['p_value'], 2 * stats.norm.sf(np.abs(table['statistic'])))
        assert list(table['term']) == ['(Intercept)', 'bmi']

    def test_family_tag(self, cohort):
        assert glm('diabetic ~ bmi', data=cohort).family_tag is ModelFamily.BINOMIAL

    def test_boolean_response(self, cohort):
        """Test a logical outcome is modeled as 0/1."""
        data = cohort.assign(flag=cohort['diabetic'] == 1)
        np.testing.assert_allclose(
            glm('flag ~ bmi', data=data).coefficients,
            glm('diabetic ~ bmi', data=data).coefficients,
        )

    def test_factor_covariate(self, cohort):
        data = cohort.assign(sex=['M', 'F'] * (len(cohort) // 2))
        table = glm('diabetic ~ bmi + sex', data=data).tidy()
        assert list(table['term']) == ['(Intercept)', 'bmi', 'sexM']

    def test_response_out_of_range(self, cohort):
        with pytest.raises(ModelFitError, match="0 <= y <= 1"):
            glm('HF ~ bmi', data=cohort)

    def test_no_convergence(self, cohort):
        with pytest.raises(ModelFitError, match="did not converge"):
            glm('diabetic ~ bmi', data=cohort, maxit=1)

    def test_separation_warns(self):
        data = pd.DataFrame({'x': np.arange(20.0), 'y': (np.arange(20) >= 10).astype(float)})
        with pytest.warns(UserWarning, match="numerically 0 or 1"):
            glm('y ~ x', data=data, maxit=100)


class TestGaussianGLM:
    """Test the gaussian family reproduces lm."""

    def test_matches_lm(self, cohort):
        g = glm('HF ~ bmi + age', data=cohort, family='gaussian')
        m = lm('HF ~ bmi + age', data=cohort)
        np.testing.assert_allclose(g.coefficients, m.coefficients, rtol=1e-8)
        np.testing.assert_allclose(g.std_errors, m.std_errors, rtol=1e-8)
        np.testing.assert_allclose(g.tidy()['conf_low'], m.tidy()['conf_low'], rtol=1e-8)
        assert g.family_tag is ModelFamily.GAUSSIAN


class TestPoissonGLM:
    """Test the poisson family."""

    def test_log_linear(self):
        rng = np.random.default_rng(5)
        x = rng.uniform(0, 2, 300)
        counts = rng.poisson(np.exp(0.5 + 0.8 * x))
        model = glm('counts ~ x', data=pd.DataFrame({'x': x, 'counts': counts}),
                    family='poisson')
        np.testing.assert_allclose(model.coefficients, [0.5, 0.8], atol=0.2)
        assert model.family_tag is ModelFamily.UNSUPPORTED

    def test_negative_counts(self):
        data = pd.DataFrame({'x': [1.0, 2.0, 3.0, 4.0], 'y': [1.0, -1.0, 2.0, 3.0]})
        with pytest.raises(ModelFitError, match="negative"):
            glm('y ~ x', data=data, family='poisson')


class TestFamilies:
    """Test family helpers."""

    @pytest.mark.parametrize("name,cls", [
        ('gaussian', Gaussian), ('binomial', Binomial), ('poisson', Poisson),
    ])
    def test_get_family(self, name, cls):
        assert isinstance(get_family(name), cls)

    def test_unknown_family(self):
        with pytest.raises(UnknownFamilyError, match="Unknown family: 'gamma'") as excinfo:
            get_family('gamma')
        assert isinstance(excinfo.value, SpecificationError)
        assert excinfo.value.available == ('gaussian', 'binomial', 'poisson')

    def test_unknown_family_in_glm(self, cohort):
        with pytest.raises(UnknownFamilyError):
            glm('diabetic ~ bmi', data=cohort, family='quasi')

    def test_binomial_linkinv_thresholds(self):
        eta = np.array([-40.0, 0.0, 40.0])
        mu = Binomial().linkinv(eta)
        assert mu[0] == Binomial.EPS
        assert mu[1] == 0.5
        assert mu[2] == 1 - Binomial.EPS

    def test_binomial_dev_resids_at_bounds(self):
        """Test y log y terms vanish at y = 0 and y = 1."""
        fam = Binomial()
        d = fam.dev_resids(np.array([0.0, 1.0]), np.array([0.5, 0.5]), np.ones(2))
        np.testing.assert_allclose(d, 2 * np.log(2))

    def test_glm_class_repr(self, cohort):
        model = GeneralizedLinearModel('diabetic ~ bmi', cohort)
        assert 'binomial' in repr(model)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
