"""
Test augment() and the family-dispatched residual tables.
"""

import numpy as np
import pandas as pd
import pytest

from pycard import (
    ModelFamily,
    UnsupportedFamilyError,
    augment,
    error_frame,
    glm,
    lm,
    resolve_family,
    residual_frame,
    tidy,
)


class TestAugment:
    """Test per-observation output."""

    def test_columns(self, cohort):
        model = lm('HF ~ bmi + age', data=cohort)
        out = augment(model)
        assert list(out.columns) == ['HF', 'bmi', 'age', '.fitted', '.resid']
        assert out.index.equals(cohort.index)

    def test_fitted_plus_resid_is_observed(self, cohort):
        out = augment(lm('HF ~ bmi', data=cohort))
        np.testing.assert_allclose(out['.fitted'] + out['.resid'], out['HF'])

    def test_glm_response_scale(self, cohort):
        out = augment(glm('diabetic ~ bmi', data=cohort))
        assert out['.fitted'].between(0, 1).all()
        np.testing.assert_allclose(out['.fitted'] + out['.resid'], out['diabetic'])

    def test_not_a_model(self):
        with pytest.raises(UnsupportedFamilyError):
            augment(object())
        with pytest.raises(UnsupportedFamilyError):
            tidy("HF ~ bmi")


class TestResolveFamily:
    """Test family tags."""

    def test_linear(self, cohort):
        assert resolve_family(lm('HF ~ bmi', data=cohort)) is ModelFamily.GAUSSIAN

    def test_logistic(self, cohort):
        assert resolve_family(glm('diabetic ~ bmi', data=cohort)) is ModelFamily.BINOMIAL

    def test_unknown_object(self):
        assert resolve_family(object()) is ModelFamily.UNSUPPORTED


class TestResidualFrames:
    """Test diagnostics dispatch per family."""

    def test_error_frame(self, cohort):
        model = lm('HF ~ bmi + age', data=cohort)
        frame = error_frame(model)
        assert list(frame.columns) == ['HF', 'bmi', '.fitted', '.resid', 'abs_resid']
        np.testing.assert_allclose(frame['abs_resid'], np.abs(model.residuals))

    def test_residual_frame(self, cohort):
        model = lm('HF ~ bmi', data=cohort)
        frame = residual_frame(model)
        assert list(frame.columns) == ['.fitted', '.resid']
        assert len(frame) == model.n_obs
        assert abs(frame['.resid'].mean()) < 1e-10

    def test_unsupported_family_fails_fast(self):
        rng = np.random.default_rng(5)
        data = pd.DataFrame({'x': rng.uniform(0, 2, 100)})
        data['y'] = rng.poisson(np.exp(0.3 * data['x']))
        model = glm('y ~ x', data=data, family='poisson')
        with pytest.raises(UnsupportedFamilyError, match="poisson"):
            error_frame(model)

    def test_foreign_object(self):
        with pytest.raises(UnsupportedFamilyError):
            residual_frame(object())



class TestBinomialResidualFrames:
    """Test diagnostics for logistic models."""

    def test_error_frame(self, cohort):
        """Test fitted probabilities and response residuals."""
        model = glm('diabetic ~ bmi + age', data=cohort)
        frame = error_frame(model)

        assert list(frame.columns) == [
            'diabetic', 'bmi', '.fitted', '.link', '.resid', 'abs_resid',
        ]
        assert frame.index.equals(cohort.index)
        assert frame['.fitted'].between(0, 1).all()
        np.testing.assert_allclose(frame['.fitted'], 1 / (1 + np.exp(-frame['.link'])))
        np.testing.assert_allclose(frame['.resid'], frame['diabetic'] - frame['.fitted'])
        np.testing.assert_allclose(frame['abs_resid'], np.abs(frame['.resid']))

    def test_residual_frame_deviance(self, cohort):
        """Test squared deviance residuals sum to the model deviance."""
        model = glm('diabetic ~ bmi', data=cohort)
        frame = residual_frame(model)

        assert list(frame.columns) == ['.fitted', '.resid', '.pearson']
        assert len(frame) == model.n_obs
        np.testing.assert_allclose(np.sum(frame['.resid']**2), model.deviance, rtol=1e-10)

        y = cohort['diabetic'].values
        p = model.fitted_values
        assert np.all(np.sign(frame['.resid']) == np.sign(y - p))
        expected = -np.sqrt(-2 * np.log(1 - p[y == 0]))
        np.testing.assert_allclose(frame['.resid'].values[y == 0], expected, rtol=1e-10)

    def test_residual_frame_pearson(self, cohort):
        model = glm('diabetic ~ bmi', data=cohort)
        frame = residual_frame(model)
        y = cohort['diabetic'].values
        p = model.fitted_values
        np.testing.assert_allclose(frame['.pearson'], (y - p) / np.sqrt(p * (1 - p)))

    def test_weighted(self, cohort):
        """Test prior weights enter both residual types."""
        w = np.random.default_rng(3).uniform(0.5, 2, len(cohort))
        model = glm('diabetic ~ bmi', data=cohort, weights=w)
        frame = residual_frame(model)
        y = cohort['diabetic'].values
        p = model.fitted_values

        np.testing.assert_allclose(np.sum(frame['.resid']**2), model.deviance, rtol=1e-10)
        np.testing.assert_allclose(frame['.pearson'], (y - p) * np.sqrt(w) / np.sqrt(p * (1 - p)))


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
