"""
Shared test data: a simulated cohort with HRV outcomes and covariates.
"""

import numpy as np
import pandas as pd
import pytest


def make_cohort(n=200, seed=20241224):
    """Simulated cohort with known linear effects on HF and LF."""
    rng = np.random.default_rng(seed)
    age = rng.normal(55, 10, n)
    bmi = rng.normal(28, 4, n)
    hba1c = rng.normal(6.0, 0.8, n)

    # Exposure depends on bmi so propensity weighting has something to do
    p_diabetic = 1 / (1 + np.exp(-(bmi - 28) / 3))
    diabetic = rng.binomial(1, p_diabetic)

    hf = 6.0 - 0.03 * age - 0.05 * bmi - 0.2 * hba1c + rng.normal(0, 0.3, n)
    lf = 5.0 - 0.02 * age + 0.04 * bmi - 0.1 * hba1c + rng.normal(0, 0.3, n)

    return pd.DataFrame({
        'ID': np.arange(1, n + 1),
        'HF': hf,
        'LF': lf,
        'age': age,
        'bmi': bmi,
        'hba1c': hba1c,
        'diabetic': diabetic,
    })


@pytest.fixture
def cohort():
    return make_cohort()
