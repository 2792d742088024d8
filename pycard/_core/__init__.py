"""
Core algorithms (backend-agnostic).
"""

from .lm_solver import fit_linear_model, unscaled_covariance
from .formula import (
    Formula,
    ModelSpec,
    parse_formula,
    build_formula,
    single_formula,
    predictor_chain,
)
from .families import ModelFamily, Family, Gaussian, Binomial, Poisson, get_family

__all__ = [
    "fit_linear_model",
    "unscaled_covariance",
    "Formula",
    "ModelSpec",
    "parse_formula",
    "build_formula",
    "single_formula",
    "predictor_chain",
    "ModelFamily",
    "Family",
    "Gaussian",
    "Binomial",
    "Poisson",
    "get_family",
]
