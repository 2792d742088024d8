"""
pycard: sequential regression modeling for cardiovascular and HRV research.

Copyright (C) 2024 SGCX
Licensed under GPL-3.0
"""

__version__ = "1.0.0"

# Main user-facing API
from .sequential import build_sequential_models, sequential_formulas, fit_unit
from .lm import lm, LinearModel
from .glm import glm, GeneralizedLinearModel
from .summaries import tidy, augment
from .hrv import hrv_linear_model, propensity_weights
from .diagnostics import resolve_family, error_frame, residual_frame
from ._core import (
    Formula,
    ModelSpec,
    ModelFamily,
    parse_formula,
    build_formula,
    predictor_chain,
)
from .errors import (
    PycardError,
    SpecificationError,
    FormulaError,
    EmptySpecError,
    DuplicatePredictorError,
    InvalidExposureError,
    MissingVariableError,
    UnsupportedEngineError,
    UnknownFamilyError,
    ModelFitError,
    FitFailureError,
    UnsupportedFamilyError,
)

# Backend utilities (for advanced users)
from ._backends import get_backend, list_available_backends

__all__ = [
    'build_sequential_models',
    'sequential_formulas',
    'fit_unit',
    'lm',
    'LinearModel',
    'glm',
    'GeneralizedLinearModel',
    'tidy',
    'augment',
    'hrv_linear_model',
    'propensity_weights',
    'resolve_family',
    'error_frame',
    'residual_frame',
    'Formula',
    'ModelSpec',
    'ModelFamily',
    'parse_formula',
    'build_formula',
    'predictor_chain',
    'PycardError',
    'SpecificationError',
    'FormulaError',
    'EmptySpecError',
    'DuplicatePredictorError',
    'InvalidExposureError',
    'MissingVariableError',
    'UnsupportedEngineError',
    'UnknownFamilyError',
    'ModelFitError',
    'FitFailureError',
    'UnsupportedFamilyError',
    'get_backend',
    'list_available_backends',
]
