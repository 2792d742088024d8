"""
Exception hierarchy.

Specification errors are raised before any model is fitted. Fit errors
come from the regression primitives; the sequential builder wraps them in
FitFailureError so the caller knows which model of the grid failed.
"""


class PycardError(Exception):
    """Base class for all pycard errors."""


class SpecificationError(PycardError, ValueError):
    """Invalid model specification (raised before fitting)."""


class FormulaError(SpecificationError):
    """Formula expression could not be parsed."""


class EmptySpecError(SpecificationError):
    """Formula names no outcome or no predictor."""


class DuplicatePredictorError(SpecificationError):
    """The same predictor appears more than once in a formula."""

    def __init__(self, duplicates):
        self.duplicates = tuple(duplicates)
        super().__init__(
            f"Duplicate predictor(s) in formula: {', '.join(self.duplicates)}"
        )


class InvalidExposureError(SpecificationError):
    """Exposure variable is not one of the predictors."""

    def __init__(self, exposure, predictors):
        self.exposure = exposure
        self.predictors = tuple(predictors)
        super().__init__(
            f"Exposure '{exposure}' is not among the predictors "
            f"({', '.join(self.predictors)})"
        )


class MissingVariableError(SpecificationError):
    """Data does not contain every variable the formula references."""

    def __init__(self, missing):
        self.missing = tuple(missing)
        super().__init__(
            f"Variable(s) not found in data: {', '.join(self.missing)}"
        )


class UnsupportedEngineError(SpecificationError):
    """Unknown regression engine name."""

    def __init__(self, engine, available):
        self.engine = engine
        self.available = tuple(available)
        super().__init__(
            f"Unsupported engine: '{engine}'\n"
            f"Valid options: {', '.join(repr(a) for a in self.available)}"
        )


class UnknownFamilyError(SpecificationError):
    """Unknown GLM family name."""

    def __init__(self, family, available):
        self.family = family
        self.available = tuple(available)
        super().__init__(
            f"Unknown family: '{family}'\n"
            f"Valid options: {', '.join(repr(a) for a in self.available)}"
        )


class ModelFitError(PycardError, ValueError):
    """A regression primitive could not fit the model."""


class FitFailureError(PycardError):
    """
    One model of a sequential build failed.

    Attributes
    ----------
    outcome : str
        Outcome of the failed model
    chain_length : int
        Number of predictors in the failed model
    formula : Formula
        The formula that was being fitted
    """

    def __init__(self, outcome, chain_length, formula, cause):
        self.outcome = outcome
        self.chain_length = chain_length
        self.formula = formula
        self.cause = cause
        super().__init__(
            f"Fit failed for outcome '{outcome}' with {chain_length} "
            f"predictor(s) [{formula}]: {cause}"
        )


class UnsupportedFamilyError(PycardError, TypeError):
    """Diagnostics requested for a model family that has no handler."""
