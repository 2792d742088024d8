"""
Model formulas.

Formulas are typed objects rather than strings: a ModelSpec holds the
outcome and predictor names parsed from an expression such as
``"HF + LF ~ age + bmi"``, and a Formula is one single-outcome model
built from it. ``str()`` renders R syntax for display.
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union
from collections import Counter

from ..errors import (
    DuplicatePredictorError,
    EmptySpecError,
    FormulaError,
    InvalidExposureError,
)


# R syntactic names: letters, digits, '.', '_' ; not starting with a digit
_NAME = re.compile(r'^(?:[A-Za-z]|\.(?![0-9]))[A-Za-z0-9._]*$')


def as_names(names) -> Tuple[str, ...]:
    """Tuple of variable names; a lone string is one name, not its characters."""
    if isinstance(names, str):
        return (names,)
    return tuple(names)


@dataclass(frozen=True)
class Formula:
    """Single-outcome additive model: outcome ~ p1 + p2 + ..."""
    outcome: str
    predictors: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, 'predictors', as_names(self.predictors))
        if not self.predictors:
            raise EmptySpecError(f"Formula for '{self.outcome}' has no predictors")

    @property
    def variables(self) -> Tuple[str, ...]:
        """All variables referenced, outcome first."""
        return (self.outcome,) + self.predictors

    def __str__(self):
        return f"{self.outcome} ~ {' + '.join(self.predictors)}"


@dataclass(frozen=True)
class ModelSpec:
    """
    Outcomes and ordered predictors of a family of models.

    Attributes
    ----------
    outcomes : tuple of str
        Dependent variables, in source order
    predictors : tuple of str
        Independent variables; order defines the sequence in which
        they enter sequential models
    """
    outcomes: Tuple[str, ...]
    predictors: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, 'outcomes', as_names(self.outcomes))
        object.__setattr__(self, 'predictors', as_names(self.predictors))

        if not self.outcomes:
            raise EmptySpecError("Formula has no outcome variable")
        if not self.predictors:
            raise EmptySpecError("Formula has no predictor variable")

        duplicates = [n for n, c in Counter(self.predictors).items() if c > 1]
        if duplicates:
            raise DuplicatePredictorError(duplicates)

        repeated = [n for n, c in Counter(self.outcomes).items() if c > 1]
        if repeated:
            raise FormulaError(f"Duplicate outcome(s): {', '.join(repeated)}")

        overlap = set(self.outcomes) & set(self.predictors)
        if overlap:
            raise FormulaError(
                f"Variable(s) used as both outcome and predictor: "
                f"{', '.join(sorted(overlap))}"
            )

    @property
    def variables(self) -> Tuple[str, ...]:
        return self.outcomes + self.predictors

    def __str__(self):
        return f"{' + '.join(self.outcomes)} ~ {' + '.join(self.predictors)}"


def _split_terms(side: str, label: str) -> Tuple[str, ...]:
    side = side.strip()
    if not side:
        return ()

    terms = []
    for token in side.split('+'):
        token = token.strip()
        if not token:
            raise FormulaError(f"Empty term in {label}: '{side}'")
        if token == '1':
            # Explicit intercept; always included anyway
            continue
        if not _NAME.match(token):
            raise FormulaError(
                f"Unsupported term '{token}' in {label}. "
                f"Only additive variable names are allowed."
            )
        terms.append(token)
    return tuple(terms)


def parse_formula(formula: Union[str, ModelSpec, Formula]) -> ModelSpec:
    """
    Parse ``"o1 + o2 ~ p1 + p2 + ..."`` into a ModelSpec.

    Parameters
    ----------
    formula : str, ModelSpec or Formula
        Formula expression. ModelSpec is returned unchanged; a Formula
        becomes a single-outcome ModelSpec.

    Returns
    -------
    ModelSpec

    Raises
    ------
    FormulaError
        Malformed expression (no '~', several '~', non-additive terms)
    EmptySpecError
        No outcome or no predictor
    DuplicatePredictorError
        A predictor is listed twice

    Examples
    --------
    >>> parse_formula("HF + LF ~ age + bmi")
    ModelSpec(outcomes=('HF', 'LF'), predictors=('age', 'bmi'))
    """
    if isinstance(formula, ModelSpec):
        return formula
    if isinstance(formula, Formula):
        return ModelSpec((formula.outcome,), formula.predictors)
    if not isinstance(formula, str):
        raise FormulaError(
            f"Formula must be a string or ModelSpec, got {type(formula).__name__}"
        )

    sides = formula.split('~')
    if len(sides) != 2:
        raise FormulaError(f"Formula must contain exactly one '~': '{formula}'")

    lhs, rhs = sides
    return ModelSpec(
        outcomes=_split_terms(lhs, "outcomes"),
        predictors=_split_terms(rhs, "predictors"),
    )


def build_formula(outcome: str, predictors: Sequence[str]) -> Formula:
    """Build the single-outcome formula ``outcome ~ predictors``."""
    return Formula(outcome=outcome, predictors=as_names(predictors))


def single_formula(formula: Union[str, ModelSpec, Formula]) -> Formula:
    """Coerce a one-outcome formula expression into a Formula."""
    if isinstance(formula, Formula):
        return formula
    spec = parse_formula(formula)
    if len(spec.outcomes) != 1:
        raise FormulaError(
            f"Expected exactly one outcome, got {len(spec.outcomes)}: "
            f"{', '.join(spec.outcomes)}"
        )
    return build_formula(spec.outcomes[0], spec.predictors)


def predictor_chain(
    predictors: Sequence[str],
    exposure: Optional[str] = None
) -> Tuple[str, ...]:
    """
    Order predictors for sequential modeling.

    The exposure, when given, is moved to the front; the remaining
    predictors keep their relative order.

    Examples
    --------
    >>> predictor_chain(['age', 'bmi', 'hba1c'], exposure='bmi')
    ('bmi', 'age', 'hba1c')
    """
    predictors = as_names(predictors)
    if exposure is None:
        return predictors
    if exposure not in predictors:
        raise InvalidExposureError(exposure, predictors)
    return (exposure,) + tuple(p for p in predictors if p != exposure)
