"""
GLM family definitions.

Link functions, variance functions and deviance residuals, following
R's family objects.
"""

import numpy as np
from abc import ABC, abstractmethod
from enum import Enum
from scipy import stats
from scipy.special import xlogy

from ..errors import UnknownFamilyError


class ModelFamily(Enum):
    """Family tag of a fitted model, used to dispatch diagnostics."""
    GAUSSIAN = "gaussian"
    BINOMIAL = "binomial"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_name(cls, name: str) -> "ModelFamily":
        for tag in (cls.GAUSSIAN, cls.BINOMIAL):
            if tag.value == name:
                return tag
        return cls.UNSUPPORTED


class Family(ABC):
    """Base class for GLM families."""

    # Fixed dispersion (binomial, poisson) vs estimated (gaussian)
    fixed_dispersion = True

    @property
    @abstractmethod
    def name(self) -> str:
        """Family name."""
        pass

    @property
    def tag(self) -> ModelFamily:
        return ModelFamily.from_name(self.name)

    @abstractmethod
    def linkfun(self, mu: np.ndarray) -> np.ndarray:
        """Link function: η = g(μ)"""
        pass

    @abstractmethod
    def linkinv(self, eta: np.ndarray) -> np.ndarray:
        """Inverse link: μ = g⁻¹(η)"""
        pass

    @abstractmethod
    def mu_eta(self, eta: np.ndarray) -> np.ndarray:
        """Derivative: dμ/dη"""
        pass

    @abstractmethod
    def variance(self, mu: np.ndarray) -> np.ndarray:
        """Variance function: V(μ)"""
        pass

    @abstractmethod
    def dev_resids(
        self,
        y: np.ndarray,
        mu: np.ndarray,
        wt: np.ndarray
    ) -> np.ndarray:
        """Deviance residuals."""
        pass

    @abstractmethod
    def initialize(self, y: np.ndarray, wt: np.ndarray) -> np.ndarray:
        """Starting values for μ (R's family$initialize)."""
        pass

    @abstractmethod
    def aic(
        self,
        y: np.ndarray,
        mu: np.ndarray,
        wt: np.ndarray,
        dev: float
    ) -> float:
        """-2 log-likelihood, without the 2*rank penalty."""
        pass

    def validate_response(self, y: np.ndarray):
        """Raise ValueError if y is outside the family's support."""
        pass

    def __repr__(self):
        return f"{type(self).__name__}()"


class Gaussian(Family):
    """Gaussian family with identity link."""

    fixed_dispersion = False

    @property
    def name(self) -> str:
        return "gaussian"

    def linkfun(self, mu: np.ndarray) -> np.ndarray:
        return mu

    def linkinv(self, eta: np.ndarray) -> np.ndarray:
        return eta

    def mu_eta(self, eta: np.ndarray) -> np.ndarray:
        return np.ones_like(eta)

    def variance(self, mu: np.ndarray) -> np.ndarray:
        return np.ones_like(mu)

    def dev_resids(self, y, mu, wt):
        return wt * (y - mu) ** 2

    def initialize(self, y, wt):
        return y.copy()

    def aic(self, y, mu, wt, dev):
        nobs = len(y)
        return nobs * (np.log(2 * np.pi * dev / nobs) + 1) + 2


class Binomial(Family):
    """
    Binomial family with logit link.

    Replicates R's binomial() family, including the thresholding at
    ±30 to prevent overflow. Responses are proportions in [0, 1].
    """

    # Thresholds from R's family.c
    THRESH = 30.0
    MTHRESH = -30.0
    EPS = np.finfo(np.float64).eps

    @property
    def name(self) -> str:
        return "binomial"

    def linkfun(self, mu: np.ndarray) -> np.ndarray:
        """Logit link: η = log(μ/(1-μ))"""
        return np.log(mu / (1 - mu))

    def linkinv(self, eta: np.ndarray) -> np.ndarray:
        """Inverse logit with R's thresholding."""
        mu = np.empty_like(eta)
        mu[eta < self.MTHRESH] = self.EPS
        mu[eta > self.THRESH] = 1 - self.EPS
        mask = (eta >= self.MTHRESH) & (eta <= self.THRESH)
        mu[mask] = 1.0 / (1.0 + np.exp(-eta[mask]))
        return mu

    def mu_eta(self, eta: np.ndarray) -> np.ndarray:
        """dμ/dη = exp(η)/(1 + exp(η))², ε outside [-30, 30]"""
        d = np.empty_like(eta)
        outside = (eta < self.MTHRESH) | (eta > self.THRESH)
        d[outside] = self.EPS
        inside = ~outside
        exp_eta = np.exp(eta[inside])
        d[inside] = exp_eta / (1.0 + exp_eta) ** 2
        return d

    def variance(self, mu: np.ndarray) -> np.ndarray:
        """Variance: V(μ) = μ(1-μ)"""
        return mu * (1 - mu)

    def dev_resids(self, y, mu, wt):
        # y log(y/μ) is taken as 0 at y = 0 (binomial_dev_resids in family.c)
        return 2 * wt * (xlogy(y, y / mu) + xlogy(1 - y, (1 - y) / (1 - mu)))

    def initialize(self, y, wt):
        return (wt * y + 0.5) / (wt + 1)

    def aic(self, y, mu, wt, dev):
        # Bernoulli trials when weights are 1; weights act as trial counts
        m = np.where(wt > 0, wt, 1)
        ll = stats.binom.logpmf(np.round(m * y), np.round(m), mu)
        return -2 * np.sum(np.where(wt > 0, ll, 0.0))

    def validate_response(self, y):
        if np.any((y < 0) | (y > 1)):
            raise ValueError("y values must be 0 <= y <= 1 for the binomial family")


class Poisson(Family):
    """Poisson family with log link."""

    @property
    def name(self) -> str:
        return "poisson"

    def linkfun(self, mu: np.ndarray) -> np.ndarray:
        return np.log(mu)

    def linkinv(self, eta: np.ndarray) -> np.ndarray:
        return np.maximum(np.exp(eta), np.finfo(np.float64).eps)

    def mu_eta(self, eta: np.ndarray) -> np.ndarray:
        return np.maximum(np.exp(eta), np.finfo(np.float64).eps)

    def variance(self, mu: np.ndarray) -> np.ndarray:
        return mu

    def dev_resids(self, y, mu, wt):
        return 2 * wt * (xlogy(y, y / mu) - (y - mu))

    def initialize(self, y, wt):
        return y + 0.1

    def aic(self, y, mu, wt, dev):
        return -2 * np.sum(stats.poisson.logpmf(y, mu) * wt)

    def validate_response(self, y):
        if np.any(y < 0):
            raise ValueError("negative values not allowed for the poisson family")


FAMILIES = {
    "gaussian": Gaussian,
    "binomial": Binomial,
    "poisson": Poisson,
}


def get_family(family) -> Family:
    """Resolve a family name or instance; UnknownFamilyError otherwise."""
    if isinstance(family, Family):
        return family
    try:
        return FAMILIES[family]()
    except (KeyError, TypeError):
        raise UnknownFamilyError(family, FAMILIES) from None


__all__ = [
    "ModelFamily",
    "Family",
    "Gaussian",
    "Binomial",
    "Poisson",
    "FAMILIES",
    "get_family",
]
