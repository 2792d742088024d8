"""
Abstract base classes for backends.

Defines the interface all backends must implement.
"""

from abc import ABC, abstractmethod
import numpy as np
from typing import Optional
from dataclasses import dataclass


@dataclass
class LinearModelResult:
    """Complete linear regression results."""
    coef: np.ndarray
    residuals: np.ndarray
    fitted_values: np.ndarray
    rank: int
    df_residual: int
    qr_R: np.ndarray
    qr_pivot: np.ndarray
    qr_tol: float


class BackendBase(ABC):
    """Abstract base class for all backends."""

    name = "base"
    precision = "fp64"

    @abstractmethod
    def fit_linear_model(
        self,
        X: np.ndarray,
        y: np.ndarray,
        weights: Optional[np.ndarray] = None,
        tol: Optional[float] = None,
        singular_ok: bool = True
    ) -> LinearModelResult:
        """
        Fit linear model - complete computation.

        Parameters
        ----------
        X : ndarray, shape (n, p)
            Design matrix (WITHOUT intercept)
        y : ndarray, shape (n,)
            Response vector
        weights : ndarray, optional
            Observation weights
        tol : float, optional
            Tolerance for rank determination
        singular_ok : bool
            Allow singular fits

        Returns
        -------
        LinearModelResult
            Complete regression results (all numpy arrays)
        """
        pass

    @abstractmethod
    def get_device_info(self) -> dict:
        """Get backend information."""
        pass


class CPUBackend(BackendBase):
    """CPU backend base class (always FP64)."""
    pass
