"""
Linear model solver.

Delegates the least-squares fit to a backend and recovers the unscaled
coefficient covariance (X'WX)⁻¹ from its pivoted QR factor.
"""

import numpy as np
from typing import Optional


def fit_linear_model(
    X: np.ndarray,
    y: np.ndarray,
    weights: Optional[np.ndarray] = None,
    tol: Optional[float] = None,
    singular_ok: bool = True,
    backend=None,
):
    """
    Fit linear model via backend.

    Parameters
    ----------
    X : ndarray, shape (n, p)
        Design matrix (WITHOUT intercept)
    y : ndarray, shape (n,)
        Response vector
    weights : ndarray, optional
        Observation weights
    tol : float, optional
        Rank determination tolerance
    singular_ok : bool
        Allow singular fits
    backend : BackendBase, optional
        Computational backend

    Returns
    -------
    result : LinearModelResult (from backend)
        Fitted model
    """
    if backend is None:
        from .._backends import get_backend
        backend = get_backend('cpu')

    return backend.fit_linear_model(
        X, y,
        weights=weights,
        tol=tol,
        singular_ok=singular_ok
    )


def unscaled_covariance(result, n_coef: int) -> np.ndarray:
    """
    (X'WX)⁻¹ in original coefficient order.

    Rows and columns of aliased coefficients are NaN.
    """
    rank = result.rank
    cov = np.full((n_coef, n_coef), np.nan)
    if rank == 0:
        return cov

    R_inv = np.linalg.inv(result.qr_R[:rank, :rank])
    XtX_inv = R_inv @ R_inv.T

    # Place active coefficients in their pre-pivot positions
    pivot = result.qr_pivot[:rank] - 1
    cov[np.ix_(pivot, pivot)] = XtX_inv
    return cov
