"""
CPU backend using NumPy + SciPy.

QR decomposition with column pivoting, as R's lm.fit does.
"""

import numpy as np
from scipy.linalg import qr, solve_triangular
from typing import Optional

from .base import CPUBackend, LinearModelResult
from .._utils import check_array, check_vector
from ..errors import ModelFitError

# R's lm.fit default
DEFAULT_TOL = 1e-7


class CPUBackendFP64(CPUBackend):
    """
    CPU backend using NumPy + SciPy.

    Always uses FP64 precision.
    """

    def __init__(self):
        self.name = "cpu_fp64"
        self.precision = "fp64"

    def fit_linear_model(
        self,
        X: np.ndarray,
        y: np.ndarray,
        weights: Optional[np.ndarray] = None,
        tol: Optional[float] = None,
        singular_ok: bool = True
    ) -> LinearModelResult:
        """
        Fit linear model using NumPy/LAPACK.

        Aliased (linearly dependent) columns get NaN coefficients when
        singular_ok is True, otherwise ModelFitError is raised.
        """
        X = check_array(X, 'X')
        y = check_vector(y, 'y')
        n = len(y)
        if X.shape[0] != n:
            raise ValueError(f"X has {X.shape[0]} rows but y has {n} values")

        # Add intercept
        X_full = np.column_stack([np.ones(n), X])
        p = X_full.shape[1]

        # Handle weights
        if weights is not None:
            weights = check_vector(weights, 'weights')
            good = weights > 0
            if not np.any(good):
                raise ModelFitError("All weights are zero")

            w_sqrt = np.sqrt(weights[good])
            X_work = X_full[good, :] * w_sqrt[:, np.newaxis]
            y_work = y[good] * w_sqrt
            n_good = int(np.sum(good))
        else:
            X_work = X_full
            y_work = y
            n_good = n

        if tol is None:
            tol = DEFAULT_TOL

        # QR decomposition with column pivoting
        Q, R, P = qr(X_work, mode='economic', pivoting=True)

        # Determine rank relative to the leading diagonal element
        R_diag = np.abs(np.diag(R))
        if R_diag.size == 0 or R_diag[0] == 0:
            rank = 0
        else:
            rank = int(np.sum(R_diag > tol * R_diag[0]))

        if not singular_ok and rank < p:
            raise ModelFitError(f"Singular fit: rank {rank} < {p} columns")

        # Solve R β = Q'y
        qty = Q.T @ y_work

        # Initialize coefficients (with NaN for aliased)
        coef = np.full(p, np.nan, dtype=np.float64)

        if rank > 0:
            coef_active = solve_triangular(
                R[:rank, :rank],
                qty[:rank],
                lower=False
            )
            coef[P[:rank]] = coef_active

        # Fitted values on the original (unweighted) scale
        valid_coef = ~np.isnan(coef)
        if np.any(valid_coef):
            fitted = X_full[:, valid_coef] @ coef[valid_coef]
        else:
            fitted = np.zeros(n, dtype=np.float64)

        residuals = y - fitted

        return LinearModelResult(
            coef=coef,
            residuals=residuals,
            fitted_values=fitted,
            rank=rank,
            df_residual=n_good - rank,
            qr_R=R,
            qr_pivot=P.astype(np.int64) + 1,  # 1-indexed like R
            qr_tol=tol
        )

    def get_device_info(self) -> dict:
        """Get backend information."""
        import scipy
        return {
            'backend': 'cpu',
            'precision': 'fp64',
            'library': f'NumPy {np.__version__}, SciPy {scipy.__version__}',
        }
