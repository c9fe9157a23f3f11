"""
Penalized least squares (PLS) for linear mixed models.

For fixed θ the model y = Xβ + ZΛ_θu + ε, u ~ N(0, σ²I), is fitted by

    minimize ‖y - Xβ - ZΛu‖² + ‖u‖²

over β and the spherical random effects u. σ² is profiled out of the
penalized residual sum of squares.

References:
    Bates, D., Maechler, M., Bolker, B., & Walker, S. (2015).
    Fitting Linear Mixed-Effects Models Using lme4.
    Journal of Statistical Software, 67(1), Section 3.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import scipy.linalg as sla
from numpy.typing import NDArray

from pylinmodels.core.exceptions import NumericalError


@dataclass(frozen=True)
class PLSResult:
    """Solution of the PLS problem at one θ.

    Attributes:
        beta: Fixed effects (p,).
        u: Spherical random effects (q,).
        b: Conditional modes b = Λu (q,).
        pwrss: ‖y - Xβ - Zb‖² + ‖u‖².
        L: Lower Cholesky factor of Λ'Z'ZΛ + I (q, q).
        RX: Lower Cholesky factor of the Schur complement
            X'X - X'ZΛ L⁻ᵀL⁻¹Λ'Z'X (p, p).
        fitted: Xβ + Zb (n,).
        residuals: y - fitted (n,).
    """
    beta: NDArray
    u: NDArray
    b: NDArray
    pwrss: float
    L: NDArray
    RX: NDArray
    fitted: NDArray
    residuals: NDArray

    def log_det_L(self) -> float:
        """log|L|² = log det(Λ'Z'ZΛ + I)."""
        return 2.0 * float(np.sum(np.log(np.diag(self.L))))

    def log_det_RX(self) -> float:
        """log|RX|² = log det(X'V*⁻¹X), the REML correction."""
        return 2.0 * float(np.sum(np.log(np.abs(np.diag(self.RX)))))

    def sigma_sq(self, n: int, p: int, reml: bool) -> float:
        """Profiled residual variance: pwrss/(n - p) under REML, pwrss/n under ML."""
        return self.pwrss / (n - p if reml else n)


def solve_pls(X: NDArray, Z: NDArray, y: NDArray, Lambda: NDArray) -> PLSResult:
    """Solve the PLS problem block-wise through two Cholesky factorizations.

    Args:
        X: Fixed effects design (n, p).
        Z: Random effects design (n, q).
        y: Response (n,).
        Lambda: Relative covariance factor Λ_θ (q, q).

    Raises:
        NumericalError: If the fixed effects block is not positive definite.
    """
    ZL = Z @ Lambda
    q = ZL.shape[1]

    L = sla.cholesky(ZL.T @ ZL + np.eye(q), lower=True)
    cu = sla.solve_triangular(L, ZL.T @ y, lower=True)
    CX = sla.solve_triangular(L, ZL.T @ X, lower=True)

    try:
        RX = sla.cholesky(X.T @ X - CX.T @ CX, lower=True)
    except np.linalg.LinAlgError as e:
        raise NumericalError(
            f"Fixed effects cross-product is not positive definite: {e}"
        ) from e

    beta = sla.cho_solve((RX, True), X.T @ y - CX.T @ cu)
    u = sla.solve_triangular(L.T, cu - CX @ beta, lower=False)
    b = Lambda @ u

    fitted = X @ beta + Z @ b
    residuals = y - fitted
    pwrss = float(residuals @ residuals + u @ u)

    return PLSResult(
        beta=beta, u=u, b=b, pwrss=pwrss, L=L, RX=RX,
        fitted=fitted, residuals=residuals,
    )
