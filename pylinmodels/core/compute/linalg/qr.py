"""
QR decomposition and least-squares solves.

Least squares is solved from X = QR by back substitution on R, never by
forming and inverting X'X. The same R factor gives (X'X)⁻¹ = R⁻¹R⁻ᵀ for
standard errors.
"""

from dataclasses import dataclass
from typing import Literal, Any
import numpy as np
from numpy.typing import NDArray
from scipy.linalg import solve_triangular

from pylinmodels.core.exceptions import RankDeficientError
from pylinmodels.core.compute.tolerances import RANK_TOLERANCE_FACTOR


@dataclass(frozen=True)
class QRResult:
    """
    Result of QR decomposition.

    Attributes:
        Q: Orthogonal matrix (n x k where k = min(n, p) for reduced mode)
        R: Upper triangular matrix (k x p)
        rank: Numerical rank determined from R diagonal
    """
    Q: NDArray[np.floating[Any]]
    R: NDArray[np.floating[Any]]
    rank: int


@dataclass(frozen=True)
class LeastSquaresResult:
    """
    Least-squares solution together with the factorization that produced it.

    Attributes:
        coefficients: β (p,)
        qr: The QR decomposition of X
    """
    coefficients: NDArray[np.floating[Any]]
    qr: QRResult


def qr_cpu(
    X: NDArray[np.floating[Any]],
    mode: Literal['reduced', 'complete'] = 'reduced'
) -> QRResult:
    """
    QR decomposition using LAPACK (via NumPy).

    Numerical rank counts the diagonal entries of R larger than
    max(n, p) * eps * |R[0, 0]|.

    Args:
        X: Matrix to decompose (n x p)
        mode: 'reduced' for economy QR, 'complete' for full QR

    Returns:
        QRResult with Q, R, and numerical rank
    """
    Q, R = np.linalg.qr(X, mode=mode)

    diag_R = np.abs(np.diag(R))
    if len(diag_R) > 0 and diag_R[0] > 0:
        tol = RANK_TOLERANCE_FACTOR * max(X.shape) * np.finfo(X.dtype).eps * diag_R[0]
        rank = int(np.sum(diag_R > tol))
    else:
        rank = 0

    return QRResult(Q=Q, R=R, rank=rank)


def qr_solve_cpu(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
    matrix_name: str = 'X',
) -> LeastSquaresResult:
    """
    Solve min_β ||y - Xβ||² via QR decomposition.

        X = QR
        β = R⁻¹ Q'y

    Args:
        X: Design matrix (n x p), n >= p
        y: Response vector (n,)
        matrix_name: Name used in the error if X is rank-deficient

    Returns:
        LeastSquaresResult with β and the decomposition

    Raises:
        RankDeficientError: If the columns of X are linearly dependent
    """
    n, p = X.shape
    qr_result = qr_cpu(X, mode='reduced')

    if qr_result.rank < p:
        raise RankDeficientError(
            f"Design matrix is rank-deficient: rank={qr_result.rank}, expected={p}. "
            f"This indicates perfect multicollinearity.",
            matrix_name=matrix_name,
            rank=qr_result.rank,
            expected_rank=p
        )

    Qty = qr_result.Q.T @ y
    beta = solve_triangular(qr_result.R[:p, :p], Qty[:p], lower=False)

    return LeastSquaresResult(coefficients=beta, qr=qr_result)


def xtx_inverse_from_r(R: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    """
    Compute (X'X)⁻¹ = R⁻¹ R⁻ᵀ from the triangular factor of X.

    Args:
        R: Upper triangular factor (p x p) of a full-rank X

    Returns:
        Symmetric (p x p) matrix
    """
    p = R.shape[1]
    R_inv = solve_triangular(R[:p, :p], np.eye(p), lower=False)
    return R_inv @ R_inv.T


def column_space_contains(
    outer: NDArray[np.floating[Any]],
    inner: NDArray[np.floating[Any]],
    rtol: float = 1e-8,
) -> bool:
    """
    Check that every column of `inner` lies in the column span of `outer`.

    Projects `inner` onto span(outer) with the reduced Q factor and
    compares the residual norm to the column norms.
    """
    if outer.shape[0] != inner.shape[0]:
        return False
    qr_result = qr_cpu(outer, mode='reduced')
    Q = qr_result.Q[:, :qr_result.rank]
    residual = inner - Q @ (Q.T @ inner)
    scale = np.maximum(np.linalg.norm(inner, axis=0), 1.0)
    return bool(np.all(np.linalg.norm(residual, axis=0) <= rtol * scale))
