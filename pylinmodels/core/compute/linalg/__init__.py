"""
Linear algebra kernels for pylinmodels.

CPU implementations on NumPy/SciPy (LAPACK under the hood). Each
operation returns a structured result dataclass and raises immediately
on failure.
"""

from pylinmodels.core.compute.linalg.qr import (
    QRResult,
    LeastSquaresResult,
    qr_cpu,
    qr_solve_cpu,
    xtx_inverse_from_r,
    column_space_contains,
)

__all__ = [
    "QRResult",
    "LeastSquaresResult",
    "qr_cpu",
    "qr_solve_cpu",
    "xtx_inverse_from_r",
    "column_space_contains",
]
