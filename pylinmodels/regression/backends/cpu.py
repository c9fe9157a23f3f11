"""
CPU reference backend for linear regression.

Uses QR decomposition via LAPACK (through NumPy/SciPy). The normal
equations are never formed for the solve; the R factor also provides
(X'X)⁻¹ for the coefficient standard errors.
"""

import warnings
from typing import Any
import numpy as np

from pylinmodels.core.result import Result
from pylinmodels.core.compute.timing import Timer
from pylinmodels.core.compute.linalg.qr import qr_solve_cpu, xtx_inverse_from_r
from pylinmodels.regression.design import RegressionDesign
from pylinmodels.regression.solution import LinearParams


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


class CPUQRBackend:
    """
    CPU backend using QR decomposition.

    Implements the Backend protocol for RegressionDesign -> LinearParams.
    """

    @property
    def name(self) -> str:
        return 'cpu_qr'

    def solve(self, design: RegressionDesign) -> Result[LinearParams]:
        """
        Solve OLS via QR decomposition.

        Algorithm:
            1. X = QR, with numerical rank from the diagonal of R
            2. β = R⁻¹ Q'y by back substitution
            3. (X'X)⁻¹ = R⁻¹ R⁻ᵀ
            4. Residuals, fitted values, RSS and TSS about the mean

        Raises:
            RankDeficientError: If X has linearly dependent columns
        """
        timer = Timer()
        timer.start()

        X = design.X
        y = design.y
        n, p = design.n, design.p

        with timer.section('solve'):
            lstsq = qr_solve_cpu(X, y)
            coefficients = lstsq.coefficients

        with timer.section('xtx_inverse'):
            xtx_inv = xtx_inverse_from_r(lstsq.qr.R)

        with timer.section('residuals'):
            fitted_values = X @ coefficients
            residuals = y - fitted_values

        with timer.section('statistics'):
            rss = float(residuals @ residuals)
            tss = float(np.sum((y - np.mean(y)) ** 2))

        timer.stop()

        warn_list = []
        df_residual = n - lstsq.qr.rank
        if df_residual == 0:
            msg = (
                f"Zero residual degrees of freedom (n={n}, p={p}): "
                f"standard errors and tests are undefined"
            )
            warnings.warn(msg, RuntimeWarning, stacklevel=3)
            warn_list.append(msg)

        params = LinearParams(
            coefficients=_frozen(coefficients),
            residuals=_frozen(residuals),
            fitted_values=_frozen(fitted_values),
            xtx_inverse=_frozen(xtx_inv),
            rss=rss,
            tss=tss,
            rank=lstsq.qr.rank,
            df_residual=df_residual,
        )

        info: dict[str, Any] = {
            'method': 'qr',
            'rank': lstsq.qr.rank,
        }

        return Result(
            params=params,
            info=info,
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(warn_list),
        )
