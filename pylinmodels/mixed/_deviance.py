"""
Profiled deviance of a linear mixed model.

β and σ² are profiled out analytically, leaving a function of θ alone
that the outer optimizer minimizes:

    ML:   d(θ) = log|L|² + n [1 + log(2π pwrss/n)]
    REML: d(θ) = log|L|² + log|RX|² + (n-p) [1 + log(2π pwrss/(n-p))]

At the optimum, the maximized (restricted) log-likelihood is -d(θ̂)/2.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pylinmodels.core.exceptions import NumericalError
from pylinmodels.mixed._pls import PLSResult, solve_pls
from pylinmodels.mixed._random_effects import RandomEffectSpec, build_lambda


def deviance_from_pls(pls: PLSResult, n: int, p: int, reml: bool) -> float:
    """Profiled deviance given a PLS solution."""
    if reml:
        df = n - p
        return (
            pls.log_det_L() + pls.log_det_RX()
            + df * (1.0 + np.log(2.0 * np.pi * pls.pwrss / df))
        )
    return pls.log_det_L() + n * (1.0 + np.log(2.0 * np.pi * pls.pwrss / n))


def profiled_deviance(
    theta: NDArray,
    X: NDArray,
    Z: NDArray,
    y: NDArray,
    specs: list[RandomEffectSpec],
    reml: bool = True,
) -> float:
    """Objective for the θ optimizer.

    Returns +inf where the PLS system breaks down so L-BFGS-B backs off.
    """
    n, p = X.shape
    try:
        pls = solve_pls(X, Z, y, build_lambda(theta, specs))
    except (NumericalError, np.linalg.LinAlgError):
        return np.inf
    if pls.pwrss <= 0:
        return np.inf
    return float(deviance_from_pls(pls, n, p, reml))
