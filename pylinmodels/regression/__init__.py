"""
Linear models fit by ordinary least squares.

Public API:
    fit(X, y, ...) -> LinearSolution
    lm(formula, data, ...) -> LinearSolution

Both entry points handle input validation, design construction,
backend selection and result wrapping.

Example:
    >>> from pylinmodels.regression import lm
    >>> result = lm("pitch ~ age", df)
    >>> print(result.summary())
"""

from pylinmodels.regression.design import RegressionDesign
from pylinmodels.regression.solution import LinearSolution, LinearParams
from pylinmodels.regression.solvers import fit, lm

__all__ = [
    "fit",
    "lm",
    "RegressionDesign",
    "LinearSolution",
    "LinearParams",
]
