"""
Linear mixed models.

Public API:
    lmm(y, X, groups, ...) -> LMMSolution
    lmer(formula, data, ...) -> LMMSolution
    LmerSolver: default MixedModelSolver

Example:
    >>> full = lmer("frequency ~ attitude + gender + (1 | subject) + (1 | scenario)",
    ...             df, reml=False)
    >>> full.ranef['subject']
"""

from pylinmodels.mixed._common import LMMParams, VarCompSummary
from pylinmodels.mixed.design import MixedDesign
from pylinmodels.mixed.protocols import MixedFit, MixedModelSolver
from pylinmodels.mixed.solution import LMMSolution
from pylinmodels.mixed.solvers import LmerSolver, lmer, lmm

__all__ = [
    "lmm",
    "lmer",
    "LmerSolver",
    "MixedDesign",
    "MixedFit",
    "MixedModelSolver",
    "LMMSolution",
    "LMMParams",
    "VarCompSummary",
]
