"""
Likelihood-ratio comparison of nested models.

Public API:
    lrt(reduced, full) -> LRTSolution
    compare(*models) -> tuple[LRTSolution, ...]
    ModelLikelihood: log-likelihood record for externally fitted models

Example:
    >>> from pylinmodels.comparison import lrt
    >>> result = lrt(null_model, full_model)
    >>> print(result.summary())
"""

from pylinmodels.comparison._common import LRTParams, ModelLikelihood
from pylinmodels.comparison.solution import LRTSolution
from pylinmodels.comparison.solvers import compare, lrt

__all__ = [
    "lrt",
    "compare",
    "ModelLikelihood",
    "LRTSolution",
    "LRTParams",
]
