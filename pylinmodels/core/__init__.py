"""
Core infrastructure for pylinmodels.

Shared abstractions used by the regression, mixed and comparison
subpackages.

Key components:
    protocols: LikelihoodModel, Backend protocols
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    datasource: Named-column observation tables
    compute: Timing, tolerances, linear algebra kernels
"""

from pylinmodels.core.protocols import LikelihoodModel, Backend
from pylinmodels.core.result import Result
from pylinmodels.core.datasource import DataSource
from pylinmodels.core.exceptions import (
    PyLinModelsError,
    ValidationError,
    DimensionError,
    NumericalError,
    SingularMatrixError,
    RankDeficientError,
    ConvergenceError,
    ComparisonError,
    NotNestedError,
    InvalidComparisonError,
)

__all__ = [
    # Protocols
    "LikelihoodModel",
    "Backend",
    # Containers
    "Result",
    "DataSource",
    # Exceptions
    "PyLinModelsError",
    "ValidationError",
    "DimensionError",
    "NumericalError",
    "SingularMatrixError",
    "RankDeficientError",
    "ConvergenceError",
    "ComparisonError",
    "NotNestedError",
    "InvalidComparisonError",
]
