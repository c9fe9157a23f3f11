"""
Exception hierarchy for pylinmodels.

All exceptions inherit from PyLinModelsError so callers can catch any
library-specific failure in one place. Fitting and comparison never retry
and never recover silently: a fit either returns a complete solution or
raises one of these before producing anything.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages state actual vs expected values
    - Never catch and re-raise with less information
"""


class PyLinModelsError(Exception):
    """Base exception for all pylinmodels errors."""
    pass


class ValidationError(PyLinModelsError):
    """
    Input validation failed.

    Raised when user-provided inputs (arrays, formulas, factor levels)
    fail validation checks at the public API boundary.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when the response and the design matrix disagree on the number
    of observations, or an array has the wrong number of dimensions.
    """
    pass


class NumericalError(PyLinModelsError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class SingularMatrixError(NumericalError):
    """
    Matrix is singular or nearly singular.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        condition_number: Estimated condition number, if available
        rank: Numerical rank, if computed
        expected_rank: Rank the operation required
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        condition_number: float | None = None,
        rank: int | None = None,
        expected_rank: int | None = None
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.condition_number = condition_number
        self.rank = rank
        self.expected_rank = expected_rank


class RankDeficientError(SingularMatrixError):
    """
    Design matrix columns are linearly dependent.

    There is no unique least-squares solution. Typical causes are a
    duplicated column, an indicator for every level of a factor alongside
    an intercept, or a covariate that is an exact linear combination of
    others.
    """
    pass


class ConvergenceError(PyLinModelsError):
    """
    Iterative algorithm failed to converge.

    Attributes:
        iterations: Number of iterations completed
        final_change: Final parameter or objective change
        reason: Why convergence failed (e.g., 'max_iterations', 'diverging')
        threshold: The convergence threshold that was not met
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        final_change: float | None = None,
        reason: str | None = None,
        threshold: float | None = None
    ):
        super().__init__(message)
        self.iterations = iterations
        self.final_change = final_change
        self.reason = reason
        self.threshold = threshold


class ComparisonError(PyLinModelsError):
    """Base class for failed model comparisons."""
    pass


class NotNestedError(ComparisonError):
    """
    The reduced model is not nested within the full model.

    Attributes:
        extra_terms: Terms present in the reduced model but absent from
            the full model, when the check was term-based
    """

    def __init__(self, message: str, extra_terms: tuple[str, ...] = ()):
        super().__init__(message)
        self.extra_terms = extra_terms


class InvalidComparisonError(ComparisonError):
    """
    A likelihood-ratio comparison cannot produce a meaningful p-value.

    Raised for fits on different observation sets, REML fits that differ
    in their fixed effects, and negative chi-square statistics.

    Attributes:
        statistic: The offending chi-square statistic, if computed
    """

    def __init__(self, message: str, statistic: float | None = None):
        super().__init__(message)
        self.statistic = statistic
