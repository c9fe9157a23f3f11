"""
Capability interface for mixed-model solvers.

Model comparison only needs a maximized log-likelihood and a parameter
count from a mixed fit, so any solver satisfying these protocols can
stand in for the built-in LmerSolver.
"""

from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class MixedFit(Protocol):
    """What a mixed-model fit must expose.

    Attributes:
        log_likelihood: Maximized (restricted, for REML) log-likelihood
        n_params: Fixed effects + covariance parameters + residual variance
        random_effects: Grouping factor -> table of conditional modes
    """

    @property
    def log_likelihood(self) -> float: ...

    @property
    def n_params(self) -> int: ...

    @property
    def random_effects(self) -> Mapping[str, Any]: ...


@runtime_checkable
class MixedModelSolver(Protocol):
    """Fits ``response ~ fixed + (terms | group)`` formulas to a table."""

    def fit(self, formula: str, data: Any, *, reml: bool = True) -> MixedFit: ...
