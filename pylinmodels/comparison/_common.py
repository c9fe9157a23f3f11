"""
Common data types for likelihood-ratio comparison.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from pylinmodels.core.exceptions import ValidationError


@dataclass(frozen=True)
class ModelLikelihood:
    """
    Log-likelihood summary of a model fitted elsewhere.

    Lets fits from an external solver enter lrt() and compare().

    Attributes:
        log_likelihood: Maximized log-likelihood
        n_params: Estimated parameters, including the residual variance
        n_obs: Observations the model was fit to
        terms: Fixed-effect terms and random-effect labels such as
            '(1 | subject)'; empty to skip the nesting check
        method: 'OLS', 'ML' or 'REML'
        name: Label used in summaries
    """
    log_likelihood: float
    n_params: int
    n_obs: int
    terms: tuple[str, ...] = ()
    method: str = 'ML'
    name: str | None = None

    def __post_init__(self):
        if not np.isfinite(self.log_likelihood):
            raise ValidationError(
                f"log_likelihood: must be finite, got {self.log_likelihood}"
            )
        if self.n_params < 1:
            raise ValidationError(f"n_params: must be >= 1, got {self.n_params}")
        if self.n_obs < 1:
            raise ValidationError(f"n_obs: must be >= 1, got {self.n_obs}")
        if self.method not in ('OLS', 'ML', 'REML'):
            raise ValidationError(
                f"method: expected 'OLS', 'ML' or 'REML', got {self.method!r}"
            )
        object.__setattr__(self, 'terms', tuple(self.terms))


@dataclass(frozen=True)
class LRTParams:
    """
    Parameter payload for a likelihood-ratio test.

    Attributes:
        chi_square: 2 (loglik_full - loglik_reduced), never negative
        df: n_params_full - n_params_reduced
        p_value: Upper tail of chi-square(df) at chi_square
    """
    chi_square: float
    df: int
    p_value: float
    log_likelihood_reduced: float
    log_likelihood_full: float
    n_params_reduced: int
    n_params_full: int
    n_obs: int
    name_reduced: str
    name_full: str
