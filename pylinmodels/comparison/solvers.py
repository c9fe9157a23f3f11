"""
Likelihood-ratio tests between nested models.

Public API:
    lrt(reduced, full) -> LRTSolution
    compare(*models) -> tuple[LRTSolution, ...]

Any object with log_likelihood, n_params, n_obs, terms and method can be
compared: OLS fits, mixed-model fits, or a ModelLikelihood record.
"""

from __future__ import annotations

import warnings
from typing import Any

import numpy as np
from scipy import stats

from pylinmodels.core.compute.linalg import column_space_contains
from pylinmodels.core.compute.timing import Timer
from pylinmodels.core.compute.tolerances import lrt_negative_tolerance
from pylinmodels.core.exceptions import (
    InvalidComparisonError, NotNestedError, ValidationError,
)
from pylinmodels.core.protocols import LikelihoodModel
from pylinmodels.core.result import Result
from pylinmodels.comparison._common import LRTParams
from pylinmodels.comparison.solution import LRTSolution


def lrt(reduced: LikelihoodModel, full: LikelihoodModel) -> LRTSolution:
    """
    Likelihood-ratio test of a reduced model against a full model.

        χ² = 2 (ℓ_full - ℓ_reduced),  df = k_full - k_reduced

    with the p-value from the upper tail of χ²(df). Mixed models whose
    fixed effects differ must be fit by ML (reml=False).

    Args:
        reduced: Model with fewer parameters, nested in `full`
        full: The larger model

    Returns:
        LRTSolution

    Raises:
        NotNestedError: If `reduced` is not nested in `full`
        InvalidComparisonError: If the fits use different observations,
            REML fits differ in their fixed effects, or χ² is negative
            beyond optimizer noise

    Example:
        >>> null = lmer("frequency ~ gender + (1 | subject)", df, reml=False)
        >>> full = lmer("frequency ~ attitude + gender + (1 | subject)", df, reml=False)
        >>> lrt(null, full).p_value
    """
    timer = Timer()
    timer.start()

    with timer.section('checks'):
        for label, model in (('reduced', reduced), ('full', full)):
            if not isinstance(model, LikelihoodModel):
                raise ValidationError(
                    f"{label}: expected a fitted model with log_likelihood, n_params, "
                    f"n_obs, terms and method, got {type(model).__name__}"
                )
        _check_same_data(reduced, full)
        _check_nested(reduced, full)
        _check_methods(reduced, full)

    warn_list = []
    with timer.section('statistic'):
        ll_reduced = float(reduced.log_likelihood)
        ll_full = float(full.log_likelihood)
        chi_sq = 2.0 * (ll_full - ll_reduced)

        if chi_sq < 0:
            if -chi_sq > lrt_negative_tolerance(ll_full):
                raise InvalidComparisonError(
                    f"Negative likelihood-ratio statistic {chi_sq:.6g}: the full model "
                    f"fits worse than the reduced one (logLik {ll_full:.6g} < "
                    f"{ll_reduced:.6g}). Check convergence of both fits.",
                    statistic=chi_sq,
                )
            msg = f"Chi-square statistic {chi_sq:.3g} within optimizer tolerance, reported as 0"
            warnings.warn(msg, RuntimeWarning, stacklevel=2)
            warn_list.append(msg)
            chi_sq = 0.0

        df = int(full.n_params) - int(reduced.n_params)
        p_value = float(stats.chi2.sf(chi_sq, df))

    timer.stop()

    params = LRTParams(
        chi_square=chi_sq,
        df=df,
        p_value=p_value,
        log_likelihood_reduced=ll_reduced,
        log_likelihood_full=ll_full,
        n_params_reduced=int(reduced.n_params),
        n_params_full=int(full.n_params),
        n_obs=int(full.n_obs),
        name_reduced=_model_name(reduced, 'reduced'),
        name_full=_model_name(full, 'full'),
    )
    return LRTSolution(_result=Result(
        params=params,
        info={
            'method_reduced': reduced.method,
            'method_full': full.method,
        },
        timing=timer.result(),
        backend_name='cpu_lrt',
        warnings=tuple(warn_list),
    ))


def compare(*models: LikelihoodModel) -> tuple[LRTSolution, ...]:
    """
    Sequential likelihood-ratio tests, like R's anova(m1, m2, m3).

    Models are ordered by parameter count and each one is tested
    against the previous.

    Raises:
        ValidationError: If fewer than two models are given
    """
    if len(models) < 2:
        raise ValidationError(f"compare: need at least 2 models, got {len(models)}")
    ordered = sorted(models, key=lambda m: m.n_params)
    return tuple(lrt(smaller, larger) for smaller, larger in zip(ordered, ordered[1:]))


def _model_name(model: Any, default: str) -> str:
    name = getattr(model, 'name', None)
    if name:
        return str(name)
    info = getattr(model, 'info', None)
    if isinstance(info, dict) and info.get('formula'):
        return str(info['formula'])
    return default


def _response(model: Any) -> np.ndarray | None:
    design = getattr(model, 'design', None)
    return getattr(design, 'y', None)


def _fixed_design(model: Any) -> np.ndarray | None:
    design = getattr(model, 'design', None)
    return getattr(design, 'X', None)


def _fixed_terms(model: Any) -> frozenset[str]:
    """Fixed-effect terms: every term that is not a '(... | group)' label."""
    return frozenset(t for t in model.terms if ' | ' not in t)


def _random_terms(model: Any) -> frozenset[str]:
    return frozenset(t for t in model.terms if ' | ' in t)


def _check_same_data(reduced: Any, full: Any) -> None:
    if reduced.n_obs != full.n_obs:
        raise InvalidComparisonError(
            f"Models were fit to different numbers of observations: "
            f"reduced n={reduced.n_obs}, full n={full.n_obs}"
        )
    y_reduced, y_full = _response(reduced), _response(full)
    if y_reduced is not None and y_full is not None:
        if not np.allclose(y_reduced, y_full, rtol=1e-12, atol=0.0):
            raise InvalidComparisonError("Models were fit to different responses")


def _check_nested(reduced: Any, full: Any) -> None:
    """
    Fits that carry design matrices are compared on their fixed effects
    column spaces and on their random effects labels. Bare likelihood
    records fall back to comparing term labels.
    """
    if reduced.n_params >= full.n_params:
        raise NotNestedError(
            f"Reduced model must have fewer parameters than the full model: "
            f"reduced k={reduced.n_params}, full k={full.n_params}"
        )

    X_reduced, X_full = _fixed_design(reduced), _fixed_design(full)
    if X_reduced is not None and X_full is not None:
        if not column_space_contains(X_full, X_reduced):
            raise NotNestedError(
                "Fixed effects columns of the reduced model are not in the span "
                "of the full model's fixed effects"
            )
        extra = tuple(sorted(_random_terms(reduced) - _random_terms(full)))
    elif reduced.terms and full.terms:
        extra = tuple(sorted(set(reduced.terms) - set(full.terms)))
    else:
        extra = ()

    if extra:
        raise NotNestedError(
            f"Reduced model has terms absent from the full model: {list(extra)}",
            extra_terms=extra,
        )


def _same_fixed_effects(reduced: Any, full: Any) -> bool:
    X_reduced, X_full = _fixed_design(reduced), _fixed_design(full)
    if X_reduced is not None and X_full is not None:
        return (X_reduced.shape[1] == X_full.shape[1]
                and column_space_contains(X_full, X_reduced))
    return _fixed_terms(reduced) == _fixed_terms(full)


def _check_methods(reduced: Any, full: Any) -> None:
    methods = {reduced.method, full.method}
    if 'REML' not in methods:
        return
    if methods != {'REML'}:
        raise InvalidComparisonError(
            f"Cannot compare a REML fit with an {(methods - {'REML'}).pop()} fit; "
            f"refit with reml=False"
        )
    if not _same_fixed_effects(reduced, full):
        raise InvalidComparisonError(
            "REML likelihoods of models with different fixed effects are not "
            "comparable; refit both models with reml=False"
        )
