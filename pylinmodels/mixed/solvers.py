"""
Solver dispatch for linear mixed models.

Public API:
    lmm()  - fit from arrays: response, fixed effects matrix, grouping factors
    lmer() - fit from a formula such as
             "frequency ~ attitude + gender + (1 | subject) + (1 | scenario)"
"""

from __future__ import annotations

import warnings
from typing import Any, Iterable, Mapping, Sequence

import numpy as np
import scipy.linalg as sla
from numpy.typing import ArrayLike
from scipy.optimize import minimize

from pylinmodels.core.exceptions import ConvergenceError
from pylinmodels.core.result import Result
from pylinmodels.core.compute.timing import Timer
from pylinmodels.formula.frame import model_frame
from pylinmodels.mixed._common import LMMParams, VarCompSummary
from pylinmodels.mixed._deviance import deviance_from_pls, profiled_deviance
from pylinmodels.mixed._pls import PLSResult, solve_pls
from pylinmodels.mixed._random_effects import (
    RandomEffectSpec, build_lambda, build_z_matrix, split_theta,
    theta_lower_bounds, theta_start,
)
from pylinmodels.mixed.design import MixedDesign
from pylinmodels.mixed.solution import LMMSolution

# Starting values tried for slope diagonals of θ; the profiled deviance
# can have local minima once a group has more than one effect.
_SLOPE_STARTS = (1.0, 0.5, 0.2)


def lmm(
    y: ArrayLike,
    X: ArrayLike,
    groups: Mapping[str, ArrayLike],
    *,
    random_effects: Mapping[str, Sequence[str]] | None = None,
    random_data: Mapping[str, ArrayLike] | None = None,
    reml: bool = True,
    tol: float = 1e-8,
    max_iter: int = 200,
    coefficient_names: Sequence[str] | None = None,
) -> LMMSolution:
    """Fit a linear mixed model from arrays.

    Estimates fixed effects β, variance components and the conditional
    modes (BLUPs) of the random effects by minimizing the profiled REML
    or ML deviance (Bates et al., 2015).

    Args:
        y: Response vector (n,).
        X: Fixed effects design matrix (n, p). Include a column of ones
            for an intercept.
        groups: Grouping factor name -> label of each observation.
            Example: {'subject': subject_ids}.
        random_effects: Grouping factor name -> effect terms. Default:
            random intercept per group.
            Example: {'subject': ['1', 'time']} for (1 + time | subject).
        random_data: Slope variable name -> values.
            Example: {'time': time_array}.
        reml: REML if True (default), ML if False. Models compared by a
            likelihood-ratio test on their fixed effects need reml=False.
        tol: Optimizer convergence tolerance.
        max_iter: Maximum optimizer iterations.
        coefficient_names: Names for the columns of X.

    Returns:
        LMMSolution

    Examples:
        >>> result = lmm(y, X, groups={'subject': subject_ids})
        >>> result = lmm(y, X, groups={'subject': subj, 'item': item})
    """
    design = MixedDesign.validate(
        y, X, groups,
        random_effects=random_effects,
        random_data=random_data,
        coefficient_names=coefficient_names,
    )
    return _fit_design(design, reml=reml, tol=tol, max_iter=max_iter)


def lmer(
    formula: str,
    data: Any,
    *,
    reml: bool = True,
    reference: Mapping[str, Any] | None = None,
    factors: Iterable[str] = (),
    tol: float = 1e-8,
    max_iter: int = 200,
) -> LMMSolution:
    """Fit a linear mixed model from an lme4-style formula.

    Random effects are written ``(1 | g)`` for a random intercept,
    ``(1 + x | g)`` for a correlated random intercept and slope and
    ``(0 + x | g)`` for a slope alone. Several blocks may name different
    grouping factors (crossed random effects).

    Args:
        formula: e.g. "frequency ~ attitude + gender + (1 | subject)"
        data: DataFrame, dict of columns, CSV path or DataSource
        reml: REML if True (default), ML if False
        reference: factor name -> reference level
        factors: Numeric columns to treat as categorical
        tol: Optimizer convergence tolerance
        max_iter: Maximum optimizer iterations

    Returns:
        LMMSolution; info carries the formula, factor codings and the
        number of rows dropped for missing values

    Raises:
        ValidationError: If the formula has no random effects terms
        ConvergenceError: If no θ gives a finite profiled deviance
    """
    frame = model_frame(formula, data, factors=factors, reference=reference)
    design = MixedDesign.from_frame(frame, factors=factors, reference=reference)
    return _fit_design(
        design, reml=reml, tol=tol, max_iter=max_iter,
        extra_info={
            'formula': frame.formula.formula,
            'codings': dict(frame.fixed.codings),
            'n_dropped': frame.n_dropped,
        },
    )


class LmerSolver:
    """Default MixedModelSolver: profiled-deviance fits through lmer().

    Holds the options that stay fixed across a series of fits, such as
    the reference levels of a tutorial's factors.
    """

    name = 'cpu_lmm'

    def __init__(
        self,
        *,
        reference: Mapping[str, Any] | None = None,
        factors: Iterable[str] = (),
        tol: float = 1e-8,
        max_iter: int = 200,
    ):
        self.reference = dict(reference or {})
        self.factors = tuple(factors)
        self.tol = tol
        self.max_iter = max_iter

    def fit(self, formula: str, data: Any, *, reml: bool = True) -> LMMSolution:
        return lmer(
            formula, data,
            reml=reml,
            reference=self.reference,
            factors=self.factors,
            tol=self.tol,
            max_iter=self.max_iter,
        )


def _fit_design(
    design: MixedDesign,
    *,
    reml: bool,
    tol: float,
    max_iter: int,
    extra_info: dict[str, Any] | None = None,
) -> LMMSolution:
    """Optimize θ, then assemble the solution at θ̂."""
    timer = Timer()
    timer.start()
    specs = list(design.specs)

    with timer.section('setup'):
        Z = build_z_matrix(specs)
        lb = theta_lower_bounds(specs)
        bounds = [(lo if np.isfinite(lo) else None, None) for lo in lb]
        has_slopes = any(spec.n_terms > 1 for spec in specs)
        diagonals = _SLOPE_STARTS if has_slopes else _SLOPE_STARTS[:1]
        starts = [theta_start(specs, diagonal=d) for d in diagonals]

    with timer.section('optimization'):
        opt_result = None
        for start in starts:
            res = minimize(
                profiled_deviance,
                start,
                args=(design.X, Z, design.y, specs, reml),
                method='L-BFGS-B',
                bounds=bounds,
                options={'maxiter': max_iter, 'ftol': tol, 'gtol': tol * 10},
            )
            if opt_result is None or res.fun < opt_result.fun:
                opt_result = res

    if not np.isfinite(opt_result.fun):
        raise ConvergenceError(
            "LMM optimizer found no θ with a finite profiled deviance; "
            "the random effects structure may be too rich for the data",
            iterations=int(opt_result.nit),
            reason='non_finite_deviance',
            threshold=tol,
        )

    converged = bool(opt_result.success)
    theta_hat = np.asarray(opt_result.x, dtype=np.float64)
    n_iter = int(opt_result.nit)

    warn_list = []
    if not converged:
        msg = f"LMM optimizer did not converge after {n_iter} iterations: {opt_result.message}"
        warnings.warn(msg, RuntimeWarning, stacklevel=3)
        warn_list.append(msg)

    with timer.section('final_solve'):
        pls = solve_pls(design.X, Z, design.y, build_lambda(theta_hat, specs))
        n, p = design.n, design.p
        sigma_sq = pls.sigma_sq(n, p, reml)
        deviance = float(deviance_from_pls(pls, n, p, reml))

    with timer.section('variance_components'):
        var_comps = _extract_var_components(theta_hat, sigma_sq, specs)
        blups = _extract_blups(pls.b, specs)

    with timer.section('fixed_effects'):
        vcov = _fixed_vcov(pls, sigma_sq)
        se = np.sqrt(np.maximum(np.diag(vcov), 0.0))
        t_values = pls.beta / se

    timer.stop()

    params = LMMParams(
        coefficients=pls.beta,
        coefficient_names=design.coefficient_names,
        se=se,
        t_values=t_values,
        vcov=vcov,
        var_components=tuple(var_comps),
        residual_variance=float(sigma_sq),
        residual_std=float(np.sqrt(sigma_sq)),
        log_likelihood=-0.5 * deviance,
        reml=reml,
        n_params=p + len(theta_hat) + 1,
        n_obs=n,
        n_groups={spec.group_name: spec.n_groups for spec in specs},
        converged=converged,
        n_iter=n_iter,
        random_effects=blups,
        group_levels={spec.group_name: spec.levels for spec in specs},
        effect_names=_group_effect_names(specs),
        fitted_values=pls.fitted,
        residuals=pls.residuals,
        theta=theta_hat,
    )

    info = {
        'method': 'REML' if reml else 'ML',
        'optimizer': 'L-BFGS-B',
        'converged': converged,
        'n_iter': n_iter,
        'deviance': deviance,
    }
    if extra_info:
        info.update(extra_info)

    result = Result(
        params=params,
        info=info,
        timing=timer.result(),
        backend_name=LmerSolver.name,
        warnings=tuple(warn_list),
    )
    return LMMSolution(_result=result, _design=design)


def _extract_var_components(
    theta: np.ndarray,
    sigma_sq: float,
    specs: list[RandomEffectSpec],
) -> list[VarCompSummary]:
    """Variances, SDs and correlations from σ² T Tᵀ for each grouping factor.

    Groups that appear in several independent blocks are reported once
    per block, as lme4 does.
    """
    var_comps = []
    for T, spec in zip(split_theta(theta, specs), specs):
        cov = sigma_sq * (T @ T.T)
        sd = np.sqrt(np.maximum(np.diag(cov), 0.0))
        for i, name in enumerate(spec.effect_names):
            corr = None
            if i > 0 and sd[0] > 0 and sd[i] > 0:
                corr = float(np.clip(cov[i, 0] / (sd[0] * sd[i]), -1.0, 1.0))
            var_comps.append(VarCompSummary(
                group=spec.group_name,
                name=name,
                variance=float(cov[i, i]),
                std_dev=float(sd[i]),
                corr=corr,
            ))
    return var_comps


def _extract_blups(b: np.ndarray, specs: list[RandomEffectSpec]) -> dict[str, np.ndarray]:
    """Split b into (n_levels, n_effects) blocks, one per grouping factor.

    Repeated blocks on one factor are stacked side by side.
    """
    result: dict[str, np.ndarray] = {}
    offset = 0
    for spec in specs:
        size = spec.n_groups * spec.n_terms
        # term-major layout: reshape to (q, J) then transpose
        block = b[offset:offset + size].reshape(spec.n_terms, spec.n_groups).T
        offset += size
        if spec.group_name in result:
            block = np.hstack([result[spec.group_name], block])
        result[spec.group_name] = block
    return result


def _group_effect_names(specs: list[RandomEffectSpec]) -> dict[str, tuple[str, ...]]:
    """Effect names per grouping factor, in the column order of _extract_blups."""
    names: dict[str, tuple[str, ...]] = {}
    for spec in specs:
        names[spec.group_name] = names.get(spec.group_name, ()) + spec.effect_names
    return names


def _fixed_vcov(pls: PLSResult, sigma_sq: float) -> np.ndarray:
    """Var(β̂) = σ² (X'V*⁻¹X)⁻¹ = σ² (RX RXᵀ)⁻¹."""
    p = pls.RX.shape[0]
    return sigma_sq * sla.cho_solve((pls.RX, True), np.eye(p))
