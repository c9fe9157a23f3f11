"""
Solution wrapper for linear mixed models.

LMMSolution wraps Result[LMMParams] and provides lme4-style accessors
(fixef, ranef, coef, VarCorr-like variance components), an R-style
summary, and likelihood-ratio comparison with another fit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pylinmodels.core.result import Result
from pylinmodels.mixed._common import LMMParams, VarCompSummary

if TYPE_CHECKING:
    from pylinmodels.comparison.solution import LRTSolution
    from pylinmodels.mixed.design import MixedDesign


@dataclass(frozen=True)
class LMMSolution:
    """Fitted linear mixed model.

    Fixed effects come with standard errors and t-values but no p-values;
    test fixed effects with a likelihood-ratio comparison of ML fits.
    """
    _result: Result[LMMParams]
    _design: 'MixedDesign'

    @property
    def params(self) -> LMMParams:
        return self._result.params

    # --- Fixed effects ---

    @property
    def coefficients(self) -> NDArray:
        """Fixed effect estimates β̂."""
        return self.params.coefficients

    @property
    def fixef(self) -> dict[str, float]:
        """Fixed effects as name → value dict."""
        return dict(zip(self.params.coefficient_names, self.params.coefficients.tolist()))

    @property
    def coefficient_names(self) -> tuple[str, ...]:
        return self.params.coefficient_names

    @property
    def se(self) -> NDArray:
        return self.params.se

    @property
    def t_values(self) -> NDArray:
        return self.params.t_values

    @property
    def vcov(self) -> NDArray:
        """Covariance matrix of the fixed effects."""
        return self.params.vcov

    def coef_table(self) -> pd.DataFrame:
        """Fixed effects table like summary(lmer)."""
        return pd.DataFrame(
            {
                'Estimate': self.coefficients,
                'Std. Error': self.se,
                't value': self.t_values,
            },
            index=pd.Index(self.coefficient_names, name='term'),
        )

    # --- Random effects ---

    @property
    def ranef(self) -> dict[str, pd.DataFrame]:
        """Conditional modes (BLUPs): one table per grouping factor,
        indexed by group level."""
        p = self.params
        return {
            group: pd.DataFrame(
                modes,
                index=pd.Index(p.group_levels[group], name=group),
                columns=list(p.effect_names[group]),
            )
            for group, modes in p.random_effects.items()
        }

    @property
    def random_effects(self) -> dict[str, pd.DataFrame]:
        """Alias of ranef."""
        return self.ranef

    def coef(self) -> dict[str, pd.DataFrame]:
        """Per-group coefficients: fixed effects plus conditional modes.

        Every table has one column per fixed effect; a random effect whose
        name matches a fixed effect is added to it, otherwise it gets a
        column of its own.
        """
        fixef = self.fixef
        tables = {}
        for group, modes in self.ranef.items():
            table = pd.DataFrame(
                {name: np.full(len(modes), value) for name, value in fixef.items()},
                index=modes.index,
            )
            for name in modes.columns:
                if name in table:
                    table[name] = table[name] + modes[name]
                else:
                    table[name] = modes[name]
            tables[group] = table
        return tables

    @property
    def var_components(self) -> tuple[VarCompSummary, ...]:
        return self.params.var_components

    @property
    def residual_variance(self) -> float:
        return self.params.residual_variance

    @property
    def residual_std(self) -> float:
        return self.params.residual_std

    @property
    def icc(self) -> dict[str, float]:
        """Intraclass correlation per grouping factor from intercept variances.

        ICC = σ²_group / (σ²_group + σ²_residual)
        """
        sigma_sq = self.params.residual_variance
        result = {}
        for vc in self.params.var_components:
            if vc.name == '(Intercept)' and vc.group not in result:
                result[vc.group] = vc.variance / (vc.variance + sigma_sq)
        return result

    # --- Likelihood ---

    @property
    def log_likelihood(self) -> float:
        """Maximized log-likelihood; the restricted one for REML fits."""
        return self.params.log_likelihood

    @property
    def n_params(self) -> int:
        """Fixed effects + θ parameters + residual variance."""
        return self.params.n_params

    @property
    def n_obs(self) -> int:
        return self.params.n_obs

    @property
    def aic(self) -> float:
        return -2.0 * self.log_likelihood + 2.0 * self.n_params

    @property
    def bic(self) -> float:
        return -2.0 * self.log_likelihood + np.log(self.n_obs) * self.n_params

    @property
    def deviance(self) -> float:
        return -2.0 * self.log_likelihood

    @property
    def terms(self) -> tuple[str, ...]:
        return self._design.terms

    @property
    def fixed_terms(self) -> tuple[str, ...]:
        return self._design.fixed_terms

    @property
    def method(self) -> str:
        return 'REML' if self.params.reml else 'ML'

    @property
    def reml(self) -> bool:
        return self.params.reml

    # --- Fit ---

    @property
    def fitted_values(self) -> NDArray:
        return self.params.fitted_values

    @property
    def residuals(self) -> NDArray:
        return self.params.residuals

    @property
    def converged(self) -> bool:
        return self.params.converged

    @property
    def theta(self) -> NDArray:
        return self.params.theta

    # --- Envelope ---

    @property
    def design(self) -> 'MixedDesign':
        return self._design

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def compare(self, other: Any) -> 'LRTSolution':
        """Likelihood-ratio test against another fit; the model with fewer
        parameters is taken as the reduced one."""
        from pylinmodels.comparison.solvers import lrt

        if other.n_params <= self.n_params:
            return lrt(other, self)
        return lrt(self, other)

    def summary(self) -> str:
        """R-style summary like summary(lmer(...))."""
        params = self.params
        lines = [f"Linear mixed model fit by {self.method}"]
        formula = self.info.get('formula')
        if formula:
            lines.append(f"Formula: {formula}")
        lines.append("")
        lines.append(
            f" {'AIC':>10s} {'BIC':>10s} {'logLik':>10s} {'deviance':>10s}"
        )
        lines.append(
            f" {self.aic:10.1f} {self.bic:10.1f} {self.log_likelihood:10.1f} "
            f"{self.deviance:10.1f}"
        )
        lines.append("")

        lines.append("Random effects:")
        lines.append(f" {'Groups':<12s} {'Name':<15s} {'Variance':>10s} "
                     f"{'Std.Dev.':>10s} {'Corr':>6s}")
        prev_group = None
        for vc in params.var_components:
            grp_label = vc.group if vc.group != prev_group else ''
            corr_str = f'{vc.corr:6.2f}' if vc.corr is not None else ''
            lines.append(
                f" {grp_label:<12s} {vc.name:<15s} {vc.variance:10.4f} "
                f"{vc.std_dev:10.4f} {corr_str}"
            )
            prev_group = vc.group
        lines.append(
            f" {'Residual':<12s} {'':<15s} {params.residual_variance:10.4f} "
            f"{params.residual_std:10.4f}"
        )
        group_parts = ', '.join(f'{name}, {n}' for name, n in params.n_groups.items())
        lines.append(f"Number of obs: {params.n_obs}, groups:  {group_parts}")
        lines.append("")

        lines.append("Fixed effects:")
        lines.append(f" {'':<15s} {'Estimate':>10s} {'Std. Error':>10s} {'t value':>8s}")
        for name, est, se, t in zip(
            params.coefficient_names, params.coefficients, params.se, params.t_values,
        ):
            lines.append(f" {name:<15s} {est:10.4f} {se:10.4f} {t:8.3f}")

        if not params.converged:
            lines.append("")
            lines.append("WARNING: Model did not converge")
        return '\n'.join(lines)

    def __repr__(self) -> str:
        return (
            f"LMMSolution({self.method}, n={self.n_obs}, "
            f"fixed={len(self.coefficients)}, "
            f"random={len(self.var_components)} var components)"
        )
