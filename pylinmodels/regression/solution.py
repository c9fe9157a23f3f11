"""
Regression solution types.

Contains the parameter payload and user-facing solution wrapper.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING
import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy import stats

from pylinmodels.core.result import Result
from pylinmodels.core._format import SIGNIF_LEGEND, format_pvalue, significance_stars

if TYPE_CHECKING:
    from pylinmodels.regression.design import RegressionDesign


@dataclass(frozen=True)
class LinearParams:
    """
    Parameter payload for linear regression.

    This is the immutable data computed by backends; arrays are read-only.
    """
    coefficients: NDArray[np.floating[Any]]
    residuals: NDArray[np.floating[Any]]
    fitted_values: NDArray[np.floating[Any]]
    xtx_inverse: NDArray[np.floating[Any]]
    rss: float
    tss: float
    rank: int
    df_residual: int


@dataclass(frozen=True)
class LinearSolution:
    """
    User-facing regression results.

    Wraps the backend Result and derives standard errors, t and F tests,
    R², and the Gaussian log-likelihood used in likelihood-ratio tests.
    """
    _result: Result[LinearParams]
    _design: 'RegressionDesign'
    _info: dict[str, Any] | None = None

    # --- Coefficients ---

    @property
    def coefficients(self) -> NDArray[np.floating[Any]]:
        return self._result.params.coefficients

    @property
    def coef(self) -> dict[str, float]:
        """Coefficients as column name -> estimate."""
        return dict(zip(self.column_names, self.coefficients.tolist()))

    @property
    def column_names(self) -> tuple[str, ...]:
        return self._design.column_names

    @property
    def residuals(self) -> NDArray[np.floating[Any]]:
        return self._result.params.residuals

    @property
    def fitted_values(self) -> NDArray[np.floating[Any]]:
        return self._result.params.fitted_values

    @property
    def rss(self) -> float:
        return self._result.params.rss

    @property
    def tss(self) -> float:
        return self._result.params.tss

    @property
    def rank(self) -> int:
        return self._result.params.rank

    @property
    def df_residual(self) -> int:
        return self._result.params.df_residual

    # --- Goodness of fit ---

    @property
    def r_squared(self) -> float:
        """
        1 - RSS/TSS about the mean.

        Zero for an intercept-only model whatever the response, as in
        R's summary.lm.
        """
        if self._intercept_only:
            return 0.0
        if self.tss == 0:
            return 1.0 if self.rss == 0 else 0.0
        return 1.0 - (self.rss / self.tss)

    @property
    def adjusted_r_squared(self) -> float:
        n = self._design.n
        p = self.rank
        if self._intercept_only:
            return 0.0
        if n - p <= 0 or self.tss == 0:
            return self.r_squared
        return 1.0 - (1.0 - self.r_squared) * (n - 1) / (n - p)

    @property
    def _intercept_only(self) -> bool:
        return self.rank == 1 and self._design.has_intercept

    @property
    def residual_std_error(self) -> float:
        df = self.df_residual
        if df <= 0:
            return float('nan')
        return float(np.sqrt(self.rss / df))

    @property
    def f_statistic(self) -> float:
        """
        Overall F = ((TSS - RSS)/(p - 1)) / (RSS/(n - p)).

        NaN for an intercept-only model or zero residual df.
        """
        p = self.rank
        df = self.df_residual
        if p <= 1 or df <= 0:
            return float('nan')
        with np.errstate(divide='ignore', invalid='ignore'):
            return float(((self.tss - self.rss) / (p - 1)) / (self.rss / df))

    @property
    def f_df(self) -> tuple[int, int]:
        """Numerator and denominator degrees of freedom of the F test."""
        return (self.rank - 1, self.df_residual)

    @property
    def f_p_value(self) -> float:
        f = self.f_statistic
        if np.isnan(f):
            return float('nan')
        return float(stats.f.sf(f, *self.f_df))

    # --- Coefficient inference ---

    @property
    def standard_errors(self) -> NDArray[np.floating[Any]]:
        """SE(β) = σ̂ sqrt(diag((X'X)⁻¹)); NaN with zero residual df."""
        p = len(self.coefficients)
        if self.df_residual <= 0:
            return np.full(p, np.nan, dtype=np.float64)
        diag = np.diag(self._result.params.xtx_inverse)
        return self.residual_std_error * np.sqrt(diag)

    @property
    def t_statistics(self) -> NDArray[np.floating[Any]]:
        """t-statistics for coefficients."""
        se = self.standard_errors
        with np.errstate(divide='ignore', invalid='ignore'):
            t = self.coefficients / se
        return np.where(np.isnan(se), np.nan, t)

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        """Two-sided p-values from Student's t with residual df."""
        t = self.t_statistics
        if self.df_residual <= 0:
            return np.full_like(t, np.nan)
        return 2.0 * stats.t.sf(np.abs(t), self.df_residual)

    def coef_table(self) -> pd.DataFrame:
        """Coefficient table indexed by column name, like R's summary(lm)."""
        return pd.DataFrame(
            {
                'Estimate': self.coefficients,
                'Std. Error': self.standard_errors,
                't value': self.t_statistics,
                'Pr(>|t|)': self.p_values,
            },
            index=pd.Index(self.column_names, name='term'),
        )

    # --- Likelihood ---

    @property
    def n_obs(self) -> int:
        return self._design.n

    @property
    def n_params(self) -> int:
        """Coefficients plus the residual variance."""
        return self.rank + 1

    @property
    def log_likelihood(self) -> float:
        """Maximized Gaussian log-likelihood, -n/2 (log(2π RSS/n) + 1)."""
        n = self.n_obs
        with np.errstate(divide='ignore'):
            return float(-0.5 * n * (np.log(2.0 * np.pi * self.rss / n) + 1.0))

    @property
    def aic(self) -> float:
        return -2.0 * self.log_likelihood + 2.0 * self.n_params

    @property
    def bic(self) -> float:
        return -2.0 * self.log_likelihood + np.log(self.n_obs) * self.n_params

    @property
    def terms(self) -> tuple[str, ...]:
        return self._design.terms

    @property
    def method(self) -> str:
        return 'OLS'

    # --- Envelope ---

    @property
    def design(self) -> 'RegressionDesign':
        return self._design

    @property
    def info(self) -> dict[str, Any]:
        info = dict(self._result.info)
        if self._info:
            info.update(self._info)
        return info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """Generate R-style summary output."""
        formula = self.info.get('formula')
        lines = ["Linear Regression Results", "=" * 70]
        if formula:
            lines.append(f"Formula: {formula}")
        lines.extend([
            f"Observations: {self.n_obs}",
            "",
            "Coefficients:",
            f"{'':<18} {'Estimate':>12} {'Std. Error':>12} {'t value':>9} {'Pr(>|t|)':>10}",
        ])

        for name, coef, se, t, pv in zip(
            self.column_names, self.coefficients, self.standard_errors,
            self.t_statistics, self.p_values,
        ):
            se_str = f"{se:12.4f}" if not np.isnan(se) else f"{'NA':>12}"
            t_str = f"{t:9.3f}" if not np.isnan(t) else f"{'NA':>9}"
            lines.append(
                f"{name:<18} {coef:12.4f} {se_str} {t_str} "
                f"{format_pvalue(pv):>10} {significance_stars(pv)}"
            )

        lines.append("---")
        lines.append(SIGNIF_LEGEND)
        lines.append("")
        lines.append(
            f"Residual standard error: {self.residual_std_error:.4f} "
            f"on {self.df_residual} degrees of freedom"
        )
        lines.append(
            f"Multiple R-squared: {self.r_squared:.4f},\t"
            f"Adjusted R-squared: {self.adjusted_r_squared:.4f}"
        )
        if not np.isnan(self.f_statistic):
            df1, df2 = self.f_df
            lines.append(
                f"F-statistic: {self.f_statistic:.2f} on {df1} and {df2} DF,  "
                f"p-value: {format_pvalue(self.f_p_value)}"
            )
        lines.append(f"Backend: {self.backend_name}")
        for w in self.warnings:
            lines.append(f"Warning: {w}")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"LinearSolution(n={self.n_obs}, p={self._design.p}, "
            f"rank={self.rank}, r_squared={self.r_squared:.4f})"
        )
