"""
Likelihood-ratio test solution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from pylinmodels.core.result import Result
from pylinmodels.core._format import SIGNIF_LEGEND, format_pvalue, significance_stars
from pylinmodels.comparison._common import LRTParams


@dataclass(frozen=True)
class LRTSolution:
    """
    Result of comparing a reduced model against the full model it is
    nested in.
    """
    _result: Result[LRTParams]

    @property
    def params(self) -> LRTParams:
        return self._result.params

    @property
    def chi_square(self) -> float:
        return self.params.chi_square

    @property
    def df(self) -> int:
        return self.params.df

    @property
    def p_value(self) -> float:
        return self.params.p_value

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def to_frame(self) -> pd.DataFrame:
        """Two-row table like R's anova(reduced, full)."""
        p = self.params
        n = p.n_obs
        ll = np.array([p.log_likelihood_reduced, p.log_likelihood_full])
        k = np.array([p.n_params_reduced, p.n_params_full])
        return pd.DataFrame(
            {
                'npar': k,
                'AIC': -2.0 * ll + 2.0 * k,
                'BIC': -2.0 * ll + np.log(n) * k,
                'logLik': ll,
                'deviance': -2.0 * ll,
                'Chisq': [np.nan, p.chi_square],
                'Df': [np.nan, p.df],
                'Pr(>Chisq)': [np.nan, p.p_value],
            },
            index=pd.Index([p.name_reduced, p.name_full], name='model'),
        )

    def summary(self) -> str:
        """R-style anova() output."""
        p = self.params
        table = self.to_frame()
        width = max(len(p.name_reduced), len(p.name_full), 8)

        lines = [
            "Likelihood Ratio Test",
            "Models:",
            p.name_reduced,
            p.name_full,
            f"{'':<{width}} {'npar':>5} {'AIC':>10} {'BIC':>10} {'logLik':>10} "
            f"{'deviance':>10} {'Chisq':>9} {'Df':>3} {'Pr(>Chisq)':>11}",
        ]
        for i, (name, row) in enumerate(table.iterrows()):
            line = (
                f"{name:<{width}} {int(row['npar']):>5} {row['AIC']:10.2f} "
                f"{row['BIC']:10.2f} {row['logLik']:10.3f} {row['deviance']:10.3f}"
            )
            if i == 1:
                line += (
                    f" {p.chi_square:9.4f} {p.df:>3} {format_pvalue(p.p_value):>11} "
                    f"{significance_stars(p.p_value)}"
                )
            lines.append(line)
        lines.append("---")
        lines.append(SIGNIF_LEGEND)
        for w in self.warnings:
            lines.append(f"Warning: {w}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"LRTSolution(chi_square={self.chi_square:.4f}, df={self.df}, "
            f"p_value={self.p_value:.4g})"
        )
