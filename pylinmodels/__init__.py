"""
pylinmodels: linear models, linear mixed models and likelihood-ratio tests.

Reproduces the computations of the classic R workflow lm() -> lmer() ->
anova(): ordinary least squares with treatment-coded factors, mixed models
with random intercepts and slopes, and likelihood-ratio tests between
nested fits.

Submodules:
    regression: OLS fits from arrays or formulas
    mixed: Linear mixed models (profiled REML/ML deviance)
    comparison: Likelihood-ratio tests between nested models
    formula: Formula parsing, factor encoding, design matrices
    datasets: Tutorial datasets
"""

__version__ = "0.1.0"

from pylinmodels import comparison, datasets, formula, mixed, regression
from pylinmodels.comparison import compare, lrt
from pylinmodels.mixed import lmer, lmm
from pylinmodels.regression import fit, lm

__all__ = [
    "__version__",
    "regression",
    "mixed",
    "comparison",
    "formula",
    "datasets",
    "fit",
    "lm",
    "lmm",
    "lmer",
    "lrt",
    "compare",
]
