"""
Common data types for linear mixed models.

Frozen parameter payloads that go inside Result[P] envelopes. Each
payload is a pure data container; derived quantities live on LMMSolution.

References:
    Bates, D., Maechler, M., Bolker, B., & Walker, S. (2015).
    Fitting Linear Mixed-Effects Models Using lme4.
    Journal of Statistical Software, 67(1), 1-48.
"""

from dataclasses import dataclass

from numpy.typing import NDArray


@dataclass(frozen=True)
class VarCompSummary:
    """Variance component summary for one random effect term.

    Attributes:
        group: Grouping factor name (e.g. 'subject').
        name: Effect name within the group (e.g. '(Intercept)', 'attitudepol').
        variance: Estimated variance of this random effect.
        std_dev: Standard deviation (sqrt of variance).
        corr: Correlation with the first effect of the same group,
              or None for the first (or only) effect.
    """
    group: str
    name: str
    variance: float
    std_dev: float
    corr: float | None = None


@dataclass(frozen=True)
class LMMParams:
    """
    Parameter payload for a fitted linear mixed model.
    """
    # Fixed effects
    coefficients: NDArray              # β̂ (p,)
    coefficient_names: tuple[str, ...]
    se: NDArray                        # standard errors of β̂ (p,)
    t_values: NDArray                  # β̂ / se (p,)
    vcov: NDArray                      # Var(β̂) (p, p)

    # Random effects
    var_components: tuple[VarCompSummary, ...]
    residual_variance: float           # σ²
    residual_std: float                # σ

    # Model fit
    log_likelihood: float
    reml: bool
    n_params: int                      # p + len(θ) + 1
    n_obs: int
    n_groups: dict[str, int]           # grouping factor -> number of levels

    # Convergence
    converged: bool
    n_iter: int

    # Conditional modes (BLUPs): group -> (n_levels, n_effects)
    random_effects: dict[str, NDArray]
    group_levels: dict[str, tuple[str, ...]]
    effect_names: dict[str, tuple[str, ...]]

    # Predictions
    fitted_values: NDArray             # Xβ̂ + Zb̂ (n,)
    residuals: NDArray                 # y - fitted (n,)

    # Internal
    theta: NDArray                     # converged θ parameters
