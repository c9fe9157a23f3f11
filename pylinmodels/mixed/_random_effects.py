"""
Random effects specification, Z matrix construction, and Λ_θ parameterization.

For each grouping factor with J levels and q per-group effects (intercept,
slopes), the model has J*q random effects. Columns of Z and entries of b
are term-major: [effect0_level0, effect0_level1, ..., effect1_level0, ...].

θ holds, per grouping factor, the lower triangle (row-major) of the q x q
Cholesky factor T of the *relative* covariance (covariance / σ²). The
factor's block of Λ_θ is T ⊗ I_J.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
import scipy.linalg as sla
from numpy.typing import NDArray

from pylinmodels.core.exceptions import ValidationError
from pylinmodels.formula._contrasts import as_labels


@dataclass(frozen=True)
class RandomEffectSpec:
    """Random effects of one grouping factor.

    Attributes:
        group_name: Grouping factor name (e.g. 'subject').
        levels: Level labels, index j of group_ids refers to levels[j].
        group_ids: Level index of each observation, shape (n,).
        effect_names: Per-group effects, e.g. ('(Intercept)', 'attitudepol').
        labels: Formula-level labels used for model nesting checks,
            e.g. ('(1 | subject)', '(attitude | subject)').
        Z_block: Design block of shape (n, J*q).
    """
    group_name: str
    levels: tuple[str, ...]
    group_ids: NDArray
    effect_names: tuple[str, ...]
    labels: tuple[str, ...]
    Z_block: NDArray

    @property
    def n_groups(self) -> int:
        return len(self.levels)

    @property
    def n_terms(self) -> int:
        return len(self.effect_names)

    @property
    def theta_size(self) -> int:
        q = self.n_terms
        return q * (q + 1) // 2


def make_spec(
    group_name: str,
    group_values: Any,
    effects: NDArray,
    effect_names: Sequence[str],
    labels: Sequence[str],
) -> RandomEffectSpec:
    """Build the spec and Z block for one grouping factor.

    Args:
        group_name: Grouping factor name.
        group_values: Group label of each observation (n,).
        effects: Per-observation effect columns (n, q); a column of ones
            for a random intercept, the covariate for a slope.
        effect_names: Names of the q effect columns.
        labels: Nesting labels for the q effects.

    Returns:
        RandomEffectSpec
    """
    group_labels = as_labels(group_values)
    levels, group_ids = np.unique(group_labels, return_inverse=True)
    n, q = effects.shape
    J = len(levels)

    if J < 2:
        raise ValidationError(
            f"Group '{group_name}' has only {J} level(s), need at least 2"
        )

    Z_block = np.zeros((n, J * q), dtype=np.float64)
    rows = np.arange(n)
    for t in range(q):
        Z_block[rows, t * J + group_ids] = effects[:, t]

    return RandomEffectSpec(
        group_name=group_name,
        levels=tuple(str(lv) for lv in levels),
        group_ids=group_ids,
        effect_names=tuple(effect_names),
        labels=tuple(labels),
        Z_block=Z_block,
    )


def build_z_matrix(specs: list[RandomEffectSpec]) -> NDArray:
    """Concatenate Z blocks: Z = [Z_1 | Z_2 | ...]."""
    if not specs:
        raise ValidationError("At least one random effect specification required")
    return np.hstack([spec.Z_block for spec in specs])


def theta_to_factor(theta_k: NDArray, q: int) -> NDArray:
    """Unpack one factor's θ slice into its q x q lower-triangular T."""
    T = np.zeros((q, q), dtype=np.float64)
    T[np.tril_indices(q)] = theta_k
    return T


def split_theta(theta: NDArray, specs: list[RandomEffectSpec]) -> list[NDArray]:
    """Per-factor lower-triangular factors T_k from the full θ vector."""
    factors = []
    offset = 0
    for spec in specs:
        factors.append(theta_to_factor(theta[offset:offset + spec.theta_size], spec.n_terms))
        offset += spec.theta_size
    return factors


def build_lambda(theta: NDArray, specs: list[RandomEffectSpec]) -> NDArray:
    """Block-diagonal Λ_θ with blocks T_k ⊗ I_{J_k}."""
    blocks = [
        np.kron(T, np.eye(spec.n_groups))
        for T, spec in zip(split_theta(theta, specs), specs)
    ]
    return sla.block_diag(*blocks)


def theta_lower_bounds(specs: list[RandomEffectSpec]) -> NDArray:
    """Lower bounds for θ: 0 on diagonals of T, unbounded off-diagonal."""
    bounds = []
    for spec in specs:
        rows, cols = np.tril_indices(spec.n_terms)
        bounds.extend(np.where(rows == cols, 0.0, -np.inf))
    return np.array(bounds, dtype=np.float64)


def theta_start(specs: list[RandomEffectSpec], diagonal: float = 1.0) -> NDArray:
    """Starting θ: identity factors (equal variance partition, no correlation).

    Args:
        specs: Random effect specifications.
        diagonal: Starting value for slope diagonals; intercept diagonals
            always start at 1.
    """
    theta0 = []
    for spec in specs:
        rows, cols = np.tril_indices(spec.n_terms)
        for r, c in zip(rows, cols):
            if r != c:
                theta0.append(0.0)
            else:
                theta0.append(1.0 if r == 0 else diagonal)
    return np.array(theta0, dtype=np.float64)
