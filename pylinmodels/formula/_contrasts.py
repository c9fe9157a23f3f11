"""
Treatment (dummy) coding of categorical factors.

A factor with k levels becomes k-1 indicator columns; the omitted level is
the reference, absorbed into the intercept. The reference is never implied
by label order alone: every encoding records it in a TreatmentCoding, and
callers may choose it per factor.

Level order:
    - declared categories (pandas Categorical) when the source has them,
      restricted to the levels actually observed
    - otherwise sorted label order, which is also R's default

Column names follow R: factor name followed by level, e.g. 'sexmale'.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray

from pylinmodels.core.exceptions import ValidationError


@dataclass(frozen=True)
class TreatmentCoding:
    """
    Encoding of one factor.

    Attributes:
        factor: Factor (column) name
        levels: All observed levels, in level order
        reference: Level represented by the intercept
        column_names: Names of the k-1 indicator columns
    """
    factor: str
    levels: tuple[str, ...]
    reference: str

    @property
    def contrast_levels(self) -> tuple[str, ...]:
        """Levels that get an indicator column."""
        return tuple(lv for lv in self.levels if lv != self.reference)

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(f"{self.factor}{lv}" for lv in self.contrast_levels)

    def __str__(self) -> str:
        return f"{self.factor}: reference '{self.reference}' of {list(self.levels)}"


def level_label(value: Any) -> str:
    """String label of one factor value. Integral floats print without '.0', as in R."""
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    return str(value)


def as_labels(values: Any) -> NDArray:
    """Convert factor values to an array of string labels."""
    return np.array([level_label(v) for v in np.asarray(values).ravel()], dtype=object)


def factor_levels(
    values: Any,
    declared: Sequence[Any] | None = None,
) -> tuple[str, ...]:
    """
    Observed levels of a factor, in level order.

    Args:
        values: Factor values (any labels)
        declared: Declared level order, e.g. from a pandas Categorical

    Returns:
        Tuple of level labels
    """
    observed = set(as_labels(values))
    if declared is not None:
        return tuple(level_label(lv) for lv in declared if level_label(lv) in observed)
    return tuple(sorted(observed))


def encode_treatment(
    values: Any,
    name: str,
    *,
    reference: Any | None = None,
    levels: Sequence[Any] | None = None,
) -> tuple[NDArray[np.floating[Any]], TreatmentCoding]:
    """
    Treatment coding for a single factor.

    Args:
        values: Factor values (n,)
        name: Factor name, used as the column-name prefix
        reference: Level to use as the reference. Defaults to the first
            level in level order.
        levels: Declared level order (see factor_levels)

    Returns:
        (X_coded, coding) where X_coded is (n, k-1) float64

    Raises:
        ValidationError: If the factor has fewer than 2 levels or the
            reference is not an observed level
    """
    labels = as_labels(values)
    observed = factor_levels(labels, levels)

    if len(observed) < 2:
        raise ValidationError(
            f"{name}: factor needs at least 2 levels for treatment coding, "
            f"got {list(observed)}"
        )

    if reference is None:
        ref = observed[0]
    else:
        ref = level_label(reference)
        if ref not in observed:
            raise ValidationError(
                f"{name}: reference level {ref!r} not among observed levels {list(observed)}"
            )

    coding = TreatmentCoding(factor=name, levels=observed, reference=ref)
    X = np.column_stack([
        (labels == lv).astype(np.float64) for lv in coding.contrast_levels
    ])
    return X, coding


def interaction_columns(
    X_a: NDArray[np.floating[Any]],
    names_a: Sequence[str],
    X_b: NDArray[np.floating[Any]],
    names_b: Sequence[str],
) -> tuple[NDArray[np.floating[Any]], list[str]]:
    """
    Element-wise products of every column pair from two blocks.

    Args:
        X_a: (n, p_a) columns of the first term
        names_a: Their names
        X_b: (n, p_b) columns of the second term
        names_b: Their names

    Returns:
        ((n, p_a * p_b) columns, names joined with ':'), first block
        varying slowest
    """
    n = X_a.shape[0]
    X_int = (X_a[:, :, np.newaxis] * X_b[:, np.newaxis, :]).reshape(n, -1)
    names = [f"{a}:{b}" for a in names_a for b in names_b]
    return X_int, names
