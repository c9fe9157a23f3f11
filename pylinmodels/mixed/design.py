"""
Design validation for mixed models.

MixedDesign holds the validated response, the fixed effects matrix and
one RandomEffectSpec per grouping factor. It is built either from arrays
(lmm) or from a formula's model frame (lmer).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pylinmodels.core.exceptions import RankDeficientError, ValidationError
from pylinmodels.core.compute.linalg import qr_cpu
from pylinmodels.core.validation import (
    check_1d, check_array, check_finite, check_response_design, check_same_rows,
)
from pylinmodels.formula.frame import (
    INTERCEPT_NAME, ModelFrame, build_model_matrix, default_column_names,
)
from pylinmodels.mixed._random_effects import RandomEffectSpec, make_spec


@dataclass(frozen=True)
class MixedDesign:
    """Validated design for a linear mixed model.

    Attributes:
        y: Response vector (n,).
        X: Fixed effects design matrix (n, p).
        specs: Random effect specification per grouping factor.
        coefficient_names: Names of the p fixed effects.
        fixed_terms: Fixed-effect term labels.
        response_name: Response column name.
    """
    y: NDArray
    X: NDArray
    specs: tuple[RandomEffectSpec, ...]
    coefficient_names: tuple[str, ...]
    fixed_terms: tuple[str, ...]
    response_name: str = 'y'

    @property
    def n(self) -> int:
        return self.X.shape[0]

    @property
    def p(self) -> int:
        return self.X.shape[1]

    @property
    def terms(self) -> tuple[str, ...]:
        """Fixed-effect terms followed by one label per random effect."""
        random_labels = tuple(label for spec in self.specs for label in spec.labels)
        return self.fixed_terms + random_labels

    @staticmethod
    def validate(
        y: ArrayLike,
        X: ArrayLike,
        groups: Mapping[str, ArrayLike],
        random_effects: Mapping[str, Sequence[str]] | None = None,
        random_data: Mapping[str, ArrayLike] | None = None,
        coefficient_names: Sequence[str] | None = None,
    ) -> 'MixedDesign':
        """Validate array inputs and create a MixedDesign.

        Args:
            y: Response vector.
            X: Fixed effects design matrix; a 1-D array is one column.
            groups: Grouping factor name -> group label of each observation.
            random_effects: Grouping factor name -> effect terms, '1' for
                the intercept. Defaults to a random intercept per group.
            random_data: Slope variable name -> values (n,).
            coefficient_names: Names for the columns of X. Defaults to
                default_column_names(X)

        Raises:
            ValidationError: On invalid inputs.
            DimensionError: If lengths disagree.
            RankDeficientError: If X is not of full column rank.
        """
        y_arr, X_arr = _check_fixed(y, X)
        n, p = X_arr.shape

        if not groups:
            raise ValidationError("groups: at least one grouping factor required")
        random_effects = dict(random_effects or {})
        unknown = set(random_effects) - set(groups)
        if unknown:
            raise ValidationError(
                f"random_effects: groups {sorted(unknown)} not found in groups. "
                f"Available: {list(groups)}"
            )
        random_data = dict(random_data or {})

        specs = []
        for group_name, labels in groups.items():
            labels = np.asarray(labels)
            if labels.shape[0] != n:
                raise ValidationError(
                    f"groups[{group_name!r}]: has {labels.shape[0]} elements, expected {n}"
                )
            terms = list(random_effects.get(group_name, ['1']))
            if not terms:
                raise ValidationError(f"random_effects[{group_name!r}]: no terms given")

            columns, names = [], []
            for term in terms:
                if term == '1':
                    columns.append(np.ones(n))
                    names.append(INTERCEPT_NAME)
                    continue
                if term not in random_data:
                    raise ValidationError(
                        f"random_effects[{group_name!r}]: slope {term!r} "
                        f"has no entry in random_data"
                    )
                col = check_array(random_data[term], f"random_data[{term!r}]")
                check_1d(col, f"random_data[{term!r}]")
                check_same_rows(**{f"random_data[{term!r}]": col, "y": y_arr})
                check_finite(col, f"random_data[{term!r}]")
                columns.append(col)
                names.append(term)

            specs.append(make_spec(
                group_name,
                labels,
                np.column_stack(columns),
                names,
                [f"({t} | {group_name})" for t in terms],
            ))

        if coefficient_names is None:
            coef_names = default_column_names(X_arr)
        else:
            coef_names = tuple(str(c) for c in coefficient_names)
            if len(coef_names) != p:
                raise ValidationError(
                    f"coefficient_names: got {len(coef_names)} names for {p} columns"
                )

        return MixedDesign(
            y=y_arr,
            X=X_arr,
            specs=tuple(specs),
            coefficient_names=coef_names,
            fixed_terms=coef_names,
        )

    @staticmethod
    def from_frame(
        frame: ModelFrame,
        *,
        factors: Iterable[str] = (),
        reference: Mapping[str, Any] | None = None,
    ) -> 'MixedDesign':
        """Build a design from a formula's model frame.

        Slope terms of each ``( ... | group)`` block are encoded like fixed
        terms, so a categorical slope contributes its indicator columns.
        Several blocks on the same grouping factor are independent.
        """
        if not frame.formula.has_random_effects:
            raise ValidationError("no random effects terms specified in formula")

        y_arr, X_arr = _check_fixed(frame.y, frame.fixed.X)

        specs = []
        for rt in frame.formula.random:
            block = build_model_matrix(
                frame.data,
                rt.terms,
                intercept=rt.intercept,
                factors=factors,
                reference=reference,
            )
            # one nesting label per column, named after the formula term
            labels = []
            for term in block.terms:
                name = '1' if term == INTERCEPT_NAME else term
                width = block.columns_for(term).shape[1]
                labels.extend([f"({name} | {rt.group})"] * width)
            specs.append(make_spec(
                rt.group,
                frame.data[rt.group],
                block.X,
                block.column_names,
                labels,
            ))

        return MixedDesign(
            y=y_arr,
            X=X_arr,
            specs=tuple(specs),
            coefficient_names=frame.fixed.column_names,
            fixed_terms=frame.fixed.terms,
            response_name=frame.formula.response,
        )


def _check_fixed(y: ArrayLike, X: ArrayLike) -> tuple[NDArray, NDArray]:
    """Validate the response and a full-rank fixed effects matrix."""
    y_arr, X_arr = check_response_design(y, X, min_residual_df=1)
    p = X_arr.shape[1]
    rank = qr_cpu(X_arr).rank
    if rank < p:
        raise RankDeficientError(
            f"Fixed effects matrix is rank-deficient: rank={rank}, expected={p}",
            matrix_name='X',
            rank=rank,
            expected_rank=p,
        )
    return y_arr, X_arr
