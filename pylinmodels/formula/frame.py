"""
Model frames and design matrices.

A model frame is the observation table restricted to the columns a
formula uses, with incomplete rows removed. The design matrix is built
from it term by term:

    intercept    column of ones
    covariate    the numeric column itself
    factor       treatment-coded indicator columns
    a:b          products of every column pair of a and b

Whether a column is a factor is decided by its dtype (strings, booleans,
pandas categoricals) unless forced with ``factors=``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pylinmodels.core.datasource import DataSource
from pylinmodels.core.exceptions import ValidationError
from pylinmodels.core.validation import check_array, check_finite
from pylinmodels.formula._contrasts import (
    TreatmentCoding, encode_treatment, interaction_columns,
)
from pylinmodels.formula._parser import ParsedFormula, parse_formula

INTERCEPT_NAME = '(Intercept)'


@dataclass(frozen=True)
class ModelMatrix:
    """
    Encoded design matrix with the metadata needed to read coefficients.

    Attributes:
        X: (n, p) float64 design matrix
        column_names: Name of every column ('(Intercept)', 'sexmale', 'age')
        terms: Model terms in order, '(Intercept)' first when present
        term_slices: term -> column slice in X
        codings: factor name -> TreatmentCoding used
        has_intercept: Whether column 0 is the intercept
    """
    X: NDArray[np.floating[Any]]
    column_names: tuple[str, ...]
    terms: tuple[str, ...]
    term_slices: dict[str, slice]
    codings: dict[str, TreatmentCoding] = field(default_factory=dict)
    has_intercept: bool = True

    @property
    def n(self) -> int:
        return self.X.shape[0]

    @property
    def p(self) -> int:
        return self.X.shape[1]

    def columns_for(self, term: str) -> NDArray[np.floating[Any]]:
        """The block of X belonging to one term."""
        return self.X[:, self.term_slices[term]]


def default_column_names(X: NDArray[np.floating[Any]]) -> tuple[str, ...]:
    """
    Names for the columns of an unlabelled design matrix.

    A column of ones is '(Intercept)', column j otherwise 'x<j>'. OLS and
    mixed fits share these names, so the same X gives the same terms.
    """
    return tuple(
        INTERCEPT_NAME if np.all(X[:, j] == 1.0) else f"x{j}"
        for j in range(X.shape[1])
    )


def is_factor(source: DataSource, name: str, factors: Iterable[str] = ()) -> bool:
    """True if the column is treated as categorical."""
    if name in set(factors) or source.categories(name) is not None:
        return True
    arr = source[name]
    return not np.issubdtype(arr.dtype, np.number)


def _variable_block(
    source: DataSource,
    name: str,
    factors: Iterable[str],
    reference: Mapping[str, Any],
    codings: dict[str, TreatmentCoding],
) -> tuple[NDArray[np.floating[Any]], list[str]]:
    """Columns and column names contributed by one variable."""
    if name not in source:
        raise ValidationError(
            f"formula refers to unknown column {name!r}. Available: {sorted(source.keys())}"
        )

    if is_factor(source, name, factors):
        X, coding = encode_treatment(
            source[name], name,
            reference=reference.get(name),
            levels=source.categories(name),
        )
        codings[name] = coding
        return X, list(coding.column_names)

    col = check_array(source[name], name)
    check_finite(col, name)
    return col.reshape(-1, 1), [name]


def build_model_matrix(
    source: DataSource,
    terms: Iterable[str],
    *,
    intercept: bool = True,
    factors: Iterable[str] = (),
    reference: Mapping[str, Any] | None = None,
) -> ModelMatrix:
    """
    Build a design matrix from named terms.

    Args:
        source: Complete-case observations
        terms: Terms in model order; interactions written 'a:b'
        intercept: Prepend a column of ones
        factors: Numeric columns to treat as categorical
        reference: factor name -> reference level

    Returns:
        ModelMatrix

    Raises:
        ValidationError: On unknown columns, one-level factors, unknown
            reference levels, or an empty design
    """
    reference = dict(reference or {})
    factors = tuple(factors)
    n = source.n_observations

    blocks: list[NDArray[np.floating[Any]]] = []
    column_names: list[str] = []
    term_names: list[str] = []
    term_slices: dict[str, slice] = {}
    codings: dict[str, TreatmentCoding] = {}
    offset = 0

    if intercept:
        blocks.append(np.ones((n, 1), dtype=np.float64))
        column_names.append(INTERCEPT_NAME)
        term_names.append(INTERCEPT_NAME)
        term_slices[INTERCEPT_NAME] = slice(0, 1)
        offset = 1

    for term in terms:
        parts = term.split(':')
        X_term, names = _variable_block(source, parts[0], factors, reference, codings)
        for part in parts[1:]:
            X_next, next_names = _variable_block(source, part, factors, reference, codings)
            X_term, names = interaction_columns(X_term, names, X_next, next_names)

        blocks.append(X_term)
        column_names.extend(names)
        term_names.append(term)
        term_slices[term] = slice(offset, offset + X_term.shape[1])
        offset += X_term.shape[1]

    if not blocks:
        raise ValidationError("design has no columns: no intercept and no terms")

    return ModelMatrix(
        X=np.hstack(blocks),
        column_names=tuple(column_names),
        terms=tuple(term_names),
        term_slices=term_slices,
        codings=codings,
        has_intercept=intercept,
    )


@dataclass(frozen=True)
class ModelFrame:
    """
    Everything a formula-driven fit needs.

    Attributes:
        formula: The parsed formula
        data: Complete-case observations for the formula's columns
        y: Response vector (n,)
        fixed: Fixed-effects design matrix
        n_dropped: Rows removed for missing values
    """
    formula: ParsedFormula
    data: DataSource
    y: NDArray[np.floating[Any]]
    fixed: ModelMatrix
    n_dropped: int

    @property
    def n(self) -> int:
        return self.y.shape[0]


def complete_cases(source: DataSource, columns: Iterable[str]) -> NDArray[np.bool_]:
    """Boolean mask of rows with no missing value in the given columns."""
    mask = np.ones(source.n_observations, dtype=bool)
    for name in columns:
        if name not in source:
            raise ValidationError(
                f"formula refers to unknown column {name!r}. Available: {sorted(source.keys())}"
            )
        mask &= ~np.asarray(pd.isna(source[name]), dtype=bool)
    return mask


def model_frame(
    formula: str | ParsedFormula,
    data: Any,
    *,
    factors: Iterable[str] = (),
    reference: Mapping[str, Any] | None = None,
) -> ModelFrame:
    """
    Parse a formula against a table and build its fixed-effects design.

    Rows with a missing value in any column the formula uses are dropped
    before encoding, so every model fit from the same formula columns sees
    the same observations.

    Args:
        formula: Formula string or ParsedFormula
        data: DataFrame, dict of columns, CSV path or DataSource
        factors: Numeric columns to treat as categorical
        reference: factor name -> reference level

    Returns:
        ModelFrame
    """
    parsed = parse_formula(formula) if isinstance(formula, str) else formula
    source = DataSource.build(data)

    columns = list(parsed.variables)
    unknown_refs = set(reference or {}) - set(columns)
    if unknown_refs:
        raise ValidationError(
            f"reference given for {sorted(unknown_refs)}, which the formula does not use"
        )
    mask = complete_cases(source, columns)
    n_dropped = int((~mask).sum())
    if not mask.any():
        raise ValidationError("no complete observations for the formula's columns")
    frame = source.select(columns, rows=mask)

    if is_factor(frame, parsed.response, factors):
        raise ValidationError(
            f"{parsed.response}: response must be numeric, got a categorical column"
        )
    y = check_array(frame[parsed.response], parsed.response)

    fixed = build_model_matrix(
        frame,
        parsed.terms,
        intercept=parsed.intercept,
        factors=factors,
        reference=reference,
    )

    return ModelFrame(
        formula=parsed,
        data=frame,
        y=y,
        fixed=fixed,
        n_dropped=n_dropped,
    )
