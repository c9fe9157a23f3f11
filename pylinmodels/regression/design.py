"""
Regression Design.

Design holds the validated response vector and design matrix together
with the column and term labels that name the coefficients. It is built
either from raw arrays or from a formula's ModelFrame.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pylinmodels.core.validation import check_response_design
from pylinmodels.core.exceptions import ValidationError
from pylinmodels.formula.frame import ModelFrame, ModelMatrix, default_column_names


@dataclass(frozen=True)
class RegressionDesign:
    """
    Regression design matrix specification.

    Immutable after construction.

    Construction:
        RegressionDesign.build(X, y)                      # raw arrays
        RegressionDesign.build(X, y, column_names=[...])  # labelled arrays
        RegressionDesign.from_frame(frame)                # from a formula
    """
    _X: NDArray[np.floating[Any]]
    _y: NDArray[np.floating[Any]]
    _n: int
    _p: int
    _column_names: tuple[str, ...]
    _terms: tuple[str, ...]
    _model_matrix: ModelMatrix | None = None
    _response_name: str = 'y'

    @classmethod
    def build(
        cls,
        X: ArrayLike,
        y: ArrayLike,
        *,
        column_names: Sequence[str] | None = None,
    ) -> RegressionDesign:
        """
        Build and validate a design from arrays.

        Args:
            X: Design matrix (n x p); a 1-D array is one column
            y: Response vector (n,)
            column_names: Optional names for the p columns. Defaults to
                default_column_names(X): '(Intercept)' for a column of ones,
                'x<j>' otherwise

        Raises:
            DimensionError: If X and y disagree on the number of rows
            ValidationError: On non-finite values or n < p
        """
        y, X = check_response_design(y, X)
        n, p = X.shape

        if column_names is None:
            names = default_column_names(X)
        else:
            names = tuple(str(c) for c in column_names)
            if len(names) != p:
                raise ValidationError(
                    f"column_names: got {len(names)} names for {p} columns"
                )

        return cls(
            _X=X, _y=y, _n=n, _p=p,
            _column_names=names,
            _terms=names,
        )

    @classmethod
    def from_frame(cls, frame: ModelFrame) -> RegressionDesign:
        """Build a design from a formula's model frame."""
        design = cls.build(
            frame.fixed.X, frame.y, column_names=frame.fixed.column_names,
        )
        return cls(
            _X=design.X, _y=design.y, _n=design.n, _p=design.p,
            _column_names=design.column_names,
            _terms=frame.fixed.terms,
            _model_matrix=frame.fixed,
            _response_name=frame.formula.response,
        )

    # === Properties ===

    @property
    def X(self) -> NDArray[np.floating[Any]]:
        """Design matrix (n x p)."""
        return self._X

    @property
    def y(self) -> NDArray[np.floating[Any]]:
        """Response vector (n,)."""
        return self._y

    @property
    def n(self) -> int:
        """Number of observations."""
        return self._n

    @property
    def p(self) -> int:
        """Number of columns, including the intercept."""
        return self._p

    @property
    def column_names(self) -> tuple[str, ...]:
        return self._column_names

    @property
    def terms(self) -> tuple[str, ...]:
        """Model terms; equal to column_names for raw-array designs."""
        return self._terms

    @property
    def model_matrix(self) -> ModelMatrix | None:
        """Encoded ModelMatrix when built from a formula."""
        return self._model_matrix

    @property
    def response_name(self) -> str:
        return self._response_name

    @property
    def has_intercept(self) -> bool:
        """Formula intercept flag; for arrays, whether some column is all ones."""
        if self._model_matrix is not None:
            return self._model_matrix.has_intercept
        return bool(np.any(np.all(self._X == 1.0, axis=0)))
