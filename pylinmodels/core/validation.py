"""
Input validation for model fitting.

Every public entry point (fit, lm, lmm, lmer) validates its arrays here
once; backends and solvers trust what they receive. Validators raise on
the first problem and never repair input: a NaN is an error, not a row
to drop (formula fits drop incomplete rows before they get here).

Error messages start with the argument name so that a failure deep in a
formula fit still points at the offending column.
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Any

from pylinmodels.core.exceptions import ValidationError, DimensionError


def check_array(values: ArrayLike, name: str) -> NDArray[np.float64]:
    """
    Convert numeric input to a float64 array.

    Booleans count as numeric (0/1). Strings, objects and mixed types do
    not: categorical data has to go through the formula layer, which
    encodes it explicitly.

    Raises:
        ValidationError: If the input is not numeric
    """
    try:
        arr = np.asarray(values)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if arr.dtype == object:
        raise ValidationError(
            f"{name}: object dtype (mixed or non-numeric values); "
            f"encode categorical data with a formula"
        )
    if not (np.issubdtype(arr.dtype, np.number) or arr.dtype == np.bool_):
        raise ValidationError(f"{name}: non-numeric dtype {arr.dtype}")

    return arr.astype(np.float64, copy=False)


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Raises:
        ValidationError: If any entry is NaN or infinite
    """
    bad = ~np.isfinite(array)
    if bad.any():
        first = tuple(int(i) for i in np.argwhere(bad)[0])
        where = first[0] if len(first) == 1 else first
        raise ValidationError(
            f"{name}: contains {int(bad.sum())} non-finite value(s), "
            f"first at index {where}"
        )


def check_ndim(array: NDArray[np.floating[Any]], ndim: int, name: str) -> None:
    """
    Raises:
        DimensionError: If the array does not have `ndim` dimensions
    """
    if array.ndim != ndim:
        kind = {1: 'vector', 2: 'matrix'}.get(ndim, f'{ndim}-D array')
        raise DimensionError(
            f"{name}: expected a {kind}, got shape {array.shape}"
        )


def check_1d(array: NDArray[np.floating[Any]], name: str) -> None:
    check_ndim(array, 1, name)


def check_2d(array: NDArray[np.floating[Any]], name: str) -> None:
    check_ndim(array, 2, name)


def check_same_rows(**arrays: NDArray[np.floating[Any]]) -> None:
    """
    Verify that all arrays describe the same observations.

    Usage:
        check_same_rows(X=X, y=y)

    Raises:
        DimensionError: If the first dimensions differ
    """
    rows = {name: arr.shape[0] for name, arr in arrays.items()}
    if len(set(rows.values())) > 1:
        details = ", ".join(f"{name}={n}" for name, n in rows.items())
        raise DimensionError(f"Inconsistent numbers of rows: {details}")


def check_response_design(
    y: ArrayLike,
    X: ArrayLike,
    *,
    min_residual_df: int = 0,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Validate a response vector against its design matrix.

    A 1-D X is read as a single column and an (n, 1) y as a vector.

    Args:
        y: Response (n,)
        X: Design matrix (n x p)
        min_residual_df: Required n - p; OLS accepts 0, mixed models need 1

    Returns:
        (y, X) as float64 arrays

    Raises:
        ValidationError: On non-numeric or non-finite input, an empty
            design or too few observations
        DimensionError: On wrong shapes or mismatched rows
    """
    y_arr = check_array(y, 'y')
    X_arr = check_array(X, 'X')
    if X_arr.ndim == 1:
        X_arr = X_arr.reshape(-1, 1)
    if y_arr.ndim == 2 and y_arr.shape[1] == 1:
        y_arr = y_arr.ravel()

    check_1d(y_arr, 'y')
    check_2d(X_arr, 'X')
    check_same_rows(X=X_arr, y=y_arr)
    check_finite(y_arr, 'y')
    check_finite(X_arr, 'X')

    n, p = X_arr.shape
    if p == 0:
        raise ValidationError("X: design matrix has no columns")
    if n < p + min_residual_df:
        raise ValidationError(
            f"X: {p} column(s) need at least {p + min_residual_df} observations, got {n}"
        )
    return y_arr, X_arr
