"""
Solver dispatch for regression.

This module provides the public fit() and lm() functions and backend
selection.
"""

from typing import Any, Iterable, Literal, Mapping, Sequence
from numpy.typing import ArrayLike

from pylinmodels.core.exceptions import ValidationError
from pylinmodels.formula.frame import model_frame
from pylinmodels.regression.design import RegressionDesign
from pylinmodels.regression.solution import LinearSolution
from pylinmodels.regression.backends.cpu import CPUQRBackend


BackendChoice = Literal['auto', 'cpu', 'cpu_qr']


def fit(
    X: ArrayLike,
    y: ArrayLike,
    *,
    column_names: Sequence[str] | None = None,
    backend: BackendChoice = 'auto',
) -> LinearSolution:
    """
    Fit a linear regression model by ordinary least squares.

    Solves min_β ||y - Xβ||² by QR decomposition. X is used as given: add
    a column of ones for an intercept.

    Args:
        X: Design matrix (n x p). Can be any array-like.
        y: Response vector (n,). Can be any array-like.
        column_names: Optional names for the columns of X
        backend: 'auto', 'cpu' or 'cpu_qr' (all the QR reference backend)

    Returns:
        LinearSolution with coefficients, inference and summary methods

    Raises:
        ValidationError: If inputs are non-numeric or non-finite
        DimensionError: If X and y have different numbers of rows
        RankDeficientError: If the columns of X are linearly dependent

    Example:
        >>> X = np.column_stack([np.ones(6), [14, 23, 35, 48, 52, 67]])
        >>> result = fit(X, [252, 244, 240, 233, 212, 204])
        >>> result.coefficients
        array([267.0765..., -0.9099...])
    """
    # This is the boundary - validate here, trust everywhere else
    design = RegressionDesign.build(X, y, column_names=column_names)
    backend_impl = _get_backend(backend)
    result = backend_impl.solve(design)
    return LinearSolution(_result=result, _design=design)


def lm(
    formula: str,
    data: Any,
    *,
    reference: Mapping[str, Any] | None = None,
    factors: Iterable[str] = (),
    backend: BackendChoice = 'auto',
) -> LinearSolution:
    """
    Fit a linear model from a formula and a table of observations.

    Categorical columns are treatment-coded against a reference level:
    the first level in level order unless given in ``reference``.

    Args:
        formula: e.g. "pitch ~ sex" or "pitch ~ age"
        data: DataFrame, dict of columns, CSV path or DataSource
        reference: factor name -> reference level
        factors: Numeric columns to treat as categorical
        backend: Computational backend

    Returns:
        LinearSolution; info carries the formula, the factor codings
        and the number of rows dropped for missing values

    Raises:
        ValidationError: On a formula with random-effect terms, unknown
            columns, or invalid factor levels
        RankDeficientError: If the encoded design is rank-deficient

    Example:
        >>> df = pd.DataFrame({'pitch': [233, 204, 242, 130, 112, 142],
        ...                    'sex': ['female'] * 3 + ['male'] * 3})
        >>> lm("pitch ~ sex", df).coef
        {'(Intercept)': 226.33..., 'sexmale': -98.33...}
    """
    frame = model_frame(formula, data, factors=factors, reference=reference)
    if frame.formula.has_random_effects:
        raise ValidationError(
            f"formula has random-effect terms {[rt.label for rt in frame.formula.random]}; "
            f"use pylinmodels.mixed.lmer()"
        )

    design = RegressionDesign.from_frame(frame)
    result = _get_backend(backend).solve(design)
    return LinearSolution(
        _result=result,
        _design=design,
        _info={
            'formula': frame.formula.formula,
            'codings': dict(frame.fixed.codings),
            'n_dropped': frame.n_dropped,
        },
    )


def _get_backend(choice: BackendChoice) -> CPUQRBackend:
    """
    Select and instantiate the appropriate backend.

    Raises:
        ValueError: If unknown backend specified
    """
    if choice in ('auto', 'cpu', 'cpu_qr'):
        return CPUQRBackend()
    raise ValueError(f"Unknown backend: {choice!r}")
