"""
Core protocols for pylinmodels.

These define structural interfaces that implementations satisfy. Protocol
(structural typing) is used rather than ABC so that fits produced outside
this package can take part in model comparison without subclassing.
"""

from typing import Protocol, TypeVar, runtime_checkable

D = TypeVar('D', contravariant=True)  # Design type
P = TypeVar('P', covariant=True)      # Parameter payload type


@runtime_checkable
class LikelihoodModel(Protocol):
    """
    Anything that can enter a likelihood-ratio comparison.

    Implemented by LinearSolution (OLS), LMMSolution (mixed models) and
    the plain ModelLikelihood record for externally fitted models.

    Attributes:
        log_likelihood: Maximized log-likelihood of the fit
        n_params: Number of estimated parameters, including residual variance
        n_obs: Number of observations the model was fit to
        terms: Labels of fixed-effect terms and random-effect terms
            ('(1 | subject)', '(attitude | subject)')
        method: 'OLS', 'ML' or 'REML'
    """

    @property
    def log_likelihood(self) -> float: ...

    @property
    def n_params(self) -> int: ...

    @property
    def n_obs(self) -> int: ...

    @property
    def terms(self) -> tuple[str, ...]: ...

    @property
    def method(self) -> str: ...


@runtime_checkable
class Backend(Protocol[D, P]):
    """
    Protocol for computational backends.

    Each backend takes a validated design and produces a Result with a
    parameter payload. Backends are stateless.
    """

    @property
    def name(self) -> str:
        """
        Backend identifier.

        Convention: '{device}_{algorithm}', e.g. 'cpu_qr'.
        """
        ...

    def solve(self, design: D) -> 'Result[P]':
        """
        Execute the statistical computation.

        Raises:
            NumericalError: If numerical issues prevent a solution
            ValidationError: If the design is invalid for this backend
        """
        ...
