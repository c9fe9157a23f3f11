"""
Generic result container for all pylinmodels computations.

Every fit and comparison returns its payload inside a Result envelope so
that timing, warnings and method metadata are reported the same way
regardless of the model.
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for statistical computations.

    Attributes:
        params: Domain-specific parameters (coefficients, statistics, ...)
        info: Structured metadata (method, rank, convergence, dropped rows)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the backend that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=LinearParams(...),
        ...     info={'method': 'qr', 'rank': 2},
        ...     timing={'total_seconds': 0.001},
        ...     backend_name='cpu_qr',
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
