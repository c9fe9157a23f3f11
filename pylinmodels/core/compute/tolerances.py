"""
Numerical tolerances.

Single place for the constants that decide rank, comparison validity,
and how closely test results must match reference values.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ToleranceTier:
    """Tolerance specification for numerical comparison."""
    rtol: float
    atol: float
    name: str
    description: str


# Direct QR solves on well-conditioned designs
CPU_FP64 = ToleranceTier(
    rtol=1e-10,
    atol=1e-12,
    name='cpu_fp64',
    description='CPU double precision, direct solve',
)

# Multiplier on eps * max(n, p) * |R[0, 0]| below which a diagonal entry
# of R counts as zero when determining numerical rank.
RANK_TOLERANCE_FACTOR = 1.0

# A likelihood-ratio statistic below zero by less than this fraction of
# max(1, |loglik_full|) is optimizer noise and is reported as 0.
LRT_NEGATIVE_RTOL = 1e-6


def lrt_negative_tolerance(log_likelihood_full: float) -> float:
    """Largest negative chi-square magnitude still treated as zero."""
    return LRT_NEGATIVE_RTOL * max(1.0, abs(log_likelihood_full))
