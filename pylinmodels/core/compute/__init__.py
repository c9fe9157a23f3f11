"""
Shared compute infrastructure for pylinmodels.

Timing utilities, tolerance constants and linear algebra kernels used by
the regression, mixed and comparison subpackages.
"""

from pylinmodels.core.compute.timing import Timer, timed

__all__ = [
    "Timer",
    "timed",
]
