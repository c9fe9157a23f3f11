"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np

from pylinmodels import datasets


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def simple_regression_data(rng):
    """Simple regression dataset with an intercept column."""
    n = 100
    X = np.column_stack([np.ones(n), rng.standard_normal((n, 2))])
    beta_true = np.array([1.0, -2.0, 0.5])
    y = X @ beta_true + rng.standard_normal(n) * 0.1
    return X, y, beta_true


@pytest.fixture
def collinear_data(rng):
    """Dataset with perfect collinearity (should fail)."""
    n = 100
    x1 = rng.standard_normal(n)
    x2 = rng.standard_normal(n)
    X = np.column_stack([np.ones(n), x1, x2, x1 + x2])
    y = rng.standard_normal(n)
    return X, y


@pytest.fixture
def pitch_sex():
    return datasets.pitch_by_sex()


@pytest.fixture
def pitch_age():
    return datasets.pitch_by_age()


@pytest.fixture(scope='session')
def politeness():
    """Politeness-study layout: 6 subjects x 7 scenarios x 2 attitudes,
    one missing frequency."""
    return datasets.simulate_politeness(seed=7)
