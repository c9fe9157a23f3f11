"""
Shared fixtures for mixed model tests.

Datasets with known structure: a random intercept model, a
sleepstudy-like random slope model and a crossed design.
"""

import numpy as np
import pytest


@pytest.fixture
def mixed_rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(2024)


@pytest.fixture
def random_intercept_simple(mixed_rng):
    """y = 5 + 2x + b_group + ε, b ~ N(0, 3²), ε ~ N(0, 1).

    20 groups, 10 observations each.
    """
    rng = mixed_rng
    n_groups, n_per_group = 20, 10
    n = n_groups * n_per_group

    group = np.repeat(np.arange(n_groups), n_per_group)
    x = rng.standard_normal(n)
    b = rng.normal(0.0, 3.0, n_groups)
    y = 5.0 + 2.0 * x + b[group] + rng.normal(0.0, 1.0, n)

    return {
        'y': y, 'X': np.column_stack([np.ones(n), x]), 'x': x, 'group': group,
        'n_groups': n_groups, 'beta0': 5.0, 'beta1': 2.0,
    }


@pytest.fixture
def sleepstudy_like(mixed_rng):
    """Reaction ~ days + (1 + days | subject).

    18 subjects x 10 days. Intercept SD 25, slope SD 6, residual SD 25.
    """
    rng = mixed_rng
    n_subjects, n_days = 18, 10
    n = n_subjects * n_days

    cov = np.array([[25.0 ** 2, 0.1 * 25.0 * 6.0], [0.1 * 25.0 * 6.0, 6.0 ** 2]])
    re = rng.multivariate_normal([0.0, 0.0], cov, size=n_subjects)

    subject = np.repeat(np.arange(n_subjects), n_days)
    days = np.tile(np.arange(n_days, dtype=float), n_subjects)
    y = (250.0 + re[subject, 0] + (10.0 + re[subject, 1]) * days
         + rng.normal(0.0, 25.0, n))

    return {
        'y': y, 'X': np.column_stack([np.ones(n), days]),
        'subject': subject, 'days': days, 'n_subjects': n_subjects,
    }


@pytest.fixture
def crossed(mixed_rng):
    """y = 10 + x + b_subject + c_item + ε with 12 subjects x 8 items."""
    rng = mixed_rng
    n_subj, n_item = 12, 8
    subject = np.repeat(np.arange(n_subj), n_item)
    item = np.tile(np.arange(n_item), n_subj)
    n = subject.size

    x = rng.standard_normal(n)
    y = (10.0 + x + rng.normal(0.0, 2.0, n_subj)[subject]
         + rng.normal(0.0, 1.5, n_item)[item] + rng.normal(0.0, 1.0, n))

    return {
        'y': y, 'X': np.column_stack([np.ones(n), x]),
        'subject': subject, 'item': item, 'n_subj': n_subj, 'n_item': n_item,
    }
