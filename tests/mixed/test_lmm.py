"""Tests for array-level LMM fits."""

import numpy as np
import pytest
from scipy import stats
from scipy.optimize import OptimizeResult

from pylinmodels.core.exceptions import ConvergenceError, RankDeficientError, ValidationError
from pylinmodels.mixed import lmm
from pylinmodels.mixed._deviance import profiled_deviance
from pylinmodels.mixed._random_effects import build_lambda, build_z_matrix
from pylinmodels.regression import fit


def _marginal_loglik(result, y, X, Z):
    """Gaussian log-density of y under the fitted marginal model."""
    Lambda = build_lambda(result.theta, list(result.design.specs))
    V = result.residual_variance * (Z @ Lambda @ Lambda.T @ Z.T + np.eye(len(y)))
    return stats.multivariate_normal(mean=X @ result.coefficients, cov=V).logpdf(y)


def _restricted_loglik(result, y, X, Z):
    """REML log-likelihood at the fitted θ and σ², from the dense marginal covariance.

        ℓ_R = -1/2 [log|V| + log|X'V⁻¹X| + r'V⁻¹r + (n - p) log 2π]
    """
    n, p = X.shape
    Lambda = build_lambda(result.theta, list(result.design.specs))
    V = result.residual_variance * (Z @ Lambda @ Lambda.T @ Z.T + np.eye(n))
    V_inv = np.linalg.inv(V)
    r = y - X @ result.coefficients
    _, logdet_V = np.linalg.slogdet(V)
    _, logdet_XVX = np.linalg.slogdet(X.T @ V_inv @ X)
    return -0.5 * (logdet_V + logdet_XVX + r @ V_inv @ r + (n - p) * np.log(2 * np.pi))


class TestRandomIntercept:

    def test_basic_fit(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']})
        assert result.converged
        assert result.coefficient_names == ('(Intercept)', 'x1')
        assert result.n_obs == 200
        assert result.method == 'REML'

    def test_fixed_effects_close_to_truth(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']})
        np.testing.assert_allclose(result.coefficients[0], d['beta0'], atol=2.5)
        np.testing.assert_allclose(result.coefficients[1], d['beta1'], atol=0.3)

    def test_variance_components(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']})
        vc = result.var_components
        assert len(vc) == 1
        assert vc[0].group == 'group'
        assert vc[0].name == '(Intercept)'
        assert vc[0].corr is None
        assert 1.0 < vc[0].std_dev < 6.0
        assert 0.6 < result.residual_std < 1.5
        assert 0 < result.icc['group'] < 1

    def test_n_params(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']})
        # 2 fixed + 1 theta + sigma
        assert result.n_params == 4
        np.testing.assert_allclose(result.aic, -2 * result.log_likelihood + 8)

    def test_blups(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']})
        ranef = result.ranef['group']
        assert ranef.shape == (d['n_groups'], 1)
        assert list(ranef.columns) == ['(Intercept)']
        assert abs(ranef['(Intercept)'].mean()) < 1e-6

    def test_fitted_plus_residuals(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']})
        np.testing.assert_allclose(result.fitted_values + result.residuals, d['y'])

    def test_ml_loglik_is_marginal_density(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']}, reml=False)
        Z = build_z_matrix(list(result.design.specs))
        expected = _marginal_loglik(result, d['y'], d['X'], Z)
        np.testing.assert_allclose(result.log_likelihood, expected, rtol=1e-8)

    def test_reml_loglik_is_restricted_density(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']}, reml=True)
        Z = build_z_matrix(list(result.design.specs))
        expected = _restricted_loglik(result, d['y'], d['X'], Z)
        np.testing.assert_allclose(result.log_likelihood, expected, rtol=1e-8)

    def test_reml_fixed_effects_are_gls(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']}, reml=True)
        Z = build_z_matrix(list(result.design.specs))
        Lambda = build_lambda(result.theta, list(result.design.specs))
        V = result.residual_variance * (Z @ Lambda @ Lambda.T @ Z.T + np.eye(len(d['y'])))
        V_inv_X = np.linalg.solve(V, d['X'])
        vcov = np.linalg.inv(d['X'].T @ V_inv_X)
        beta = vcov @ (V_inv_X.T @ d['y'])
        np.testing.assert_allclose(result.coefficients, beta, rtol=1e-8)
        np.testing.assert_allclose(result.vcov, vcov, rtol=1e-6)

    def test_theta_is_minimum(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']}, reml=False)
        specs = list(result.design.specs)
        Z = build_z_matrix(specs)
        best = profiled_deviance(result.theta, d['X'], Z, d['y'], specs, reml=False)
        for step in (0.9, 1.1):
            other = profiled_deviance(result.theta * step, d['X'], Z, d['y'], specs, reml=False)
            assert best <= other + 1e-8

    def test_reml_variance_larger_than_ml(self, random_intercept_simple):
        d = random_intercept_simple
        reml = lmm(d['y'], d['X'], groups={'group': d['group']}, reml=True)
        ml = lmm(d['y'], d['X'], groups={'group': d['group']}, reml=False)
        assert reml.var_components[0].variance > ml.var_components[0].variance
        np.testing.assert_allclose(reml.coefficients, ml.coefficients, atol=0.05)

    def test_no_group_variation_matches_ols(self, rng):
        """With no between-group variance θ̂ → 0 and β̂ approaches OLS."""
        n = 120
        x = rng.standard_normal(n)
        X = np.column_stack([np.ones(n), x])
        y = 1.0 + 0.5 * x + rng.standard_normal(n)
        group = np.tile(np.arange(12), 10)
        result = lmm(y, X, groups={'g': group}, reml=False)
        ols = fit(X, y)
        if result.theta[0] < 1e-4:
            np.testing.assert_allclose(result.coefficients, ols.coefficients, atol=1e-3)
            np.testing.assert_allclose(result.log_likelihood, ols.log_likelihood, atol=1e-3)
        assert result.log_likelihood >= ols.log_likelihood - 1e-3

    def test_timing_and_info(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']})
        assert 'optimization' in result.timing
        assert result.info['optimizer'] == 'L-BFGS-B'
        assert result.backend_name == 'cpu_lmm'


class TestRandomSlope:

    @pytest.fixture
    def result(self, sleepstudy_like):
        d = sleepstudy_like
        return lmm(
            d['y'], d['X'],
            groups={'subject': d['subject']},
            random_effects={'subject': ['1', 'days']},
            random_data={'days': d['days']},
            coefficient_names=['(Intercept)', 'days'],
        )

    def test_fixed_effects(self, result):
        np.testing.assert_allclose(result.fixef['(Intercept)'], 250.0, atol=25.0)
        np.testing.assert_allclose(result.fixef['days'], 10.0, atol=5.0)

    def test_variance_components(self, result):
        vc = result.var_components
        assert [v.name for v in vc] == ['(Intercept)', 'days']
        assert vc[1].corr is None or -1.0 <= vc[1].corr <= 1.0
        assert vc[1].std_dev > 0

    def test_n_params(self, result):
        # 2 fixed + 3 theta + sigma
        assert result.n_params == 6
        assert len(result.theta) == 3

    def test_coef_adds_blups(self, result, sleepstudy_like):
        coef = result.coef()['subject']
        ranef = result.ranef['subject']
        assert coef.shape == (sleepstudy_like['n_subjects'], 2)
        np.testing.assert_allclose(
            coef['days'], result.fixef['days'] + ranef['days'],
        )

    def test_reml_loglik_is_restricted_density(self, result, sleepstudy_like):
        d = sleepstudy_like
        Z = build_z_matrix(list(result.design.specs))
        expected = _restricted_loglik(result, d['y'], d['X'], Z)
        np.testing.assert_allclose(result.log_likelihood, expected, rtol=1e-8)

    def test_terms(self, result):
        assert result.terms == ('(Intercept)', 'days', '(1 | subject)', '(days | subject)')


class TestCrossed:

    def test_two_grouping_factors(self, crossed):
        d = crossed
        result = lmm(d['y'], d['X'], groups={'subject': d['subject'], 'item': d['item']})
        assert set(result.ranef) == {'subject', 'item'}
        assert result.ranef['subject'].shape == (d['n_subj'], 1)
        assert result.ranef['item'].shape == (d['n_item'], 1)
        assert result.n_params == 2 + 2 + 1
        np.testing.assert_allclose(result.coefficients[1], 1.0, atol=0.3)

    def test_summary(self, crossed):
        d = crossed
        text = lmm(d['y'], d['X'], groups={'subject': d['subject'], 'item': d['item']}).summary()
        assert "Linear mixed model fit by REML" in text
        assert "Residual" in text
        assert "subject" in text and "item" in text


class TestValidation:

    def test_single_level_group(self, random_intercept_simple):
        d = random_intercept_simple
        with pytest.raises(ValidationError, match="at least 2"):
            lmm(d['y'], d['X'], groups={'g': np.zeros(200)})

    def test_no_groups(self, random_intercept_simple):
        d = random_intercept_simple
        with pytest.raises(ValidationError, match="grouping factor"):
            lmm(d['y'], d['X'], groups={})

    def test_unknown_random_effect_group(self, random_intercept_simple):
        d = random_intercept_simple
        with pytest.raises(ValidationError, match="not found"):
            lmm(d['y'], d['X'], groups={'group': d['group']},
                random_effects={'other': ['1']})

    def test_slope_without_data(self, random_intercept_simple):
        d = random_intercept_simple
        with pytest.raises(ValidationError, match="random_data"):
            lmm(d['y'], d['X'], groups={'group': d['group']},
                random_effects={'group': ['1', 'x']})

    def test_rank_deficient_fixed(self, random_intercept_simple):
        d = random_intercept_simple
        X = np.column_stack([d['X'], d['X'][:, 1]])
        with pytest.raises(RankDeficientError):
            lmm(d['y'], X, groups={'group': d['group']})

    def test_no_finite_deviance(self, random_intercept_simple, monkeypatch):
        def stuck(fun, x0, **kwargs):
            return OptimizeResult(x=x0, fun=np.inf, nit=0, success=False, message='stuck')

        monkeypatch.setattr('pylinmodels.mixed.solvers.minimize', stuck)
        d = random_intercept_simple
        with pytest.raises(ConvergenceError) as exc_info:
            lmm(d['y'], d['X'], groups={'group': d['group']})
        assert exc_info.value.reason == 'non_finite_deviance'
