"""Tests for formula-driven mixed model fits on the politeness layout."""

import numpy as np
import pandas as pd
import pytest

from pylinmodels.core.exceptions import ValidationError
from pylinmodels.mixed import LmerSolver, MixedFit, MixedModelSolver, lmer, lmm

INTERCEPTS = "frequency ~ attitude + gender + (1 | subject) + (1 | scenario)"
SLOPES = "frequency ~ attitude + gender + (1 + attitude | subject) + (1 + attitude | scenario)"


class TestLmerIntercepts:

    @pytest.fixture(scope='class')
    def model(self, politeness):
        return lmer(INTERCEPTS, politeness)

    def test_design(self, model):
        assert model.coefficient_names == ('(Intercept)', 'attitudepol', 'genderM')
        assert model.n_obs == 83
        assert model.info['n_dropped'] == 1
        assert model.info['codings']['attitude'].reference == 'inf'
        assert model.params.n_groups == {'subject': 6, 'scenario': 7}

    def test_fixed_effects_plausible(self, model):
        np.testing.assert_allclose(model.fixef['attitudepol'], -20.0, atol=20.0)
        np.testing.assert_allclose(model.fixef['genderM'], -110.0, atol=60.0)
        assert np.all(model.se > 0)
        np.testing.assert_allclose(model.t_values, model.coefficients / model.se)

    def test_n_params(self, model):
        # 3 fixed + 2 theta + sigma
        assert model.n_params == 6

    def test_terms(self, model):
        assert model.terms == (
            '(Intercept)', 'attitude', 'gender', '(1 | subject)', '(1 | scenario)',
        )

    def test_coef_constant_slopes(self, model):
        coef = model.coef()
        assert list(coef) == ['subject', 'scenario']
        subject = coef['subject']
        assert list(subject.columns) == ['(Intercept)', 'attitudepol', 'genderM']
        assert subject.index.name == 'subject'
        assert list(subject.index) == ['F1', 'F2', 'F3', 'M3', 'M4', 'M7']
        np.testing.assert_allclose(subject['attitudepol'], model.fixef['attitudepol'])
        np.testing.assert_allclose(
            subject['(Intercept)'],
            model.fixef['(Intercept)'] + model.ranef['subject']['(Intercept)'],
        )

    def test_scenario_levels_are_labels(self, model):
        assert list(model.ranef['scenario'].index) == [str(i) for i in range(1, 8)]

    def test_matches_array_api(self, model, politeness):
        df = politeness.dropna()
        X = np.column_stack([
            np.ones(len(df)),
            (df['attitude'] == 'pol').astype(float),
            (df['gender'] == 'M').astype(float),
        ])
        arrays = lmm(
            df['frequency'].to_numpy(), X,
            groups={'subject': df['subject'].to_numpy(), 'scenario': df['scenario'].to_numpy()},
        )
        np.testing.assert_allclose(arrays.coefficients, model.coefficients, rtol=1e-6)
        np.testing.assert_allclose(arrays.log_likelihood, model.log_likelihood, rtol=1e-8)

    def test_coef_table(self, model):
        table = model.coef_table()
        assert isinstance(table, pd.DataFrame)
        assert list(table.columns) == ['Estimate', 'Std. Error', 't value']

    def test_summary(self, model):
        text = model.summary()
        assert f"Formula: {INTERCEPTS}" in text
        assert "attitudepol" in text
        assert "Number of obs: 83" in text


class TestLmerSlopes:

    @pytest.fixture(scope='class')
    def model(self, politeness):
        return lmer(SLOPES, politeness, reml=False)

    def test_n_params(self, model):
        # 3 fixed + 3 theta per grouping factor + sigma
        assert model.n_params == 10
        assert model.method == 'ML'

    def test_var_components(self, model):
        names = [(vc.group, vc.name) for vc in model.var_components]
        assert names == [
            ('subject', '(Intercept)'), ('subject', 'attitudepol'),
            ('scenario', '(Intercept)'), ('scenario', 'attitudepol'),
        ]

    def test_coef_varying_slopes(self, model):
        subject = model.coef()['subject']
        np.testing.assert_allclose(
            subject['attitudepol'],
            model.fixef['attitudepol'] + model.ranef['subject']['attitudepol'],
        )
        np.testing.assert_allclose(subject['genderM'], model.fixef['genderM'])

    def test_terms(self, model):
        assert '(attitude | subject)' in model.terms
        assert '(attitude | scenario)' in model.terms


class TestLmerErrors:

    def test_no_random_effects(self, politeness):
        with pytest.raises(ValidationError, match="no random effects terms specified in formula"):
            lmer("frequency ~ attitude", politeness)

    def test_unknown_group(self, politeness):
        with pytest.raises(ValidationError, match="unknown column 'item'"):
            lmer("frequency ~ attitude + (1 | item)", politeness)

    def test_reference_level(self, politeness):
        model = lmer(
            "frequency ~ attitude + (1 | subject)", politeness,
            reference={'attitude': 'pol'},
        )
        assert model.coefficient_names == ('(Intercept)', 'attitudeinf')


class TestSolverInterface:

    def test_protocols(self, politeness):
        solver = LmerSolver(reference={'gender': 'F'})
        assert isinstance(solver, MixedModelSolver)
        fitted = solver.fit("frequency ~ gender + (1 | subject)", politeness, reml=False)
        assert isinstance(fitted, MixedFit)
        assert fitted.method == 'ML'
        assert set(fitted.random_effects) == {'subject'}
        assert np.isfinite(fitted.log_likelihood)
