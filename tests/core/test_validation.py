"""
Tests for input validation utilities and the DataSource container.
"""

import numpy as np
import pandas as pd
import pytest

from pylinmodels.core.datasource import DataSource
from pylinmodels.core.exceptions import DimensionError, ValidationError
from pylinmodels.core.validation import (
    check_1d,
    check_2d,
    check_array,
    check_finite,
    check_response_design,
    check_same_rows,
)


# ═══════════════════════════════════════════════════════════════════════
# Validators
# ═══════════════════════════════════════════════════════════════════════


class TestCheckArray:

    def test_list_to_float_array(self):
        result = check_array([1, 2, 3], "X")
        assert result.dtype == np.float64
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0])

    def test_booleans_are_numeric(self):
        np.testing.assert_array_equal(check_array([True, False], "x"), [1.0, 0.0])

    def test_strings_rejected(self):
        with pytest.raises(ValidationError, match="non-numeric"):
            check_array(["a", "b"], "X")

    def test_mixed_objects_rejected(self):
        with pytest.raises(ValidationError, match="object dtype"):
            check_array(np.array([1, "a", None], dtype=object), "X")


class TestShapeChecks:

    def test_check_finite(self):
        check_finite(np.array([1.0, 2.0]), "y")
        with pytest.raises(ValidationError, match="first at index 1"):
            check_finite(np.array([1.0, np.nan]), "y")
        with pytest.raises(ValidationError, match=r"\(1, 0\)"):
            check_finite(np.array([[1.0, 2.0], [np.inf, 1.0]]), "X")

    def test_check_1d_and_2d(self):
        check_1d(np.zeros(3), "y")
        check_2d(np.zeros((3, 2)), "X")
        with pytest.raises(DimensionError, match="expected a vector"):
            check_1d(np.zeros((3, 2)), "y")
        with pytest.raises(DimensionError, match="expected a matrix"):
            check_2d(np.zeros(3), "X")

    def test_same_rows(self):
        check_same_rows(X=np.zeros((4, 2)), y=np.zeros(4))
        with pytest.raises(DimensionError, match="X=4, y=3"):
            check_same_rows(X=np.zeros((4, 2)), y=np.zeros(3))


class TestResponseDesign:

    def test_reshapes(self):
        y, X = check_response_design(np.ones((4, 1)), np.arange(4))
        assert y.shape == (4,)
        assert X.shape == (4, 1)
        assert X.dtype == np.float64

    def test_residual_df(self):
        check_response_design(np.ones(3), np.ones((3, 3)))
        with pytest.raises(ValidationError, match="at least 4 observations"):
            check_response_design(np.ones(3), np.ones((3, 3)), min_residual_df=1)

    def test_empty_design(self):
        with pytest.raises(ValidationError, match="no columns"):
            check_response_design(np.ones(3), np.ones((3, 0)))


# ═══════════════════════════════════════════════════════════════════════
# DataSource
# ═══════════════════════════════════════════════════════════════════════


class TestDataSource:

    def test_from_arrays(self):
        ds = DataSource.from_arrays(pitch=[233, 204], sex=['female', 'male'])
        assert ds.n_observations == 2
        assert ds.columns == ['pitch', 'sex']
        assert 'sex' in ds
        assert ds.categories('sex') is None

    def test_from_arrays_length_mismatch(self):
        with pytest.raises(DimensionError, match="Inconsistent column lengths"):
            DataSource.from_arrays(a=[1, 2, 3], b=[1, 2])

    def test_unknown_column(self):
        ds = DataSource.from_arrays(a=[1, 2])
        with pytest.raises(KeyError, match="Available"):
            ds['b']

    def test_dataframe_categories(self):
        df = pd.DataFrame({
            'sex': pd.Categorical(['male', 'female'], categories=['male', 'female']),
            'pitch': [130.0, 233.0],
        })
        ds = DataSource.from_dataframe(df)
        assert ds.categories('sex') == ['male', 'female']
        assert ds.n_observations == 2

    def test_select_rows(self):
        ds = DataSource.from_arrays(a=[1, 2, 3], b=[4, 5, 6])
        sub = ds.select(['b'], rows=np.array([True, False, True]))
        assert sub.columns == ['b']
        assert sub.n_observations == 2
        np.testing.assert_array_equal(sub['b'], [4, 6])

    def test_from_file(self, tmp_path):
        path = tmp_path / "pitch.csv"
        pd.DataFrame({'age': [14, 23], 'pitch': [252, 244]}).to_csv(path, index=False)
        ds = DataSource.from_file(path)
        assert ds.n_observations == 2
        assert ds.metadata['source_path'] == str(path)

    def test_build_rejects_unknown(self):
        with pytest.raises(ValidationError, match="Cannot build a DataSource"):
            DataSource.build(42)
