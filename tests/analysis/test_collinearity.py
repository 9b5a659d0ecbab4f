"""
Tests for OLS diagnostics and VIF-based collinearity reduction.
"""

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm

from aq_regression.analysis.collinearity import (
    CollinearityReducer,
    compute_vif,
    coefficient_table
)


@pytest.fixture
def collinear_frame(regression_frame):
    """Regression frame plus an exact sum and a near-duplicate predictor."""
    np.random.seed(3)
    frame = regression_frame.copy()
    frame['TOTAL'] = frame['PM2.5'] + frame['NO2']
    frame['PM10'] = frame['CO'] * 1.3 + np.random.randn(len(frame)) * 0.05
    return frame


class TestComputeVIF:
    """Test Variance Inflation Factor calculation."""

    def test_independent_predictors_near_one(self, regression_frame):
        vif = compute_vif(regression_frame.drop(columns=['SO2']))

        assert list(vif.index) == ['PM2.5', 'NO2', 'CO', 'TEMP', 'PRES']
        assert (vif >= 1.0).all()
        assert (vif < 2.0).all()

    def test_matches_auxiliary_regression(self, regression_frame):
        X = regression_frame.drop(columns=['SO2'])
        others = sm.add_constant(X.drop(columns=['CO']))
        r2 = sm.OLS(X['CO'], others).fit().rsquared

        vif = compute_vif(X)
        assert vif['CO'] == pytest.approx(1.0 / (1.0 - r2))

    def test_perfect_collinearity_is_infinite(self, collinear_frame):
        vif = compute_vif(collinear_frame.drop(columns=['SO2', 'PM10']))

        assert np.isinf(vif['TOTAL'])
        assert np.isinf(vif['PM2.5'])
        assert np.isinf(vif['NO2'])
        assert np.isfinite(vif['TEMP'])

    def test_single_predictor(self, regression_frame):
        vif = compute_vif(regression_frame[['CO']])
        assert vif['CO'] == 1.0

    def test_constant_single_predictor_is_infinite(self, regression_frame):
        vif = compute_vif(regression_frame[['CO']].assign(CO=2.0))
        assert np.isinf(vif['CO'])


class TestCollinearityReducer:
    """Test the manual drop list, refit and reporting."""

    def test_drop_list_removes_collinearity(self, collinear_frame):
        reducer = CollinearityReducer(['TOTAL', 'PM10'])
        report = reducer.fit(collinear_frame, 'SO2')

        assert report.dropped_columns == ['TOTAL', 'PM10']
        assert np.isinf(report.vif_before['TOTAL'])
        assert np.isfinite(report.vif_after).all()
        assert report.retained_predictors == ['PM2.5', 'NO2', 'CO', 'TEMP', 'PRES']
        assert '(Intercept)' in report.refit.coefficients.index

    def test_high_vif_flagged_not_dropped(self, collinear_frame):
        reducer = CollinearityReducer(['TOTAL'], vif_threshold=10.0)
        report = reducer.fit(collinear_frame, 'SO2')

        assert 'PM10' in report.high_vif_after
        assert 'CO' in report.high_vif_after
        assert 'PM10' in report.retained_predictors

    def test_retained_perfect_collinearity_raises(self, collinear_frame):
        reducer = CollinearityReducer(['PM10'])
        with pytest.raises(ValueError, match="Perfect collinearity"):
            reducer.fit(collinear_frame, 'SO2')

    def test_refit_matches_statsmodels(self, regression_frame):
        reducer = CollinearityReducer(['PRES'])
        report = reducer.fit(regression_frame, 'SO2')

        X = sm.add_constant(regression_frame[['PM2.5', 'NO2', 'CO', 'TEMP']])
        expected = sm.OLS(regression_frame['SO2'], X).fit()

        assert report.refit.rsquared == pytest.approx(expected.rsquared)
        assert report.refit.fvalue == pytest.approx(expected.fvalue)
        np.testing.assert_allclose(
            report.refit.coefficients['coef'].to_numpy(), expected.params.to_numpy()
        )
        assert report.refit.n_obs == len(regression_frame)
        assert report.initial_fit.df_model == 5
        assert report.refit.df_model == 4

    def test_transform(self, regression_frame):
        reducer = CollinearityReducer(['CO', 'PRES'])
        reduced = reducer.fit_transform(regression_frame, 'SO2')
        assert list(reduced.columns) == ['PM2.5', 'NO2', 'TEMP', 'SO2']

    def test_missing_drop_column(self, regression_frame):
        with pytest.raises(ValueError, match="not found"):
            CollinearityReducer(['DEWP']).fit(regression_frame, 'SO2')

    def test_target_cannot_be_dropped(self, regression_frame):
        with pytest.raises(ValueError, match="cannot be dropped"):
            CollinearityReducer(['SO2']).fit(regression_frame, 'SO2')

    def test_missing_values_rejected(self, regression_frame):
        frame = regression_frame.copy()
        frame.loc[0, 'CO'] = np.nan
        with pytest.raises(ValueError, match="missing values"):
            CollinearityReducer().fit(frame, 'SO2')

    def test_report_serialisable(self, collinear_frame):
        report = CollinearityReducer(['TOTAL', 'PM10']).fit(collinear_frame, 'SO2')
        payload = report.to_dict()

        assert payload['vif_before']['TOTAL'] is None
        assert payload['dropped_columns'] == ['TOTAL', 'PM10']
        assert set(payload['refit']['coefficients']) == {'(Intercept)', 'PM2.5', 'NO2', 'CO', 'TEMP', 'PRES'}


def test_coefficient_table_columns(regression_frame):
    X = sm.add_constant(regression_frame.drop(columns=['SO2']))
    table = coefficient_table(sm.OLS(regression_frame['SO2'], X).fit())

    assert list(table.columns) == ['coef', 'std_err', 't', 'p_value']
    assert table.index[0] == '(Intercept)'
