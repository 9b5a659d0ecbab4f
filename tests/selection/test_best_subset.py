"""
Tests for best-subset regression search.
"""

import logging

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm

from aq_regression.config import SubsetSelectionConfig
from aq_regression.selection.best_subset import BestSubsetSelector, INTERCEPT


@pytest.fixture
def exhaustive_result(regression_frame):
    selector = BestSubsetSelector(SubsetSelectionConfig(nvmax=5))
    return selector.fit_select(regression_frame, 'SO2')


class TestBestSubsetSelector:
    """Test the search and per-size statistics."""

    @pytest.mark.parametrize('method', ['exhaustive', 'forward', 'backward'])
    def test_rss_non_increasing(self, regression_frame, method):
        config = SubsetSelectionConfig(nvmax=5, method=method)
        result = BestSubsetSelector(config).fit_select(regression_frame, 'SO2')

        assert result.sizes == [1, 2, 3, 4, 5]
        assert (np.diff(result.rss.to_numpy()) <= 1e-9).all()
        assert (np.diff(result.rsquared.to_numpy()) >= -1e-12).all()

    def test_recovers_true_predictors(self, exhaustive_result):
        assert exhaustive_result.model(1).predictors == ('PM2.5',)
        assert set(exhaustive_result.model(3).predictors) == {'PM2.5', 'NO2', 'TEMP'}
        assert exhaustive_result.best_by_bic >= 3

    def test_predictors_in_column_order(self, exhaustive_result):
        assert exhaustive_result.model(3).predictors == ('PM2.5', 'NO2', 'TEMP')
        assert list(exhaustive_result.coef(3).index) == [INTERCEPT, 'PM2.5', 'NO2', 'TEMP']

    def test_exhaustive_evaluates_every_subset(self, exhaustive_result):
        # 2^5 - 1 candidate subsets plus the full model for Cp
        assert exhaustive_result.subsets_evaluated == 32

    def test_full_model_matches_statsmodels(self, regression_frame, exhaustive_result):
        X = sm.add_constant(regression_frame.drop(columns=['SO2']))
        expected = sm.OLS(regression_frame['SO2'], X).fit()
        full = exhaustive_result.model(5)

        np.testing.assert_allclose(full.coefficients.to_numpy(), expected.params.to_numpy(), rtol=1e-8)
        assert full.rss == pytest.approx(expected.ssr)
        assert full.rsquared == pytest.approx(expected.rsquared)
        assert full.adj_rsquared == pytest.approx(expected.rsquared_adj)

    def test_statistic_formulas(self, exhaustive_result):
        n = exhaustive_result.n_obs
        for model in exhaustive_result.models:
            s = model.size
            adj = 1 - (1 - model.rsquared) * (n - 1) / (n - s - 1)
            bic = n * np.log(model.rss / n) + (s + 1) * np.log(n)

            assert model.adj_rsquared == pytest.approx(adj)
            assert model.bic == pytest.approx(bic)

    def test_full_model_cp_equals_parameter_count(self, exhaustive_result):
        assert exhaustive_result.model(5).cp == pytest.approx(6.0)
        assert exhaustive_result.best_by_cp >= 3

    def test_coefficients_reproduce_rss(self, regression_frame, exhaustive_result):
        y = regression_frame['SO2'].to_numpy()
        for model in exhaustive_result.models:
            predictions = model.predict_frame(regression_frame)
            rss = float(np.sum((y - predictions) ** 2))
            assert rss == pytest.approx(model.rss, rel=1e-8)

    @pytest.mark.parametrize('method', ['forward', 'backward'])
    def test_stepwise_agrees_at_ends(self, regression_frame, exhaustive_result, method):
        config = SubsetSelectionConfig(nvmax=5, method=method)
        result = BestSubsetSelector(config).fit_select(regression_frame, 'SO2')

        assert result.model(5).rss == pytest.approx(exhaustive_result.model(5).rss)
        if method == 'forward':
            assert result.model(1).predictors == exhaustive_result.model(1).predictors

    def test_nvmax_clamped(self, regression_frame, caplog):
        selector = BestSubsetSelector(SubsetSelectionConfig(nvmax=10))
        with caplog.at_level(logging.WARNING):
            result = selector.fit_select(regression_frame, 'SO2')

        assert result.nvmax == 5
        assert "exceeds the 5 available predictors" in caplog.text

    def test_exhaustive_guard(self, regression_frame):
        config = SubsetSelectionConfig(nvmax=5, max_exhaustive_subsets=10)
        with pytest.raises(ValueError, match="Exhaustive search needs 31"):
            BestSubsetSelector(config).fit(regression_frame, 'SO2')

    def test_too_few_rows(self, regression_frame):
        with pytest.raises(ValueError, match="Need more than"):
            BestSubsetSelector(SubsetSelectionConfig(nvmax=5)).fit(regression_frame.head(6), 'SO2')

    def test_constant_target(self, regression_frame):
        frame = regression_frame.assign(SO2=3.0)
        with pytest.raises(ValueError, match="constant"):
            BestSubsetSelector().fit(frame, 'SO2')

    def test_missing_target(self, regression_frame):
        with pytest.raises(ValueError, match="Target column 'NO3' not found"):
            BestSubsetSelector().fit(regression_frame, 'NO3')


class TestSubsetSelectionResult:
    """Test the result accessors."""

    def test_which_matrix(self, exhaustive_result):
        which = exhaustive_result.which()

        assert which.shape == (5, 5)
        assert list(which.sum(axis=1)) == [1, 2, 3, 4, 5]
        assert which.loc[1, 'PM2.5']

    def test_summary_table(self, exhaustive_result):
        summary = exhaustive_result.summary()

        assert list(summary.columns) == ['rsquared', 'rss', 'adj_rsquared', 'cp', 'bic', 'predictors']
        assert summary.loc[1, 'predictors'] == 'PM2.5'

    def test_best_by_criterion(self, exhaustive_result):
        assert exhaustive_result.best_by_bic == int(np.argmin(exhaustive_result.bic.to_numpy())) + 1
        assert exhaustive_result.best_by_adj_r2 == int(np.argmax(exhaustive_result.adj_rsquared.to_numpy())) + 1

    def test_size_out_of_range(self, exhaustive_result):
        with pytest.raises(ValueError, match="between 1 and 5"):
            exhaustive_result.coef(6)

    def test_to_dict(self, exhaustive_result):
        payload = exhaustive_result.to_dict()
        assert len(payload['models']) == 5
        assert payload['models'][0]['predictors'] == ['PM2.5']


class TestSubsetModelPrediction:
    """Prediction validates the column set before computing."""

    def test_column_order_normalised(self, regression_frame, exhaustive_result):
        model = exhaustive_result.model(3)
        X = regression_frame[['TEMP', 'PM2.5', 'NO2']]

        np.testing.assert_allclose(model.predict(X), model.predict_frame(regression_frame))

    def test_missing_column(self, regression_frame, exhaustive_result):
        model = exhaustive_result.model(3)
        with pytest.raises(ValueError, match="missing=\\['TEMP'\\]"):
            model.predict(regression_frame[['PM2.5', 'NO2']])

    def test_unexpected_column(self, regression_frame, exhaustive_result):
        model = exhaustive_result.model(3)
        with pytest.raises(ValueError, match="unexpected=\\['CO'\\]"):
            model.predict(regression_frame[['PM2.5', 'NO2', 'TEMP', 'CO']])

    def test_design_frame_missing_predictor(self, regression_frame, exhaustive_result):
        model = exhaustive_result.model(3)
        with pytest.raises(ValueError, match="missing predictors"):
            model.predict_frame(regression_frame.drop(columns=['NO2']))


class TestSubsetSelectionConfig:
    def test_invalid_nvmax(self):
        with pytest.raises(ValueError, match="nvmax"):
            SubsetSelectionConfig(nvmax=0)

    def test_invalid_method(self):
        with pytest.raises(ValueError, match="Unknown search method"):
            SubsetSelectionConfig(method='seqrep')
