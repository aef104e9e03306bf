"""
End-to-end tests for compute_evpi and the result summary.
"""

import numpy as np
import pandas as pd
import pytest
from evpi_ml.evpi.api import compute_evpi
from evpi_ml.evpi.grid import ThresholdGrid
from evpi_ml.evpi.relative import RelativeEVPIFlag
from evpi_ml.evpi.results import EVPIResult, summarize_evpi
from evpi_ml.exceptions import InvalidInputError
from evpi_ml.models.fitting import LogisticModelFitter

# =============================================================================
# Test: compute_evpi
# =============================================================================


class TestComputeEVPI:
    @pytest.mark.parametrize("method", ["bootstrap", "bayesian_bootstrap", "likelihood"])
    def test_runs_for_each_method(self, birthweight_df, predictors, method):
        result = compute_evpi(
            birthweight_df,
            "low",
            predictors,
            n_sim=20,
            thresholds=9,
            method=method,
            seed=1,
        )

        assert isinstance(result, EVPIResult)
        assert result.method == method
        assert result.n_iterations == 20
        assert len(result.thresholds) == 9
        assert np.all(result.evpi >= 0)
        assert np.all(result.inb_perfect >= result.inb_current)
        np.testing.assert_allclose(
            result.evpi, result.inb_perfect - result.inb_current, atol=1e-12
        )

    def test_case_resampling_alias_reports_bootstrap(self, birthweight_df, predictors):
        result = compute_evpi(
            birthweight_df, "low", predictors, n_sim=5, thresholds=3, method="case_resampling"
        )
        assert result.method == "bootstrap"

    def test_seed_reproducible(self, birthweight_df, predictors):
        kw = dict(n_sim=15, thresholds=5, seed=99)
        a = compute_evpi(birthweight_df, "low", predictors, **kw)
        b = compute_evpi(birthweight_df, "low", predictors, **kw)
        np.testing.assert_array_equal(a.evpi, b.evpi)
        np.testing.assert_array_equal(a.enb_max, b.enb_max)

    def test_supplied_predictions(self, birthweight_df, predictors):
        fitter = LogisticModelFitter(predictors=predictors)
        proposed = fitter.fit(birthweight_df, "low").predict_probability(birthweight_df)

        a = compute_evpi(
            birthweight_df,
            "low",
            proposed_predictions=proposed,
            fitter=fitter,
            n_sim=10,
            thresholds=5,
            seed=3,
        )
        b = compute_evpi(birthweight_df, "low", predictors, n_sim=10, thresholds=5, seed=3)
        np.testing.assert_allclose(a.enb_model, b.enb_model)

    def test_explicit_threshold_grid(self, birthweight_df, predictors):
        grid = ThresholdGrid.from_values([0.1, 0.2, 0.3])
        result = compute_evpi(birthweight_df, "low", predictors, n_sim=5, thresholds=grid)
        np.testing.assert_allclose(result.thresholds, [0.1, 0.2, 0.3])

    def test_categorical_predictor(self, birthweight_df):
        df = birthweight_df.assign(
            smoke=birthweight_df["smoke"].map({0: "no", 1: "yes"})
        )
        result = compute_evpi(df, "low", ["age", "lwt", "smoke"], n_sim=5, thresholds=5, seed=0)
        assert np.all(np.isfinite(result.evpi))

    def test_invalid_inputs_rejected_before_work(self, birthweight_df, predictors):
        with pytest.raises(InvalidInputError, match="not found"):
            compute_evpi(birthweight_df, "outcome_missing", predictors)
        with pytest.raises(InvalidInputError):
            compute_evpi(birthweight_df, "low", predictors, n_sim=0)
        with pytest.raises(InvalidInputError):
            compute_evpi(birthweight_df, "low", predictors, thresholds=[0.0, 0.5])
        with pytest.raises(InvalidInputError, match="Unknown sampling method"):
            compute_evpi(birthweight_df, "low", predictors, method="jackknife")
        with pytest.raises(InvalidInputError, match="Length mismatch"):
            compute_evpi(
                birthweight_df,
                "low",
                predictors,
                proposed_predictions=np.full(10, 0.5),
                n_sim=5,
            )

    def test_empty_dataset(self, birthweight_df, predictors):
        with pytest.raises(InvalidInputError, match="empty"):
            compute_evpi(birthweight_df.iloc[:0], "low", predictors)

    @pytest.mark.slow
    def test_monte_carlo_convergence_at_fixed_threshold(self, birthweight_df, predictors):
        """EVPI at z=0.2 from 1,000 and 5,000 draws agree within 0.01."""
        grid = ThresholdGrid.from_values([0.2])
        small = compute_evpi(
            birthweight_df, "low", predictors, n_sim=1000, thresholds=grid, seed=1
        )
        large = compute_evpi(
            birthweight_df, "low", predictors, n_sim=5000, thresholds=grid, seed=2
        )
        assert abs(small.evpi[0] - large.evpi[0]) < 0.01


# =============================================================================
# Test: Result table and summary
# =============================================================================


@pytest.fixture
def small_result(birthweight_df, predictors):
    return compute_evpi(
        birthweight_df,
        "low",
        predictors,
        n_sim=30,
        thresholds=ThresholdGrid.uniform(19),
        seed=7,
    )


class TestEVPIResult:
    def test_to_frame_columns(self, small_result):
        df = small_result.to_frame()
        assert isinstance(df, pd.DataFrame)
        assert len(df) == 19
        for col in [
            "threshold",
            "enb_model",
            "enb_all",
            "enb_max",
            "evpi",
            "inb_current",
            "inb_perfect",
            "relative_evpi",
            "relative_evpi_capped",
            "relative_evpi_flag",
            "mcse_model",
            "mcse_all",
            "mcse_max",
        ]:
            assert col in df.columns

    def test_capped_column_respects_ceiling(self, small_result):
        df = small_result.to_frame()
        finite = np.isfinite(df["relative_evpi_capped"])
        assert (df.loc[finite, "relative_evpi_capped"] <= small_result.ceiling).all()

    def test_flags_match_values(self, small_result):
        rel = small_result.relative
        for value, flag in zip(rel.values, rel.flags):
            if flag is RelativeEVPIFlag.DEGENERATE_ZERO:
                assert np.isnan(value)
            elif flag is RelativeEVPIFlag.DEGENERATE_INFINITE:
                assert np.isinf(value)
            else:
                assert np.isfinite(value)
                assert value >= 1.0 - 1e-9


class TestSummarizeEVPI:
    def test_summary_keys(self, small_result):
        summary = summarize_evpi(small_result, report_points=[0.2])

        assert summary["n_iterations"] == 30
        assert summary["method"] == "bootstrap"
        assert summary["n_thresholds"] == 19
        assert summary["max_evpi"] == pytest.approx(float(np.max(small_result.evpi)))
        assert summary["integrated_evpi"] >= 0
        assert "evpi_at_0.2" in summary
        assert "relative_flag_at_0.2" in summary
        assert summary["relative_flag_at_0.2"] in {f.value for f in RelativeEVPIFlag}

    def test_report_point_uses_nearest_threshold(self, small_result):
        summary = summarize_evpi(small_result, report_points=[0.21])
        i = int(np.argmin(np.abs(small_result.thresholds - 0.21)))
        assert summary["evpi_at_0.21"] == pytest.approx(small_result.evpi[i])

    def test_relative_value_none_unless_normal(self, small_result):
        summary = summarize_evpi(small_result, report_points=[0.05, 0.5, 0.95])
        for pt in (0.05, 0.5, 0.95):
            if summary[f"relative_flag_at_{pt}"] != "NORMAL":
                assert summary[f"relative_evpi_at_{pt}"] is None

    def test_model_best_ranges(self, small_result):
        summary = summarize_evpi(small_result)
        for lo, hi in summary["model_best_ranges"]:
            assert lo <= hi
            mask = (small_result.thresholds >= lo) & (small_result.thresholds <= hi)
            assert np.all(small_result.inb_current[mask] > 0)
