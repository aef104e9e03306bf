"""
Tests for the logistic model-fitting service.
"""

import numpy as np
import pandas as pd
import pytest
from evpi_ml.exceptions import InvalidInputError, ModelFitError
from evpi_ml.models.fitting import (
    DesignMatrixBuilder,
    LogisticModelFitter,
    infer_categorical,
)
from evpi_ml.models.registry import build_logistic_regression
from sklearn.linear_model import LogisticRegression


class TestRegistry:
    def test_builds_logistic_regression(self):
        est = build_logistic_regression(max_iter=200)
        assert isinstance(est, LogisticRegression)
        assert est.max_iter == 200

    def test_penalized(self):
        est = build_logistic_regression(C=0.5)
        assert est.C == 0.5


class TestDesignMatrix:
    def test_infer_categorical(self):
        df = pd.DataFrame({"a": [1.0, 2.0], "b": ["x", "y"], "c": [True, False]})
        assert infer_categorical(df, ["a", "b", "c"]) == ["b", "c"]

    def test_one_hot_drops_first_level(self):
        df = pd.DataFrame({"x": [1.0, 2.0, 3.0], "g": ["a", "b", "c"]})
        design = DesignMatrixBuilder(["x", "g"], ["g"]).fit(df)
        X = design.transform(df)
        assert X.shape == (3, 3)

    def test_unseen_rows_keep_full_width(self):
        df = pd.DataFrame({"x": [1.0, 2.0, 3.0], "g": ["a", "b", "c"]})
        design = DesignMatrixBuilder(["x", "g"], ["g"]).fit(df)
        X = design.transform(df.iloc[[0, 0]])
        assert X.shape == (2, 3)

    def test_missing_predictor_values(self):
        df = pd.DataFrame({"x": [1.0, np.nan]})
        with pytest.raises(InvalidInputError, match="missing predictor values"):
            DesignMatrixBuilder(["x"]).fit(df)

    def test_missing_columns(self):
        df = pd.DataFrame({"x": [1.0, 2.0]})
        with pytest.raises(InvalidInputError, match="not found"):
            DesignMatrixBuilder(["x", "z"]).fit(df)

    def test_transform_before_fit(self):
        with pytest.raises(RuntimeError):
            DesignMatrixBuilder(["x"]).transform(pd.DataFrame({"x": [1.0]}))


class TestLogisticModelFitter:
    def test_fit_and_predict(self, birthweight_df, predictors):
        model = LogisticModelFitter(predictors=predictors).fit(birthweight_df, "low")
        p = model.predict_probability(birthweight_df)
        assert p.shape == (len(birthweight_df),)
        assert np.all((p > 0) & (p < 1))
        # MLE reproduces the observed prevalence on the training data
        assert p.mean() == pytest.approx(birthweight_df["low"].mean(), abs=1e-3)

    def test_coefficients_intercept_first(self, birthweight_df, predictors):
        model = LogisticModelFitter(predictors=predictors).fit(birthweight_df, "low")
        assert model.coefficients.shape == (len(predictors) + 1,)
        np.testing.assert_allclose(
            model.predict_from_coefficients(model.coefficients, birthweight_df),
            model.predict_probability(birthweight_df),
            atol=1e-10,
        )

    def test_covariance_positive_definite(self, birthweight_df, predictors):
        model = LogisticModelFitter(predictors=predictors).fit(birthweight_df, "low")
        cov = model.covariance(birthweight_df)
        assert cov.shape == (4, 4)
        np.testing.assert_allclose(cov, cov.T)
        assert np.all(np.linalg.eigvalsh(cov) > 0)

    def test_default_predictors_are_all_other_columns(self, birthweight_df):
        fitter = LogisticModelFitter().prepare(birthweight_df, "low")
        assert fitter.design.predictors == ["age", "lwt", "smoke"]

    def test_single_class_sample(self, birthweight_df, predictors):
        fitter = LogisticModelFitter(predictors=predictors).prepare(birthweight_df, "low")
        sample = birthweight_df[birthweight_df["low"] == 0]
        with pytest.raises(ModelFitError, match="single class"):
            fitter.fit(sample, "low")

    def test_single_class_after_weighting(self, birthweight_df, predictors):
        fitter = LogisticModelFitter(predictors=predictors)
        weights = np.where(birthweight_df["low"] == 1, 0.0, 1.0)
        with pytest.raises(ModelFitError, match="single class"):
            fitter.fit(birthweight_df, "low", sample_weight=weights)

    def test_non_convergence_is_fit_error(self, birthweight_df, predictors):
        fitter = LogisticModelFitter(predictors=predictors, max_iter=1)
        with pytest.raises(ModelFitError, match="did not converge"):
            fitter.fit(birthweight_df, "low")

    def test_lenient_convergence(self, birthweight_df, predictors):
        fitter = LogisticModelFitter(predictors=predictors, max_iter=1, strict_convergence=False)
        with pytest.warns(Warning):
            model = fitter.fit(birthweight_df, "low")
        assert np.all(np.isfinite(model.coefficients))

    def test_sample_weights_change_fit(self, birthweight_df, predictors):
        fitter = LogisticModelFitter(predictors=predictors)
        rng = np.random.default_rng(0)
        w = rng.dirichlet(np.ones(len(birthweight_df))) * len(birthweight_df)
        a = fitter.fit(birthweight_df, "low").coefficients
        b = fitter.fit(birthweight_df, "low", sample_weight=w).coefficients
        assert not np.allclose(a, b)
