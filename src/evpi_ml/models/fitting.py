"""
Model-fitting service used by the EVPI simulation.

The simulation only needs an object with

    fit(data, outcome, sample_weight=None) -> fitted model
    fitted_model.predict_probability(data) -> np.ndarray

LogisticModelFitter is the reference implementation. Its design matrix
(scaling of numeric predictors, one-hot levels of categorical predictors) is
learned once from the full development dataset via prepare(), so every
bootstrap refit lives in the same parameter space and can always predict on
the original rows, even when a resample misses a category level.
"""

import logging
import warnings

import numpy as np
import pandas as pd
from scipy.special import expit
from sklearn.compose import ColumnTransformer
from sklearn.exceptions import ConvergenceWarning
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from evpi_ml.exceptions import InvalidInputError, ModelFitError
from evpi_ml.models.registry import build_logistic_regression

logger = logging.getLogger(__name__)


def infer_categorical(data: pd.DataFrame, predictors: list[str]) -> list[str]:
    """Predictors whose dtype is object, category, string or bool."""
    cats = []
    for col in predictors:
        dtype = data[col].dtype
        if (
            pd.api.types.is_object_dtype(dtype)
            or isinstance(dtype, pd.CategoricalDtype)
            or pd.api.types.is_string_dtype(dtype)
            or pd.api.types.is_bool_dtype(dtype)
        ):
            cats.append(col)
    return cats


class DesignMatrixBuilder:
    """Turn a predictor table into a dense float design matrix (no intercept)."""

    def __init__(self, predictors: list[str], categorical: list[str] | None = None):
        self.predictors = list(predictors)
        self.categorical = [c for c in (categorical or []) if c in self.predictors]
        self.numeric = [c for c in self.predictors if c not in self.categorical]
        self._transformer: ColumnTransformer | None = None

    @property
    def is_fitted(self) -> bool:
        return self._transformer is not None

    def _check_columns(self, data: pd.DataFrame):
        missing = [c for c in self.predictors if c not in data.columns]
        if missing:
            raise InvalidInputError(f"Predictor columns not found in dataset: {missing}")
        n_missing = int(data[self.predictors].isna().any(axis=1).sum())
        if n_missing:
            raise InvalidInputError(
                f"{n_missing} rows have missing predictor values; "
                "drop incomplete rows before fitting"
            )

    def fit(self, data: pd.DataFrame) -> "DesignMatrixBuilder":
        self._check_columns(data)

        transformers = []
        if self.numeric:
            transformers.append(("num", StandardScaler(), self.numeric))
        if self.categorical:
            transformers.append(
                (
                    "cat",
                    OneHotEncoder(drop="first", sparse_output=False, handle_unknown="error"),
                    self.categorical,
                )
            )
        if not transformers:
            raise InvalidInputError("At least one predictor is required")

        self._transformer = ColumnTransformer(transformers, sparse_threshold=0.0)
        self._transformer.fit(data[self.predictors])
        return self

    def transform(self, data: pd.DataFrame) -> np.ndarray:
        if self._transformer is None:
            raise RuntimeError("DesignMatrixBuilder must be fitted before transform()")
        self._check_columns(data)
        return np.asarray(self._transformer.transform(data[self.predictors]), dtype=float)

    @property
    def feature_names(self) -> list[str]:
        if self._transformer is None:
            return []
        return list(self._transformer.get_feature_names_out())


class FittedLogisticModel:
    """A fitted logistic regression bound to its design matrix builder."""

    def __init__(self, estimator, design: DesignMatrixBuilder):
        self.estimator = estimator
        self.design = design

    def predict_probability(self, data: pd.DataFrame) -> np.ndarray:
        X = self.design.transform(data)
        return self.estimator.predict_proba(X)[:, 1]

    @property
    def coefficients(self) -> np.ndarray:
        """Intercept followed by slopes, in design-matrix space."""
        return np.concatenate(
            [np.atleast_1d(self.estimator.intercept_), self.estimator.coef_.ravel()]
        )

    def _with_intercept(self, data: pd.DataFrame) -> np.ndarray:
        X = self.design.transform(data)
        return np.column_stack([np.ones(len(X)), X])

    def predict_from_coefficients(self, coefficients: np.ndarray, data: pd.DataFrame) -> np.ndarray:
        """Risk predictions on ``data`` using an arbitrary coefficient vector."""
        return expit(self._with_intercept(data) @ np.asarray(coefficients, dtype=float))

    def covariance(self, data: pd.DataFrame) -> np.ndarray:
        """
        Asymptotic covariance of the coefficients.

        Inverse of the observed Fisher information X' W X with
        W = diag(p (1 - p)) evaluated on ``data`` at the fitted coefficients.

        Raises:
            ModelFitError: If the information matrix is singular or not finite
        """
        X1 = self._with_intercept(data)
        p = expit(X1 @ self.coefficients)
        w = p * (1.0 - p)
        info = X1.T @ (X1 * w[:, None])

        if not np.all(np.isfinite(info)):
            raise ModelFitError("Fisher information is not finite")
        try:
            cov = np.linalg.inv(info)
        except np.linalg.LinAlgError as e:
            raise ModelFitError(f"Fisher information is singular: {e}") from e

        return (cov + cov.T) / 2.0


class LogisticModelFitter:
    """
    Fit logistic regression models on (re)sampled development data.

    Args:
        predictors: Predictor columns (None: every column except the outcome)
        categorical: Categorical predictors (None: inferred from dtypes)
        C: Inverse L2 regularization strength (None: unpenalized)
        solver: sklearn solver
        max_iter: Maximum solver iterations
        tol: Solver tolerance
        strict_convergence: Treat sklearn ConvergenceWarning as a failed fit
    """

    def __init__(
        self,
        predictors: list[str] | None = None,
        categorical: list[str] | None = None,
        C: float | None = None,
        solver: str = "lbfgs",
        max_iter: int = 1000,
        tol: float = 1e-6,
        strict_convergence: bool = True,
    ):
        self.predictors = list(predictors) if predictors is not None else None
        self.categorical = list(categorical) if categorical is not None else None
        self.C = C
        self.solver = solver
        self.max_iter = max_iter
        self.tol = tol
        self.strict_convergence = strict_convergence
        self.design: DesignMatrixBuilder | None = None

    def prepare(self, data: pd.DataFrame, outcome: str) -> "LogisticModelFitter":
        """Learn the design matrix from the full development dataset."""
        predictors = self.predictors
        if predictors is None:
            predictors = [c for c in data.columns if c != outcome]
        categorical = self.categorical
        if categorical is None:
            categorical = infer_categorical(data, predictors)

        self.design = DesignMatrixBuilder(predictors, categorical).fit(data)
        logger.debug(
            f"Design matrix: {len(self.design.feature_names)} columns "
            f"from {len(predictors)} predictors ({len(categorical)} categorical)"
        )
        return self

    def fit(
        self,
        data: pd.DataFrame,
        outcome: str,
        sample_weight: np.ndarray | None = None,
    ) -> FittedLogisticModel:
        """
        Fit one model.

        Raises:
            ModelFitError: Single-class outcome, solver failure, non-finite
                coefficients or (with strict_convergence) non-convergence
        """
        if self.design is None:
            self.prepare(data, outcome)

        y = data[outcome].to_numpy()
        if sample_weight is not None:
            present = np.unique(y[np.asarray(sample_weight) > 0])
        else:
            present = np.unique(y)
        if len(present) < 2:
            raise ModelFitError(f"Outcome has a single class ({present.tolist()}) in sample")

        X = self.design.transform(data)
        estimator = build_logistic_regression(
            C=self.C, solver=self.solver, max_iter=self.max_iter, tol=self.tol
        )

        with warnings.catch_warnings():
            if self.strict_convergence:
                warnings.simplefilter("error", ConvergenceWarning)
            try:
                estimator.fit(X, y, sample_weight=sample_weight)
            except ConvergenceWarning as e:
                raise ModelFitError(f"Logistic regression did not converge: {e}") from e
            except (ValueError, FloatingPointError, np.linalg.LinAlgError) as e:
                raise ModelFitError(f"Logistic regression fit failed: {e}") from e

        model = FittedLogisticModel(estimator, self.design)
        if not np.all(np.isfinite(model.coefficients)):
            raise ModelFitError("Logistic regression produced non-finite coefficients")
        return model
