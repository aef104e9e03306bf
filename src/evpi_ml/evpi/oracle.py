"""
Resampling oracles: draws from the sampling distribution of the "true" model.

Each oracle turns one iteration-local random Generator into one probability
vector aligned with the rows of the development dataset. The vector plays the
role of the correct risk for every row under that draw.

Strategies:
    bootstrap           refit on n rows drawn with replacement
    bayesian_bootstrap  refit with Dirichlet(1, ..., 1) row weights
    likelihood          multivariate normal draw around the MLE coefficients

A failed refit is retried with fresh random numbers up to ``max_attempts``
times; after that the draw raises RefitFailure. Draws are never skipped, since
dropping the hard resamples would bias the Monte Carlo mean.
"""

import logging
from abc import ABC, abstractmethod

import numpy as np
import pandas as pd

from evpi_ml.data.io import validate_dataset
from evpi_ml.exceptions import InvalidInputError, ModelFitError, RefitFailure

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


class ResamplingModelOracle(ABC):
    """
    Base class for "true model" samplers.

    Args:
        data: Development dataset (outcome coerced to 0/1 on construction)
        outcome: Outcome column name
        fitter: Model-fitting service with fit(data, outcome, sample_weight=None).
            If it also has prepare(data, outcome), that is called once here with
            the full dataset.
        max_attempts: Refit attempts per draw before RefitFailure
    """

    method: str = ""

    def __init__(
        self,
        data: pd.DataFrame,
        outcome: str,
        fitter,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        if int(max_attempts) < 1:
            raise InvalidInputError(f"max_attempts must be >= 1, got {max_attempts}")

        self.data = validate_dataset(data, outcome)
        self.outcome = outcome
        self.fitter = fitter
        self.max_attempts = int(max_attempts)

        prepare = getattr(fitter, "prepare", None)
        if callable(prepare):
            prepare(self.data, outcome)

    @property
    def n_rows(self) -> int:
        return len(self.data)

    @abstractmethod
    def _draw_once(self, rng: np.random.Generator) -> np.ndarray:
        """One attempt at a draw; raises ModelFitError on a failed refit."""

    def _log_failed_attempt(self, attempt: int, error: Exception):
        logger.debug(f"{self.method} draw attempt {attempt}/{self.max_attempts} failed: {error}")

    def draw(self, rng: np.random.Generator) -> np.ndarray:
        """
        Draw one simulated true-risk vector for the development rows.

        Args:
            rng: Iteration-local random Generator

        Returns:
            Probability vector aligned with ``self.data``

        Raises:
            RefitFailure: If every attempt failed
        """
        last_error: ModelFitError | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                p = np.asarray(self._draw_once(rng), dtype=float)
            except ModelFitError as e:
                last_error = e
                self._log_failed_attempt(attempt, e)
                continue

            if p.shape != (self.n_rows,) or not np.all(np.isfinite(p)):
                last_error = ModelFitError(
                    f"Draw returned an invalid probability vector (shape {p.shape})"
                )
                self._log_failed_attempt(attempt, last_error)
                continue

            return np.clip(p, 0.0, 1.0)

        raise RefitFailure(self.max_attempts, last_error) from last_error


class CaseResamplingOracle(ResamplingModelOracle):
    """Ordinary bootstrap: resample n rows with replacement, refit, predict on all rows."""

    method = "bootstrap"

    def _draw_once(self, rng: np.random.Generator) -> np.ndarray:
        n = self.n_rows
        idx = rng.integers(0, n, size=n)
        sample = self.data.iloc[idx]
        model = self.fitter.fit(sample, self.outcome)
        return model.predict_probability(self.data)


class BayesianBootstrapOracle(ResamplingModelOracle):
    """Bayesian bootstrap: Dirichlet(1, ..., 1) weights scaled to sum to n."""

    method = "bayesian_bootstrap"

    def _draw_once(self, rng: np.random.Generator) -> np.ndarray:
        n = self.n_rows
        weights = rng.dirichlet(np.ones(n)) * n
        model = self.fitter.fit(self.data, self.outcome, sample_weight=weights)
        return model.predict_probability(self.data)


class LikelihoodOracle(ResamplingModelOracle):
    """
    Parametric draws from the asymptotic sampling distribution of the MLE.

    The model is fitted once on the full data; each draw samples coefficients
    from N(beta_hat, I(beta_hat)^-1) and predicts on the development rows.
    """

    method = "likelihood"

    def __init__(
        self,
        data: pd.DataFrame,
        outcome: str,
        fitter,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        super().__init__(data, outcome, fitter, max_attempts=max_attempts)

        try:
            model = self.fitter.fit(self.data, self.outcome)
        except ModelFitError as e:
            raise InvalidInputError(f"Cannot fit model for likelihood-based sampling: {e}") from e

        for attr in ("coefficients", "covariance", "predict_from_coefficients"):
            if not hasattr(model, attr):
                raise InvalidInputError(
                    f"Likelihood-based sampling needs a fitted model exposing '{attr}'; "
                    f"{type(model).__name__} does not"
                )

        self.model = model
        self.mean = np.asarray(model.coefficients, dtype=float)
        try:
            cov = np.asarray(model.covariance(self.data), dtype=float)
            self._chol = np.linalg.cholesky(cov)
        except (ModelFitError, np.linalg.LinAlgError) as e:
            raise InvalidInputError(
                f"Coefficient covariance is not positive definite: {e}"
            ) from e

    def _draw_once(self, rng: np.random.Generator) -> np.ndarray:
        beta = self.mean + self._chol @ rng.standard_normal(self.mean.size)
        return self.model.predict_from_coefficients(beta, self.data)


ORACLE_METHODS: dict[str, type[ResamplingModelOracle]] = {
    "bootstrap": CaseResamplingOracle,
    "case_resampling": CaseResamplingOracle,
    "bayesian_bootstrap": BayesianBootstrapOracle,
    "likelihood": LikelihoodOracle,
}


def build_oracle(
    method: str,
    data: pd.DataFrame,
    outcome: str,
    fitter,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> ResamplingModelOracle:
    """
    Instantiate the oracle registered under ``method``.

    Raises:
        InvalidInputError: If the method name is unknown
    """
    key = (method or "").strip().lower()
    if key not in ORACLE_METHODS:
        raise InvalidInputError(
            f"Unknown sampling method '{method}'. Valid: {sorted(ORACLE_METHODS)}"
        )
    return ORACLE_METHODS[key](data, outcome, fitter, max_attempts=max_attempts)
