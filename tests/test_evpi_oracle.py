"""
Tests for the resampling oracles.

Validates:
- Each sampling method returns a valid probability vector per draw
- Same Generator state gives the same draw
- Failed refits are retried and eventually raise RefitFailure
- Unknown method names are rejected
"""

import numpy as np
import pytest
from evpi_ml.evpi.oracle import (
    BayesianBootstrapOracle,
    CaseResamplingOracle,
    LikelihoodOracle,
    build_oracle,
)
from evpi_ml.exceptions import InvalidInputError, ModelFitError, RefitFailure
from evpi_ml.models.fitting import LogisticModelFitter

# =============================================================================
# Stub fitters
# =============================================================================


class _ConstantModel:
    def __init__(self, value):
        self.value = value

    def predict_probability(self, data):
        return np.full(len(data), self.value)


class FlakyFitter:
    """Fails the first ``n_failures`` fits, then succeeds."""

    def __init__(self, n_failures):
        self.n_failures = n_failures
        self.calls = 0

    def fit(self, data, outcome, sample_weight=None):
        self.calls += 1
        if self.calls <= self.n_failures:
            raise ModelFitError(f"failure #{self.calls}")
        return _ConstantModel(0.3)


class BadVectorFitter:
    """Returns a model whose predictions contain NaN."""

    def __init__(self):
        self.calls = 0

    def fit(self, data, outcome, sample_weight=None):
        self.calls += 1
        model = _ConstantModel(0.3)
        model.predict_probability = lambda d: np.full(len(d), np.nan)
        return model


# =============================================================================
# Test: Sampling Methods
# =============================================================================


@pytest.mark.parametrize("method", ["bootstrap", "bayesian_bootstrap", "likelihood"])
def test_draw_is_probability_vector(birthweight_df, predictors, method):
    fitter = LogisticModelFitter(predictors=predictors)
    oracle = build_oracle(method, birthweight_df, "low", fitter)

    p = oracle.draw(np.random.default_rng(0))

    assert p.shape == (len(birthweight_df),)
    assert np.all(np.isfinite(p))
    assert np.all((p >= 0) & (p <= 1))


@pytest.mark.parametrize("method", ["bootstrap", "bayesian_bootstrap", "likelihood"])
def test_draw_reproducible_from_generator(birthweight_df, predictors, method):
    fitter = LogisticModelFitter(predictors=predictors)
    oracle = build_oracle(method, birthweight_df, "low", fitter)

    p1 = oracle.draw(np.random.default_rng(123))
    p2 = oracle.draw(np.random.default_rng(123))
    np.testing.assert_allclose(p1, p2)


def test_draws_vary_across_generators(birthweight_df, predictors):
    fitter = LogisticModelFitter(predictors=predictors)
    oracle = CaseResamplingOracle(birthweight_df, "low", fitter)

    p1 = oracle.draw(np.random.default_rng(1))
    p2 = oracle.draw(np.random.default_rng(2))
    assert not np.allclose(p1, p2)


def test_build_oracle_aliases(birthweight_df, predictors):
    fitter = LogisticModelFitter(predictors=predictors)
    assert isinstance(
        build_oracle("case_resampling", birthweight_df, "low", fitter), CaseResamplingOracle
    )
    assert isinstance(
        build_oracle("Bayesian_Bootstrap", birthweight_df, "low", fitter),
        BayesianBootstrapOracle,
    )
    oracle = build_oracle("likelihood", birthweight_df, "low", fitter)
    assert isinstance(oracle, LikelihoodOracle)
    assert oracle.method == "likelihood"


def test_build_oracle_unknown_method(birthweight_df):
    with pytest.raises(InvalidInputError, match="Unknown sampling method"):
        build_oracle("jackknife", birthweight_df, "low", FlakyFitter(0))


def test_likelihood_draws_center_on_mle(birthweight_df, predictors):
    """Averaged coefficient draws recover the fitted model's predictions."""
    fitter = LogisticModelFitter(predictors=predictors)
    oracle = LikelihoodOracle(birthweight_df, "low", fitter)
    fitted = oracle.model.predict_probability(oracle.data)

    rng = np.random.default_rng(5)
    mean_draw = np.mean([oracle.draw(rng) for _ in range(400)], axis=0)
    assert np.mean(np.abs(mean_draw - fitted)) < 0.02


# =============================================================================
# Test: Refit Retries
# =============================================================================


def test_retry_then_success(birthweight_df):
    fitter = FlakyFitter(n_failures=2)
    oracle = CaseResamplingOracle(birthweight_df, "low", fitter, max_attempts=3)

    p = oracle.draw(np.random.default_rng(0))

    assert fitter.calls == 3
    np.testing.assert_allclose(p, 0.3)


def test_retry_exhausted_raises_refit_failure(birthweight_df):
    fitter = FlakyFitter(n_failures=100)
    oracle = BayesianBootstrapOracle(birthweight_df, "low", fitter, max_attempts=4)

    with pytest.raises(RefitFailure) as exc_info:
        oracle.draw(np.random.default_rng(0))

    err = exc_info.value
    assert fitter.calls == 4
    assert err.attempts == 4
    assert isinstance(err.last_error, ModelFitError)
    assert err.__cause__ is err.last_error
    assert "failed 4 time(s)" in str(err)


def test_invalid_vector_counts_as_failure(birthweight_df):
    fitter = BadVectorFitter()
    oracle = CaseResamplingOracle(birthweight_df, "low", fitter, max_attempts=2)

    with pytest.raises(RefitFailure):
        oracle.draw(np.random.default_rng(0))
    assert fitter.calls == 2


def test_max_attempts_must_be_positive(birthweight_df):
    with pytest.raises(InvalidInputError):
        CaseResamplingOracle(birthweight_df, "low", FlakyFitter(0), max_attempts=0)


def test_oracle_rejects_single_class_outcome(birthweight_df):
    df = birthweight_df.assign(low=0)
    with pytest.raises(InvalidInputError, match="distinct"):
        CaseResamplingOracle(df, "low", FlakyFitter(0))
