"""
Single entry point: dataset + proposed model -> EVPIResult.
"""

import logging

import numpy as np
import pandas as pd

from evpi_ml.data.io import validate_dataset
from evpi_ml.evpi.engine import EVPISimulationEngine
from evpi_ml.evpi.grid import DEFAULT_N_THRESHOLDS, as_threshold_grid
from evpi_ml.evpi.oracle import DEFAULT_MAX_ATTEMPTS, build_oracle
from evpi_ml.evpi.relative import DEFAULT_CEILING
from evpi_ml.evpi.results import EVPIResult
from evpi_ml.exceptions import InvalidInputError, ModelFitError
from evpi_ml.models.fitting import LogisticModelFitter

logger = logging.getLogger(__name__)


def compute_evpi(
    data: pd.DataFrame,
    outcome: str,
    predictors: list[str] | None = None,
    categorical: list[str] | None = None,
    proposed_predictions=None,
    n_sim: int = 1000,
    thresholds=DEFAULT_N_THRESHOLDS,
    method: str = "bootstrap",
    seed: int | None = None,
    n_jobs: int = 1,
    fitter=None,
    max_refit_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ceiling: float = DEFAULT_CEILING,
) -> EVPIResult:
    """
    Expected value of perfect information for a risk prediction model.

    Args:
        data: Development dataset
        outcome: Binary outcome column
        predictors: Predictor columns for the default logistic fitter
            (None: all other columns). Ignored when ``fitter`` is given.
        categorical: Categorical predictors for the default fitter
            (None: inferred from dtypes)
        proposed_predictions: Proposed model's predictions on ``data``.
            None fits the proposed model on ``data`` with ``fitter``.
        n_sim: Number of Monte Carlo draws
        thresholds: Grid size (int), explicit thresholds or a ThresholdGrid
        method: "bootstrap" (alias "case_resampling"), "bayesian_bootstrap"
            or "likelihood"
        seed: Base random seed
        n_jobs: joblib worker count
        fitter: Model-fitting service (default: unpenalized LogisticModelFitter)
        max_refit_attempts: Refit attempts per draw before the run aborts
        ceiling: Display ceiling for the capped relative EVPI series

    Returns:
        EVPIResult

    Raises:
        InvalidInputError: Any input precondition violated (no work done)
        RefitFailure: A draw exhausted its refit attempts (run aborted)

    Example:
        >>> result = compute_evpi(df, "low", ["age", "lwt", "smoke"], n_sim=1000, seed=1)
        >>> result.to_frame()[["threshold", "evpi"]]
    """
    data = validate_dataset(data, outcome, predictors if fitter is None else None)

    # Fail fast on cheap checks before fitting anything
    grid = as_threshold_grid(thresholds)
    if isinstance(n_sim, bool) or not isinstance(n_sim, (int, np.integer)) or n_sim < 1:
        raise InvalidInputError(f"n_sim must be an integer >= 1, got {n_sim!r}")

    if fitter is None:
        fitter = LogisticModelFitter(predictors=predictors, categorical=categorical)

    oracle = build_oracle(method, data, outcome, fitter, max_attempts=max_refit_attempts)

    if proposed_predictions is None:
        try:
            proposed_model = fitter.fit(data, outcome)
        except ModelFitError as e:
            raise InvalidInputError(f"Cannot fit the proposed model: {e}") from e
        proposed_predictions = proposed_model.predict_probability(data)
        logger.info("Fitted proposed model on the full development data")

    engine = EVPISimulationEngine(seed=seed, n_jobs=n_jobs)
    curves = engine.run(
        proposed_model_predictions=proposed_predictions,
        dataset=data,
        threshold_grid=grid,
        n_iterations=n_sim,
        oracle=oracle,
    )
    return EVPIResult.from_curves(curves, method=oracle.method, seed=seed, ceiling=ceiling)
