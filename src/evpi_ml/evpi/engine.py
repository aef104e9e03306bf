"""
Monte Carlo engine for the expected value of perfect information.

For every iteration the oracle draws a probability vector p, read as the true
risk of every development row. At each threshold z three net benefits are
evaluated against p:

    NB_model  treat rows whose proposed-model prediction exceeds z
    NB_all    treat everyone
    NB_max    treat rows whose true risk exceeds z (optimal for this draw)

Their running means over iterations are the expected net benefit curves.
From them, once the simulation ends:

    EVPI        = ENB_max - max(0, ENB_model, ENB_all)
    INB_current = max(0, ENB_model, ENB_all) - max(0, ENB_all)
    INB_perfect = ENB_max - max(0, ENB_all)

Iterations are independent. They are grouped into chunks, each chunk folds
its draws into a NetBenefitAccumulator, and chunk accumulators are merged in
iteration order. Iteration i always uses the i-th child of one SeedSequence,
so a fixed seed reproduces the same draws for any n_jobs.
"""

import logging
from dataclasses import dataclass, field
from functools import reduce

import numpy as np
from joblib import Parallel, delayed, effective_n_jobs

from evpi_ml.evpi.grid import ThresholdGrid, as_threshold_grid
from evpi_ml.exceptions import InvalidInputError, RefitFailure
from evpi_ml.metrics.dca import threshold_odds
from evpi_ml.utils.random import iteration_rng, spawn_iteration_seeds

logger = logging.getLogger(__name__)

# Row order of the per-draw net benefit matrix
QUANTITIES = ("model", "all", "max")


def net_benefit_triple(
    proposed: np.ndarray,
    p: np.ndarray,
    thresholds: np.ndarray,
) -> np.ndarray:
    """
    NB_model, NB_all and NB_max for one draw across the threshold grid.

    The payoff of treating row i at threshold z is p_i - (1 - p_i) z / (1 - z),
    positive exactly when p_i > z. NB_max keeps every positive payoff, so per
    draw it dominates NB_model and NB_all elementwise before averaging.

    Args:
        proposed: Proposed model predictions, one per row
        p: Simulated true risks for this draw
        thresholds: Threshold grid

    Returns:
        Array of shape (3, n_thresholds), rows ordered as QUANTITIES
    """
    p = np.asarray(p, dtype=float)
    z = np.asarray(thresholds, dtype=float)
    odds = threshold_odds(z)

    payoff = p[:, None] - (1.0 - p)[:, None] * odds[None, :]
    treat_model = np.asarray(proposed, dtype=float)[:, None] > z[None, :]

    nb_model = np.where(treat_model, payoff, 0.0).mean(axis=0)
    nb_all = payoff.mean(axis=0)
    nb_max = np.maximum(payoff, 0.0).mean(axis=0)
    return np.vstack([nb_model, nb_all, nb_max])


@dataclass(eq=False)
class NetBenefitAccumulator:
    """
    Running mean and sum of squared deviations (Welford) per quantity and threshold.
    """

    n_thresholds: int
    count: int = 0
    mean: np.ndarray = field(default=None)
    m2: np.ndarray = field(default=None)

    def __post_init__(self):
        shape = (len(QUANTITIES), int(self.n_thresholds))
        if self.mean is None:
            self.mean = np.zeros(shape)
        if self.m2 is None:
            self.m2 = np.zeros(shape)

    def update(self, triple: np.ndarray) -> None:
        """Fold one draw's (3, T) net benefit matrix into the running moments."""
        self.count += 1
        delta = triple - self.mean
        self.mean += delta / self.count
        self.m2 += delta * (triple - self.mean)

    def _copy(self) -> "NetBenefitAccumulator":
        return NetBenefitAccumulator(
            self.n_thresholds, self.count, self.mean.copy(), self.m2.copy()
        )

    def merge(self, other: "NetBenefitAccumulator") -> "NetBenefitAccumulator":
        """Combine two accumulators (pairwise update weighted by counts)."""
        if other.count == 0:
            return self._copy()
        if self.count == 0:
            return other._copy()

        n = self.count + other.count
        delta = other.mean - self.mean
        mean = self.mean + delta * (other.count / n)
        m2 = self.m2 + other.m2 + delta**2 * (self.count * other.count / n)
        return NetBenefitAccumulator(self.n_thresholds, n, mean, m2)

    def standard_error(self) -> np.ndarray:
        """Monte Carlo standard error of each running mean (NaN with < 2 draws)."""
        if self.count < 2:
            return np.full_like(self.mean, np.nan)
        variance = self.m2 / (self.count - 1)
        return np.sqrt(np.maximum(variance, 0.0) / self.count)


@dataclass(frozen=True, eq=False)
class ExpectedNetBenefitCurves:
    """Monte Carlo expected net benefit curves, aligned with the threshold grid."""

    thresholds: np.ndarray
    enb_model: np.ndarray
    enb_all: np.ndarray
    enb_max: np.ndarray
    n_iterations: int
    mcse_model: np.ndarray | None = None
    mcse_all: np.ndarray | None = None
    mcse_max: np.ndarray | None = None

    @classmethod
    def from_accumulator(
        cls, grid: ThresholdGrid, acc: NetBenefitAccumulator
    ) -> "ExpectedNetBenefitCurves":
        se = acc.standard_error()
        return cls(
            thresholds=np.asarray(grid.values, dtype=float),
            enb_model=acc.mean[0].copy(),
            enb_all=acc.mean[1].copy(),
            enb_max=acc.mean[2].copy(),
            n_iterations=acc.count,
            mcse_model=se[0],
            mcse_all=se[1],
            mcse_max=se[2],
        )

    def best_default(self) -> np.ndarray:
        """max(0, ENB_all): the better of treat-none and treat-all."""
        return np.maximum(0.0, self.enb_all)

    def best_current(self) -> np.ndarray:
        """max(0, ENB_model, ENB_all): the best decision under current information."""
        return np.maximum(self.best_default(), self.enb_model)

    def _perfect(self) -> np.ndarray:
        # ENB_max >= max(0, ENB_model, ENB_all) holds per draw; the running
        # mean can still leave it a few ulps below that bound.
        return np.maximum(self.enb_max, self.best_current())

    def evpi(self) -> np.ndarray:
        return self._perfect() - self.best_current()

    def inb_current(self) -> np.ndarray:
        return self.best_current() - self.best_default()

    def inb_perfect(self) -> np.ndarray:
        return self._perfect() - self.best_default()


def _simulate_chunk(
    oracle,
    proposed: np.ndarray,
    thresholds: np.ndarray,
    seeds: list,
    start: int,
    n_total: int,
    log_every: int | None,
) -> NetBenefitAccumulator:
    """Run iterations [start, start + len(seeds)) and fold them into one accumulator."""
    acc = NetBenefitAccumulator(len(thresholds))
    for offset, seed_seq in enumerate(seeds):
        i = start + offset
        try:
            p = oracle.draw(iteration_rng(seed_seq))
        except RefitFailure as e:
            raise e.with_iteration(i) from e.last_error

        acc.update(net_benefit_triple(proposed, p, thresholds))

        if log_every and (i + 1) % log_every == 0:
            logger.info(f"  Iteration {i + 1:,}/{n_total:,}")
    return acc


class EVPISimulationEngine:
    """
    Orchestrates the Monte Carlo iterations and reduces them to expected curves.

    Args:
        seed: Base seed for per-iteration random streams (None: OS entropy)
        n_jobs: joblib worker count (1 runs in-process; -1 uses all cores)
        chunk_size: Iterations per worker task (default: spread evenly over
            4 tasks per worker)
        log_every: Log progress every N iterations (default: about 10% of the
            run; 0 disables). Only emitted for in-process runs.
    """

    def __init__(
        self,
        seed: int | None = None,
        n_jobs: int = 1,
        chunk_size: int | None = None,
        log_every: int | None = None,
    ):
        self.seed = seed
        self.n_jobs = n_jobs
        self.chunk_size = chunk_size
        self.log_every = log_every

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(proposed_model_predictions, dataset, threshold_grid, n_iterations, oracle):
        if isinstance(n_iterations, bool) or not isinstance(n_iterations, (int, np.integer)):
            raise InvalidInputError(f"n_iterations must be an integer, got {n_iterations!r}")
        if n_iterations < 1:
            raise InvalidInputError(f"n_iterations must be >= 1, got {n_iterations}")

        if dataset is None or len(dataset) == 0:
            raise InvalidInputError("Dataset is empty")

        proposed = np.asarray(proposed_model_predictions, dtype=float)
        if proposed.ndim != 1:
            raise InvalidInputError(
                f"Proposed model predictions must be one-dimensional, got shape {proposed.shape}"
            )
        if len(proposed) != len(dataset):
            raise InvalidInputError(
                f"Length mismatch: {len(proposed)} predictions for {len(dataset)} dataset rows"
            )
        if not np.all(np.isfinite(proposed)):
            raise InvalidInputError("Proposed model predictions contain non-finite values")
        if np.any((proposed < 0.0) | (proposed > 1.0)):
            raise InvalidInputError("Proposed model predictions must lie in [0, 1]")

        n_oracle = getattr(oracle, "n_rows", None)
        if n_oracle is not None and n_oracle != len(dataset):
            raise InvalidInputError(
                f"Oracle draws {n_oracle} rows but the dataset has {len(dataset)}"
            )

        grid = as_threshold_grid(threshold_grid)
        return proposed, grid

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def _chunks(self, n_iterations: int, n_workers: int) -> list[tuple[int, int]]:
        if n_workers <= 1:
            size = n_iterations
        elif self.chunk_size:
            size = int(self.chunk_size)
        else:
            size = int(np.ceil(n_iterations / (4 * n_workers)))
        size = max(1, size)
        return [(s, min(s + size, n_iterations)) for s in range(0, n_iterations, size)]

    def run(
        self,
        proposed_model_predictions,
        dataset,
        threshold_grid,
        n_iterations: int,
        oracle,
    ) -> ExpectedNetBenefitCurves:
        """
        Simulate and return the expected net benefit curves.

        Args:
            proposed_model_predictions: Proposed model predictions on ``dataset``
            dataset: Development dataset (only its row count is used here;
                the oracle holds its own reference)
            threshold_grid: ThresholdGrid, array of thresholds or grid size
            n_iterations: Number of Monte Carlo draws (>= 1)
            oracle: Object with draw(rng) -> probability vector

        Returns:
            ExpectedNetBenefitCurves

        Raises:
            InvalidInputError: Before any simulation work, on bad inputs
            RefitFailure: If an iteration exhausted its refit attempts
        """
        proposed, grid = self._validate(
            proposed_model_predictions, dataset, threshold_grid, n_iterations, oracle
        )
        z = np.asarray(grid.values, dtype=float)
        n_iterations = int(n_iterations)

        seeds = spawn_iteration_seeds(self.seed, n_iterations)
        n_workers = min(effective_n_jobs(self.n_jobs), n_iterations)
        chunks = self._chunks(n_iterations, n_workers)

        log_every = self.log_every
        if log_every is None:
            log_every = max(1, n_iterations // 10)

        method = getattr(oracle, "method", type(oracle).__name__)
        logger.info(
            f"Simulating {n_iterations:,} draws ({method}) over {len(grid)} thresholds "
            f"with {n_workers} worker(s)"
        )

        if n_workers <= 1:
            acc = _simulate_chunk(oracle, proposed, z, seeds, 0, n_iterations, log_every)
        else:
            partials = Parallel(n_jobs=n_workers)(
                delayed(_simulate_chunk)(
                    oracle, proposed, z, seeds[start:stop], start, n_iterations, None
                )
                for start, stop in chunks
            )
            acc = reduce(lambda a, b: a.merge(b), partials)

        logger.info(f"Simulation complete ({acc.count:,} draws)")
        return ExpectedNetBenefitCurves.from_accumulator(grid, acc)
