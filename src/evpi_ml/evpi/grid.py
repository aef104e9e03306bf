"""
Threshold grid over which all net benefit curves are evaluated.
"""

from dataclasses import dataclass
from typing import Iterable

import numpy as np

from evpi_ml.exceptions import InvalidInputError

DEFAULT_N_THRESHOLDS = 99


@dataclass(frozen=True, eq=False)
class ThresholdGrid:
    """
    Fixed, strictly increasing sequence of thresholds in the open interval (0, 1).

    Construct with ThresholdGrid.uniform(), ThresholdGrid.from_range() or
    ThresholdGrid.from_values(); all of them validate the grid.
    """

    values: np.ndarray

    def __post_init__(self):
        z = np.array(self.values, dtype=float).ravel()
        z.setflags(write=False)
        object.__setattr__(self, "values", z)

        if z.size == 0:
            raise InvalidInputError("Threshold grid is empty")
        if not np.all(np.isfinite(z)):
            raise InvalidInputError("Threshold grid contains non-finite values")
        bad = z[(z <= 0.0) | (z >= 1.0)]
        if bad.size:
            raise InvalidInputError(
                f"Threshold grid values must lie in (0, 1); got {bad[:5].tolist()}"
            )
        if z.size > 1 and not np.all(np.diff(z) > 0):
            raise InvalidInputError("Threshold grid must be strictly increasing")

    @classmethod
    def from_values(cls, values: Iterable[float]) -> "ThresholdGrid":
        return cls(np.asarray(list(values), dtype=float))

    @classmethod
    def uniform(cls, n: int = DEFAULT_N_THRESHOLDS) -> "ThresholdGrid":
        """
        Uniform partition of (0, 1) into n interior points: k / (n + 1), k = 1..n.

        n = 99 gives 0.01, 0.02, ..., 0.99.
        """
        n = int(n)
        if n < 1:
            raise InvalidInputError(f"Number of thresholds must be >= 1, got {n}")
        return cls(np.arange(1, n + 1) / (n + 1))

    @classmethod
    def from_range(
        cls,
        min_thr: float = 0.01,
        max_thr: float = 0.99,
        step: float = 0.01,
    ) -> "ThresholdGrid":
        """
        Evenly spaced thresholds from min_thr to max_thr (inclusive).

        Args:
            min_thr: Minimum threshold (clamped to 0.0001)
            max_thr: Maximum threshold (clamped to 0.999)
            step: Step size between thresholds (minimum 0.0001)
        """
        min_thr = max(1e-4, float(min_thr))
        max_thr = min(0.999, float(max_thr))
        step = max(1e-4, float(step))

        if min_thr >= max_thr:
            return cls(np.array([min_thr]))

        n = int(np.floor((max_thr - min_thr) / step + 1e-9)) + 1
        return cls(np.linspace(min_thr, min_thr + (n - 1) * step, n))

    def __len__(self) -> int:
        return int(self.values.size)

    def __iter__(self):
        return iter(self.values.tolist())

    def __getitem__(self, idx):
        return self.values[idx]

    def nearest_index(self, threshold: float) -> int:
        """Index of the grid point closest to ``threshold``."""
        return int(np.argmin(np.abs(self.values - float(threshold))))


def as_threshold_grid(thresholds) -> ThresholdGrid:
    """
    Coerce an int (uniform grid size), array-like or ThresholdGrid to a ThresholdGrid.
    """
    if isinstance(thresholds, ThresholdGrid):
        return thresholds
    if thresholds is None:
        return ThresholdGrid.uniform()
    if isinstance(thresholds, (int, np.integer)) and not isinstance(thresholds, bool):
        return ThresholdGrid.uniform(int(thresholds))
    return ThresholdGrid.from_values(np.atleast_1d(np.asarray(thresholds, dtype=float)))


def grid_from_config(cfg) -> ThresholdGrid:
    """
    Build the grid described by a ThresholdConfig.

    Priority: explicit ``values``; then ``step`` from threshold_min to
    threshold_max; otherwise ``n_thresholds`` evenly spaced points from
    threshold_min to threshold_max.
    """
    if cfg.values:
        return ThresholdGrid.from_values(sorted(set(cfg.values)))
    if cfg.step:
        return ThresholdGrid.from_range(cfg.threshold_min, cfg.threshold_max, cfg.step)
    n = int(cfg.n_thresholds)
    if n == 1:
        return ThresholdGrid(np.array([cfg.threshold_min]))
    return ThresholdGrid(np.linspace(cfg.threshold_min, cfg.threshold_max, n))
