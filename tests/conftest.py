"""
Shared pytest fixtures for evpi-ml tests.
"""

import numpy as np
import pandas as pd
import pytest


def make_birthweight_like(n: int = 189, seed: int = 2024) -> pd.DataFrame:
    """
    Synthetic low-birthweight style dataset.

    Columns: age (years), lwt (mother's weight, lb), smoke (0/1), low (outcome).
    The outcome follows a logistic model so that fits converge reliably.
    """
    rng = np.random.default_rng(seed)
    age = rng.normal(23.0, 5.3, size=n).round()
    lwt = rng.normal(130.0, 30.0, size=n).round()
    smoke = rng.binomial(1, 0.4, size=n)

    lin = -0.8 - 0.04 * (age - 23.0) - 0.015 * (lwt - 130.0) + 0.7 * smoke
    p = 1.0 / (1.0 + np.exp(-lin))
    low = rng.binomial(1, p)

    # Guarantee both classes whatever the seed
    low[0], low[1] = 0, 1

    return pd.DataFrame({"age": age, "lwt": lwt, "smoke": smoke, "low": low})


@pytest.fixture
def birthweight_df():
    """189-row development dataset with three predictors."""
    return make_birthweight_like()


@pytest.fixture
def predictors():
    return ["age", "lwt", "smoke"]


@pytest.fixture
def birthweight_csv(tmp_path, birthweight_df):
    """The development dataset written to a CSV file."""
    path = tmp_path / "birthweight.csv"
    birthweight_df.to_csv(path, index=False)
    return path


class ConstantOracle:
    """Oracle returning fixed probability vectors (no model fitting)."""

    method = "constant"

    def __init__(self, p):
        self.p = np.asarray(p, dtype=float)
        self.n_rows = len(self.p)

    def draw(self, rng):
        return self.p


class NoisyOracle:
    """Oracle returning a base vector plus iteration-local noise, clipped to [0, 1]."""

    method = "noisy"

    def __init__(self, base, scale: float = 0.1):
        self.base = np.asarray(base, dtype=float)
        self.scale = scale
        self.n_rows = len(self.base)

    def draw(self, rng):
        return np.clip(self.base + rng.normal(0.0, self.scale, size=self.n_rows), 0.0, 1.0)
