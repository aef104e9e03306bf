"""
Random seed management for reproducibility.

The simulation engine never touches global RNG state: every Monte Carlo
iteration receives its own numpy Generator spawned from one SeedSequence, so a
fixed seed maps deterministically to per-iteration streams regardless of how
iterations are distributed across workers. The optional SEED_GLOBAL
environment variable supplies that seed when the run configuration leaves
simulation.seed unset.
"""

import logging
import os

import numpy as np

logger = logging.getLogger(__name__)


def read_seed_global() -> int | None:
    """
    Read the SEED_GLOBAL environment variable.

    Returns:
        The seed value, or None if SEED_GLOBAL was not set or invalid.

    Examples:
        >>> import os
        >>> os.environ["SEED_GLOBAL"] = "42"
        >>> read_seed_global()
        42
        >>> del os.environ["SEED_GLOBAL"]
    """
    seed_str = os.environ.get("SEED_GLOBAL")
    if seed_str is None:
        return None

    seed_str = seed_str.strip()
    if not seed_str:
        return None

    try:
        seed = int(seed_str)
    except ValueError:
        logger.warning(
            "SEED_GLOBAL environment variable has non-integer value '%s'; ignoring.",
            seed_str,
        )
        return None

    if seed < 0 or seed > 2**32 - 1:
        logger.warning(
            "SEED_GLOBAL=%d out of valid range [0, 2^32-1]; ignoring.",
            seed,
        )
        return None

    return seed


def spawn_iteration_seeds(seed: int | None, n_iterations: int) -> list[np.random.SeedSequence]:
    """
    Derive one independent SeedSequence per Monte Carlo iteration.

    Args:
        seed: Base seed (None draws fresh OS entropy)
        n_iterations: Number of iterations

    Returns:
        List of child SeedSequences, index-aligned with iterations
    """
    return np.random.SeedSequence(seed).spawn(int(n_iterations))


def iteration_rng(seed_seq: np.random.SeedSequence) -> np.random.Generator:
    """Build the Generator used by one iteration from its SeedSequence."""
    return np.random.default_rng(seed_seq)
