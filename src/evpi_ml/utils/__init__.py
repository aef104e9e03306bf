"""Utility functions for evpi-ml."""

from evpi_ml.utils.logging import log_section, setup_logger
from evpi_ml.utils.random import (
    iteration_rng,
    read_seed_global,
    spawn_iteration_seeds,
)

__all__ = [
    "setup_logger",
    "log_section",
    "read_seed_global",
    "spawn_iteration_seeds",
    "iteration_rng",
]
