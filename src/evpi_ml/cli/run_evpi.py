"""
CLI implementation for the run command.

Loads configuration and data, fits the proposed model, runs the simulation
and returns the per-threshold table for the CLI to print.
"""

import logging
import sys
from typing import Any

import pandas as pd

from evpi_ml.config.loader import load_evpi_config
from evpi_ml.config.validation import validate_evpi_config
from evpi_ml.data.io import read_dataset_file, select_complete_cases
from evpi_ml.evpi.api import compute_evpi
from evpi_ml.evpi.grid import grid_from_config
from evpi_ml.evpi.results import summarize_evpi
from evpi_ml.exceptions import InvalidInputError, RefitFailure
from evpi_ml.models.fitting import LogisticModelFitter
from evpi_ml.utils.logging import log_section, setup_logger

# CLI option name -> dotted config key
CLI_TO_CONFIG = {
    "infile": "data.infile",
    "outcome": "data.outcome",
    "predictors": "data.predictors",
    "categorical": "data.categorical",
    "n_sim": "simulation.n_sim",
    "method": "simulation.method",
    "seed": "simulation.seed",
    "n_jobs": "simulation.n_jobs",
    "n_thresholds": "thresholds.n_thresholds",
    "report_points": "thresholds.report_points",
    "ceiling": "relative.ceiling",
}


def _log_summary(logger: logging.Logger, summary: dict[str, Any]):
    logger.info(f"Draws: {summary['n_iterations']:,} ({summary['method']})")
    logger.info(f"Thresholds: {summary['n_thresholds']} ({summary['threshold_range']})")
    logger.info(
        f"Max EVPI: {summary['max_evpi']:.5f} at z={summary['max_evpi_threshold']:.3f}"
    )
    logger.info(f"Integrated EVPI: {summary['integrated_evpi']:.5f}")

    ranges = summary["model_best_ranges"]
    if ranges:
        txt = ", ".join(f"{lo:.3f}-{hi:.3f}" for lo, hi in ranges)
        logger.info(f"Proposed model beats default decisions at: {txt}")
    else:
        logger.info("Proposed model never beats default decisions in expectation")

    counts = summary["relative_flag_counts"]
    logger.info(
        "Relative EVPI flags: "
        + ", ".join(f"{name}={count}" for name, count in counts.items())
    )

    for key, value in summary.items():
        if key.startswith("evpi_at_"):
            pt = key[len("evpi_at_"):]
            flag = summary[f"relative_flag_at_{pt}"]
            rel = summary[f"relative_evpi_at_{pt}"]
            rel_txt = f"{rel:.3f}" if rel is not None else flag
            logger.info(f"  z={pt}: EVPI={value:.5f}, relative EVPI={rel_txt}")


def run_evpi(
    config_file: str | None = None,
    cli_args: dict[str, Any] | None = None,
    overrides: list[str] | None = None,
    verbose: int = 0,
    log_file: str | None = None,
    default_seed: int | None = None,
) -> pd.DataFrame:
    """
    Run an EVPI analysis from configuration.

    Args:
        config_file: Path to YAML config file (optional)
        cli_args: Dictionary of CLI arguments (None values are ignored)
        overrides: List of config overrides; applied after cli_args
        verbose: Verbosity level (0=INFO, 1=DEBUG)
        log_file: Optional log file path
        default_seed: Seed used when the merged config leaves simulation.seed
            unset (the CLI passes SEED_GLOBAL here)

    Returns:
        Per-threshold result table (EVPIResult.to_frame())
    """
    log_level = max(logging.DEBUG, logging.INFO - verbose * 10)
    logger = setup_logger("evpi_ml", level=log_level, log_file=log_file, stream=sys.stderr)

    log_section(logger, "EVPI Simulation")

    all_overrides = []
    for key, value in (cli_args or {}).items():
        if value is None or key not in CLI_TO_CONFIG:
            continue
        all_overrides.append(f"{CLI_TO_CONFIG[key]}={value}")
    all_overrides.extend(overrides or [])

    logger.info("Loading configuration...")
    config = load_evpi_config(config_file=config_file, overrides=all_overrides)
    if config.simulation.seed is None and default_seed is not None:
        config.simulation.seed = default_seed
        logger.info(f"Using SEED_GLOBAL={default_seed} as simulation seed")
    validate_evpi_config(config)

    data_cfg = config.data
    if data_cfg.infile is None:
        raise InvalidInputError("No input dataset: pass --infile or set data.infile")
    if not data_cfg.outcome:
        raise InvalidInputError("No outcome column: pass --outcome or set data.outcome")

    df = read_dataset_file(data_cfg.infile)
    outcome = data_cfg.outcome
    if outcome not in df.columns:
        raise InvalidInputError(f"Outcome column '{outcome}' not found in {data_cfg.infile}")
    predictors = data_cfg.predictors or [c for c in df.columns if c != outcome]

    if data_cfg.complete_cases:
        missing = [c for c in predictors if c not in df.columns]
        if missing:
            raise InvalidInputError(f"Predictor columns not found in dataset: {missing}")
        df = select_complete_cases(df, [outcome] + predictors)

    logger.info(f"Outcome: {outcome}")
    logger.info(f"Predictors ({len(predictors)}): {', '.join(predictors)}")

    model_cfg = config.model
    fitter = LogisticModelFitter(
        predictors=predictors,
        categorical=data_cfg.categorical,
        C=model_cfg.C,
        solver=model_cfg.solver,
        max_iter=model_cfg.max_iter,
        tol=model_cfg.tol,
        strict_convergence=model_cfg.strict_convergence,
    )

    sim = config.simulation
    grid = grid_from_config(config.thresholds)

    try:
        result = compute_evpi(
            df,
            outcome,
            fitter=fitter,
            n_sim=sim.n_sim,
            thresholds=grid,
            method=sim.method,
            seed=sim.seed,
            n_jobs=sim.n_jobs,
            max_refit_attempts=sim.max_refit_attempts,
            ceiling=config.relative.ceiling,
        )
    except (InvalidInputError, RefitFailure) as e:
        logger.error(f"EVPI simulation failed: {e}")
        raise

    log_section(logger, "Summary")
    summary = summarize_evpi(result, report_points=config.thresholds.report_points)
    _log_summary(logger, summary)

    return result.to_frame()
