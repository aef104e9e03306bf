"""
Configuration validation and safety checks.

Flags settings that are legal but likely to give misleading EVPI estimates.
"""

import warnings

from evpi_ml.config.schema import EVPIConfig

# Below this many draws the Monte Carlo error usually dominates the curves
MIN_RECOMMENDED_SIMULATIONS = 100

# Above this threshold the odds z/(1-z) exceed ~100 and net benefit is
# dominated by the false-positive penalty
MAX_RECOMMENDED_THRESHOLD = 0.99


class ConfigValidationError(Exception):
    """Raised when configuration validation fails in strict mode."""

    pass


class ConfigValidationWarning(UserWarning):
    """Warning for potential configuration issues."""

    pass


def validate_evpi_config(config: EVPIConfig, strictness: str | None = None):
    """
    Validate an EVPI configuration for potential issues.

    Args:
        config: EVPIConfig instance
        strictness: "off", "warn" or "error" (default: config.strictness.level)
    """
    strictness = strictness or config.strictness.level
    issues = []

    sim = config.simulation
    if sim.n_sim < MIN_RECOMMENDED_SIMULATIONS:
        issues.append(
            f"simulation.n_sim={sim.n_sim} is small; Monte Carlo error may dominate "
            f"(recommend >= {MIN_RECOMMENDED_SIMULATIONS})."
        )

    if sim.method == "likelihood" and config.model.C is not None:
        issues.append(
            f"Likelihood-based sampling with a penalized model (C={config.model.C}); "
            "the coefficient covariance assumes unpenalized maximum likelihood."
        )

    thr = config.thresholds
    upper = max(thr.values) if thr.values else thr.threshold_max
    if upper > MAX_RECOMMENDED_THRESHOLD:
        issues.append(
            f"Threshold grid reaches {upper}; net benefit above "
            f"{MAX_RECOMMENDED_THRESHOLD} is dominated by the false-positive penalty."
        )

    lower = min(thr.values) if thr.values else thr.threshold_min
    outside = [p for p in thr.report_points if p < lower or p > upper]
    if outside:
        issues.append(
            f"Report points {outside} lie outside the threshold grid [{lower}, {upper}]; "
            "the nearest grid point will be reported."
        )

    if not config.data.complete_cases and config.data.predictors is None:
        issues.append(
            "data.complete_cases=False with predictors inferred from all columns; "
            "any missing value will stop the run."
        )

    _handle_issues(issues, strictness, "EVPI configuration")


def _handle_issues(issues: list[str], strictness: str, context: str):
    """Handle validation issues based on strictness level."""
    if not issues:
        return

    message = f"{context} issues:\n" + "\n".join(f"  - {issue}" for issue in issues)

    if strictness == "error":
        raise ConfigValidationError(message)
    elif strictness == "warn":
        warnings.warn(message, ConfigValidationWarning, stacklevel=3)
    # strictness == "off": do nothing
