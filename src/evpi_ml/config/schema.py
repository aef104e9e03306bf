"""
Configuration schema for the EVPI pipeline.

Defines Pydantic models for every run parameter. Defaults match
config/defaults.py.
"""

from pathlib import Path
from typing import Literal, get_args

from pydantic import BaseModel, Field, field_validator, model_validator

SamplingMethod = Literal["bootstrap", "case_resampling", "bayesian_bootstrap", "likelihood"]
SAMPLING_METHODS: tuple[str, ...] = get_args(SamplingMethod)


# ============================================================================
# Data Configuration
# ============================================================================


class DataConfig(BaseModel):
    """Development dataset location and columns."""

    infile: Path | None = None
    outcome: str | None = None
    predictors: list[str] | None = None
    categorical: list[str] | None = None
    complete_cases: bool = True

    @model_validator(mode="after")
    def validate_columns(self):
        """Outcome must not also be listed as a predictor."""
        if self.outcome and self.predictors and self.outcome in self.predictors:
            raise ValueError(f"outcome '{self.outcome}' is also listed in predictors")
        if self.categorical and self.predictors:
            unknown = [c for c in self.categorical if c not in self.predictors]
            if unknown:
                raise ValueError(f"categorical columns {unknown} are not in predictors")
        return self


# ============================================================================
# Model Configuration
# ============================================================================


class ModelConfig(BaseModel):
    """Logistic regression fitting parameters.

    C=None fits by unpenalized maximum likelihood (required for the
    likelihood-based sampling method to have a meaningful covariance).
    """

    C: float | None = Field(default=None, gt=0.0)
    solver: str = "lbfgs"
    max_iter: int = Field(default=1000, ge=1)
    tol: float = Field(default=1e-6, gt=0.0)
    strict_convergence: bool = True


# ============================================================================
# Simulation Configuration
# ============================================================================


class SimulationConfig(BaseModel):
    """Monte Carlo settings."""

    n_sim: int = Field(default=1000, ge=1)
    method: SamplingMethod = "bootstrap"
    seed: int | None = Field(default=None, ge=0)
    n_jobs: int = 1
    max_refit_attempts: int = Field(default=5, ge=1)

    @field_validator("n_jobs")
    @classmethod
    def validate_n_jobs(cls, v):
        if v == 0:
            raise ValueError("n_jobs must be non-zero (use -1 for all cores)")
        return v


# ============================================================================
# Threshold Configuration
# ============================================================================


class ThresholdConfig(BaseModel):
    """Threshold grid.

    If ``values`` is given it is used (sorted, de-duplicated). Otherwise
    ``step`` (when set) spans threshold_min..threshold_max, and failing that
    ``n_thresholds`` evenly spaced points cover the same range. The defaults
    give 0.01, 0.02, ..., 0.99.
    """

    n_thresholds: int = Field(default=99, ge=1)
    threshold_min: float = Field(default=0.01, gt=0.0, lt=1.0)
    threshold_max: float = Field(default=0.99, gt=0.0, lt=1.0)
    step: float | None = Field(default=None, gt=0.0, lt=1.0)
    values: list[float] | None = None
    report_points: list[float] = Field(default_factory=list)

    @field_validator("values", "report_points")
    @classmethod
    def validate_open_interval(cls, v):
        if v is None:
            return v
        bad = [x for x in v if not 0.0 < x < 1.0]
        if bad:
            raise ValueError(f"thresholds must lie in (0, 1); got {bad}")
        return v

    @model_validator(mode="after")
    def validate_range(self):
        if self.threshold_min >= self.threshold_max:
            raise ValueError(
                f"threshold_min ({self.threshold_min}) must be < "
                f"threshold_max ({self.threshold_max})"
            )
        return self


# ============================================================================
# Relative EVPI Configuration
# ============================================================================


class RelativeEVPIConfig(BaseModel):
    """Display settings for the relative EVPI curve."""

    ceiling: float = Field(default=10.0, gt=0.0)


# ============================================================================
# Strictness
# ============================================================================


class StrictnessConfig(BaseModel):
    """How configuration issues are reported."""

    level: Literal["off", "warn", "error"] = "warn"


# ============================================================================
# Top-level Configuration
# ============================================================================


class EVPIConfig(BaseModel):
    """Complete configuration of one EVPI run."""

    data: DataConfig = Field(default_factory=DataConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    relative: RelativeEVPIConfig = Field(default_factory=RelativeEVPIConfig)
    strictness: StrictnessConfig = Field(default_factory=StrictnessConfig)
