"""Configuration management for evpi-ml."""

from evpi_ml.config.defaults import (
    DEFAULT_EVPI_CONFIG,
    DEFAULT_SIMULATION_CONFIG,
    DEFAULT_THRESHOLD_CONFIG,
)
from evpi_ml.config.loader import (
    apply_overrides,
    load_evpi_config,
    load_yaml,
    save_config,
)
from evpi_ml.config.schema import (
    SAMPLING_METHODS,
    DataConfig,
    EVPIConfig,
    ModelConfig,
    RelativeEVPIConfig,
    SimulationConfig,
    ThresholdConfig,
)
from evpi_ml.config.validation import (
    ConfigValidationError,
    ConfigValidationWarning,
    validate_evpi_config,
)

__all__ = [
    "SAMPLING_METHODS",
    "DEFAULT_EVPI_CONFIG",
    "DEFAULT_SIMULATION_CONFIG",
    "DEFAULT_THRESHOLD_CONFIG",
    "load_yaml",
    "apply_overrides",
    "load_evpi_config",
    "save_config",
    "EVPIConfig",
    "DataConfig",
    "ModelConfig",
    "SimulationConfig",
    "ThresholdConfig",
    "RelativeEVPIConfig",
    "ConfigValidationError",
    "ConfigValidationWarning",
    "validate_evpi_config",
]
