"""
evpi-ml: Expected Value of Perfect Information for risk prediction models

Bootstrap-based Monte Carlo estimation of expected net benefit, EVPI,
incremental net benefit and relative EVPI across decision thresholds for a
binary-outcome risk model.
"""

__version__ = "1.0.0"
__license__ = "MIT"

from evpi_ml.evpi import (  # noqa: E402
    EVPIResult,
    EVPISimulationEngine,
    RelativeEVPIFlag,
    ThresholdGrid,
    compute_evpi,
    summarize_evpi,
)
from evpi_ml.exceptions import (  # noqa: E402
    InvalidInputError,
    ModelFitError,
    RefitFailure,
)

__all__ = [
    "__version__",
    "compute_evpi",
    "summarize_evpi",
    "EVPIResult",
    "EVPISimulationEngine",
    "RelativeEVPIFlag",
    "ThresholdGrid",
    "InvalidInputError",
    "ModelFitError",
    "RefitFailure",
]
