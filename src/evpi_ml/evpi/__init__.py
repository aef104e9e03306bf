"""Expected value of perfect information simulation."""

from evpi_ml.evpi.api import compute_evpi
from evpi_ml.evpi.engine import (
    EVPISimulationEngine,
    ExpectedNetBenefitCurves,
    NetBenefitAccumulator,
    net_benefit_triple,
)
from evpi_ml.evpi.grid import ThresholdGrid, as_threshold_grid
from evpi_ml.evpi.oracle import (
    ORACLE_METHODS,
    BayesianBootstrapOracle,
    CaseResamplingOracle,
    LikelihoodOracle,
    ResamplingModelOracle,
    build_oracle,
)
from evpi_ml.evpi.relative import (
    RelativeEVPICurve,
    RelativeEVPICurveBuilder,
    RelativeEVPIFlag,
    relative_evpi,
)
from evpi_ml.evpi.results import EVPIResult, summarize_evpi

__all__ = [
    # Entry point
    "compute_evpi",
    # Grid
    "ThresholdGrid",
    "as_threshold_grid",
    # Oracles
    "ResamplingModelOracle",
    "CaseResamplingOracle",
    "BayesianBootstrapOracle",
    "LikelihoodOracle",
    "ORACLE_METHODS",
    "build_oracle",
    # Engine
    "EVPISimulationEngine",
    "ExpectedNetBenefitCurves",
    "NetBenefitAccumulator",
    "net_benefit_triple",
    # Relative EVPI
    "RelativeEVPIFlag",
    "RelativeEVPICurve",
    "RelativeEVPICurveBuilder",
    "relative_evpi",
    # Results
    "EVPIResult",
    "summarize_evpi",
]
