"""Net benefit metrics."""

from evpi_ml.metrics.dca import (
    decision_curve_analysis,
    net_benefit,
    net_benefit_curve,
    net_benefit_treat_all,
    threshold_odds,
)

__all__ = [
    "net_benefit",
    "net_benefit_curve",
    "net_benefit_treat_all",
    "threshold_odds",
    "decision_curve_analysis",
]
