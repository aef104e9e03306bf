"""
EVPI result container and summary statistics.

EVPIResult is the in-memory output handed to presentation code: the threshold
grid, the three expected net benefit curves, EVPI, both incremental net
benefit curves and the flagged relative EVPI curve.
"""

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from scipy.integrate import trapezoid

from evpi_ml.evpi.engine import ExpectedNetBenefitCurves
from evpi_ml.evpi.relative import (
    DEFAULT_CEILING,
    RelativeEVPICurve,
    RelativeEVPICurveBuilder,
    RelativeEVPIFlag,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class EVPIResult:
    thresholds: np.ndarray
    enb_model: np.ndarray
    enb_all: np.ndarray
    enb_max: np.ndarray
    evpi: np.ndarray
    inb_current: np.ndarray
    inb_perfect: np.ndarray
    relative: RelativeEVPICurve
    n_iterations: int
    method: str = ""
    seed: int | None = None
    ceiling: float = DEFAULT_CEILING
    mcse_model: np.ndarray | None = None
    mcse_all: np.ndarray | None = None
    mcse_max: np.ndarray | None = None

    @classmethod
    def from_curves(
        cls,
        curves: ExpectedNetBenefitCurves,
        method: str = "",
        seed: int | None = None,
        ceiling: float = DEFAULT_CEILING,
    ) -> "EVPIResult":
        builder = RelativeEVPICurveBuilder(ceiling=ceiling)
        inb_current = curves.inb_current()
        inb_perfect = curves.inb_perfect()
        return cls(
            thresholds=curves.thresholds,
            enb_model=curves.enb_model,
            enb_all=curves.enb_all,
            enb_max=curves.enb_max,
            evpi=curves.evpi(),
            inb_current=inb_current,
            inb_perfect=inb_perfect,
            relative=builder.build(inb_current, inb_perfect, curves.thresholds),
            n_iterations=curves.n_iterations,
            method=method,
            seed=seed,
            ceiling=builder.ceiling,
            mcse_model=curves.mcse_model,
            mcse_all=curves.mcse_all,
            mcse_max=curves.mcse_max,
        )

    def to_frame(self) -> pd.DataFrame:
        """One row per threshold."""
        df = pd.DataFrame(
            {
                "threshold": self.thresholds,
                "enb_model": self.enb_model,
                "enb_all": self.enb_all,
                "enb_max": self.enb_max,
                "evpi": self.evpi,
                "inb_current": self.inb_current,
                "inb_perfect": self.inb_perfect,
                "relative_evpi": self.relative.values,
                "relative_evpi_capped": self.relative.capped(self.ceiling),
                "relative_evpi_flag": self.relative.flag_names(),
            }
        )
        for name in ("model", "all", "max"):
            se = getattr(self, f"mcse_{name}")
            if se is not None:
                df[f"mcse_{name}"] = se
        return df


def _ranges(thresholds: np.ndarray, mask: np.ndarray) -> list[tuple[float, float]]:
    """Contiguous runs of True in ``mask`` as (first, last) threshold pairs."""
    out = []
    start = None
    for i, m in enumerate(mask):
        if m and start is None:
            start = i
        if not m and start is not None:
            out.append((float(thresholds[start]), float(thresholds[i - 1])))
            start = None
    if start is not None:
        out.append((float(thresholds[start]), float(thresholds[len(mask) - 1])))
    return out


def summarize_evpi(
    result: EVPIResult,
    report_points: list[float] | None = None,
) -> dict[str, Any]:
    """
    Compute summary statistics from an EVPI result.

    Args:
        result: EVPIResult from compute_evpi()
        report_points: Thresholds to report (nearest grid point is used)

    Returns:
        Dictionary with:
            - n_iterations, method, n_thresholds
            - max_evpi, max_evpi_threshold
            - integrated_evpi: trapezoid area under EVPI over the grid
            - model_best_ranges: threshold ranges where the proposed model beats
              both treat-all and treat-none in expectation
            - relative_flag_counts
            - evpi_at_X, inb_current_at_X, inb_perfect_at_X,
              relative_evpi_at_X, relative_flag_at_X for each report point
    """
    z = np.asarray(result.thresholds, dtype=float)
    evpi = np.asarray(result.evpi, dtype=float)

    i_max = int(np.argmax(evpi))
    summary: dict[str, Any] = {
        "n_iterations": int(result.n_iterations),
        "method": result.method,
        "n_thresholds": int(len(z)),
        "threshold_range": f"{z.min():.4f}-{z.max():.4f}",
        "max_evpi": float(evpi[i_max]),
        "max_evpi_threshold": float(z[i_max]),
        "integrated_evpi": float(trapezoid(evpi, z)) if len(z) > 1 else 0.0,
        "model_best_ranges": _ranges(z, result.inb_current > 0),
        "relative_flag_counts": result.relative.flag_counts(),
    }

    for pt in report_points or []:
        i = int(np.argmin(np.abs(z - pt)))
        if abs(z[i] - pt) > 1e-9:
            logger.debug(f"Report point {pt} not on grid; using nearest threshold {z[i]:.4f}")
        flag = result.relative.flags[i]
        summary[f"evpi_at_{pt}"] = float(evpi[i])
        summary[f"inb_current_at_{pt}"] = float(result.inb_current[i])
        summary[f"inb_perfect_at_{pt}"] = float(result.inb_perfect[i])
        summary[f"relative_evpi_at_{pt}"] = (
            float(result.relative.values[i]) if flag is RelativeEVPIFlag.NORMAL else None
        )
        summary[f"relative_flag_at_{pt}"] = flag.value

    return summary
