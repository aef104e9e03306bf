"""
Relative EVPI: INB_perfect / INB_current, with degenerate points flagged.

The flag is decided before any division, so consumers never have to detect
NaN or infinity themselves:

    DEGENERATE_ZERO      INB_current == 0 and INB_perfect == 0 (value NaN).
                         Neither current nor perfect information beats the
                         default decisions at this threshold.
    DEGENERATE_INFINITE  INB_current == 0 and INB_perfect > 0 (value inf).
                         Only perfect information beats the defaults.
    NORMAL               finite ratio.

Capping large ratios at a ceiling is a display transform (capped()); it never
changes the raw values or the flags.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np

from evpi_ml.exceptions import InvalidInputError

DEFAULT_CEILING = 10.0


class RelativeEVPIFlag(str, Enum):
    NORMAL = "NORMAL"
    DEGENERATE_ZERO = "DEGENERATE_ZERO"
    DEGENERATE_INFINITE = "DEGENERATE_INFINITE"


@dataclass(frozen=True, eq=False)
class RelativeEVPICurve:
    """Raw relative EVPI values and their flags, aligned with the threshold grid."""

    values: np.ndarray
    flags: tuple[RelativeEVPIFlag, ...]
    thresholds: np.ndarray | None = None

    def __len__(self) -> int:
        return len(self.flags)

    def flag_names(self) -> list[str]:
        return [f.value for f in self.flags]

    def mask(self, flag: RelativeEVPIFlag) -> np.ndarray:
        return np.array([f is flag for f in self.flags], dtype=bool)

    def capped(self, ceiling: float = DEFAULT_CEILING) -> np.ndarray:
        """
        Values with every finite entry above ``ceiling`` clamped to it.

        Degenerate points keep their NaN / inf values; read the flags to
        render them.
        """
        out = np.array(self.values, dtype=float)
        finite = np.isfinite(out)
        out[finite] = np.minimum(out[finite], float(ceiling))
        return out

    def flag_counts(self) -> dict[str, int]:
        return {flag.value: int(self.mask(flag).sum()) for flag in RelativeEVPIFlag}


class RelativeEVPICurveBuilder:
    """
    Build a RelativeEVPICurve from incremental net benefit curves.

    Args:
        ceiling: Default display ceiling used by capped()
        atol: INB_current values with |x| <= atol count as zero
    """

    def __init__(self, ceiling: float = DEFAULT_CEILING, atol: float = 0.0):
        if not ceiling > 0:
            raise InvalidInputError(f"ceiling must be positive, got {ceiling}")
        self.ceiling = float(ceiling)
        self.atol = float(atol)

    def build(self, inb_current, inb_perfect, thresholds=None) -> RelativeEVPICurve:
        current = np.asarray(inb_current, dtype=float)
        perfect = np.asarray(inb_perfect, dtype=float)
        if current.shape != perfect.shape:
            raise InvalidInputError(
                f"Length mismatch: INB_current has {current.size} points, "
                f"INB_perfect has {perfect.size}"
            )

        zero_current = np.abs(current) <= self.atol
        zero_perfect = perfect <= self.atol

        values = np.empty_like(current)
        flags = []
        for i in range(current.size):
            if zero_current[i] and zero_perfect[i]:
                flags.append(RelativeEVPIFlag.DEGENERATE_ZERO)
                values[i] = np.nan
            elif zero_current[i]:
                flags.append(RelativeEVPIFlag.DEGENERATE_INFINITE)
                values[i] = np.inf
            else:
                flags.append(RelativeEVPIFlag.NORMAL)
                values[i] = perfect[i] / current[i]

        z = None if thresholds is None else np.asarray(thresholds, dtype=float)
        return RelativeEVPICurve(values=values, flags=tuple(flags), thresholds=z)

    def capped(self, curve: RelativeEVPICurve) -> np.ndarray:
        return curve.capped(self.ceiling)


def relative_evpi(inb_current, inb_perfect, thresholds=None) -> RelativeEVPICurve:
    """Functional shortcut for RelativeEVPICurveBuilder().build()."""
    return RelativeEVPICurveBuilder().build(inb_current, inb_perfect, thresholds)
