"""
Net benefit calculations for decision-analytic evaluation of risk models.

Net benefit of a decision rule at threshold z, against reference risks p:

    NB = mean_i( treat_i * (p_i - (1 - p_i) * z / (1 - z)) )

When p is the observed 0/1 outcome this is the classic decision curve
(Vickers & Elkin, 2006). When p is a simulated "true" risk vector it is the
expected net benefit under that draw, which is what the EVPI simulation uses.
A row is treated when its score is strictly above the threshold.

Reference:
    Vickers AJ, Elkin EB (2006). Decision curve analysis: a novel method
    for evaluating prediction models. Med Decis Making, 26(6):565-574.
"""

import numpy as np
import pandas as pd


# =============================================================================
# Core Net Benefit
# =============================================================================


def threshold_odds(thresholds) -> np.ndarray:
    """
    Odds z / (1 - z) for each threshold; NaN outside the open interval (0, 1).

    Args:
        thresholds: Scalar or array of thresholds

    Returns:
        Array of odds (same shape as input)
    """
    z = np.asarray(thresholds, dtype=float)
    valid = (z > 0.0) & (z < 1.0)
    with np.errstate(divide="ignore", invalid="ignore"):
        odds = z / (1.0 - z)
    return np.where(valid, odds, np.nan)


def net_benefit(
    decisions: np.ndarray,
    reference_prob: np.ndarray,
    threshold: float,
) -> float:
    """
    Compute net benefit of a binary decision rule at a single threshold.

    Args:
        decisions: Boolean treat indicators, one per row
        reference_prob: Reference probabilities (observed 0/1 outcomes or
            simulated true risks), aligned with ``decisions``
        threshold: Decision threshold (0 < z < 1)

    Returns:
        Net benefit value (can be negative). NaN if the threshold is outside
        (0, 1) or there are no rows.

    Raises:
        ValueError: If ``decisions`` and ``reference_prob`` lengths differ
    """
    d = np.asarray(decisions, dtype=bool)
    p = np.asarray(reference_prob, dtype=float)
    t = float(threshold)

    if d.shape != p.shape:
        raise ValueError(
            f"Length mismatch: decisions has {d.size} elements, "
            f"reference_prob has {p.size} elements"
        )

    if t <= 0.0 or t >= 1.0 or p.size == 0:
        return np.nan

    odds = t / (1.0 - t)
    return float(np.mean(np.where(d, p - (1.0 - p) * odds, 0.0)))


def net_benefit_curve(
    reference_prob: np.ndarray,
    thresholds: np.ndarray,
    scores: np.ndarray | None = None,
) -> np.ndarray:
    """
    Net benefit across a threshold grid in one vectorised pass.

    Equivalent to calling net_benefit(scores > z, reference_prob, z) for each
    z in ``thresholds``.

    Args:
        reference_prob: Reference probabilities, one per row
        thresholds: Threshold grid
        scores: Scores compared against each threshold to decide treatment.
            None means treat everyone.

    Returns:
        Array of net benefit values aligned with ``thresholds``
    """
    p = np.asarray(reference_prob, dtype=float)
    z = np.asarray(thresholds, dtype=float)
    odds = threshold_odds(z)

    # rows x thresholds payoff of treating each row
    payoff = p[:, None] - (1.0 - p)[:, None] * odds[None, :]

    if scores is None:
        return payoff.mean(axis=0)

    s = np.asarray(scores, dtype=float)
    if s.shape != p.shape:
        raise ValueError(
            f"Length mismatch: scores has {s.size} elements, "
            f"reference_prob has {p.size} elements"
        )
    treat = s[:, None] > z[None, :]
    return np.where(treat, payoff, 0.0).mean(axis=0)


def net_benefit_treat_all(
    prevalence: float,
    threshold: float,
) -> float:
    """
    Compute net benefit of the "treat all" strategy.

    NB_all = prevalence - (1 - prevalence) * (threshold / (1 - threshold))

    Args:
        prevalence: Mean reference probability (observed prevalence)
        threshold: Decision threshold (0 < t < 1)

    Returns:
        Net benefit of treating everyone
    """
    if threshold <= 0.0 or threshold >= 1.0:
        return np.nan

    odds = threshold / (1.0 - threshold)
    return prevalence - (1.0 - prevalence) * odds


# =============================================================================
# Apparent Decision Curve
# =============================================================================


def decision_curve_analysis(
    y_true: np.ndarray,
    y_pred_prob: np.ndarray,
    thresholds: np.ndarray,
) -> pd.DataFrame:
    """
    Apparent decision curve of a model against observed outcomes.

    Args:
        y_true: Observed binary outcomes (0/1)
        y_pred_prob: Model predicted probabilities
        thresholds: Threshold grid

    Returns:
        DataFrame with columns:
            - threshold
            - net_benefit_model: Model net benefit on observed outcomes
            - net_benefit_all: Treat-all net benefit
            - net_benefit_none: Treat-none net benefit (always 0)
            - tp, fp: True/false positives among treated
            - n_treat: Number treated
    """
    y = np.asarray(y_true).astype(float)
    p = np.asarray(y_pred_prob).astype(float)

    if len(y) == 0:
        return pd.DataFrame()

    z = np.asarray(thresholds, dtype=float)
    nb_model = net_benefit_curve(y, z, scores=p)
    nb_all = net_benefit_curve(y, z)

    treat = p[:, None] > z[None, :]
    tp = (treat & (y[:, None] == 1)).sum(axis=0)
    fp = (treat & (y[:, None] == 0)).sum(axis=0)

    return pd.DataFrame(
        {
            "threshold": z,
            "net_benefit_model": nb_model,
            "net_benefit_all": nb_all,
            "net_benefit_none": np.zeros_like(z),
            "tp": tp.astype(int),
            "fp": fp.astype(int),
            "n_treat": (tp + fp).astype(int),
        }
    )

