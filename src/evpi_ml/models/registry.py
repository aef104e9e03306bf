"""Model registry for the reference model family.

This module provides:
- Logistic regression instantiation (penalized or unpenalized)
- sklearn version compatibility handling

References:
- scikit-learn 1.8+ deprecates penalty= in LogisticRegression; an
  unpenalized fit is requested with C=np.inf instead of penalty=None
"""

import re
from typing import Tuple

import numpy as np
import sklearn
from sklearn.linear_model import LogisticRegression


# ----------------------------
# sklearn version compatibility
# ----------------------------
def _sklearn_version_tuple(ver: str) -> Tuple[int, int, int]:
    """Parse sklearn version string (robust to rc/dev suffixes)."""
    nums = re.findall(r"\d+", ver)
    nums = (nums + ["0", "0", "0"])[:3]
    return (int(nums[0]), int(nums[1]), int(nums[2]))


SKLEARN_VER = _sklearn_version_tuple(getattr(sklearn, "__version__", "0.0.0"))


def build_logistic_regression(
    C: float | None = None,
    solver: str = "lbfgs",
    max_iter: int = 1000,
    tol: float = 1e-6,
) -> LogisticRegression:
    """Build Logistic Regression estimator (sklearn 1.8+ compatible).

    Args:
        C: Inverse L2 regularization strength. None fits by unpenalized
            maximum likelihood, which the likelihood-based sampling method
            relies on for its covariance estimate.
        solver: Optimization algorithm
        max_iter: Maximum iterations
        tol: Convergence tolerance

    Returns:
        Configured LogisticRegression estimator
    """
    lr_common = {
        "solver": solver,
        "max_iter": int(max_iter),
        "tol": float(tol),
    }

    if C is not None:
        return LogisticRegression(C=float(C), **lr_common)

    # sklearn >=1.8 deprecates penalty=, uses C=inf for no penalty
    if SKLEARN_VER >= (1, 8, 0):
        return LogisticRegression(C=np.inf, **lr_common)
    else:
        return LogisticRegression(penalty=None, **lr_common)
