"""
Models package for evpi-ml.

Contains the reference model-fitting service (logistic regression) consumed
by the resampling oracles.
"""

from .fitting import (
    DesignMatrixBuilder,
    FittedLogisticModel,
    LogisticModelFitter,
    infer_categorical,
)
from .registry import (
    SKLEARN_VER,
    build_logistic_regression,
)

__all__ = [
    "SKLEARN_VER",
    "build_logistic_regression",
    "DesignMatrixBuilder",
    "FittedLogisticModel",
    "LogisticModelFitter",
    "infer_categorical",
]
