"""
Default configuration values for the EVPI pipeline.

Plain dicts mirroring the pydantic schema, used as the base layer that YAML
files and CLI overrides are merged onto.
"""

DEFAULT_DATA_CONFIG = {
    "infile": None,
    "outcome": None,
    "predictors": None,
    "categorical": None,
    "complete_cases": True,
}

DEFAULT_MODEL_CONFIG = {
    "C": None,
    "solver": "lbfgs",
    "max_iter": 1000,
    "tol": 1e-6,
    "strict_convergence": True,
}

DEFAULT_SIMULATION_CONFIG = {
    "n_sim": 1000,
    "method": "bootstrap",
    "seed": None,
    "n_jobs": 1,
    "max_refit_attempts": 5,
}

DEFAULT_THRESHOLD_CONFIG = {
    "n_thresholds": 99,
    "threshold_min": 0.01,
    "threshold_max": 0.99,
    "step": None,
    "values": None,
    "report_points": [],
}

DEFAULT_RELATIVE_CONFIG = {
    "ceiling": 10.0,
}

DEFAULT_STRICTNESS_CONFIG = {
    "level": "warn",
}

DEFAULT_EVPI_CONFIG = {
    "data": DEFAULT_DATA_CONFIG,
    "model": DEFAULT_MODEL_CONFIG,
    "simulation": DEFAULT_SIMULATION_CONFIG,
    "thresholds": DEFAULT_THRESHOLD_CONFIG,
    "relative": DEFAULT_RELATIVE_CONFIG,
    "strictness": DEFAULT_STRICTNESS_CONFIG,
}
