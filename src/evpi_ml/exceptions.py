"""
Exception types raised by the EVPI pipeline.

InvalidInputError is raised before any simulation work starts. ModelFitError
marks a single failed fit and is recoverable; RefitFailure is raised once the
retry bound for one Monte Carlo iteration is exhausted and aborts the run.
"""


class InvalidInputError(ValueError):
    """Raised when a precondition on the inputs of a run is violated."""

    pass


class ModelFitError(RuntimeError):
    """Raised when a single model fit fails or does not converge."""

    pass


class RefitFailure(RuntimeError):
    """Raised when every refit attempt for one Monte Carlo draw has failed."""

    def __init__(
        self,
        attempts: int,
        last_error: BaseException | None = None,
        iteration: int | None = None,
    ):
        self.attempts = attempts
        self.last_error = last_error
        self.iteration = iteration

        where = f" at iteration {iteration}" if iteration is not None else ""
        cause = f": {last_error}" if last_error is not None else ""
        super().__init__(f"Model refit failed {attempts} time(s){where}{cause}")

    def __reduce__(self):
        # keep structured fields when crossing process boundaries (joblib workers)
        return (RefitFailure, (self.attempts, self.last_error, self.iteration))

    def with_iteration(self, iteration: int) -> "RefitFailure":
        """Return a copy of this failure tagged with the iteration index."""
        return RefitFailure(self.attempts, self.last_error, iteration=iteration)
