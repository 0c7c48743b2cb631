"""Exception hierarchy for the weather site workflow.

Transient errors come from collaborators (HTTP, stores, secrets) and may be
retried by a step's policy. The engine converts an exhausted or non-retried
failure into a `StepFailedError`, which aborts the run.
"""

from __future__ import annotations


class WeatherSiteError(Exception):
    """Base class for all errors raised by this package."""


class TransientExternalError(WeatherSiteError):
    """An external collaborator failed in a way a retry may fix."""


class WeatherApiError(TransientExternalError):
    """The weather API answered with a non-success status."""

    def __init__(self, status: int) -> None:
        super().__init__(f"Weather API error: {status}")
        self.status = status


class ParameterNotFoundError(TransientExternalError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Parameter not found: {key!r}")
        self.key = key


class SecretNotFoundError(TransientExternalError):
    def __init__(self, secret_id: str) -> None:
        super().__init__(f"Secret not found: {secret_id!r}")
        self.secret_id = secret_id


class StepFailedError(WeatherSiteError):
    """A step failed permanently; the workflow run is aborted."""

    def __init__(self, step: str, attempts: int, message: str | None = None) -> None:
        super().__init__(message or f"Step {step!r} failed after {attempts} attempt(s)")
        self.step = step
        self.attempts = attempts


class ParallelExecutionError(StepFailedError):
    """One or more branches of a parallel block failed."""

    def __init__(self, step: str, errors: list[tuple[int, BaseException]]) -> None:
        indexes = ", ".join(str(index) for index, _ in errors)
        super().__init__(
            step,
            attempts=1,
            message=f"Parallel block {step!r} failed in branch(es): {indexes}",
        )
        self.errors = errors


class DuplicateStepError(WeatherSiteError):
    """A step name was used twice in the same scope of one run."""


class ExecutionTimeoutError(WeatherSiteError):
    """The execution ran past its time budget."""
