from __future__ import annotations


class DeviceError(RuntimeError):
    """Raised by device runtime implementations when an operation fails."""

    def __init__(self, status: int, message: str = "") -> None:
        super().__init__(message or f"device error {status}")
        self.status = status


class TrialFailure(RuntimeError):
    """A benchmark trial aborted at `operation` with the given status code."""

    kind = "trial_failure"

    def __init__(self, operation: str, status: int | None, details: str | None = None) -> None:
        self.operation = operation
        self.status = status
        self.details = details
        msg = f"{operation} failed with status {status}"
        if details:
            msg += f": {details}"
        super().__init__(msg)


class AllocationFailure(TrialFailure):
    kind = "allocation_failure"


class GenerationFailure(TrialFailure):
    kind = "generation_failure"


class SynchronizationFailure(TrialFailure):
    kind = "synchronization_failure"


class TimingResourceFailure(TrialFailure):
    kind = "timing_resource_failure"
