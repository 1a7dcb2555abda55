from __future__ import annotations


class RecurrenceError(Exception):
    """Base class for failures raised by the recurring-task engine."""


class ValidationError(RecurrenceError):
    """A recurrence rule or completion event is malformed. Never retried."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class TransientStoreError(RecurrenceError):
    """The store timed out or was unavailable; the step may be retried."""


class DuplicateInstanceError(RecurrenceError):
    """An instance with the same recurring group and due date already exists."""


class DuplicateCloneError(RecurrenceError):
    """A subtask already sits at this position under the parent task."""

    def __init__(self, message: str, existing_id: str) -> None:
        super().__init__(message)
        self.existing_id = existing_id


class StepFailedError(RecurrenceError):
    def __init__(self, step: str, attempts: int, cause: BaseException | None = None) -> None:
        super().__init__(f"step {step!r} failed after {attempts} attempt(s): {cause}")
        self.step = step
        self.attempts = attempts
        self.cause = cause
