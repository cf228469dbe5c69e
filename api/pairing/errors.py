"""Typed failures raised by the pairing core.

Routes translate these into HTTP responses; scheduled jobs log them. None of
them are retried automatically by the core.
"""


class PairingError(Exception):
    reason = "pairing_error"

    def __init__(self, message: str, *, reason: str | None = None):
        super().__init__(message)
        if reason:
            self.reason = reason


class InvariantViolation(PairingError):
    """Duplicate candidate, malformed record or another broken precondition. Fatal."""

    reason = "invariant_violation"


class PairingConflict(PairingError):
    """The record's current state does not allow the requested transition."""

    reason = "conflict"


class PairingNotFound(PairingError):
    reason = "pairing_not_found"


class NotAParticipant(PairingError):
    reason = "not_a_participant"


class ReminderThrottled(PairingError):
    reason = "reminder_throttled"

    def __init__(self, message: str, *, retry_after_seconds: int):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds
