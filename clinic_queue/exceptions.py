"""
Exception hierarchy for the clinic queue.

Every error carries:
- code:    machine-readable error code (RECORD_NOT_FOUND, VISIT_COMPLETED, ...)
- message: human readable description
- detail:  optional extra context (dict / None)

Guard failures (unpaid clearance, data entry in the wrong stage) are not
exceptions; the workflow reports them through its TransitionResult.
"""


class ClinicQueueError(Exception):
    """Base class for all clinic queue errors."""

    code = "CLINIC_QUEUE_ERROR"

    def __init__(self, message, code=None, detail=None):
        self.message = message
        if code is not None:
            self.code = code
        self.detail = detail
        super().__init__(message)


class RecordStoreError(ClinicQueueError):
    """A record store call failed."""

    code = "RECORD_STORE_ERROR"


class RecordNotFoundError(RecordStoreError):
    """The requested record does not exist."""

    code = "RECORD_NOT_FOUND"


class InvalidTransitionError(ClinicQueueError):
    """No stage transition exists from the visit's current stage."""

    code = "INVALID_TRANSITION"
