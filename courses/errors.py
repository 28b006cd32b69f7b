"""Error taxonomy for ledger operations.

Every failure carries a stable ``code`` for callers and an HTTP
``status_code`` used by the REST layer. Errors are raised before any write
happens, so a failing operation never leaves partial state behind.
"""
from __future__ import annotations


class LedgerError(Exception):
    """Base class for rejected ledger operations."""

    code = "ledger_error"
    status_code = 400
    default_message = "Operation rejected."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class PermissionDenied(LedgerError):
    code = "permission_denied"
    status_code = 403
    default_message = "Caller lacks the required role."


class NotFound(LedgerError):
    code = "not_found"
    status_code = 404
    default_message = "Course does not exist."


class InvalidInput(LedgerError):
    code = "invalid_input"
    status_code = 400
    default_message = "Invalid input."


class RatingOutOfRange(LedgerError):
    code = "rating_out_of_range"
    status_code = 400
    default_message = "Rating is out of range."


class DuplicateSubmission(LedgerError):
    code = "duplicate_submission"
    status_code = 409
    default_message = "An evaluation was already submitted for this course."


class NotEnrolled(LedgerError):
    code = "not_enrolled"
    status_code = 403
    default_message = "Caller is not enrolled in this course."


class EvaluationsClosed(LedgerError):
    code = "evaluations_closed"
    status_code = 409
    default_message = "Course is not accepting evaluations."
