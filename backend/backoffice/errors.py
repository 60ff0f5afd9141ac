# Overview: Error taxonomy shared by services and routes.

"""
Every error carries the HTTP status a route should answer with and a
message specific enough to tell the operator which precondition failed.
Validation and precondition errors are raised before any write.
"""


class BackofficeError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": type(self).__name__}


class ValidationError(BackofficeError, ValueError):
    """400-level input problem."""

    status_code = 400


class NotFoundError(BackofficeError):
    """Referenced row does not exist."""

    status_code = 404


class InvalidStateError(BackofficeError):
    """State machine precondition violated."""

    status_code = 400


class AlreadyConsignedError(InvalidStateError):
    """Device already has an active consignment."""


class AlreadyProcessedError(InvalidStateError):
    """Payment left reported_pending before this review."""


class ForbiddenError(BackofficeError):
    """Actor is not allowed to act on this row."""

    status_code = 403


class ConflictError(BackofficeError):
    """409-level uniqueness conflict (duplicate IMEI, email, status key)."""

    status_code = 409
