"""Typed exceptions for relation-core."""


class RelationError(Exception):
    """Base exception for relation-core.

    Attributes:
        details: Optional dictionary with additional error context
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(RelationError):
    """Malformed input to a ledger or store operation."""


class InvalidStateError(RelationError):
    """Illegal lifecycle transition (e.g. accepting a declined request)."""


class NotFoundError(RelationError):
    """Operation on an id that does not exist."""


class PersistenceError(RelationError):
    """The persistence backend failed.

    Attributes:
        local_result: The locally applied result when the operation's
            policy retains local state after a failed remote write
        status_code: HTTP status code, if the failure came from a response
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code
        self.local_result = None


class BackendConnectionError(PersistenceError):
    """Cannot reach the persistence backend."""


class RecordNotFoundError(PersistenceError):
    """The backend has no record for the requested id (404)."""
