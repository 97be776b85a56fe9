"""
Application-wide exception hierarchy.

Services raise these types; blueprints register handlers against them
once and get consistent HTTP status codes everywhere.

Usage:
    from intern_tracker.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Intern", resource_id=42)
    raise ValidationError("count must be >= 1", details={"count": "min 1"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Maps to HTTP 404.

    Args:
        resource: Human-readable entity name (e.g. "Intern", "LogEntry").
        resource_id: The id that was looked up. Included in logs and message.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Distinct from HTTP 400 (malformed input, caught in blueprint). This
    signals a caller error detected before any I/O, or a rule violation
    such as rejecting without a reason.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation collides with the current state of a record.

    Covers duplicates and reviews of an already-reviewed log entry,
    including two reviewers racing on the same verification.

    Maps to HTTP 409.
    """

    def __init__(self, message: str, resource: str | None = None) -> None:
        self.resource = resource
        super().__init__(message)


class PermissionDeniedError(Exception):
    """Raised when the current user's role does not allow the operation.

    Maps to HTTP 403.
    """


class ProgressError(Exception):
    """Raised when progress aggregation fails for a non-caller reason.

    The underlying database error is chained as ``__cause__``.

    Maps to HTTP 500.
    """

    def __init__(self, message: str = "Failed to get progress") -> None:
        super().__init__(message)
