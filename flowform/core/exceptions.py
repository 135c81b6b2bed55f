"""
FlowForm exception hierarchy.

Services raise these types; the app factory registers one handler per
type so every blueprint answers with the same status codes.

Usage:
    from flowform.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="DynamicTable", resource_id=table_id)
    raise ValidationError("name is required", details={"name": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested record does not exist.

    Maps to HTTP 404.

    Args:
        resource: Human-readable model name (e.g. "DynamicField", "Task").
        resource_id: The id that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when well-formed input violates a business rule.

    Covers bad field definitions, unknown references and illegal task
    state changes. Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown; keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class FormValidationError(ValidationError):
    """Raised when submitted form values fail the schema built from field definitions.

    ``errors`` is the list of ``{"field", "code", "message"}`` dicts produced
    by the validator; ``details`` maps each failing field to its first message.
    """

    def __init__(self, errors: list[dict]) -> None:
        self.errors = list(errors)
        details = {}
        for err in self.errors:
            details.setdefault(err["field"], err["message"])
        super().__init__("Submitted values are invalid", details=details)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class AuthError(Exception):
    """Raised for failed sign-in, missing/expired tokens and role denials.

    ``status`` is 401 for identity problems and 403 for role problems.
    """

    def __init__(self, message: str, status: int = 401) -> None:
        self.status = status
        super().__init__(message)


class StorageError(Exception):
    """Raised when the blob store fails to upload, delete or sign a URL.

    Maps to HTTP 502.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)


class BlobNotFoundError(StorageError):
    """Raised when a stored path points at an object that no longer exists."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Stored file not found: {path}", path=path)
