"""Error taxonomy for the core.

Every error is raised by the layer that detects it and passed through the
orchestrator unchanged:

- UnauthorizedError: no actor, or an inactive one
- ForbiddenError: role lacks the capability, or the target is out of scope
- NotFoundError: target id does not exist
- ValidationFailedError: field or cross-entity constraint failures (all of them)
- ConflictError: a unique field already belongs to another record
- InternalError: storage or commit failure; never carries internal detail
"""

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    INTERNAL = "internal"


@dataclass(frozen=True)
class FieldError:
    """One violated constraint on one field."""
    field: str
    message: str
    code: str = "invalid"

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message, "code": self.code}


class CoreError(Exception):
    """Base exception for all core failures."""

    kind: ErrorKind = ErrorKind.INTERNAL
    http_status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        """Convert to the uniform error envelope."""
        return {"error": {"kind": self.kind.value, "message": self.message}}


class UnauthorizedError(CoreError):
    kind = ErrorKind.UNAUTHORIZED
    http_status = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class ForbiddenError(CoreError):
    kind = ErrorKind.FORBIDDEN
    http_status = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFoundError(CoreError):
    kind = ErrorKind.NOT_FOUND
    http_status = 404

    def __init__(self, entity: str):
        super().__init__(f"{entity} not found")
        self.entity = entity


class _FieldErrorsMixin:
    errors: list[FieldError]

    def to_response(self) -> dict:
        body = CoreError.to_response(self)  # type: ignore[arg-type]
        body["error"]["errors"] = [e.to_dict() for e in self.errors]
        return body


class ValidationFailedError(_FieldErrorsMixin, CoreError):
    kind = ErrorKind.VALIDATION_ERROR
    http_status = 422

    def __init__(self, errors: list[FieldError]):
        super().__init__("Validation error")
        self.errors = list(errors)


class ConflictError(_FieldErrorsMixin, CoreError):
    kind = ErrorKind.CONFLICT
    http_status = 409

    def __init__(self, errors: list[FieldError]):
        fields = ", ".join(e.field for e in errors)
        super().__init__(f"A record with this {fields} already exists")
        self.errors = list(errors)


class InternalError(CoreError):
    kind = ErrorKind.INTERNAL
    http_status = 500

    def __init__(self, message: str = "Internal error"):
        super().__init__(message)


class UniqueViolationError(Exception):
    """Raised by an entity store when a write breaks a uniqueness constraint."""

    def __init__(self, field: str):
        super().__init__(f"Unique constraint violated on {field}")
        self.field = field
