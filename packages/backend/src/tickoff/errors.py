"""Application error taxonomy.

Every error the API surfaces to clients is an AppError subclass carrying
its HTTP status, a stable machine-readable code, and optional per-field
messages. Handlers in middleware/errors.py render them as:

    {"error": "not_found", "message": "Todo not found", "fields": []}
"""

from typing import Optional


class AppError(Exception):
    """Base class for errors rendered to API clients."""

    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        fields: Optional[list[dict[str, str]]] = None,
    ):
        self.message = message or self.default_message
        self.fields = fields or []
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "fields": self.fields}


class ValidationError(AppError):
    """Input failed validation. `fields` lists {field, message} pairs."""

    status_code = 400
    code = "validation_error"
    default_message = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, fields=[{"field": field, "message": message}])


class Unauthorized(AppError):
    status_code = 401
    code = "unauthorized"
    default_message = "Authentication required"


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    default_message = "You do not have access to this resource"


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 409
    code = "conflict"
    default_message = "Resource already exists"


class InternalError(AppError):
    pass
