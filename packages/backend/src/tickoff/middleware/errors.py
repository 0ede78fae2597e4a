"""Exception handlers — map errors to the API's JSON error shape.

Every error response looks like:

    {"error": "<code>", "message": "<text>", "fields": [{"field", "message"}]}

Database and unexpected errors are logged with the request context and
reported as a generic 500; their details never reach the client.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from tickoff.errors import AppError, InternalError, ValidationError

logger = structlog.get_logger()

# Location prefixes FastAPI adds that mean nothing to API clients.
_LOC_SOURCES = {"body", "query", "path", "cookie", "header"}


def _field_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    fields = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in _LOC_SOURCES]
        msg = err.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        fields.append({"field": ".".join(loc) or "body", "message": msg})
    return fields


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    error = ValidationError(fields=_field_errors(exc))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "http_error", "message": str(exc.detail), "fields": []},
        headers=getattr(exc, "headers", None),
    )


async def database_error_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    logger.error("request.database_error", error_type=type(exc).__name__, exc_info=exc)
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("request.unhandled_error", error_type=type(exc).__name__, exc_info=exc)
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(SQLAlchemyError)(database_error_handler)
    app.exception_handler(Exception)(unhandled_error_handler)
