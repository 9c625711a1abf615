"""Service exceptions and their HTTP mapping.

Services and the access validator raise these instead of
`HTTPException` so they stay usable outside a request. The handlers
registered by `register_error_handlers` turn them into JSON responses
with a `detail` message and the matching status code.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("lessons.api")


class LessonsError(Exception):
    """Base class for errors surfaced to API callers."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LessonsError):
    """The requested entity or identity does not exist."""
    status_code = 404


class AccessDeniedError(LessonsError):
    """The caller is missing or its role is not permitted."""
    status_code = 403


class InvalidPayloadError(LessonsError):
    """The request body is null or malformed."""
    status_code = 400


class IdentityServiceError(LessonsError):
    """The identity service could not be reached or answered with an error."""
    status_code = 503


async def lessons_error_handler(request: Request, exc: LessonsError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies as 400 with the offending fields."""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })
    logger.warning("invalid_payload path=%s errors=%d", request.url.path, len(errors))
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request payload", "errors": errors},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LessonsError, lessons_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
