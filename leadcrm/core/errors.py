import logging
import secrets
import traceback

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from leadcrm.core.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# ERROR TAXONOMY
# ---------------------------------------------------------
class ValidationError(HTTPException):
    def __init__(self, detail="Validation failed"):
        super().__init__(status_code=400, detail=detail)


class AuthenticationError(HTTPException):
    def __init__(self, detail="Not authenticated"):
        super().__init__(status_code=401, detail=detail)


class AuthorizationError(HTTPException):
    def __init__(self, detail="Access denied"):
        super().__init__(status_code=403, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail="Resource not found"):
        super().__init__(status_code=404, detail=detail)


class ConflictError(HTTPException):
    # Shares 400 with validation failures
    def __init__(self, detail="Conflict"):
        super().__init__(status_code=400, detail=detail)


class InternalError(HTTPException):
    def __init__(self, detail="Internal server error"):
        super().__init__(status_code=500, detail=detail)


class AlreadyClockedIn(ConflictError):
    def __init__(self, detail="Already clocked in today"):
        super().__init__(detail=detail)


class NoActiveSession(ConflictError):
    def __init__(self, detail="No active clock-in session found"):
        super().__init__(detail=detail)


# ---------------------------------------------------------
# HANDLERS
# ---------------------------------------------------------
def new_error_id() -> str:
    return secrets.token_hex(4)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation failed", "errors": jsonable_encoder(exc.errors())},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    error_id = new_error_id()
    logger.error(f"❌ [{error_id}] {request.method} {request.url.path} failed: {exc}", exc_info=exc)

    content = {"detail": "Internal server error", "error_id": error_id}
    if not settings.is_production:
        content["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    return JSONResponse(status_code=500, content=content)


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
