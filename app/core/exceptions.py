import logging
from typing import List, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map straight onto an HTTP response.

    ``message`` is shown to the end user as-is, so it must never carry
    stack traces or internal identifiers.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    error: str = "bad_request"

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "validation_error"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "unauthorized"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "forbidden"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    error = "seats_unavailable"

    def __init__(
        self,
        message: str,
        unavailable_seat_ids: Optional[List[str]] = None,
        failed_count: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.unavailable_seat_ids = [str(s) for s in (unavailable_seat_ids or [])]
        self.failed_count = failed_count

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["unavailable_seat_ids"] = self.unavailable_seat_ids
        if self.failed_count is not None:
            body["failed_count"] = self.failed_count
        return body


class PersistenceError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "persistence_error"


class ExternalServiceError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    error = "external_service_error"


# ---------------------------------------------------------------------------
# FastAPI handlers
# ---------------------------------------------------------------------------


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Unhandled database error on %s %s", request.method, request.url.path)
    error = PersistenceError("The request could not be saved. Please try again.")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)
