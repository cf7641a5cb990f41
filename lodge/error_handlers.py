import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import (
    AuthenticationError,
    InsertError,
    NoActiveReservation,
    QueryError,
    RecordNotFound,
    RestrictionConflict,
    RoomUnavailable,
    ValidationError,
)

logger = logging.getLogger(__name__)

SEARCH_PAGE = "/search-availability"


def _error(request: Request, status_code: int, error: str, detail, **extra) -> JSONResponse:
    content = {"error": error, "detail": detail, "path": str(request.url.path)}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app):
    """
    Register global exception handlers for standardized error responses.
    """

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error(request, 422, "Validation error", "Invalid request data", errors=jsonable_encoder(exc.errors()))

    @app.exception_handler(ValidationError)
    async def form_validation_handler(request: Request, exc: ValidationError):
        # field-level messages so the form can be shown again
        return _error(request, 422, "Validation error", str(exc), errors=exc.errors)

    @app.exception_handler(NoActiveReservation)
    async def no_reservation_handler(request: Request, exc: NoActiveReservation):
        logger.info("%s without a draft reservation: %s", request.url.path, exc)
        return RedirectResponse(url=SEARCH_PAGE, status_code=303)

    @app.exception_handler(RecordNotFound)
    async def not_found_handler(request: Request, exc: RecordNotFound):
        return _error(request, 404, "Not found", str(exc))

    @app.exception_handler(QueryError)
    async def query_error_handler(request: Request, exc: QueryError):
        logger.error("query failed on %s: %s", request.url.path, exc)
        return _error(request, 500, "Database error", str(exc))

    @app.exception_handler(RoomUnavailable)
    async def room_unavailable_handler(request: Request, exc: RoomUnavailable):
        return _error(request, 409, "Room unavailable", str(exc))

    @app.exception_handler(RestrictionConflict)
    async def restriction_conflict_handler(request: Request, exc: RestrictionConflict):
        return _error(request, 409, "Dates unavailable", str(exc))

    @app.exception_handler(InsertError)
    async def insert_error_handler(request: Request, exc: InsertError):
        logger.error("write failed on %s: %s", request.url.path, exc)
        return _error(request, 500, "Database error", str(exc))

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(request: Request, exc: AuthenticationError):
        return _error(request, 401, "Authentication error", str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "HTTP error",
                "detail": exc.detail,
                "path": str(request.url.path),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled error on %s", request.url.path)
        return _error(request, 500, "Internal server error", "An unexpected error occurred")
