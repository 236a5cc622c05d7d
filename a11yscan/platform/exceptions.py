import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from a11yscan.features.scan.errors import InvalidScanStateError, PersistenceError, ScanNotFoundError
from a11yscan.platform.response import error_response

logger = logging.getLogger(__name__)


def add_exception_handlers(app):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(str(exc.detail) or "Error", exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return error_response(
            "Validation failed",
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            errors=exc.errors(),
        )

    @app.exception_handler(ScanNotFoundError)
    async def scan_not_found_handler(request: Request, exc: ScanNotFoundError):
        return error_response(f"Scan {exc.scan_id} not found", status.HTTP_404_NOT_FOUND)

    @app.exception_handler(InvalidScanStateError)
    async def invalid_state_handler(request: Request, exc: InvalidScanStateError):
        return error_response(str(exc), status.HTTP_409_CONFLICT)

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError):
        logger.error(f"Scan storage unavailable: {exc}")
        return error_response("Scan storage is temporarily unavailable", status.HTTP_503_SERVICE_UNAVAILABLE)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return error_response("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)
