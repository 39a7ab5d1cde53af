from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.features.scan.exceptions import InvalidRequestError, ScanError
from app.platform.logger import get_logger
from app.platform.response import error_response

logger = get_logger(__name__)

SCAN_FAILED_MESSAGE = "Failed to analyze URL"
URL_REQUIRED_MESSAGE = "URL is required"


def scan_error_response(exc: ScanError):
    """Map a pipeline failure onto the client-facing error payload."""
    if isinstance(exc, InvalidRequestError):
        return error_response(URL_REQUIRED_MESSAGE, status_code=status.HTTP_400_BAD_REQUEST)

    logger.error(f"Scan failed [{exc.error_class}] at stage {exc.stage}: {exc.message}")
    return error_response(
        SCAN_FAILED_MESSAGE,
        details=exc.message,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def add_exception_handlers(app):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(str(exc.detail) or "Error", status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return error_response(
            "Invalid request body",
            details=exc.errors(),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(ScanError)
    async def scan_exception_handler(request: Request, exc: ScanError):
        return scan_error_response(exc)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return error_response(
            SCAN_FAILED_MESSAGE,
            details=str(exc),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
