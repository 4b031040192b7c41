"""
Global exception handlers.

Anything a route handler does not turn into an HTTPException ends up here:
it is logged with the request context and answered with a generic JSON body.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from tmv_platform.utils.logger import get_logger

logger = get_logger(__name__)


class PaymentGatewayError(Exception):
    """Raised when the payment provider rejects or fails a request."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning(f"Integrity error in {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=409,
        content={"detail": "Conflicting or invalid reference data"}
    )


async def payment_gateway_error_handler(request: Request, exc: PaymentGatewayError) -> JSONResponse:
    logger.error(f"Payment gateway error in {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"detail": "Payment provider unavailable"}
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Log an unhandled exception with its traceback and return a 500.

    The response never carries exception text; details stay in the log.
    """
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {type(exc).__name__}: {exc}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the exception handlers on the application."""
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(PaymentGatewayError, payment_gateway_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("Exception handlers registered")
