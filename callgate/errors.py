"""Gateway error taxonomy and its HTTP rendering."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base error carrying an HTTP status and a stable machine-readable reason."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    reason: str = "internal_error"
    message: str = "Internal error"

    def __init__(self, message: str | None = None, reason: str | None = None):
        if message is not None:
            self.message = message
        if reason is not None:
            self.reason = reason
        super().__init__(self.message)


class MissingCredential(GatewayError):
    status_code = status.HTTP_401_UNAUTHORIZED
    reason = "missing_api_key"
    message = "Missing API key"


class Unauthorized(GatewayError):
    """Unknown or revoked key. Deliberately one shape for both."""

    status_code = status.HTTP_401_UNAUTHORIZED
    reason = "unauthorized"
    message = "Unauthorized"


class ValidationError(GatewayError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    reason = "validation_error"
    message = "Invalid request body"


class StorageFailure(GatewayError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    reason = "storage_error"
    message = "Storage failure"


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": exc.reason, "message": exc.message},
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return await gateway_error_handler(request, ValidationError())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
