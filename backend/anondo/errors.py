"""Reason-coded HTTP errors and app-wide exception handlers.

Every rejected request carries ``detail = {"message": ..., "reason": ...}`` so
clients can branch on ``reason`` instead of parsing messages.
"""
import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


def api_error(status_code: int, reason: str, message: str) -> HTTPException:
    """Build an HTTPException with a machine-readable reason code."""
    return HTTPException(status_code=status_code, detail={"message": message, "reason": reason})


def bad_request(reason: str, message: str) -> HTTPException:
    return api_error(status.HTTP_400_BAD_REQUEST, reason, message)


def not_found(message: str, reason: str = "not_found") -> HTTPException:
    return api_error(status.HTTP_404_NOT_FOUND, reason, message)


def forbidden(message: str, reason: str = "forbidden") -> HTTPException:
    return api_error(status.HTTP_403_FORBIDDEN, reason, message)


def unauthorized(message: str = "Authentication required", reason: str = "unauthenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"message": message, "reason": reason},
        headers={"WWW-Authenticate": "Bearer"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map validation errors to 400 and unexpected errors to a logged 500."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info("Validation error on %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": {
                "message": "Invalid request",
                "reason": "validation_error",
                "errors": jsonable_encoder(exc.errors()),
            }},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error while processing %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )
