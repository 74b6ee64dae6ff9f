"""
Exceptions raised by the HTTP layer and the handlers that render them.

Store commands report missing targets by return value; routers translate
those into the exceptions below so every endpoint answers with the same
``{"detail": ..., "error_code": ...}`` body.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .schemas.execute import ExecuteError

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Body of every error answered by the API."""
    detail: str
    error_code: str | None = None


class APIException(Exception):
    """Base class for errors that map to an HTTP status and error code."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str | None = None

    def __init__(self, detail: str, status_code: int | None = None, error_code: str | None = None):
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        super().__init__(detail)


class ResourceNotFoundError(APIException):
    """A collection, folder, request, environment, tab or history item is missing."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource_type: str, resource_id: Any):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} with id {resource_id} not found")


class ImportValidationError(APIException):
    """An import payload is malformed or carries nothing to import."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "VALIDATION_ERROR"


class BadRequestError(APIException):
    """A command was rejected, e.g. an out-of-range reorder or a cyclic move."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "BAD_REQUEST"


class ExecutionError(APIException):
    """
    The executor could not produce a response.

    Status and error code follow the executor's ``error_type``: timeouts
    answer 504, network failures 502, unusable URLs 400 and anything else
    500.
    """

    STATUS_BY_TYPE = {
        "timeout": (status.HTTP_504_GATEWAY_TIMEOUT, "TIMEOUT"),
        "network_error": (status.HTTP_502_BAD_GATEWAY, "NETWORK_ERROR"),
        "invalid_url": (status.HTTP_400_BAD_REQUEST, "INVALID_URL"),
    }

    def __init__(self, error: ExecuteError):
        self.error_type = error.error_type
        self.details = error.details
        status_code, error_code = self.STATUS_BY_TYPE.get(
            error.error_type, (status.HTTP_500_INTERNAL_SERVER_ERROR, "EXECUTION_ERROR")
        )
        super().__init__(error.error, status_code=status_code, error_code=error_code)


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(detail=exc.detail, error_code=exc.error_code).model_dump(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Flatten FastAPI validation errors into one ``loc: msg`` string."""
    messages = [
        " -> ".join(str(part) for part in error["loc"]) + f": {error['msg']}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            detail="; ".join(messages) or "Validation error",
            error_code="VALIDATION_ERROR",
        ).model_dump(),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(detail="Internal server error", error_code="INTERNAL_ERROR").model_dump(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers above on ``app``."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
