"""Middleware and exception handlers for the FastAPI application."""

import time
import traceback
import uuid

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from privgate.core.config import settings
from privgate.core.exceptions import (
    ConflictException,
    InvalidStateError,
    NotFoundException,
    PrivgateException,
    StorageUnavailableError,
    unpack_validation_error,
)
from privgate.core.logging import logger


async def add_request_id(request: Request, call_next: callable) -> Response:
    """Middleware to generate and add a request ID to the request for tracing.

    An incoming ``X-Request-Id`` header is reused so traces span services.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response, carrying the request ID header.

    """
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    return response


async def log_requests(request: Request, call_next: callable) -> Response:
    """Middleware to log incoming requests.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.with_context(request_id=getattr(request.state, "request_id", None)).info(
        f"Handled request {request.method} {request.url.path} in {duration:.3f} seconds. "
        f"Response code: {response.status_code}"
    )
    return response


async def exception_logging_middleware(request: Request, call_next: callable) -> Response:
    """Middleware to log unhandled exceptions.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

        response_content = {"detail": f"Internal Server Error: {exc.__class__.__name__}"}
        if settings.DEBUG:
            response_content["trace"] = traceback.format_exc()
        return JSONResponse(status_code=500, content=response_content)


# Exception handlers


async def validation_exception_handler(
    request: Request, exc: RequestValidationError | ValidationError
) -> JSONResponse:
    """Exception handler for validation errors that occur during request processing.

    Returns:
    -------
        JSONResponse: A 422 response listing each invalid field and its message, e.g.
            {"errors": [{"body.daily_limit": "Input should be greater than or equal to 1"}]}

    """
    error_messages = unpack_validation_error(exc)
    logger.warning(f"Validation error on {request.method} {request.url.path}: {error_messages}")
    return JSONResponse(status_code=422, content=error_messages)


async def not_found_exception_handler(request: Request, exc: NotFoundException) -> JSONResponse:
    """Exception handler for NotFoundException.

    Returns:
    -------
        JSONResponse: A 404 Not Found status response that details the error message.

    """
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def conflict_exception_handler(request: Request, exc: ConflictException) -> JSONResponse:
    """Exception handler for ConflictException.

    Returns:
    -------
        JSONResponse: A 409 Conflict status response that details the error message.

    """
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def invalid_state_exception_handler(request: Request, exc: InvalidStateError) -> JSONResponse:
    """Exception handler for InvalidStateError.

    Returns:
    -------
        JSONResponse: A 400 Bad Request status response that details the error message.

    """
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def storage_unavailable_exception_handler(
    request: Request, exc: StorageUnavailableError
) -> JSONResponse:
    """Exception handler for StorageUnavailableError.

    Returns:
    -------
        JSONResponse: A 503 Service Unavailable response with a Retry-After header.
            The client cannot tell whether quota remains, so this is never a denial.

    """
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc)},
        headers={"Retry-After": str(exc.retry_after)},
    )


async def privgate_exception_handler(request: Request, exc: PrivgateException) -> JSONResponse:
    """Fallback handler for PrivgateException types without a dedicated handler."""
    return JSONResponse(status_code=500, content={"detail": str(exc)})
