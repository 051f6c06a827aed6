# marks/middleware/error_handler.py
# JSON error envelope for the bookmarks API.
# Every response carries an X-Request-ID; AppError subclasses keep their
# status code, anything unexpected becomes a 500 with a generic message.

import logging
import traceback
import uuid
from typing import Callable, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from marks.errors import AppError
from marks.utils.logger import log_exception

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def create_error_response(
    error_code: str,
    message: str,
    status_code: int,
    details: dict = None,
    request_id: str = None
) -> JSONResponse:
    """Build ``{"error": {"code", "message", "details"?, "request_id"?}}``."""
    error = {"code": error_code, "message": message}
    if details:
        error["details"] = details
    headers = None
    if request_id:
        error["request_id"] = request_id
        headers = {REQUEST_ID_HEADER: request_id}
    return JSONResponse(status_code=status_code, content={"error": error}, headers=headers)


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def app_error_response(exc: AppError, request_id: str = None) -> JSONResponse:
    return create_error_response(
        error_code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        request_id=request_id,
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Outermost middleware: tags the request with an id (client supplied or
    generated) and converts exceptions that escaped the route handlers.
    """

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except AppError as e:
            logger.warning(
                f"{e.error_code} on {request.method} {request.url.path}: {e.message}",
                extra={"request_id": request_id},
            )
            response = app_error_response(e, request_id)
        except Exception as e:
            log_exception(e, context=f"{request.method} {request.url.path} request_id={request_id}")
            details = None
            if self.debug:
                details = {"type": type(e).__name__, "traceback": traceback.format_exc()}
            response = create_error_response(
                error_code="INTERNAL_ERROR",
                message="An internal error occurred. Please try again later.",
                status_code=500,
                details=details,
                request_id=request_id,
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def setup_exception_handlers(app):
    """Register handlers for errors raised inside routes and dependencies."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            log_exception(exc, context=f"{request.method} {request.url.path}")
        else:
            logger.info(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
        return app_error_response(exc, _request_id(request))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # malformed body or parameters, before any route code ran
        return create_error_response(
            error_code="REQUEST_INVALID",
            message="Request body or parameters are invalid",
            status_code=422,
            details={"errors": jsonable_encoder(exc.errors())},
            request_id=_request_id(request),
        )
