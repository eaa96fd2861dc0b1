import structlog
from fastapi import Request
from fastapi.responses import JSONResponse, Response

from paymail.errors import (
    AuthenticationError,
    AuthExchangeError,
    InvalidSessionError,
    NotFoundError,
    ProfileFetchError,
    ValidationError,
)
from paymail.web.cookies import CookieCodec

logger = structlog.get_logger(__name__)


def create_json_error_response(status_code: int, message: str, error_type: str | None = None) -> JSONResponse:
    """Create JSON error response with optional type for machine parsing."""
    content = {"message": message}
    if error_type:
        content["type"] = error_type
    return JSONResponse(status_code=status_code, content=content)


async def user_error_handler(request: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    if isinstance(exc, AuthenticationError):
        status_code = 401
        error_type = "authentication_error"
    elif isinstance(exc, NotFoundError):
        status_code = 404
        error_type = "not_found"
    elif isinstance(exc, ValidationError):
        status_code = 400
        error_type = "validation_error"
    else:
        # Default for any other UserError subclass
        status_code = 400
        error_type = "bad_request"

    response = create_json_error_response(status_code=status_code, message=str(exc), error_type=error_type)
    if isinstance(exc, InvalidSessionError):
        cookies: CookieCodec = request.app.state.cookies
        cookies.clear(response)
    return response


async def integration_error_handler(_: Request, exc: Exception) -> Response:
    """Identity provider or Graph failures (500), details stay in the logs."""
    if isinstance(exc, AuthExchangeError | ProfileFetchError):
        logger.warning("authentication_flow_failed", error=type(exc).__name__, reason=str(exc))
        return create_json_error_response(
            status_code=500, message="Authentication failed", error_type="authentication_failed"
        )
    logger.warning("integration_failed", error=type(exc).__name__, reason=str(exc))
    return create_json_error_response(
        status_code=500, message="An external service failed.", error_type="integration_error"
    )


async def store_error_handler(_: Request, exc: Exception) -> Response:
    """Store I/O failures (500)."""
    logger.error("store_unavailable", reason=str(exc))
    return create_json_error_response(status_code=500, message="Storage is unavailable.", error_type="store_error")


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("unexpected_error", error=type(exc).__name__)
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )
