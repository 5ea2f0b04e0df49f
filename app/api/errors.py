"""Exception handlers mapping auth failures and unexpected errors to JSON responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.errors import AuthError

logger = logging.getLogger(__name__)


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render {"error", "code"} with the status carried by the exception."""
    content: dict[str, object] = {"error": exc.message, "code": exc.code}
    headers: dict[str, str] | None = None
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        content["retryAfter"] = retry_after
        headers = {"Retry-After": str(retry_after)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Generic 500; exception text only in dev, never a stack trace."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"error": "Internal server error"}
    if get_settings().APP_ENV == "dev":
        content["detail"] = str(exc)
    return JSONResponse(status_code=500, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
