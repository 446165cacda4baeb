"""Exception handling for the HTTP API.

Maps VaultNoteError and its subclasses to their HTTP status, request
validation failures to 400, and anything else to a generic 500.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from vaultnote.exceptions import ErrorCode, InternalError, VaultNoteError
from vaultnote.observability import scrub_message

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI, expose_details: bool = False) -> None:
    """Register exception handlers on the application.

    Args:
        app: The FastAPI application.
        expose_details: Include error details (such as sanitized storage
            errors) in responses. Keep off in production.
    """

    @app.exception_handler(VaultNoteError)
    async def vaultnote_error_handler(request: Request, exc: VaultNoteError) -> JSONResponse:
        if isinstance(exc, InternalError):
            logger.error(
                f"{request.method} {request.url.path} failed: [{exc.code.name}] {exc.message}"
            )
        else:
            logger.info(f"{request.method} {request.url.path} rejected: [{exc.code.name}] {exc.message}")

        return JSONResponse(
            status_code=exc.http_status,
            content=exc.to_dict(include_details=expose_details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        content = {"error": "invalid request", "code": ErrorCode.VALIDATION_FAILED.name}
        if expose_details:
            content["details"] = {
                "errors": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
                    for err in exc.errors()
                ]
            }
        return JSONResponse(status_code=400, content=content)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            f"Unhandled exception on {request.method} {request.url.path}: {type(exc).__name__}"
        )
        content = {"error": "internal server error", "code": ErrorCode.INTERNAL.name}
        if expose_details:
            content["details"] = {"original_error": scrub_message(str(exc))}
        return JSONResponse(status_code=500, content=content)
