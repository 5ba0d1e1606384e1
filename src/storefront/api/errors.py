"""HTTP rendering of storefront errors.

Protean's handlers cover ``ValidationError`` (400) and ``ObjectNotFoundError``
(404); the storefront's own errors are mapped here with the same
``{"error": messages}`` body. A version clash that escaped every retry is a
409 as well.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError
from protean.integrations.fastapi import register_exception_handlers

from storefront.errors import ConflictError, ExternalServiceError, StorefrontError, UnauthorizedError

logger = structlog.get_logger(__name__)

_STATUS_CODES = {
    ConflictError: 409,
    UnauthorizedError: 403,
    ExternalServiceError: 502,
}


def _handler(status_code: int):
    async def handle(request: Request, exc: StorefrontError) -> JSONResponse:
        logger.info("request_rejected", path=request.url.path, status_code=status_code, error=exc.messages)
        return JSONResponse(status_code=status_code, content={"error": exc.messages})

    return handle


async def _version_conflict(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.warning("request_version_conflict", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=409,
        content={"error": {"_concurrency": ["The record was changed by another request, please retry"]}},
    )


def register_storefront_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    for exc_class, status_code in _STATUS_CODES.items():
        app.add_exception_handler(exc_class, _handler(status_code))
    app.add_exception_handler(ExpectedVersionError, _version_conflict)
