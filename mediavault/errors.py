from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class MediaVaultError(Exception):
    """Base class for errors surfaced to callers."""

    status_code = 500

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class NotFound(MediaVaultError):
    # Also used for entities owned by someone else, so ownership never leaks.
    status_code = 404


class InvalidArgument(MediaVaultError):
    status_code = 400


class Conflict(MediaVaultError):
    status_code = 409


class Unauthorized(MediaVaultError):
    status_code = 401


class Forbidden(MediaVaultError):
    status_code = 403


class DependencyError(MediaVaultError):
    """The blob store or the database could not be reached."""

    status_code = 503


def register_exception_handlers(app: FastAPI) -> FastAPI:

    @app.exception_handler(MediaVaultError)
    async def mediavault_error_handler(request: Request, exc: MediaVaultError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    return app
