# staykeeper/errors.py
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class StayKeeperError(Exception):
    """Base class for errors raised by the store and the client core."""

    status_code = 500

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.message = message or self.__class__.__name__
        self.detail = detail or {}


class EntityStoreError(StayKeeperError):
    """The entity store could not complete a request (transport, database, unexpected response)."""

    status_code = 502


class NotFoundError(EntityStoreError):
    status_code = 404


class PermissionDeniedError(StayKeeperError):
    status_code = 403


class ValidationError(StayKeeperError):
    """Input rejected before any store call was made."""

    status_code = 422


class MigrationError(StayKeeperError):
    status_code = 500


class ProtectedRecordError(StayKeeperError):
    """The row exists and is visible but may not be changed this way."""

    status_code = 400


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StayKeeperError)
    async def _stay_keeper_error(_request: Request, exc: StayKeeperError) -> JSONResponse:
        body: dict = {"detail": exc.message}
        if exc.detail:
            body["context"] = exc.detail
        return JSONResponse(status_code=exc.status_code, content=body)
