import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sales_assistant.utils.response import error_response

logger = logging.getLogger(__name__)


class AppException(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AnalysisError(AppException):
    """The external analyzer failed (network, service or malformed reply)."""

    def __init__(self, message: str = ""):
        super().__init__(message, status_code=502)


class GenerationError(AppException):
    """The external ad generator failed."""

    def __init__(self, message: str = ""):
        super().__init__(message, status_code=502)


class StorageError(AppException):
    """A durable write was rejected (quota exceeded, storage unavailable)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=507)


class CorruptHistoryError(AppException):
    """Persisted history could not be decoded. Never surfaced to the user."""

    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class InvalidTransitionError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class HistoryItemNotFoundError(AppException):
    def __init__(self, item_id: str):
        super().__init__(f"Запис історії {item_id} не знайдено", status_code=404)
        self.item_id = item_id


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(exc.message),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=error_response("Внутрішня помилка сервера"),
        )
