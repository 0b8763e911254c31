"""
Исключения приложения и их отображение в HTTP-ответы.

Сервисы бросают наследников APIException, роутеры их не перехватывают:
единый формат ответа {"detail": ..., "errorCode": ...} обеспечивают обработчики ниже.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from app.core.config import settings

logger = logging.getLogger(__name__)


class APIException(HTTPException):
    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class ValidationError(APIException):
    def __init__(self, detail: str, field: Optional[str] = None):
        error_code = f"VALIDATION_ERROR_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, error_code)
        self.field = field


class UnauthorizedError(APIException):
    def __init__(self, detail: str = "Требуется авторизация"):
        super().__init__(
            status.HTTP_401_UNAUTHORIZED,
            detail,
            "UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidAssertionError(UnauthorizedError):
    """Google не подтвердил identity-токен."""

    def __init__(self, detail: str = "Google токен не прошёл проверку"):
        super().__init__(detail)
        self.error_code = "INVALID_ASSERTION"


class ForbiddenError(APIException):
    def __init__(self, detail: str = "Недостаточно прав для выполнения этого действия"):
        super().__init__(status.HTTP_403_FORBIDDEN, detail, "FORBIDDEN")


class NotFoundError(APIException):
    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            status.HTTP_404_NOT_FOUND,
            f"{resource} не найден(а): {identifier}",
            "NOT_FOUND",
        )
        self.resource = resource


class ConflictError(APIException):
    def __init__(self, detail: str):
        super().__init__(status.HTTP_409_CONFLICT, detail, "CONFLICT")


class InternalError(APIException):
    def __init__(self, detail: str = "Внутренняя ошибка сервера", error_code: str = "INTERNAL"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail, error_code)


class MalformedProviderResponseError(InternalError):
    def __init__(self, detail: str = "Не удалось разобрать ответ Google"):
        super().__init__(detail, "MALFORMED_PROVIDER_RESPONSE")


class IdentityProviderUnavailableError(InternalError):
    def __init__(self, detail: str = "Сервис Google недоступен"):
        super().__init__(detail, "PROVIDER_UNAVAILABLE")


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "errorCode": exc.error_code},
        headers=exc.headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": "Некорректные данные запроса",
            "errorCode": "VALIDATION_ERROR",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Нарушение ограничения БД на %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "Запись конфликтует с существующими данными", "errorCode": "CONFLICT"},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception: %s",
        exc,
        exc_info=exc,
        extra={"extra_fields": {"method": request.method, "path": request.url.path}},
    )
    detail = str(exc) if settings.DEBUG else "Internal server error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": detail, "errorCode": "INTERNAL"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
