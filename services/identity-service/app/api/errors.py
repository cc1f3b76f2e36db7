"""Translation of account workflow failures into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from ..domain.errors import INTERNAL_MESSAGE_KEY, AuthError, ErrorKind
from ..i18n import negotiate_locale, translate

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.ALREADY_EXISTS: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.INVALID_ACTIVATION_CODE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.ACCOUNT_DELETED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.ACCOUNT_NOT_ACTIVATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_PASSWORD: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_RESET_CODE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.RESET_CODE_EXPIRED: status.HTTP_401_UNAUTHORIZED,
}


def http_error_from_auth_error(
    exc: AuthError,
    accept_language: str | None,
    default_locale: str | None = None,
    status_code: int | None = None,
) -> HTTPException:
    """Build the localized ``HTTPException`` for a domain failure."""
    locale = negotiate_locale(accept_language, default_locale)
    message = translate(exc.message_key, locale, default_locale)
    return HTTPException(
        status_code=status_code or STATUS_BY_KIND[exc.kind],
        detail={"error": exc.kind.value, "message": message},
    )


def _configured_default_locale(request: Request) -> str | None:
    service = getattr(request.app.state, "account_service", None)
    return service.settings.default_locale if service is not None else None


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures and return a generic localized 500 response."""
    logger.error("unexpected error on %s %s", request.method, request.url.path, exc_info=exc)
    default_locale = _configured_default_locale(request)
    locale = negotiate_locale(request.headers.get("accept-language"), default_locale)
    message = translate(INTERNAL_MESSAGE_KEY, locale, default_locale)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": {"error": ErrorKind.INTERNAL.value, "message": message}},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Exception, unhandled_exception_handler)
