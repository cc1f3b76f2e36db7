"""Failure taxonomy for the account lifecycle workflows."""

from __future__ import annotations

from enum import Enum
from typing import ClassVar


class ErrorKind(str, Enum):
    ALREADY_EXISTS = "already_exists"
    INVALID_ACTIVATION_CODE = "invalid_activation_code"
    USER_NOT_FOUND = "user_not_found"
    ACCOUNT_DELETED = "account_deleted"
    ACCOUNT_NOT_ACTIVATED = "account_not_activated"
    INVALID_PASSWORD = "invalid_password"
    INVALID_RESET_CODE = "invalid_reset_code"
    RESET_CODE_EXPIRED = "reset_code_expired"
    INTERNAL = "internal_error"


class AuthError(Exception):
    """Base class for expected, caller-facing account workflow failures.

    Each subclass carries a stable ``kind`` and a ``message_key`` that
    presentation layers resolve through the message catalogs in ``app.i18n``.
    """

    kind: ClassVar[ErrorKind]
    message_key: ClassVar[str]

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.kind.value)


class AlreadyExistsError(AuthError):
    kind = ErrorKind.ALREADY_EXISTS
    message_key = "error.user.already_exists"


class InvalidActivationCodeError(AuthError):
    kind = ErrorKind.INVALID_ACTIVATION_CODE
    message_key = "error.activation_code.invalid"


class UserNotFoundError(AuthError):
    kind = ErrorKind.USER_NOT_FOUND
    message_key = "error.user.not_found"


class AccountDeletedError(AuthError):
    kind = ErrorKind.ACCOUNT_DELETED
    message_key = "error.user.account_deleted"


class AccountNotActivatedError(AuthError):
    kind = ErrorKind.ACCOUNT_NOT_ACTIVATED
    message_key = "error.user.account_not_activated"


class InvalidPasswordError(AuthError):
    kind = ErrorKind.INVALID_PASSWORD
    message_key = "error.password.invalid"


class InvalidResetCodeError(AuthError):
    kind = ErrorKind.INVALID_RESET_CODE
    message_key = "error.reset_code.invalid"


class ResetCodeExpiredError(AuthError):
    kind = ErrorKind.RESET_CODE_EXPIRED
    message_key = "error.reset_code.expired"


INTERNAL_MESSAGE_KEY = "error.internal"


class MailDeliveryError(RuntimeError):
    """Raised by mail adapters when an outbound message could not be handed off."""
