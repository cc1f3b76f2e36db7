"""HTTP route definitions for the identity lifecycle service."""

from __future__ import annotations

import logging
from datetime import date
from typing import Annotated

from email_validator import validate_email
from fastapi import APIRouter, Depends, Header, Request, Response, status
from pydantic import AfterValidator, BaseModel, Field

from ..domain.contracts import (
    ForgotPasswordInput,
    LoginInput,
    RegisterInput,
    ResetPasswordInput,
    VerifyAccountInput,
)
from ..domain.errors import AuthError, UserNotFoundError
from ..domain.service import AccountService, AuthResult
from .errors import http_error_from_auth_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["auth"])


def _check_email_format(value: str) -> str:
    """Validate the address syntax and return the input unchanged.

    Emails are matched exactly as stored, so the normalized form computed by
    email_validator is discarded.
    """
    validate_email(value, check_deliverability=False)
    return value


EmailAddress = Annotated[str, AfterValidator(_check_email_format)]


class RegisterRequest(BaseModel):
    """Payload accepted when registering an account."""

    email: EmailAddress
    password: str = Field(..., min_length=8, max_length=128)
    firstname: str = Field(..., min_length=1, max_length=100)
    lastname: str = Field(..., min_length=1, max_length=100)


class VerifyAccountRequest(BaseModel):
    email: EmailAddress
    activation_code: str = Field(..., min_length=1, max_length=64)


class LoginRequest(BaseModel):
    email: EmailAddress
    password: str = Field(..., min_length=1, max_length=128)


class ForgotPasswordRequest(BaseModel):
    email: EmailAddress


class ResetPasswordRequest(BaseModel):
    email: EmailAddress
    reset_code: str = Field(..., min_length=1, max_length=64)
    new_password: str = Field(..., min_length=8, max_length=128)


class AuthResponse(BaseModel):
    """Public profile of an authenticated account plus its token pair."""

    id: str
    email: str
    firstname: str
    lastname: str
    birthday: date | None = None
    phone: str = ""
    avatar: str = ""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

    @classmethod
    def from_result(cls, result: AuthResult) -> "AuthResponse":
        """Build a response model from the service result."""
        account = result.account
        return cls(
            id=account.account_id,
            email=account.email,
            firstname=account.firstname,
            lastname=account.lastname,
            birthday=account.birthday,
            phone=account.phone or "",
            avatar=account.avatar or "",
            access_token=result.tokens.access_token,
            refresh_token=result.tokens.refresh_token,
        )


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    service: AccountService = Depends(get_service),
    accept_language: str | None = Header(default=None, alias="Accept-Language"),
) -> AuthResponse:
    """Register a new account, or resurrect a soft-deleted one, and sign it in."""
    try:
        result = service.register(
            RegisterInput(
                email=payload.email,
                password=payload.password,
                firstname=payload.firstname,
                lastname=payload.lastname,
            )
        )
    except AuthError as exc:
        raise http_error_from_auth_error(exc, accept_language, service.settings.default_locale) from exc
    return AuthResponse.from_result(result)


@router.post("/verify", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def verify_account(
    payload: VerifyAccountRequest,
    service: AccountService = Depends(get_service),
    accept_language: str | None = Header(default=None, alias="Accept-Language"),
) -> Response:
    """Consume an activation code sent to the account's email address."""
    try:
        service.verify_account(
            VerifyAccountInput(email=payload.email, activation_code=payload.activation_code)
        )
    except AuthError as exc:
        raise http_error_from_auth_error(exc, accept_language, service.settings.default_locale) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    service: AccountService = Depends(get_service),
    accept_language: str | None = Header(default=None, alias="Accept-Language"),
) -> AuthResponse:
    """Authenticate with email and password and return a token pair."""
    try:
        result = service.login(LoginInput(email=payload.email, password=payload.password))
    except UserNotFoundError as exc:
        raise http_error_from_auth_error(
            exc,
            accept_language,
            service.settings.default_locale,
            status_code=status.HTTP_401_UNAUTHORIZED,
        ) from exc
    except AuthError as exc:
        raise http_error_from_auth_error(exc, accept_language, service.settings.default_locale) from exc
    return AuthResponse.from_result(result)


@router.post("/forgot-password", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def forgot_password(
    payload: ForgotPasswordRequest,
    service: AccountService = Depends(get_service),
    accept_language: str | None = Header(default=None, alias="Accept-Language"),
) -> Response:
    """Email a time-bounded password reset code to an active account."""
    try:
        service.forgot_password(ForgotPasswordInput(email=payload.email))
    except AuthError as exc:
        raise http_error_from_auth_error(exc, accept_language, service.settings.default_locale) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/reset-password", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def reset_password(
    payload: ResetPasswordRequest,
    service: AccountService = Depends(get_service),
    accept_language: str | None = Header(default=None, alias="Accept-Language"),
) -> Response:
    """Replace the account password using a valid reset code."""
    try:
        service.reset_password(
            ResetPasswordInput(
                email=payload.email,
                reset_code=payload.reset_code,
                new_password=payload.new_password,
            )
        )
    except AuthError as exc:
        logger.info("password reset rejected: %s", exc.kind.value)
        raise http_error_from_auth_error(exc, accept_language, service.settings.default_locale) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
