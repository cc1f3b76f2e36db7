"""Domain-level request contracts and capability interfaces shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from .account import Account, AuthProvider


@dataclass(slots=True)
class RegisterInput:
    """Validated inputs required to register (or resurrect) an account."""

    email: str
    password: str
    firstname: str
    lastname: str


@dataclass(slots=True)
class VerifyAccountInput:
    email: str
    activation_code: str


@dataclass(slots=True)
class LoginInput:
    email: str
    password: str


@dataclass(slots=True)
class ForgotPasswordInput:
    email: str


@dataclass(slots=True)
class ResetPasswordInput:
    email: str
    reset_code: str
    new_password: str


@dataclass(slots=True)
class CreateAccountInput:
    """Column values for a freshly inserted account row."""

    email: str
    password_hash: str
    firstname: str
    lastname: str
    auth_provider: AuthProvider = AuthProvider.DEFAULT
    is_active: bool = True
    activation_code: str | None = None


@dataclass(slots=True, frozen=True)
class AccountLookup:
    """Conjunctive predicate used to find a single account.

    ``None`` leaves a field unconstrained. ``deleted=True`` matches soft-deleted
    rows only and ``deleted=False`` matches live rows only.
    """

    email: str
    activation_code: str | None = None
    reset_code: str | None = None
    is_active: bool | None = None
    deleted: bool | None = None


class AccountStore(Protocol):
    def find_one(self, lookup: AccountLookup) -> Account | None: ...

    def create_account(self, payload: CreateAccountInput) -> Account: ...

    def update_account(self, account_id: str, changes: Mapping[str, Any]) -> Account: ...


class PasswordHashing(Protocol):
    def hash(self, password: str) -> str: ...

    def verify(self, password: str, hashed_password: str) -> bool: ...


class TokenIssuing(Protocol):
    def create_access_token(self, account: Account) -> str: ...

    def create_refresh_token(self, account: Account) -> str: ...


class ForgotPasswordMailer(Protocol):
    def send_forgot_password_email(self, to: str, code: str, expires_at_ms: int) -> None: ...
