from __future__ import annotations

import dataclasses
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api import routes
from app.api.errors import install_error_handlers
from app.config import Settings
from app.domain.account import Account, PendingReset
from app.domain.contracts import AccountLookup, CreateAccountInput
from app.domain.errors import MailDeliveryError
from app.domain.service import AccountService
from app.security.passwords import PasswordHasher
from app.security.tokens import JwtTokenIssuer


class FakeRepository:
    """In-memory repository mimicking the Postgres-backed behaviors."""

    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}
        self.updates: list[tuple[str, dict[str, Any]]] = []

    def find_one(self, lookup: AccountLookup) -> Account | None:
        matches = [account for account in self.accounts.values() if self._matches(account, lookup)]
        if not matches:
            return None
        latest = max(matches, key=lambda account: account.updated_at)
        return dataclasses.replace(latest)

    def create_account(self, payload: CreateAccountInput) -> Account:
        now = datetime.now(timezone.utc)
        account = Account(
            account_id=str(uuid.uuid4()),
            email=payload.email,
            password_hash=payload.password_hash,
            firstname=payload.firstname,
            lastname=payload.lastname,
            is_active=payload.is_active,
            auth_provider=payload.auth_provider,
            activation_code=payload.activation_code,
            created_at=now,
            updated_at=now,
        )
        self.accounts[account.account_id] = account
        return dataclasses.replace(account)

    def update_account(self, account_id: str, changes: Mapping[str, Any]) -> Account:
        account = self.accounts[account_id]
        self.updates.append((account_id, dict(changes)))
        fields = dict(changes)
        if "reset_code" in fields or "reset_expire" in fields:
            code = fields.pop("reset_code", account.reset.code if account.reset else None)
            expires = fields.pop("reset_expire", account.reset.expires_at if account.reset else None)
            account.reset = PendingReset(code, expires) if code is not None else None
        for name, value in fields.items():
            setattr(account, name, value)
        account.updated_at = datetime.now(timezone.utc)
        return dataclasses.replace(account)

    def seed(self, **fields: Any) -> Account:
        """Insert an account directly, bypassing the registration workflow."""
        now = datetime.now(timezone.utc)
        defaults: dict[str, Any] = {
            "account_id": str(uuid.uuid4()),
            "password_hash": "not-a-bcrypt-hash",
            "firstname": "Test",
            "lastname": "User",
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }
        defaults.update(fields)
        account = Account(**defaults)
        self.accounts[account.account_id] = account
        return dataclasses.replace(account)

    def get(self, account_id: str) -> Account:
        return self.accounts[account_id]

    @staticmethod
    def _matches(account: Account, lookup: AccountLookup) -> bool:
        if account.email != lookup.email:
            return False
        if lookup.activation_code is not None and account.activation_code != lookup.activation_code:
            return False
        if lookup.reset_code is not None and (
            account.reset is None or account.reset.code != lookup.reset_code
        ):
            return False
        if lookup.is_active is not None and account.is_active != lookup.is_active:
            return False
        if lookup.deleted is not None and account.is_deleted != lookup.deleted:
            return False
        return True


class RecordingMailer:
    """Mailer double that records forgot-password dispatches."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = fail

    def send_forgot_password_email(self, to: str, code: str, expires_at_ms: int) -> None:
        if self.fail:
            raise MailDeliveryError("smtp unavailable")
        self.sent.append({"to": to, "code": code, "expires_at_ms": expires_at_ms})


@pytest.fixture
def settings() -> Settings:
    return Settings(
        jwt_secret="test-secret",
        jwt_issuer="test.identity",
        password_reset_expires_in="15m",
        default_locale="en",
    )


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def hasher() -> PasswordHasher:
    # Minimum bcrypt cost keeps the suite fast.
    return PasswordHasher(rounds=4)


@pytest.fixture
def service(repository, hasher, mailer, settings) -> AccountService:
    return AccountService(repository, hasher, JwtTokenIssuer(settings), mailer, settings=settings)


@pytest.fixture
def api_client(service):
    """Provide a FastAPI test client with isolated state."""
    app = FastAPI()
    app.include_router(routes.router)
    install_error_handlers(app)
    app.state.account_service = service

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
