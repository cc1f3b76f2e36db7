from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from app.config import Settings
from app.domain.account import AccountStatus, AuthProvider, PendingReset
from app.domain.contracts import (
    ForgotPasswordInput,
    LoginInput,
    RegisterInput,
    ResetPasswordInput,
    VerifyAccountInput,
)
from app.domain.errors import (
    AccountDeletedError,
    AccountNotActivatedError,
    AlreadyExistsError,
    InvalidActivationCodeError,
    InvalidPasswordError,
    InvalidResetCodeError,
    ResetCodeExpiredError,
    UserNotFoundError,
)
from app.domain.service import AccountService
from app.security.tokens import REFRESH_TOKEN_TYPE, JwtTokenIssuer, decode_token

from conftest import RecordingMailer


def _register(service: AccountService, email: str = "alice@example.com", password: str = "s3cret-pass"):
    return service.register(
        RegisterInput(email=email, password=password, firstname="Alice", lastname="Liddell")
    )


def test_register_creates_active_account_with_tokens(service, repository, settings):
    result = _register(service)

    stored = repository.get(result.account.account_id)
    assert stored.status is AccountStatus.ACTIVE
    assert stored.activation_code is None
    assert stored.auth_provider is AuthProvider.DEFAULT
    assert stored.password_hash != "s3cret-pass"

    claims = decode_token(result.tokens.access_token, settings=settings)
    assert claims["sub"] == result.account.account_id
    refresh_claims = decode_token(result.tokens.refresh_token, REFRESH_TOKEN_TYPE, settings=settings)
    assert refresh_claims["jti"]


def test_register_twice_with_live_account_fails_and_keeps_id(service, repository):
    first = _register(service)

    with pytest.raises(AlreadyExistsError):
        _register(service, password="another-password")

    assert list(repository.accounts) == [first.account.account_id]
    assert service.login(LoginInput(email="alice@example.com", password="s3cret-pass"))


def test_register_resurrects_soft_deleted_account(service, repository, hasher):
    deleted = repository.seed(
        email="alice@example.com",
        firstname="Old",
        lastname="Name",
        is_active=False,
        activation_code="123456",
        auth_provider=AuthProvider.GOOGLE,
        deleted_at=datetime.now(timezone.utc) - timedelta(days=3),
    )

    result = _register(service)

    assert result.account.account_id == deleted.account_id
    assert len(repository.accounts) == 1
    stored = repository.get(deleted.account_id)
    assert stored.deleted_at is None
    assert stored.is_active is True
    assert stored.activation_code is None
    assert stored.auth_provider is AuthProvider.DEFAULT
    assert (stored.firstname, stored.lastname) == ("Alice", "Liddell")
    assert hasher.verify("s3cret-pass", stored.password_hash)


def test_verify_activates_account_and_clears_code(service, repository):
    pending = repository.seed(email="bob@example.com", is_active=False, activation_code="482913")

    service.verify_account(VerifyAccountInput(email="bob@example.com", activation_code="482913"))

    stored = repository.get(pending.account_id)
    assert stored.is_active is True
    assert stored.activation_code is None


def test_verify_ignores_activation_and_deletion_state(service, repository):
    already_active = repository.seed(
        email="carol@example.com",
        is_active=True,
        activation_code="111111",
        deleted_at=datetime.now(timezone.utc),
    )

    service.verify_account(VerifyAccountInput(email="carol@example.com", activation_code="111111"))

    stored = repository.get(already_active.account_id)
    assert stored.is_active is True
    assert stored.activation_code is None


def test_verify_with_wrong_code_does_not_mutate(service, repository):
    pending = repository.seed(email="bob@example.com", is_active=False, activation_code="482913")
    before = dataclasses.replace(repository.get(pending.account_id))

    with pytest.raises(InvalidActivationCodeError):
        service.verify_account(VerifyAccountInput(email="bob@example.com", activation_code="000000"))

    assert repository.get(pending.account_id) == before
    assert repository.updates == []


def test_login_classifies_deleted_account(service, repository, hasher):
    repository.seed(
        email="gone@example.com",
        password_hash=hasher.hash("whatever-pass"),
        deleted_at=datetime.now(timezone.utc),
    )

    with pytest.raises(AccountDeletedError):
        service.login(LoginInput(email="gone@example.com", password="whatever-pass"))


def test_login_classifies_inactive_account(service, repository):
    repository.seed(email="new@example.com", is_active=False, activation_code="555555")

    with pytest.raises(AccountNotActivatedError):
        service.login(LoginInput(email="new@example.com", password="irrelevant"))


def test_login_prefers_deleted_over_pending_for_same_email(service, repository):
    repository.seed(email="twice@example.com", deleted_at=datetime.now(timezone.utc))
    repository.seed(email="twice@example.com", is_active=False, activation_code="555555")

    with pytest.raises(AccountDeletedError):
        service.login(LoginInput(email="twice@example.com", password="irrelevant"))


def test_login_unknown_email(service):
    with pytest.raises(UserNotFoundError):
        service.login(LoginInput(email="nobody@example.com", password="irrelevant"))


def test_login_wrong_password(service):
    _register(service)

    with pytest.raises(InvalidPasswordError):
        service.login(LoginInput(email="alice@example.com", password="wrong-password"))


def test_login_success_returns_tokens(service):
    registered = _register(service)

    result = service.login(LoginInput(email="alice@example.com", password="s3cret-pass"))

    assert result.account.account_id == registered.account.account_id
    assert result.tokens.access_token
    assert result.tokens.refresh_token


def test_forgot_password_persists_code_and_sends_email(service, repository, mailer):
    account = _register(service).account

    before = datetime.now(timezone.utc)
    service.forgot_password(ForgotPasswordInput(email="alice@example.com"))
    after = datetime.now(timezone.utc)

    reset = repository.get(account.account_id).reset
    assert reset is not None
    assert len(reset.code) == 6 and reset.code.isdigit()
    assert 100000 <= int(reset.code) <= 999999
    assert before + timedelta(minutes=15) <= reset.expires_at <= after + timedelta(minutes=15)

    assert mailer.sent == [
        {
            "to": "alice@example.com",
            "code": reset.code,
            "expires_at_ms": int(reset.expires_at.timestamp() * 1000),
        }
    ]


def test_forgot_password_uses_configured_lifetime(repository, hasher, mailer):
    settings = Settings(jwt_secret="test-secret", password_reset_expires_in="30m")
    service = AccountService(repository, hasher, JwtTokenIssuer(settings), mailer, settings=settings)
    account = repository.seed(email="dave@example.com")

    before = datetime.now(timezone.utc)
    service.forgot_password(ForgotPasswordInput(email="dave@example.com"))

    expires_at = repository.get(account.account_id).reset.expires_at
    assert timedelta(minutes=30) <= expires_at - before < timedelta(minutes=30, seconds=5)


def test_forgot_password_requires_active_live_account(service, repository, mailer):
    repository.seed(email="new@example.com", is_active=False)
    repository.seed(email="gone@example.com", deleted_at=datetime.now(timezone.utc))

    for email in ("new@example.com", "gone@example.com", "nobody@example.com"):
        with pytest.raises(UserNotFoundError):
            service.forgot_password(ForgotPasswordInput(email=email))
    assert mailer.sent == []


def test_forgot_password_keeps_code_when_mail_fails(repository, hasher, settings):
    service = AccountService(
        repository, hasher, JwtTokenIssuer(settings), RecordingMailer(fail=True), settings=settings
    )
    account = repository.seed(email="erin@example.com")

    service.forgot_password(ForgotPasswordInput(email="erin@example.com"))

    assert repository.get(account.account_id).reset is not None


def test_reset_password_with_expired_code(service, repository):
    account = repository.seed(
        email="frank@example.com",
        reset=PendingReset("654321", datetime.now(timezone.utc) - timedelta(minutes=1)),
    )
    payload = ResetPasswordInput(
        email="frank@example.com", reset_code="654321", new_password="brand-new-pass"
    )

    with pytest.raises(ResetCodeExpiredError):
        service.reset_password(payload)
    assert repository.get(account.account_id).reset is None

    with pytest.raises(InvalidResetCodeError):
        service.reset_password(payload)


def test_reset_password_with_missing_expiry_is_expired(service, repository):
    account = repository.seed(email="gina@example.com", reset=PendingReset("777777", None))

    with pytest.raises(ResetCodeExpiredError):
        service.reset_password(
            ResetPasswordInput(email="gina@example.com", reset_code="777777", new_password="brand-new-pass")
        )
    assert repository.get(account.account_id).reset is None


def test_reset_password_with_wrong_code(service, repository):
    account = repository.seed(
        email="hank@example.com",
        reset=PendingReset("123456", datetime.now(timezone.utc) + timedelta(minutes=5)),
    )

    with pytest.raises(InvalidResetCodeError):
        service.reset_password(
            ResetPasswordInput(email="hank@example.com", reset_code="999999", new_password="brand-new-pass")
        )
    assert repository.get(account.account_id).reset.code == "123456"


def test_reset_password_success_replaces_password(service, repository, hasher):
    account = _register(service).account
    service.forgot_password(ForgotPasswordInput(email="alice@example.com"))
    code = repository.get(account.account_id).reset.code

    service.reset_password(
        ResetPasswordInput(email="alice@example.com", reset_code=code, new_password="brand-new-pass")
    )

    stored = repository.get(account.account_id)
    assert stored.reset is None
    assert hasher.verify("brand-new-pass", stored.password_hash)
    assert not hasher.verify("s3cret-pass", stored.password_hash)


def test_reset_password_rejects_inactive_account(service, repository):
    repository.seed(
        email="ivy@example.com",
        is_active=False,
        reset=PendingReset("246810", datetime.now(timezone.utc) + timedelta(minutes=5)),
    )

    with pytest.raises(InvalidResetCodeError):
        service.reset_password(
            ResetPasswordInput(email="ivy@example.com", reset_code="246810", new_password="brand-new-pass")
        )
