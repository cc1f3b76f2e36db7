"""Account service orchestrating registration, login and credential recovery."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from .account import Account, AccountStatus, AuthProvider
from .codes import issue_reset, to_epoch_millis
from .contracts import (
    AccountLookup,
    AccountStore,
    CreateAccountInput,
    ForgotPasswordInput,
    ForgotPasswordMailer,
    LoginInput,
    PasswordHashing,
    RegisterInput,
    ResetPasswordInput,
    TokenIssuing,
    VerifyAccountInput,
)
from .errors import (
    AccountDeletedError,
    AccountNotActivatedError,
    AlreadyExistsError,
    AuthError,
    InvalidActivationCodeError,
    InvalidPasswordError,
    InvalidResetCodeError,
    MailDeliveryError,
    ResetCodeExpiredError,
    UserNotFoundError,
)
from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

_CLEARED_RESET = {"reset_code": None, "reset_expire": None}

_LOGIN_FAILURE_BY_STATUS: dict[AccountStatus, type[AuthError]] = {
    AccountStatus.DELETED: AccountDeletedError,
    AccountStatus.PENDING_ACTIVATION: AccountNotActivatedError,
}


@dataclass(slots=True)
class TokenBundle:
    """Encapsulates the access/refresh token pair returned to API consumers."""

    access_token: str
    refresh_token: str


@dataclass(slots=True)
class AuthResult:
    """Account profile and tokens returned by register and login."""

    account: Account
    tokens: TokenBundle


class AccountService:
    """Identity lifecycle workflows over the storage, hashing, token and mail capabilities."""

    def __init__(
        self,
        repository: AccountStore,
        hasher: PasswordHashing,
        tokens: TokenIssuing,
        mailer: ForgotPasswordMailer,
        settings: Settings | None = None,
    ) -> None:
        """Store the collaborators used by every workflow."""
        self._repository = repository
        self._hasher = hasher
        self._tokens = tokens
        self._mailer = mailer
        self._settings = settings or get_settings()

    @property
    def settings(self) -> Settings:
        return self._settings

    def register(self, payload: RegisterInput) -> AuthResult:
        """Create an account, or resurrect a soft-deleted one with the same email.

        Raises
        ------
        AlreadyExistsError
            When a live (not soft-deleted) account already uses the email.
        """
        if self._repository.find_one(AccountLookup(email=payload.email, deleted=False)):
            raise AlreadyExistsError()

        soft_deleted = self._repository.find_one(AccountLookup(email=payload.email, deleted=True))
        password_hash = self._hasher.hash(payload.password)

        if soft_deleted is not None:
            account = self._repository.update_account(
                soft_deleted.account_id,
                {
                    "firstname": payload.firstname,
                    "lastname": payload.lastname,
                    "password_hash": password_hash,
                    "auth_provider": AuthProvider.DEFAULT,
                    "deleted_at": None,
                    "is_active": True,
                    "activation_code": None,
                },
            )
            logger.info("account %s resurrected by registration", account.account_id)
        else:
            account = self._repository.create_account(
                CreateAccountInput(
                    email=payload.email,
                    password_hash=password_hash,
                    firstname=payload.firstname,
                    lastname=payload.lastname,
                    auth_provider=AuthProvider.DEFAULT,
                    is_active=True,
                    activation_code=None,
                )
            )
            logger.info("account %s registered", account.account_id)

        return AuthResult(account=account, tokens=self._issue_tokens(account))

    def verify_account(self, payload: VerifyAccountInput) -> None:
        """Consume an activation code, marking the account active."""
        # Matches regardless of activation or deletion state.
        account = self._repository.find_one(
            AccountLookup(email=payload.email, activation_code=payload.activation_code)
        )
        if account is None:
            raise InvalidActivationCodeError()

        self._repository.update_account(
            account.account_id,
            {"is_active": True, "activation_code": None},
        )
        logger.info("account %s verified", account.account_id)

    def login(self, payload: LoginInput) -> AuthResult:
        """Authenticate with email and password.

        When no active live account matches, the failure is classified so the
        caller can tell a deleted account from an unverified or unknown one.
        """
        account = self._repository.find_one(
            AccountLookup(email=payload.email, is_active=True, deleted=False)
        )
        if account is None:
            raise self._classify_login_failure(payload.email)

        if not self._hasher.verify(payload.password, account.password_hash):
            logger.info("login rejected for account %s: invalid password", account.account_id)
            raise InvalidPasswordError()

        return AuthResult(account=account, tokens=self._issue_tokens(account))

    def forgot_password(self, payload: ForgotPasswordInput) -> None:
        """Issue a time-bounded reset code and email it to the account owner.

        The code is persisted before dispatch; a delivery failure is logged and
        leaves the issued code valid.
        """
        account = self._repository.find_one(
            AccountLookup(email=payload.email, is_active=True, deleted=False)
        )
        if account is None:
            raise UserNotFoundError()

        reset = issue_reset(datetime.now(timezone.utc), self._settings.password_reset_ttl)
        self._repository.update_account(
            account.account_id,
            {"reset_code": reset.code, "reset_expire": reset.expires_at},
        )
        logger.info("password reset issued for account %s", account.account_id)

        try:
            self._mailer.send_forgot_password_email(
                account.email, reset.code, to_epoch_millis(reset.expires_at)
            )
        except MailDeliveryError:
            logger.exception(
                "forgot-password email for account %s could not be delivered", account.account_id
            )

    def reset_password(self, payload: ResetPasswordInput) -> None:
        """Consume a reset code and replace the account password.

        Raises
        ------
        InvalidResetCodeError
            When no active live account holds the given code.
        ResetCodeExpiredError
            When the code matched but has expired; the code is cleared first.
        """
        account = self._repository.find_one(
            AccountLookup(
                email=payload.email,
                reset_code=payload.reset_code,
                is_active=True,
                deleted=False,
            )
        )
        if account is None or account.reset is None:
            raise InvalidResetCodeError()

        if account.reset.is_expired(datetime.now(timezone.utc)):
            self._repository.update_account(account.account_id, _CLEARED_RESET)
            logger.info("expired reset code cleared for account %s", account.account_id)
            raise ResetCodeExpiredError()

        password_hash = self._hasher.hash(payload.new_password)
        self._repository.update_account(
            account.account_id,
            {"password_hash": password_hash, **_CLEARED_RESET},
        )
        logger.info("password reset completed for account %s", account.account_id)

    def _classify_login_failure(self, email: str) -> AuthError:
        # A soft-deleted account outranks a pending one under the same email.
        blocked = self._repository.find_one(AccountLookup(email=email, deleted=True))
        if blocked is None:
            blocked = self._repository.find_one(
                AccountLookup(email=email, is_active=False, deleted=False)
            )
        if blocked is None:
            return UserNotFoundError()
        return _LOGIN_FAILURE_BY_STATUS[blocked.status]()

    def _issue_tokens(self, account: Account) -> TokenBundle:
        return TokenBundle(
            access_token=self._tokens.create_access_token(account),
            refresh_token=self._tokens.create_refresh_token(account),
        )
