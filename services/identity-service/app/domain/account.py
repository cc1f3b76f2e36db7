from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class AuthProvider(str, Enum):
    DEFAULT = "DEFAULT"
    GOOGLE = "GOOGLE"
    FACEBOOK = "FACEBOOK"


class AccountStatus(str, Enum):
    """Lifecycle state derived from the stored activation and deletion markers."""

    ACTIVE = "active"
    PENDING_ACTIVATION = "pending_activation"
    DELETED = "deleted"


@dataclass(slots=True, frozen=True)
class PendingReset:
    """A stored password reset code together with its expiry instant."""

    code: str
    expires_at: datetime | None

    def is_expired(self, now: datetime) -> bool:
        # A code stored without an expiry can never be consumed.
        return self.expires_at is None or self.expires_at < now


@dataclass(slots=True)
class Account:
    """Aggregate root for a user identity and its credential secrets."""

    account_id: str
    email: str
    password_hash: str
    firstname: str
    lastname: str
    is_active: bool
    auth_provider: AuthProvider = AuthProvider.DEFAULT
    activation_code: str | None = None
    reset: PendingReset | None = None
    deleted_at: datetime | None = None
    birthday: date | None = None
    phone: str | None = None
    avatar: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def status(self) -> AccountStatus:
        if self.is_deleted:
            return AccountStatus.DELETED
        if self.is_active:
            return AccountStatus.ACTIVE
        return AccountStatus.PENDING_ACTIVATION

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
