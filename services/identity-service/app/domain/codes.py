"""Generation and expiry policy for single-use numeric secrets."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta

from .account import PendingReset

CODE_MIN = 100_000
CODE_MAX = 999_999


def generate_numeric_code() -> str:
    """Return a 6-digit code drawn uniformly from [100000, 999999] using a CSPRNG."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def issue_reset(now: datetime, ttl: timedelta) -> PendingReset:
    """Create a new pending reset that expires ``ttl`` after ``now``."""
    return PendingReset(code=generate_numeric_code(), expires_at=now + ttl)


def to_epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)
