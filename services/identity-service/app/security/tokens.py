"""Utilities for issuing and validating application JWTs."""

from __future__ import annotations

import secrets
import time
from typing import Any

import jwt

from ..config import Settings, get_settings
from ..domain.account import Account

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class JwtTokenIssuer:
    """Signs access and refresh tokens for authenticated accounts."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    def create_access_token(self, account: Account) -> str:
        """Create a short-lived signed JWT representing an authenticated account."""
        return self._encode(account, ACCESS_TOKEN_TYPE, self._settings.jwt_ttl_seconds)

    def create_refresh_token(self, account: Account) -> str:
        """Create a long-lived signed JWT used to obtain new access tokens.

        Every refresh token carries a random ``jti`` so two tokens minted in the
        same second for the same account still differ.
        """
        return self._encode(
            account,
            REFRESH_TOKEN_TYPE,
            self._settings.refresh_ttl_seconds,
            jti=secrets.token_hex(16),
        )

    def _encode(self, account: Account, token_type: str, ttl_seconds: int, **extra: Any) -> str:
        now = int(time.time())
        payload: dict[str, Any] = {
            "iss": self._settings.jwt_issuer,
            "sub": account.account_id,
            "email": account.email,
            "typ": token_type,
            "iat": now,
            "exp": now + ttl_seconds,
            **extra,
        }
        # PyJWT returns str for HS256 even in PyJWT>=2
        return jwt.encode(payload, self._settings.jwt_secret, algorithm="HS256")


def decode_token(
    token: str,
    expected_type: str = ACCESS_TOKEN_TYPE,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Decode and verify a JWT returning its payload.

    Parameters
    ----------
    token:
        Encoded JWT issued by this service.
    expected_type:
        Value the ``typ`` claim must carry (``"access"`` or ``"refresh"``).

    Raises
    ------
    jwt.PyJWTError
        Propagated when the token is invalid, expired, signed by another issuer,
        or of the wrong type.
    """

    settings = settings or get_settings()
    claims = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        issuer=settings.jwt_issuer,
        options={"require": ["exp", "iat", "sub", "typ"]},
    )
    if claims.get("typ") != expected_type:
        raise jwt.InvalidTokenError(f"expected {expected_type} token")
    return claims
