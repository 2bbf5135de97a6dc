"""
Token codec:
- access tokens carry identity claims and are never persisted
- refresh tokens carry only the user id and are stored on the user record
- each kind is signed with its own secret, so one key cannot forge the other
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict

import jwt

from utils.results import Result


class ConfigurationError(RuntimeError):
    """Raised at construction time when signing configuration is unusable."""


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenError(str, Enum):
    MALFORMED = "malformed"
    SIGNATURE_INVALID = "signature_invalid"
    EXPIRED = "expired"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime

    @property
    def max_age(self) -> int:
        """Seconds until expiry, for cookie max-age."""
        remaining = self.expires_at - datetime.now(timezone.utc)
        return max(int(remaining.total_seconds()), 0)


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID)."""
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:

    def __init__(
        self,
        access_secret: str | None,
        refresh_secret: str | None,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        algorithm: str = "HS256",
        issuer: str | None = None,
        clock: Callable[[], datetime] = _now,
    ):
        if not access_secret:
            raise ConfigurationError("ACCESS_TOKEN_SECRET is not configured")
        if not refresh_secret:
            raise ConfigurationError("REFRESH_TOKEN_SECRET is not configured")
        if access_secret == refresh_secret:
            raise ConfigurationError("Access and refresh token secrets must differ")
        self._secrets = {TokenKind.ACCESS: access_secret, TokenKind.REFRESH: refresh_secret}
        self._ttls = {TokenKind.ACCESS: access_ttl, TokenKind.REFRESH: refresh_ttl}
        self._algorithm = algorithm
        self._issuer = issuer
        self._clock = clock

    def _sign(self, kind: TokenKind, claims: Dict[str, Any]) -> IssuedToken:
        now = self._clock()
        exp = now + self._ttls[kind]
        payload = {
            **claims,
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
            "jti": generate_jti(),
        }
        if self._issuer:
            payload["iss"] = self._issuer
        token = jwt.encode(payload, self._secrets[kind], algorithm=self._algorithm)
        return IssuedToken(token=token, expires_at=exp)

    def issue_access(self, user_id: str, username: str, email: str, full_name: str) -> IssuedToken:
        return self._sign(
            TokenKind.ACCESS,
            {
                "sub": str(user_id),
                "username": username,
                "email": email,
                "full_name": full_name,
            },
        )

    def issue_refresh(self, user_id: str) -> IssuedToken:
        return self._sign(TokenKind.REFRESH, {"sub": str(user_id)})

    def verify(self, token: str, kind: TokenKind) -> Result[Dict[str, Any]]:
        """
        Check signature and expiry of a token of the given kind.
        The failure value is a TokenError so callers can tell expiry from tampering.
        """
        if not token or not isinstance(token, str):
            return Result.fail(TokenError.MALFORMED)
        options = {"require": ["sub", "iat", "exp"]}
        try:
            claims = jwt.decode(
                token,
                self._secrets[kind],
                algorithms=[self._algorithm],
                issuer=self._issuer,
                options=options,
            )
        except jwt.ExpiredSignatureError:
            return Result.fail(TokenError.EXPIRED)
        except jwt.InvalidSignatureError:
            return Result.fail(TokenError.SIGNATURE_INVALID)
        except jwt.InvalidTokenError:
            return Result.fail(TokenError.MALFORMED)
        return Result.success(claims)
