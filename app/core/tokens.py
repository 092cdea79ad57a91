"""
JWT Token Utilities

This module handles access and refresh token creation and verification for wallet authentication.
After a user successfully verifies their Stellar wallet signature, the TokenService mints
a short-lived JWT access token and a long-lived opaque refresh token.

Flow:
1. User verifies wallet signature -> issue_access_token() + issue_refresh_token()
2. User makes API request with JWT in Authorization header -> verify_access() validates it
3. Access token expires -> refresh token is exchanged at /auth/refresh for a new access token

The JWT contains:
- id: The internal user id (UUID string)
- iat: Issued at timestamp
- exp: Expiration timestamp (configurable via JWT_ACCESS_TOKEN_EXPIRY)

The refresh token carries no claims; its owner and expiry live on the user record.
"""

import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict

import jwt

from app.core.clock import Clock
from app.core.config import Settings
from app.core.exceptions import ConfigurationError, InvalidToken, TokenExpired
from app.models.users import User


REFRESH_TOKEN_NUM_BYTES = 32

_EXPIRY_PATTERN = re.compile(r"^(\d+)([dhms])$")
_UNIT_SECONDS = {
    "d": 24 * 60 * 60,
    "h": 60 * 60,
    "m": 60,
    "s": 1,
}


def parse_expiry(expiry: str) -> int:
    """
    Parse a duration spec such as "7d", "24h", "30m" or "60s" into seconds.

    Raises:
        ConfigurationError: If the spec does not match <number><d|h|m|s>
    """
    match = _EXPIRY_PATTERN.match(expiry.strip()) if expiry else None
    if not match:
        raise ConfigurationError(f"Invalid expiry format: {expiry!r}")

    value, unit = match.groups()
    return int(value) * _UNIT_SECONDS[unit]


@dataclass(frozen=True)
class TokenConfig:
    secret: str
    algorithm: str
    access_token_seconds: int
    refresh_token_seconds: int

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenConfig":
        """Validate JWT settings; any gap here must stop the app from starting."""
        if not settings.JWT_SECRET or not settings.JWT_ACCESS_TOKEN_EXPIRY or not settings.JWT_REFRESH_TOKEN_EXPIRY:
            raise ConfigurationError("JWT configuration is missing")

        return cls(
            secret=settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            access_token_seconds=parse_expiry(settings.JWT_ACCESS_TOKEN_EXPIRY),
            refresh_token_seconds=parse_expiry(settings.JWT_REFRESH_TOKEN_EXPIRY),
        )


class TokenService:
    def __init__(self, config: TokenConfig, clock: Clock) -> None:
        self.config = config
        self.clock = clock

    def issue_access_token(self, user: User) -> str:
        """
        Create a JWT access token for an authenticated user.

        This is called after successful wallet signature verification in /auth/connect,
        and again by /auth/refresh.

        Returns:
            A JWT token string that can be used in Authorization: Bearer <token> header
        """
        if not user.id:
            raise ValueError("user id is required")

        now = self.clock.now()
        payload: Dict[str, Any] = {
            "id": user.id,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self.config.access_token_seconds)).timestamp()),
        }
        return jwt.encode(payload, self.config.secret, algorithm=self.config.algorithm)

    def issue_refresh_token(self) -> str:
        """32 random bytes, base64url without padding."""
        return secrets.token_urlsafe(REFRESH_TOKEN_NUM_BYTES)

    def refresh_expiry(self) -> datetime:
        return self.clock.now() + timedelta(seconds=self.config.refresh_token_seconds)

    def verify_access(self, token: str) -> str:
        """
        Verify a JWT access token and return the embedded user id.

        Expiry is checked against the injected clock rather than by PyJWT, so
        tests can move time forward.

        Raises:
            TokenExpired: If the token is past its exp claim
            InvalidToken: On a bad signature, malformed token or missing id claim
        """
        if not token:
            raise InvalidToken("Missing token")

        try:
            payload = jwt.decode(
                token,
                self.config.secret,
                algorithms=[self.config.algorithm],
                options={"verify_exp": False, "verify_iat": False, "require": ["exp", "id"]},
            )
        except jwt.InvalidTokenError:
            raise InvalidToken()

        exp = payload["exp"]
        if not isinstance(exp, (int, float)):
            raise InvalidToken()
        if exp <= self.clock.now().timestamp():
            raise TokenExpired()

        user_id = payload["id"]
        if not isinstance(user_id, str) or not user_id:
            raise InvalidToken("Invalid token payload")
        return user_id
