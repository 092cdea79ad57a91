"""
Authentication error taxonomy.

Every expected failure of the wallet login flow is an ``AppError`` carrying the
HTTP status it should surface with. The exception handlers in ``main.py`` turn
them into ``{"status": ..., "message": ...}`` responses.
"""

from fastapi import status


class AppError(Exception):
    """Operational error that is safe to show to the client."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Bad request"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def status(self) -> str:
        return "fail" if str(self.status_code).startswith("4") else "error"


class InvalidAddress(AppError):
    default_message = "Invalid address"


class MissingField(AppError):
    default_message = "Missing required field"


class UserNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "User not found!"


class InvalidSignature(AppError):
    default_message = "Invalid signature!"


class InvalidToken(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid token"


class TokenExpired(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Token expired"


class InvalidRefreshToken(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid refresh token"


class TooManyRequests(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests from this IP, please try again after a minute"


class ConfigurationError(RuntimeError):
    """Fatal startup error: required configuration is missing or malformed."""
