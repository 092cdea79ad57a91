"""
FastAPI Authentication Dependencies
This module provides FastAPI dependency functions that can be injected into route handlers
to build the auth services and to validate access/refresh tokens.
Usage in endpoints:
    @router.get("/protected")
    def protected_route(user: User = Depends(get_current_user)):
        # user is loaded from the id embedded in the JWT
        return {"user": user.id}
Flow:
1. Client sends request with Authorization: Bearer <token> header
2. FastAPI calls get_current_user() dependency
3. _extract_token() extracts token from header
4. TokenService.verify_access() validates the JWT (from tokens.py)
5. The user is re-loaded to confirm it still exists and handed to the route handler
"""

from typing import Optional

from fastapi import Body, Depends, Header, Request
from sqlalchemy.orm import Session

from app.core.clock import Clock, get_clock
from app.core.config import settings
from app.core.exceptions import ConfigurationError, InvalidToken
from app.core.tokens import TokenConfig, TokenService
from app.db.session import get_db
from app.models.users import User
from app.services.auth import AuthService
from app.services.identity_store import IdentityStore, SqlIdentityStore


def get_token_config(request: Request) -> TokenConfig:
    """The config validated once at startup (see lifespan in main.py)."""
    config: Optional[TokenConfig] = getattr(request.app.state, "token_config", None)
    if config is None:
        raise ConfigurationError("Token configuration was not initialised")
    return config


def get_token_service(
    config: TokenConfig = Depends(get_token_config), clock: Clock = Depends(get_clock)
) -> TokenService:
    return TokenService(config, clock)


def get_identity_store(db: Session = Depends(get_db)) -> IdentityStore:
    return SqlIdentityStore(db)


def get_auth_service(
    store: IdentityStore = Depends(get_identity_store),
    tokens: TokenService = Depends(get_token_service),
    clock: Clock = Depends(get_clock),
) -> AuthService:
    return AuthService(
        store,
        tokens,
        clock,
        nonce_num_bytes=settings.NONCE_NUM_BYTES,
        nonce_expiry_seconds=settings.NONCE_EXPIRY_SECONDS,
        clear_nonce_on_connect=settings.CLEAR_NONCE_ON_CONNECT,
        rotate_refresh_token=settings.ROTATE_REFRESH_TOKEN,
    )


def _extract_token(authorization: Optional[str]) -> str:
    """
    Extract JWT token from Authorization header.
    Only the "Bearer <token>" form is accepted.
    Raises:
        InvalidToken (401): If Authorization header is missing or malformed
    """
    if not authorization:
        raise InvalidToken("No token provided")

    authorization = authorization.strip()
    if not authorization.lower().startswith("bearer "):
        raise InvalidToken("No token provided")

    token = authorization[7:].strip()
    if not token:
        raise InvalidToken("Invalid authorization header")
    return token


def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    tokens: TokenService = Depends(get_token_service),
    store: IdentityStore = Depends(get_identity_store),
) -> User:
    """
    Bearer guard: returns the user the access token was issued to.
    """
    user_id = tokens.verify_access(_extract_token(authorization))
    user = store.get_by_id(user_id)
    if user is None:
        raise InvalidToken("User not found")
    return user


def get_refresh_user(
    refresh_token: Optional[str] = Body(None, alias="refreshToken", embed=True),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """
    Refresh guard: returns the user holding a live refresh token.
    """
    return auth.verify_refresh(refresh_token)
