"""
Wallet login orchestration.

States of an identity: Unauthenticated -> NonceIssued -> Authenticated.

- issue_nonce: creates or overwrites the single live challenge for an address
- connect: checks the signature over {"nonce": <stored nonce>} and mints tokens
- refresh: trades a live refresh token for a new access token
- logout: drops the stored refresh token

A successful connect clears the nonce (CLEAR_NONCE_ON_CONNECT) so the same
signature can not be replayed, and replaces any earlier refresh token.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from app.core import stellar_auth
from app.core.clock import Clock, as_utc
from app.core.exceptions import (
    InvalidAddress,
    InvalidRefreshToken,
    InvalidSignature,
    MissingField,
    UserNotFound,
)
from app.core.tokens import TokenService
from app.models.users import User
from app.services.identity_store import IdentityStore

logger = logging.getLogger(__name__)


@dataclass
class TokenPair:
    access_token: str
    refresh_token: Optional[str] = None


class AuthService:
    def __init__(
        self,
        store: IdentityStore,
        tokens: TokenService,
        clock: Clock,
        nonce_num_bytes: int = stellar_auth.NONCE_NUM_BYTES,
        nonce_expiry_seconds: int = 300,
        clear_nonce_on_connect: bool = True,
        rotate_refresh_token: bool = False,
    ) -> None:
        self.store = store
        self.tokens = tokens
        self.clock = clock
        self.nonce_num_bytes = nonce_num_bytes
        self.nonce_expiry_seconds = nonce_expiry_seconds
        self.clear_nonce_on_connect = clear_nonce_on_connect
        self.rotate_refresh_token = rotate_refresh_token

    def issue_nonce(self, address: Optional[str]) -> str:
        """Generate and store a fresh nonce for a wallet address."""
        address = (address or "").strip()
        if not address:
            raise InvalidAddress("Address is required")
        if not stellar_auth.is_valid_address(address):
            raise InvalidAddress()

        nonce = stellar_auth.generate_nonce(self.nonce_num_bytes)
        expires_at = self.clock.now() + timedelta(seconds=self.nonce_expiry_seconds)
        self.store.set_nonce(address, nonce, expires_at)
        logger.info("nonce issued for %s", address)
        return nonce

    def verify_signature(self, address: Optional[str], signature: Optional[str]) -> User:
        """
        Confirm the caller controls the private key of ``address``.

        Raises:
            MissingField: address or signature absent
            UserNotFound: no nonce was ever requested for the address
            InvalidSignature: no live nonce, or the signature does not verify
        """
        address = (address or "").strip()
        if not address:
            raise MissingField("Address is required")
        signature = (signature or "").strip()
        if not signature:
            raise MissingField("Signature is required")

        user = self.store.get_by_address(address)
        if user is None:
            raise UserNotFound()

        if not user.nonce:
            raise InvalidSignature("No active nonce, request a new one")
        if user.nonce_expires_at is not None and as_utc(user.nonce_expires_at) <= self.clock.now():
            raise InvalidSignature("Nonce expired, request a new one")

        payload = stellar_auth.challenge_payload(user.nonce)
        if not stellar_auth.verify_signature(address, payload, signature):
            logger.warning("signature rejected for %s", address)
            raise InvalidSignature()
        return user

    def connect(self, address: Optional[str], signature: Optional[str]) -> TokenPair:
        """Exchange a signed nonce for an access token and a refresh token."""
        user = self.verify_signature(address, signature)

        # only one of several concurrent connects with the same signature may win
        if self.clear_nonce_on_connect and not self.store.consume_nonce(user, str(user.nonce)):
            logger.warning("nonce already consumed for %s", user.address)
            raise InvalidSignature("No active nonce, request a new one")

        access_token = self.tokens.issue_access_token(user)
        refresh_token = self.tokens.issue_refresh_token()
        self.store.save_refresh_token(user, refresh_token, self.tokens.refresh_expiry())
        self.store.touch_login(user, self.clock.now())

        logger.info("wallet connected: user=%s", user.id)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def verify_refresh(self, refresh_token: Optional[str]) -> User:
        """Wrong and expired tokens fail the same way."""
        if not refresh_token:
            raise MissingField("Refresh token is required")

        user = self.store.find_by_refresh_token(refresh_token, self.clock.now())
        if user is None:
            raise InvalidRefreshToken()
        return user

    def refresh(self, user: User) -> TokenPair:
        """Mint a new access token for a user that passed verify_refresh."""
        access_token = self.tokens.issue_access_token(user)
        if not self.rotate_refresh_token:
            return TokenPair(access_token=access_token)

        refresh_token = self.tokens.issue_refresh_token()
        self.store.save_refresh_token(user, refresh_token, self.tokens.refresh_expiry())
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def logout(self, user_id: str) -> None:
        user = self.store.get_by_id(user_id)
        if user is None:
            raise UserNotFound()
        self.store.save_refresh_token(user, None, None)
        logger.info("user logged out: user=%s", user_id)
