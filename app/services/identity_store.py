"""
Identity record persistence.

The auth service only talks to the ``IdentityStore`` protocol. ``SqlIdentityStore``
is the SQLAlchemy-backed implementation used by the API; every mutation is a plain
overwrite followed by a commit (last writer wins). Consuming a nonce is the one
conditional write: it only succeeds for the caller that still sees the nonce.
"""

from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.users import User


class IdentityStore(Protocol):
    def get_by_address(self, address: str) -> Optional[User]: ...

    def get_by_id(self, user_id: str) -> Optional[User]: ...

    def set_nonce(self, address: str, nonce: str, expires_at: datetime) -> User: ...

    def consume_nonce(self, user: User, nonce: str) -> bool: ...

    def save_refresh_token(
        self, user: User, refresh_token: Optional[str], expires_at: Optional[datetime]
    ) -> None: ...

    def find_by_refresh_token(self, refresh_token: str, now: datetime) -> Optional[User]: ...

    def touch_login(self, user: User, now: datetime) -> None: ...


class SqlIdentityStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_by_address(self, address: str) -> Optional[User]:
        return self.db.query(User).filter(User.address == address).first()

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def set_nonce(self, address: str, nonce: str, expires_at: datetime) -> User:
        """Create the identity on first sight, otherwise overwrite its nonce."""
        user = self.get_by_address(address)
        if user is None:
            user = User(address=address, nonce=nonce, nonce_expires_at=expires_at)
            self.db.add(user)
            try:
                self.db.commit()
                self.db.refresh(user)
                return user
            except IntegrityError:
                # a concurrent request created the row first; overwrite it instead
                self.db.rollback()
                user = self.get_by_address(address)
                if user is None:
                    raise

        user.nonce = nonce  # type: ignore
        user.nonce_expires_at = expires_at  # type: ignore
        self.db.commit()
        self.db.refresh(user)
        return user

    def consume_nonce(self, user: User, nonce: str) -> bool:
        """Clear the nonce only if it is still ``nonce``; False when someone else got there first."""
        updated = (
            self.db.query(User)
            .filter(User.id == user.id, User.nonce == nonce)
            .update({User.nonce: None, User.nonce_expires_at: None}, synchronize_session=False)
        )
        self.db.commit()
        return updated > 0

    def save_refresh_token(
        self, user: User, refresh_token: Optional[str], expires_at: Optional[datetime]
    ) -> None:
        user.refresh_token = refresh_token  # type: ignore
        user.refresh_token_expires_at = expires_at  # type: ignore
        self.db.commit()

    def find_by_refresh_token(self, refresh_token: str, now: datetime) -> Optional[User]:
        """Match on value and strictly-future expiry in one query."""
        return (
            self.db.query(User)
            .filter(
                User.refresh_token == refresh_token,
                User.refresh_token_expires_at > now,
            )
            .first()
        )

    def touch_login(self, user: User, now: datetime) -> None:
        user.last_login_at = now  # type: ignore
        self.db.commit()
