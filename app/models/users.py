import uuid

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from app.db.base import Base


class User(Base):
    """Model for users table, one row per Stellar wallet address
    Example:
    {
        "id": "550e8400-e29b-41d4-a716-446655440000",
        "address": "GBRPYHIL2CI3FNQ4BXLFMNDLFJUNPU2HY3ZMFSHONUCEOASW7QC7OX2H",
        "nonce": "9f86d081884c7d659a2feaa0c55ad0",
        "nonce_expires_at": "2024-01-01T12:05:00",
        "refresh_token": "q0Jx5Jw1...",
        "refresh_token_expires_at": "2024-01-08T12:00:00",
        "created_at": "2024-01-01T12:00:00",
        "last_login_at": "2024-01-01T12:00:30"
    }
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    address = Column(String(56), nullable=False, unique=True, index=True)
    nonce = Column(Text, nullable=True)
    nonce_expires_at = Column(DateTime(timezone=True), nullable=True)
    refresh_token = Column(String(64), nullable=True, index=True)
    refresh_token_expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_login_at = Column(DateTime(timezone=True), nullable=True)
