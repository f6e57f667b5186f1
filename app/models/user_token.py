"""
UserToken Model
Single-use tokens for password reset and email verification
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from app.database import Base


class UserToken(Base):
    """
    One issued account token.

    Only the SHA-256 of the token is stored; the raw value leaves the
    service once, in the link sent to the user. A token is spent when
    used_at is set, either by consuming it or by a newer token of the same
    purpose replacing it.
    """
    __tablename__ = "user_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    purpose = Column(String(30), nullable=False)  # password_reset, email_verification
    token_hash = Column(String(64), unique=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('ix_user_tokens_user_purpose', 'user_id', 'purpose'),
        Index('ix_user_tokens_expires_at', 'expires_at'),
    )

    def __repr__(self):
        return f"<UserToken(user_id={self.user_id}, purpose='{self.purpose}', expires_at={self.expires_at})>"
