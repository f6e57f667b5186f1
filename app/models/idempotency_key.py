"""
IdempotencyKey Model
Stores responses of POST requests sent with an Idempotency-Key header
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
from sqlalchemy.sql import func
from app.database import Base


class IdempotencyKey(Base):
    """
    Cached response for a client-supplied idempotency key.

    A retried request with the same key gets the stored body and status
    instead of creating a second record. Expired keys are removed by the
    scheduled cleanup job.
    """
    __tablename__ = "idempotency_keys"

    # Primary Key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Idempotency Key (scoped by caller, see IdempotencyService)
    key = Column(String(255), unique=True, nullable=False, index=True)

    # Cached Response
    response = Column(JSON, nullable=False)
    status_code = Column(Integer, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    # Index for cleanup queries
    __table_args__ = (
        Index('ix_idempotency_expires_at', 'expires_at'),
    )

    def __repr__(self):
        return f"<IdempotencyKey(key='{self.key}', status={self.status_code}, expires_at={self.expires_at})>"
