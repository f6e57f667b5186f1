"""
Inquiry Model
Contact form submissions from the public site
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean
from sqlalchemy.sql import func
from app.database import Base


class Inquiry(Base):
    __tablename__ = "inquiries"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True)

    # Sender
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=True)
    company = Column(String(255), nullable=True)

    # Content
    subject = Column(String(500), nullable=False)
    message = Column(Text, nullable=False)

    # Status Tracking
    read = Column(Boolean, nullable=False, default=False)
    responded = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)  # Internal admin notes

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Inquiry(id={self.id}, email='{self.email}', read={self.read})>"
