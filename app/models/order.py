"""
Order Models
Requests for quotation (RFQ) and their line items
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.sql import func
from app.database import Base

ORDER_STATUSES = ("pending", "quoted", "approved", "rejected")


class Order(Base):
    """
    A customer's request for quotation.

    Created together with its items in one transaction. Status changes by
    admins are guarded by `version`.
    """
    __tablename__ = "orders"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True)

    # Customer
    company_name = Column(String(255), nullable=False)
    contact_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=False)
    company_address = Column(Text, nullable=True)

    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    # pending, quoted, approved, rejected

    # Optimistic concurrency
    version = Column(Integer, nullable=False, default=1, server_default="1")

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Order(id={self.id}, company='{self.company_name}', status='{self.status}')>"


class OrderItem(Base):
    """A product line on an order. SKU and name are copied at order time."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    product_id = Column(String(64), nullable=False)
    sku = Column(String(100), nullable=False)
    name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)

    def __repr__(self):
        return f"<OrderItem(id={self.id}, order_id={self.order_id}, sku='{self.sku}', quantity={self.quantity})>"
