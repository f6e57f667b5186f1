"""
Product Model
Catalog entries for circular connectors (M12, M8, RJ45)
"""

from sqlalchemy import Column, Integer, String, DateTime, Numeric, Text, Boolean, JSON, Index
from sqlalchemy.sql import func
from app.database import Base


class Product(Base):
    """
    A catalog product.

    Updates are guarded by `version`: a writer must present the version it
    read, and the row's version is incremented on every successful update.
    """
    __tablename__ = "products"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True)

    # Identity
    sku = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    category = Column(String(255), nullable=False, index=True)

    # Descriptions (rich text, sanitized on write)
    description = Column(Text, nullable=False)
    technical_description = Column(Text, nullable=True)

    # Connector attributes (filterable)
    coding = Column(String(10), nullable=False)  # A, B, D, X
    pins = Column(Integer, nullable=False)  # 3, 4, 5, 8, 12
    ip_rating = Column(String(10), nullable=False)  # IP67, IP68, IP20
    gender = Column(String(10), nullable=False)  # Male, Female
    connector_type = Column(String(10), nullable=False)  # M12, M8, RJ45

    specifications = Column(JSON, nullable=True)
    # {"material": ..., "voltage": ..., "current": ..., "temperatureRange": ...,
    #  "wireGauge": ..., "cableLength": ...}

    # Commercial
    price = Column(Numeric(10, 2), nullable=True)
    price_type = Column(String(10), nullable=False, default="quote")  # fixed, quote
    in_stock = Column(Boolean, nullable=False, default=True)
    stock_quantity = Column(Integer, nullable=True)

    # Media
    images = Column(JSON, nullable=False, default=list)
    documents = Column(JSON, nullable=True)
    datasheet_url = Column(String(500), nullable=True)

    # Optimistic concurrency
    version = Column(Integer, nullable=False, default=1, server_default="1")

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('ix_products_filters', 'connector_type', 'coding', 'pins'),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, sku='{self.sku}', version={self.version})>"
