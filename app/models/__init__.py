"""
Database Models
"""

from app.models.admin import Admin
from app.models.category import Category
from app.models.content import Blog, Career, ContactInfo, ContentSection, Resource
from app.models.idempotency_key import IdempotencyKey
from app.models.inquiry import Inquiry
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.models.user import User
from app.models.user_token import UserToken

__all__ = [
    "Admin",
    "Blog",
    "Career",
    "Category",
    "ContactInfo",
    "ContentSection",
    "IdempotencyKey",
    "Inquiry",
    "Order",
    "OrderItem",
    "Product",
    "Resource",
    "User",
    "UserToken",
]
