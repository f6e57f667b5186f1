"""
Pydantic schemas for request and response bodies

JSON on the wire is camelCase; columns and attributes are snake_case. Every
request model derives from SanitizedModel, which cleans string input before
field validation runs.
"""

import math
import re
from datetime import datetime
from typing import Any, ClassVar, Dict, FrozenSet, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.services.auth import check_password_length
from app.services.security.sanitize import is_exempt_field, sanitize_html, sanitize_string


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SanitizedModel(ApiModel):
    """
    Request body base class.

    Top-level strings are stripped of markup before validation. Fields named
    in rich_text_fields keep safe formatting tags; password fields are left
    untouched. Nested SanitizedModel values clean themselves.
    """

    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def sanitize_input(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        rich = cls.rich_text_fields | {to_camel(name) for name in cls.rich_text_fields}
        cleaned = {}
        for key, value in data.items():
            if not isinstance(value, str) or is_exempt_field(key):
                cleaned[key] = value
            elif key in rich:
                cleaned[key] = sanitize_html(value)
            else:
                cleaned[key] = sanitize_string(value)
        return cleaned


class UpdateModel(SanitizedModel):
    @model_validator(mode="after")
    def require_changes(self):
        if not self.changes():
            raise ValueError("At least one field must be provided for update")
        return self

    def changes(self) -> Dict[str, Any]:
        """Explicitly provided fields other than version, by attribute name."""
        return self.model_dump(exclude_unset=True, exclude={"version"})


class VersionedUpdate(UpdateModel):
    version: int = Field(..., ge=1, description="Version the client last read")


# ============================================================================
# Pagination
# ============================================================================

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    total_pages = math.ceil(total / limit) if limit else 0
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


class MessageResponse(ApiModel):
    message: str


# ============================================================================
# Auth
# ============================================================================

class AdminLogin(SanitizedModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator("username")
    @classmethod
    def lowercase_username(cls, v: str) -> str:
        return v.lower()


class AdminOut(ApiModel):
    username: str
    role: str


class AdminLoginResponse(ApiModel):
    message: str
    admin: AdminOut


class VerifyResponse(ApiModel):
    valid: bool
    username: str
    role: str


class UserRegister(SanitizedModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    password: str = Field(..., min_length=8)
    company: Optional[str] = Field(None, min_length=2)
    phone: Optional[str] = Field(None, min_length=10)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return check_password_length(v)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class UserLogin(SanitizedModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class UserOut(ApiModel):
    id: int
    name: str
    email: str
    company: Optional[str] = None
    phone: Optional[str] = None
    role: str
    email_verified: bool = False


class UserAuthResponse(ApiModel):
    message: str
    user: UserOut


class PasswordResetRequest(SanitizedModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class PasswordReset(SanitizedModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return check_password_length(v)


class VerificationResend(PasswordResetRequest):
    pass


class VerifyEmailResponse(ApiModel):
    message: str
    verified: bool


# ============================================================================
# Products
# ============================================================================

Coding = Literal["A", "B", "D", "X"]
PinCount = Literal[3, 4, 5, 8, 12]
IpRating = Literal["IP67", "IP68", "IP20"]
Gender = Literal["Male", "Female"]
ConnectorType = Literal["M12", "M8", "RJ45"]
PriceType = Literal["fixed", "quote"]


class ProductSpecifications(SanitizedModel):
    material: str = Field(..., min_length=1)
    voltage: str = Field(..., min_length=1)
    current: str = Field(..., min_length=1)
    temperature_range: str = Field(..., min_length=1)
    wire_gauge: Optional[str] = None
    cable_length: Optional[str] = None


class ProductCreate(SanitizedModel):
    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset({"description", "technical_description"})

    sku: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    technical_description: Optional[str] = None
    coding: Coding
    pins: PinCount
    ip_rating: IpRating
    gender: Gender
    connector_type: ConnectorType
    specifications: ProductSpecifications
    price: Optional[float] = Field(None, gt=0)
    price_type: PriceType = "quote"
    in_stock: bool = True
    stock_quantity: Optional[int] = Field(None, ge=0)
    images: List[str] = Field(default_factory=list)
    documents: Optional[List[Dict[str, Any]]] = None
    datasheet_url: Optional[str] = None


class ProductUpdate(VersionedUpdate):
    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset({"description", "technical_description"})

    sku: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    technical_description: Optional[str] = None
    coding: Optional[Coding] = None
    pins: Optional[PinCount] = None
    ip_rating: Optional[IpRating] = None
    gender: Optional[Gender] = None
    connector_type: Optional[ConnectorType] = None
    specifications: Optional[ProductSpecifications] = None
    price: Optional[float] = Field(None, gt=0)
    price_type: Optional[PriceType] = None
    in_stock: Optional[bool] = None
    stock_quantity: Optional[int] = Field(None, ge=0)
    images: Optional[List[str]] = None
    documents: Optional[List[Dict[str, Any]]] = None
    datasheet_url: Optional[str] = None


class ProductOut(ApiModel):
    id: int
    sku: str
    name: str
    category: str
    description: str
    technical_description: Optional[str] = None
    coding: str
    pins: int
    ip_rating: str
    gender: str
    connector_type: str
    specifications: Optional[Dict[str, Any]] = None
    price: Optional[float] = None
    price_type: str
    in_stock: bool
    stock_quantity: Optional[int] = None
    images: List[str] = Field(default_factory=list)
    documents: Optional[List[Dict[str, Any]]] = None
    datasheet_url: Optional[str] = None
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductList(ApiModel):
    products: List[ProductOut]
    pagination: Pagination


class FilterOptions(ApiModel):
    connector_types: List[str]
    codings: List[str]
    ip_ratings: List[str]
    pins: List[int]
    genders: List[str]


# ============================================================================
# Categories
# ============================================================================

_SLUG = re.compile(r"^[a-z0-9-]+$")


def _check_slug(v: Optional[str]) -> Optional[str]:
    if v is not None and not _SLUG.match(v):
        raise ValueError("Slug must contain only lowercase letters, numbers, and hyphens")
    return v


def _blank_image_to_none(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    if not v.startswith(("http://", "https://", "/")):
        raise ValueError("Image must be an http(s) URL or a site-relative path")
    return v


class CategoryCreate(SanitizedModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[int] = None

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v: Optional[str]) -> Optional[str]:
        return _check_slug(v)

    @field_validator("image")
    @classmethod
    def check_image(cls, v: Optional[str]) -> Optional[str]:
        return _blank_image_to_none(v)


class CategoryUpdate(UpdateModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[int] = None

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v: Optional[str]) -> Optional[str]:
        return _check_slug(v)

    @field_validator("image")
    @classmethod
    def check_image(cls, v: Optional[str]) -> Optional[str]:
        return _blank_image_to_none(v)


class CategoryOut(ApiModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CategoryList(ApiModel):
    categories: List[CategoryOut]
    pagination: Pagination


# ============================================================================
# Orders (RFQ)
# ============================================================================

OrderStatus = Literal["pending", "quoted", "approved", "rejected"]


class OrderItemIn(SanitizedModel):
    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset({"notes"})

    product_id: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    notes: Optional[str] = None


class OrderCreate(SanitizedModel):
    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset({"notes"})

    company_name: str = Field(..., min_length=2)
    contact_name: str = Field(..., min_length=2)
    email: EmailStr
    phone: str = Field(..., min_length=10)
    company_address: Optional[str] = None
    items: List[OrderItemIn] = Field(..., min_length=1)
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class OrderUpdate(VersionedUpdate):
    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset({"notes"})

    status: Optional[OrderStatus] = None
    notes: Optional[str] = None


class OrderItemOut(ApiModel):
    id: int
    order_id: int
    product_id: str
    sku: str
    name: str
    quantity: int
    notes: Optional[str] = None


class OrderOut(ApiModel):
    id: int
    company_name: str
    contact_name: str
    email: str
    phone: str
    company_address: Optional[str] = None
    notes: Optional[str] = None
    status: str
    version: int
    items: List[OrderItemOut] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderList(ApiModel):
    orders: List[OrderOut]
    pagination: Pagination


# ============================================================================
# Inquiries
# ============================================================================

class InquiryCreate(SanitizedModel):
    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset({"message"})

    name: str = Field(..., min_length=2)
    email: EmailStr
    phone: Optional[str] = Field(None, min_length=10)
    company: Optional[str] = None
    subject: str = Field(..., min_length=3)
    message: str = Field(..., min_length=10)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class InquiryUpdate(UpdateModel):
    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset({"notes"})

    read: Optional[bool] = None
    responded: Optional[bool] = None
    notes: Optional[str] = None


class InquiryOut(ApiModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    subject: str
    message: str
    read: bool
    responded: bool
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class InquiryList(ApiModel):
    inquiries: List[InquiryOut]
    pagination: Pagination


# ============================================================================
# Content
# ============================================================================

class BlogCreate(SanitizedModel):
    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset({"content"})

    title: str = Field(..., min_length=1)
    excerpt: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    image: Optional[str] = None
    published: bool = False


class BlogUpdate(UpdateModel):
    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset({"content"})

    title: Optional[str] = Field(None, min_length=1)
    excerpt: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    author: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    image: Optional[str] = None
    published: Optional[bool] = None


class BlogOut(ApiModel):
    id: int
    title: str
    excerpt: str
    content: str
    author: str
    category: str
    image: Optional[str] = None
    published: bool
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CareerCreate(SanitizedModel):
    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset(
        {"description", "requirements", "responsibilities", "benefits"}
    )

    title: str = Field(..., min_length=1)
    department: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    requirements: Optional[str] = None
    responsibilities: Optional[str] = None
    benefits: Optional[str] = None
    salary: Optional[str] = None
    active: bool = True


class CareerUpdate(UpdateModel):
    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset(
        {"description", "requirements", "responsibilities", "benefits"}
    )

    title: Optional[str] = Field(None, min_length=1)
    department: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    requirements: Optional[str] = None
    responsibilities: Optional[str] = None
    benefits: Optional[str] = None
    salary: Optional[str] = None
    active: Optional[bool] = None


class CareerOut(ApiModel):
    id: int
    title: str
    department: str
    location: str
    type: str
    description: str
    requirements: Optional[str] = None
    responsibilities: Optional[str] = None
    benefits: Optional[str] = None
    salary: Optional[str] = None
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ResourceCreate(SanitizedModel):
    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset({"description"})

    title: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    published: bool = True


class ResourceUpdate(UpdateModel):
    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset({"description"})

    title: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    url: Optional[str] = Field(None, min_length=1)
    published: Optional[bool] = None


class ResourceOut(ApiModel):
    id: int
    title: str
    type: str
    description: str
    url: str
    published: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def sanitize_attributes(attributes: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
    """Plain-text clean a flat attribute map such as a partner's website and email."""
    if attributes is None:
        return None
    return {sanitize_string(key): sanitize_string(value) for key, value in attributes.items()}


class ContentSectionCreate(SanitizedModel):
    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset({"content"})

    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    display_order: int = 0
    published: bool = True
    attributes: Optional[Dict[str, str]] = None

    @field_validator("attributes")
    @classmethod
    def clean_attributes(cls, v: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        return sanitize_attributes(v)


class ContentSectionUpdate(UpdateModel):
    rich_text_fields: ClassVar[FrozenSet[str]] = frozenset({"content"})

    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    display_order: Optional[int] = None
    published: Optional[bool] = None
    attributes: Optional[Dict[str, str]] = None

    @field_validator("attributes")
    @classmethod
    def clean_attributes(cls, v: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        return sanitize_attributes(v)


class ContentSectionOut(ApiModel):
    id: int
    section: str
    title: str
    content: str
    display_order: int
    published: bool
    attributes: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RegionalContacts(SanitizedModel):
    bangalore: Optional[str] = None
    kolkata: Optional[str] = None
    gurgaon: Optional[str] = None


class ContactInfoIn(SanitizedModel):
    phone: str = Field(..., min_length=1)
    email: EmailStr
    address: str = Field(..., min_length=1)
    registered_address: Optional[str] = None
    factory_location_2: Optional[str] = Field(None, alias="factoryLocation2")
    regional_contacts: Optional[RegionalContacts] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class ContactInfoOut(ApiModel):
    phone: str
    email: str
    address: str
    registered_address: Optional[str] = None
    factory_location_2: Optional[str] = Field(None, alias="factoryLocation2")
    regional_contacts: Optional[Dict[str, Any]] = None
    updated_at: Optional[datetime] = None


class CleanupResponse(ApiModel):
    message: str
    csrf_tokens_removed: int
    idempotency_keys_removed: int
    account_tokens_removed: int
