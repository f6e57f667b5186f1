"""
Content Models
Marketing and CMS content: blog posts, job openings, downloadable resources,
sectioned CMS pages and the single contact-info record.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, JSON, Index
from sqlalchemy.sql import func
from app.database import Base

CONTENT_SECTIONS = (
    "about-us",
    "company-policies",
    "technical-support",
    "technical-details",
    "principal-partners",
    "authorised-distributors",
)


class Blog(Base):
    __tablename__ = "blogs"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(500), nullable=False)
    excerpt = Column(Text, nullable=False)
    content = Column(Text, nullable=False)  # rich text
    author = Column(String(255), nullable=False)
    category = Column(String(255), nullable=False, index=True)
    image = Column(String(500), nullable=True)
    published = Column(Boolean, nullable=False, default=False, index=True)
    published_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Blog(id={self.id}, title='{self.title}', published={self.published})>"


class Career(Base):
    __tablename__ = "careers"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    department = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)  # Full-time, Part-time, Contract
    description = Column(Text, nullable=False)
    requirements = Column(Text, nullable=True)
    responsibilities = Column(Text, nullable=True)
    benefits = Column(Text, nullable=True)
    salary = Column(String(100), nullable=True)
    active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Career(id={self.id}, title='{self.title}', active={self.active})>"


class Resource(Base):
    __tablename__ = "resources"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(500), nullable=False)
    type = Column(String(50), nullable=False)  # datasheet, catalog, manual, ...
    description = Column(Text, nullable=False)
    url = Column(String(1000), nullable=False)
    published = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Resource(id={self.id}, title='{self.title}', type='{self.type}')>"


class ContentSection(Base):
    """
    One ordered block on a CMS page.

    `section` names the page, one of CONTENT_SECTIONS.
    """
    __tablename__ = "content_sections"

    id = Column(Integer, primary_key=True, index=True)
    section = Column(String(50), nullable=False)
    title = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)  # rich text
    display_order = Column(Integer, nullable=False, default=0)
    published = Column(Boolean, nullable=False, default=True)
    attributes = Column(JSON, nullable=True)  # partner contact fields, product tab

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('ix_content_sections_section_order', 'section', 'display_order'),
    )

    def __repr__(self):
        return f"<ContentSection(id={self.id}, section='{self.section}', title='{self.title}')>"


class ContactInfo(Base):
    """Company contact details. The table holds at most one row."""
    __tablename__ = "contact_info"

    id = Column(Integer, primary_key=True)
    phone = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False)
    address = Column(Text, nullable=False)
    registered_address = Column(Text, nullable=True)
    factory_location_2 = Column(Text, nullable=True)
    regional_contacts = Column(JSON, nullable=True)  # {"bangalore": ..., "kolkata": ..., "gurgaon": ...}

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ContactInfo(id={self.id}, email='{self.email}')>"
