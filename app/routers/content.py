"""
Content Router

Blog posts, job openings, downloadable resources and the sectioned CMS
pages (CONTENT_SECTIONS: about-us, company policies, technical support and
details, principal partners, authorised distributors). Anonymous callers
only see published entries; admins see everything.
"""

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
import structlog

from app.database import Database, get_database
from app.dependencies import PageParams, get_optional_identity, pagination_params, require_admin
from app.exceptions import NotFoundError
from app.models import Blog, Career, ContentSection, Resource
from app.models.content import CONTENT_SECTIONS
from app.models.schemas import (
    ApiModel,
    BlogCreate,
    BlogOut,
    BlogUpdate,
    CareerCreate,
    CareerOut,
    CareerUpdate,
    ContentSectionCreate,
    ContentSectionOut,
    ContentSectionUpdate,
    MessageResponse,
    Pagination,
    ResourceCreate,
    ResourceOut,
    ResourceUpdate,
    build_pagination,
)
from app.services.auth import TokenClaims
from app.services.records import (
    delete_or_404,
    get_or_404,
    insert_returning,
    list_page,
    update_returning,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["content"])

blogs = Blog.__table__
careers = Career.__table__
resources = Resource.__table__
sections = ContentSection.__table__


class BlogList(ApiModel):
    blogs: List[BlogOut]
    pagination: Pagination


class CareerList(ApiModel):
    careers: List[CareerOut]
    pagination: Pagination


class ResourceList(ApiModel):
    resources: List[ResourceOut]
    pagination: Pagination


class ContentSectionList(ApiModel):
    section: str
    items: List[ContentSectionOut]


def _is_admin(identity: Optional[TokenClaims]) -> bool:
    return identity is not None and identity.is_admin


def _visible(column, identity: Optional[TokenClaims]):
    return [] if _is_admin(identity) else [column.is_(True)]


def _section_or_404(section: str) -> str:
    if section not in CONTENT_SECTIONS:
        raise NotFoundError(f"Unknown content section: {section}")
    return section


# ============================================================================
# Blogs
# ============================================================================

@router.get("/blogs", response_model=BlogList)
async def list_blogs(
    page: PageParams = Depends(pagination_params),
    category: Optional[str] = Query(None),
    database: Database = Depends(get_database),
    identity: Optional[TokenClaims] = Depends(get_optional_identity),
):
    filters = _visible(blogs.c.published, identity)
    if category:
        filters.append(blogs.c.category == category)
    rows, total = await list_page(database, blogs, page.limit, page.offset, where=filters)
    return BlogList(
        blogs=[BlogOut.model_validate(row) for row in rows],
        pagination=build_pagination(page.page, page.limit, total),
    )


@router.get("/blogs/{blog_id}", response_model=BlogOut)
async def get_blog(
    blog_id: int,
    database: Database = Depends(get_database),
    identity: Optional[TokenClaims] = Depends(get_optional_identity),
):
    row = await get_or_404(database, blogs, blog_id, "Blog post", where=_visible(blogs.c.published, identity))
    return BlogOut.model_validate(row)


@router.post("/blogs", response_model=BlogOut, status_code=201)
async def create_blog(
    data: BlogCreate,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    values = data.model_dump()
    if data.published:
        values["published_at"] = datetime.now(timezone.utc)
    row = await insert_returning(database, blogs, values)
    logger.info("blog_created", blog_id=row["id"], admin=claims.username)
    return BlogOut.model_validate(row)


@router.put("/blogs/{blog_id}", response_model=BlogOut)
async def update_blog(
    blog_id: int,
    data: BlogUpdate,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    values = data.changes()
    if values.get("published"):
        current = await get_or_404(database, blogs, blog_id, "Blog post")
        if current["published_at"] is None:
            values["published_at"] = datetime.now(timezone.utc)
    row = await update_returning(database, blogs, blog_id, values, "Blog post")
    logger.info("blog_updated", blog_id=blog_id, admin=claims.username)
    return BlogOut.model_validate(row)


@router.delete("/blogs/{blog_id}", response_model=MessageResponse)
async def delete_blog(
    blog_id: int,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    await delete_or_404(database, blogs, blog_id, "Blog post")
    logger.info("blog_deleted", blog_id=blog_id, admin=claims.username)
    return MessageResponse(message="Blog post deleted successfully")


# ============================================================================
# Careers
# ============================================================================

@router.get("/careers", response_model=CareerList)
async def list_careers(
    page: PageParams = Depends(pagination_params),
    database: Database = Depends(get_database),
    identity: Optional[TokenClaims] = Depends(get_optional_identity),
):
    rows, total = await list_page(
        database, careers, page.limit, page.offset, where=_visible(careers.c.active, identity)
    )
    return CareerList(
        careers=[CareerOut.model_validate(row) for row in rows],
        pagination=build_pagination(page.page, page.limit, total),
    )


@router.get("/careers/{career_id}", response_model=CareerOut)
async def get_career(
    career_id: int,
    database: Database = Depends(get_database),
    identity: Optional[TokenClaims] = Depends(get_optional_identity),
):
    row = await get_or_404(database, careers, career_id, "Career", where=_visible(careers.c.active, identity))
    return CareerOut.model_validate(row)


@router.post("/careers", response_model=CareerOut, status_code=201)
async def create_career(
    data: CareerCreate,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    row = await insert_returning(database, careers, data.model_dump())
    logger.info("career_created", career_id=row["id"], admin=claims.username)
    return CareerOut.model_validate(row)


@router.put("/careers/{career_id}", response_model=CareerOut)
async def update_career(
    career_id: int,
    data: CareerUpdate,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    row = await update_returning(database, careers, career_id, data.changes(), "Career")
    logger.info("career_updated", career_id=career_id, admin=claims.username)
    return CareerOut.model_validate(row)


@router.delete("/careers/{career_id}", response_model=MessageResponse)
async def delete_career(
    career_id: int,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    await delete_or_404(database, careers, career_id, "Career")
    logger.info("career_deleted", career_id=career_id, admin=claims.username)
    return MessageResponse(message="Career deleted successfully")


# ============================================================================
# Resources
# ============================================================================

@router.get("/resources", response_model=ResourceList)
async def list_resources(
    page: PageParams = Depends(pagination_params),
    type: Optional[str] = Query(None),
    database: Database = Depends(get_database),
    identity: Optional[TokenClaims] = Depends(get_optional_identity),
):
    filters = _visible(resources.c.published, identity)
    if type:
        filters.append(resources.c.type == type)
    rows, total = await list_page(database, resources, page.limit, page.offset, where=filters)
    return ResourceList(
        resources=[ResourceOut.model_validate(row) for row in rows],
        pagination=build_pagination(page.page, page.limit, total),
    )


@router.get("/resources/{resource_id}", response_model=ResourceOut)
async def get_resource(
    resource_id: int,
    database: Database = Depends(get_database),
    identity: Optional[TokenClaims] = Depends(get_optional_identity),
):
    row = await get_or_404(
        database, resources, resource_id, "Resource", where=_visible(resources.c.published, identity)
    )
    return ResourceOut.model_validate(row)


@router.post("/resources", response_model=ResourceOut, status_code=201)
async def create_resource(
    data: ResourceCreate,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    row = await insert_returning(database, resources, data.model_dump())
    logger.info("resource_created", resource_id=row["id"], admin=claims.username)
    return ResourceOut.model_validate(row)


@router.put("/resources/{resource_id}", response_model=ResourceOut)
async def update_resource(
    resource_id: int,
    data: ResourceUpdate,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    row = await update_returning(database, resources, resource_id, data.changes(), "Resource")
    logger.info("resource_updated", resource_id=resource_id, admin=claims.username)
    return ResourceOut.model_validate(row)


@router.delete("/resources/{resource_id}", response_model=MessageResponse)
async def delete_resource(
    resource_id: int,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    await delete_or_404(database, resources, resource_id, "Resource")
    logger.info("resource_deleted", resource_id=resource_id, admin=claims.username)
    return MessageResponse(message="Resource deleted successfully")


# ============================================================================
# CMS sections
# ============================================================================

@router.get("/content/{section}", response_model=ContentSectionList)
async def list_section(
    section: str,
    database: Database = Depends(get_database),
    identity: Optional[TokenClaims] = Depends(get_optional_identity),
):
    """All blocks of a CMS page in display order."""
    _section_or_404(section)
    rows, _ = await list_page(
        database,
        sections,
        limit=500,
        offset=0,
        where=[sections.c.section == section, *_visible(sections.c.published, identity)],
        order_by=(sections.c.display_order.asc(), sections.c.id.asc()),
    )
    return ContentSectionList(section=section, items=[ContentSectionOut.model_validate(r) for r in rows])


@router.post("/content/{section}", response_model=ContentSectionOut, status_code=201)
async def create_section_item(
    section: str,
    data: ContentSectionCreate,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    row = await insert_returning(database, sections, {**data.model_dump(), "section": _section_or_404(section)})
    logger.info("content_created", section=section, content_id=row["id"], admin=claims.username)
    return ContentSectionOut.model_validate(row)


async def _section_item_or_404(database: Database, section: str, item_id: int) -> dict:
    return await get_or_404(
        database, sections, item_id, "Content", where=[sections.c.section == _section_or_404(section)]
    )


@router.put("/content/{section}/{item_id}", response_model=ContentSectionOut)
async def update_section_item(
    section: str,
    item_id: int,
    data: ContentSectionUpdate,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    await _section_item_or_404(database, section, item_id)
    row = await update_returning(database, sections, item_id, data.changes(), "Content")
    logger.info("content_updated", section=section, content_id=item_id, admin=claims.username)
    return ContentSectionOut.model_validate(row)


@router.delete("/content/{section}/{item_id}", response_model=MessageResponse)
async def delete_section_item(
    section: str,
    item_id: int,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    await _section_item_or_404(database, section, item_id)
    await delete_or_404(database, sections, item_id, "Content")
    logger.info("content_deleted", section=section, content_id=item_id, admin=claims.username)
    return MessageResponse(message="Content deleted successfully")
