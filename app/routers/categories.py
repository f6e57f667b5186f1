"""
Categories Router

Public category listing and lookup; admins create, rename and delete.
The catalog's `category` filter resolves category slugs through this table.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_, select
import structlog

from app.database import Database, get_database
from app.dependencies import PageParams, pagination_params, require_admin
from app.exceptions import AppError
from app.models import Category
from app.models.schemas import (
    CategoryCreate,
    CategoryList,
    CategoryOut,
    CategoryUpdate,
    MessageResponse,
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
from app.services.security.sanitize import sanitize_string

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/categories", tags=["categories"])

categories = Category.__table__


async def find_by_slug(database: Database, slug: str):
    result = await database.query_with_retry(
        select(categories).where(categories.c.slug == slug),
        operation_name="find_category",
    )
    return result.first()


async def _check_parent(database: Database, parent_id: Optional[int], category_id: Optional[int] = None) -> None:
    if parent_id is None:
        return
    if parent_id == category_id:
        raise AppError("A category cannot be its own parent", status_code=400)
    result = await database.query_with_retry(
        select(categories.c.id).where(categories.c.id == parent_id),
        operation_name="find_parent_category",
    )
    if result.first() is None:
        raise AppError("Parent category not found", status_code=400)


@router.get("", response_model=CategoryList)
async def list_categories(
    page: PageParams = Depends(pagination_params),
    search: Optional[str] = Query(None),
    database: Database = Depends(get_database),
):
    """Categories in creation order. `search` matches name, slug or description."""
    filters = []
    if search and sanitize_string(search):
        term = f"%{sanitize_string(search)}%"
        filters.append(or_(
            categories.c.name.ilike(term),
            categories.c.slug.ilike(term),
            categories.c.description.ilike(term),
        ))

    rows, total = await list_page(
        database,
        categories,
        page.limit,
        page.offset,
        where=filters,
        order_by=(categories.c.created_at.asc(), categories.c.id.asc()),
    )
    return CategoryList(
        categories=[CategoryOut.model_validate(row) for row in rows],
        pagination=build_pagination(page.page, page.limit, total),
    )


@router.get("/{category_id}", response_model=CategoryOut)
async def get_category(category_id: int, database: Database = Depends(get_database)):
    return CategoryOut.model_validate(await get_or_404(database, categories, category_id, "Category"))


@router.post("", response_model=CategoryOut, status_code=201)
async def create_category(
    data: CategoryCreate,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    # Duplicate names or slugs surface as IntegrityError, mapped to 409
    await _check_parent(database, data.parent_id)
    row = await insert_returning(database, categories, data.model_dump())
    logger.info("category_created", category_id=row["id"], slug=row["slug"], admin=claims.username)
    return CategoryOut.model_validate(row)


@router.put("/{category_id}", response_model=CategoryOut)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    values = data.changes()
    await get_or_404(database, categories, category_id, "Category")
    if "parent_id" in values:
        await _check_parent(database, values["parent_id"], category_id)
    row = await update_returning(database, categories, category_id, values, "Category")
    logger.info("category_updated", category_id=category_id, admin=claims.username)
    return CategoryOut.model_validate(row)


@router.delete("/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: int,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    await delete_or_404(database, categories, category_id, "Category")
    logger.info("category_deleted", category_id=category_id, admin=claims.username)
    return MessageResponse(message="Category deleted successfully")
