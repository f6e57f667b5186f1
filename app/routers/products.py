"""
Products Router

Public catalog browsing with connector filters; admin create, update and
delete. Updates use optimistic concurrency on the product version.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
import structlog

from app.database import Database, get_database
from app.dependencies import PageParams, pagination_params, require_admin
from app.models import Product
from app.models.schemas import (
    FilterOptions,
    MessageResponse,
    ProductCreate,
    ProductList,
    ProductOut,
    ProductUpdate,
    build_pagination,
)
from app.routers.categories import find_by_slug
from app.services.auth import TokenClaims
from app.services.records import (
    csv_values,
    delete_or_404,
    get_or_404,
    insert_returning,
    list_page,
    update_versioned,
)
from app.services.security.sanitize import sanitize_string

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])

products = Product.__table__


def _int_values(raw: Optional[str]):
    values = []
    for part in csv_values(raw):
        try:
            values.append(int(part))
        except ValueError:
            continue
    return values


async def _category_filter(database: Database, category: str):
    """
    A known category slug matches products filed under that category's name
    exactly; any other value is a substring match on the stored name.
    """
    known = await find_by_slug(database, category.lower())
    if known is not None:
        return func.lower(products.c.category) == known["name"].lower()
    return products.c.category.ilike(f"%{category}%")


@router.get("", response_model=ProductList)
async def list_products(
    page: PageParams = Depends(pagination_params),
    ids: Optional[str] = Query(None, description="Comma-separated product IDs"),
    connector_type: Optional[str] = Query(None, alias="connectorType"),
    coding: Optional[str] = Query(None),
    pins: Optional[str] = Query(None),
    ip_rating: Optional[str] = Query(None, alias="ipRating"),
    gender: Optional[str] = Query(None),
    in_stock: Optional[str] = Query(None, alias="inStock"),
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    database: Database = Depends(get_database),
):
    """
    List products, newest first.

    Multi-valued filters take comma-separated values (connectorType=M12,M8).
    Unparseable ids and pin counts are ignored.
    """
    filters = []

    id_list = _int_values(ids)
    if id_list:
        filters.append(products.c.id.in_(id_list))

    for column, raw in (
        (products.c.connector_type, connector_type),
        (products.c.coding, coding),
        (products.c.ip_rating, ip_rating),
        (products.c.gender, gender),
    ):
        values = [sanitize_string(v) for v in csv_values(raw)]
        if values:
            filters.append(column.in_(values))

    pin_list = _int_values(pins)
    if pin_list:
        filters.append(products.c.pins.in_(pin_list))

    if in_stock == "true":
        filters.append(products.c.in_stock.is_(True))

    if search and sanitize_string(search):
        term = f"%{sanitize_string(search)}%"
        filters.append(or_(
            products.c.name.ilike(term),
            products.c.sku.ilike(term),
            products.c.description.ilike(term),
        ))

    if category and sanitize_string(category):
        filters.append(await _category_filter(database, sanitize_string(category)))

    rows, total = await list_page(database, products, page.limit, page.offset, where=filters)
    return ProductList(
        products=[ProductOut.model_validate(row) for row in rows],
        pagination=build_pagination(page.page, page.limit, total),
    )


@router.get("/filter-options", response_model=FilterOptions)
async def filter_options(database: Database = Depends(get_database)):
    """Distinct values present in the catalog for each filterable attribute."""

    async def distinct(column):
        result = await database.query_with_retry(
            select(column).where(column.is_not(None)).distinct().order_by(column),
            operation_name=f"distinct_{column.name}",
        )
        return [row[column.name] for row in result.rows]

    return FilterOptions(
        connector_types=await distinct(products.c.connector_type),
        codings=await distinct(products.c.coding),
        ip_ratings=await distinct(products.c.ip_rating),
        pins=sorted(int(p) for p in await distinct(products.c.pins)),
        genders=await distinct(products.c.gender),
    )


@router.get("/{product_id}", response_model=ProductOut)
async def get_product(product_id: int, database: Database = Depends(get_database)):
    return ProductOut.model_validate(await get_or_404(database, products, product_id, "Product"))


@router.post("", response_model=ProductOut, status_code=201)
async def create_product(
    data: ProductCreate,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    values = data.model_dump(exclude={"specifications"})
    values["specifications"] = data.specifications.model_dump(by_alias=True, exclude_none=True)
    values["version"] = 1

    product = await insert_returning(database, products, values)
    logger.info("product_created", product_id=product["id"], sku=product["sku"], admin=claims.username)
    return ProductOut.model_validate(product)


@router.put("/{product_id}", response_model=ProductOut)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    """
    Update a product the caller read at `version`.

    409 if someone else updated it in the meantime.
    """
    values = data.changes()
    if data.specifications is not None:
        values["specifications"] = data.specifications.model_dump(by_alias=True, exclude_none=True)

    product = await update_versioned(database, products, product_id, data.version, values, "Product")
    logger.info(
        "product_updated",
        product_id=product_id,
        version=product["version"],
        fields=sorted(values),
        admin=claims.username,
    )
    return ProductOut.model_validate(product)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: int,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    await delete_or_404(database, products, product_id, "Product")
    logger.info("product_deleted", product_id=product_id, admin=claims.username)
    return MessageResponse(message="Product deleted successfully")
