"""
Orders (RFQ) Router

Customers submit requests for quotation; admins review and move them
through pending -> quoted -> approved/rejected.

An order and its items are written in one transaction on one checked-out
connection. POSTs carrying an Idempotency-Key header are replayed from the
stored response instead of creating a duplicate order.
"""

from collections import defaultdict
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse
from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError
import structlog

from app.database import Database, get_database, run_statement
from app.dependencies import PageParams, get_idempotency, pagination_params, require_admin, require_customer
from app.models import Order, OrderItem
from app.models.schemas import OrderCreate, OrderList, OrderOut, OrderUpdate, build_pagination
from app.services.auth import TokenClaims
from app.services.idempotency import IdempotencyService, scoped_idempotency_key
from app.services.records import get_or_404, list_page, update_versioned

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])

orders = Order.__table__
order_items = OrderItem.__table__


async def _items_for(database: Database, order_ids: List[int]) -> Dict[int, List[dict]]:
    if not order_ids:
        return {}
    result = await database.query_with_retry(
        select(order_items).where(order_items.c.order_id.in_(order_ids)).order_by(order_items.c.id),
        operation_name="list_order_items",
    )
    grouped: Dict[int, List[dict]] = defaultdict(list)
    for item in result.rows:
        grouped[item["order_id"]].append(item)
    return grouped


@router.post("", response_model=OrderOut, status_code=201)
async def create_order(
    data: OrderCreate,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    database: Database = Depends(get_database),
    idempotency: IdempotencyService = Depends(get_idempotency),
    claims: TokenClaims = Depends(require_customer),
):
    scoped_key = None
    if idempotency_key:
        scoped_key = scoped_idempotency_key("orders", claims.username, idempotency_key)
        cached = await idempotency.check(scoped_key)
        if cached is not None:
            logger.info("order_replayed", customer=claims.username)
            return JSONResponse(
                content=cached.body,
                status_code=cached.status_code,
                headers={"Idempotent-Replayed": "true"},
            )

    async with database.connect_with_retry("create_order") as conn:
        async with conn.begin():
            order = (await run_statement(
                conn,
                insert(orders).values(
                    company_name=data.company_name,
                    contact_name=data.contact_name,
                    email=data.email,
                    phone=data.phone,
                    company_address=data.company_address,
                    notes=data.notes,
                    status="pending",
                    version=1,
                ).returning(*orders.c),
            )).rows[0]

            items = []
            for item in data.items:
                inserted = await run_statement(
                    conn,
                    insert(order_items).values(order_id=order["id"], **item.model_dump()).returning(*order_items.c),
                )
                items.append(inserted.rows[0])

    body = OrderOut.model_validate({**order, "items": items}).model_dump(mode="json", by_alias=True)
    logger.info("order_created", order_id=order["id"], items=len(items), customer=claims.username)

    if scoped_key:
        try:
            await idempotency.store(scoped_key, body, 201)
        except SQLAlchemyError as e:
            # The order is committed; a failed cache write only loses replay protection
            logger.error("idempotency_store_failed", order_id=order["id"], error=str(e))

    return JSONResponse(content=body, status_code=201)


@router.get("", response_model=OrderList)
async def list_orders(
    page: PageParams = Depends(pagination_params),
    status: Optional[str] = Query(None),
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    filters = [orders.c.status == status] if status else []
    rows, total = await list_page(database, orders, page.limit, page.offset, where=filters)
    items = await _items_for(database, [row["id"] for row in rows])
    return OrderList(
        orders=[OrderOut.model_validate({**row, "items": items.get(row["id"], [])}) for row in rows],
        pagination=build_pagination(page.page, page.limit, total),
    )


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(
    order_id: int,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    order = await get_or_404(database, orders, order_id, "Order")
    items = await _items_for(database, [order_id])
    return OrderOut.model_validate({**order, "items": items.get(order_id, [])})


@router.put("/{order_id}", response_model=OrderOut)
async def update_order(
    order_id: int,
    data: OrderUpdate,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    """Change status and/or notes of the order version the admin last read."""
    order = await update_versioned(database, orders, order_id, data.version, data.changes(), "Order")
    items = await _items_for(database, [order_id])
    logger.info(
        "order_updated",
        order_id=order_id,
        status=order["status"],
        version=order["version"],
        admin=claims.username,
    )
    return OrderOut.model_validate({**order, "items": items.get(order_id, [])})
