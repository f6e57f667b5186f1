"""
Inquiries Router

Public contact form submissions and the admin inbox for them.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
import structlog

from app.database import Database, get_database
from app.dependencies import PageParams, pagination_params, require_admin
from app.models import Inquiry
from app.models.schemas import (
    InquiryCreate,
    InquiryList,
    InquiryOut,
    InquiryUpdate,
    MessageResponse,
    build_pagination,
)
from app.services.auth import TokenClaims
from app.services.records import delete_or_404, get_or_404, insert_returning, list_page, update_returning

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/inquiries", tags=["inquiries"])

inquiries = Inquiry.__table__


@router.post("", response_model=InquiryOut, status_code=201)
async def create_inquiry(inquiry: InquiryCreate, database: Database = Depends(get_database)):
    """Submit a contact form inquiry. No account required."""
    row = await insert_returning(database, inquiries, {
        **inquiry.model_dump(),
        "read": False,
        "responded": False,
    })
    logger.info("inquiry_created", inquiry_id=row["id"])
    return InquiryOut.model_validate(row)


@router.get("", response_model=InquiryList)
async def list_inquiries(
    page: PageParams = Depends(pagination_params),
    read: Optional[bool] = Query(None),
    responded: Optional[bool] = Query(None),
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    filters = []
    if read is not None:
        filters.append(inquiries.c.read.is_(read))
    if responded is not None:
        filters.append(inquiries.c.responded.is_(responded))

    rows, total = await list_page(database, inquiries, page.limit, page.offset, where=filters)
    return InquiryList(
        inquiries=[InquiryOut.model_validate(row) for row in rows],
        pagination=build_pagination(page.page, page.limit, total),
    )


@router.get("/{inquiry_id}", response_model=InquiryOut)
async def get_inquiry(
    inquiry_id: int,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    return InquiryOut.model_validate(await get_or_404(database, inquiries, inquiry_id, "Inquiry"))


@router.put("/{inquiry_id}", response_model=InquiryOut)
async def update_inquiry(
    inquiry_id: int,
    data: InquiryUpdate,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    row = await update_returning(database, inquiries, inquiry_id, data.changes(), "Inquiry")
    logger.info("inquiry_updated", inquiry_id=inquiry_id, admin=claims.username)
    return InquiryOut.model_validate(row)


@router.delete("/{inquiry_id}", response_model=MessageResponse)
async def delete_inquiry(
    inquiry_id: int,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    await delete_or_404(database, inquiries, inquiry_id, "Inquiry")
    logger.info("inquiry_deleted", inquiry_id=inquiry_id, admin=claims.username)
    return MessageResponse(message="Inquiry deleted successfully")
