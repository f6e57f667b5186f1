"""
Contact Info Router

The company's public contact details. A single record: PUT replaces it.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import select
import structlog

from app.database import Database, get_database
from app.dependencies import require_admin
from app.exceptions import NotFoundError
from app.models import ContactInfo
from app.models.schemas import ContactInfoIn, ContactInfoOut
from app.services.auth import TokenClaims
from app.services.records import insert_returning, update_returning

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/contact-info", tags=["contact-info"])

contact_info = ContactInfo.__table__


async def _current(database: Database):
    result = await database.query_with_retry(
        select(contact_info).order_by(contact_info.c.id).limit(1),
        operation_name="get_contact_info",
    )
    return result.first()


@router.get("", response_model=ContactInfoOut)
async def get_contact_info(database: Database = Depends(get_database)):
    row = await _current(database)
    if row is None:
        raise NotFoundError("Contact information not found")
    return ContactInfoOut.model_validate(row)


@router.put("", response_model=ContactInfoOut)
async def update_contact_info(
    data: ContactInfoIn,
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_admin),
):
    values = data.model_dump(exclude={"regional_contacts"})
    values["regional_contacts"] = (
        data.regional_contacts.model_dump(exclude_none=True) if data.regional_contacts else None
    )

    existing = await _current(database)
    if existing is None:
        row = await insert_returning(database, contact_info, values)
    else:
        row = await update_returning(database, contact_info, existing["id"], values, "Contact information")

    logger.info("contact_info_updated", admin=claims.username)
    return ContactInfoOut.model_validate(row)
