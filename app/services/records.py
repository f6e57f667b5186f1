"""
Record Helpers

Thin SQLAlchemy Core helpers shared by the CRUD routers. Every statement
goes through Database.query_with_retry; rows come back as plain dicts.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Table, delete, func, insert, select, update
from sqlalchemy.sql import ColumnElement

from app.database import Database
from app.exceptions import NotFoundError, VersionConflictError


async def get_or_404(
    database: Database,
    table: Table,
    record_id: int,
    resource: str,
    where: Sequence[ColumnElement] = (),
) -> Dict[str, Any]:
    result = await database.query_with_retry(
        select(table).where(table.c.id == record_id, *where),
        operation_name=f"get_{table.name}",
    )
    row = result.first()
    if row is None:
        raise NotFoundError(f"{resource} not found")
    return row


async def list_page(
    database: Database,
    table: Table,
    limit: int,
    offset: int,
    where: Sequence[ColumnElement] = (),
    order_by: Sequence[ColumnElement] = (),
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Fetch one page of rows plus the total count for the same filter.

    Returns:
        (rows, total)
    """
    count = await database.query_with_retry(
        select(func.count().label("total")).select_from(table).where(*where),
        operation_name=f"count_{table.name}",
    )
    total = count.rows[0]["total"] if count.rows else 0

    query = select(table).where(*where)
    query = query.order_by(*(order_by or (table.c.created_at.desc(), table.c.id.desc())))
    rows = await database.query_with_retry(
        query.limit(limit).offset(offset),
        operation_name=f"list_{table.name}",
    )
    return rows.rows, total


async def insert_returning(database: Database, table: Table, values: Dict[str, Any]) -> Dict[str, Any]:
    result = await database.query_with_retry(
        insert(table).values(**values).returning(*table.c),
        operation_name=f"insert_{table.name}",
    )
    return result.rows[0]


async def update_returning(
    database: Database,
    table: Table,
    record_id: int,
    values: Dict[str, Any],
    resource: str,
) -> Dict[str, Any]:
    """Unconditional update by id. Raises NotFoundError if the row is missing."""
    result = await database.query_with_retry(
        update(table).where(table.c.id == record_id).values(**values).returning(*table.c),
        operation_name=f"update_{table.name}",
    )
    row = result.first()
    if row is None:
        raise NotFoundError(f"{resource} not found")
    return row


async def update_versioned(
    database: Database,
    table: Table,
    record_id: int,
    expected_version: int,
    values: Dict[str, Any],
    resource: str,
) -> Dict[str, Any]:
    """
    Optimistic-concurrency update.

    The row is only changed if its version still equals expected_version;
    the version is then incremented in the same statement.

    Raises:
        NotFoundError: No row with that id
        VersionConflictError: The row exists but was updated since it was read
    """
    result = await database.query_with_retry(
        update(table)
        .where(table.c.id == record_id, table.c.version == expected_version)
        .values(**values, version=table.c.version + 1)
        .returning(*table.c),
        operation_name=f"update_{table.name}",
    )
    row = result.first()
    if row is not None:
        return row

    exists = await database.query_with_retry(
        select(table.c.id).where(table.c.id == record_id),
        operation_name=f"get_{table.name}",
    )
    if exists.first() is None:
        raise NotFoundError(f"{resource} not found")
    raise VersionConflictError(resource, expected_version)


async def delete_or_404(database: Database, table: Table, record_id: int, resource: str) -> None:
    result = await database.query_with_retry(
        delete(table).where(table.c.id == record_id),
        operation_name=f"delete_{table.name}",
    )
    if result.rowcount == 0:
        raise NotFoundError(f"{resource} not found")


def csv_values(raw: Optional[str]) -> List[str]:
    """Split a comma-separated query parameter, dropping blanks."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]
