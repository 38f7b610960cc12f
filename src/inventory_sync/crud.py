"""Row store operations: ensure, read and full-snapshot save keyed by identity."""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import NoResultFound
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import PersistenceError
from .models import InventoryRow
from .schemas import utcnow

_DIALECT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def _insert_for(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    try:
        return _DIALECT_INSERTS[dialect]
    except KeyError as exc:
        raise PersistenceError(
            f"Upserts are not supported for dialect '{dialect}'", reason="unsupported_dialect"
        ) from exc


async def ensure_row(session: AsyncSession, identity: str) -> None:
    """Create an empty row for ``identity``; an existing row is left untouched."""

    insert = _insert_for(session)
    stmt = (
        insert(InventoryRow)
        .values(identity=identity, inventory=[], custom_fields=[], updated_at=utcnow())
        .on_conflict_do_nothing(index_elements=[InventoryRow.identity])
    )
    await session.execute(stmt)
    await session.flush()


async def read_row(session: AsyncSession, identity: str) -> InventoryRow | None:
    stmt = select(InventoryRow).where(InventoryRow.identity == identity)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def save_row(
    session: AsyncSession,
    identity: str,
    inventory: Sequence[dict[str, Any]],
    custom_fields: Sequence[dict[str, Any]],
) -> InventoryRow:
    """Overwrite the whole snapshot for ``identity``, creating the row if needed."""

    insert = _insert_for(session)
    values = {
        "identity": identity,
        "inventory": list(inventory),
        "custom_fields": list(custom_fields),
        "updated_at": utcnow(),
    }
    stmt = insert(InventoryRow).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[InventoryRow.identity],
        set_={
            "inventory": stmt.excluded.inventory,
            "custom_fields": stmt.excluded.custom_fields,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    await session.execute(stmt)
    await session.flush()
    row = await session.get(InventoryRow, identity, populate_existing=True)
    if row is None:
        raise NoResultFound(f"Row {identity} not found after save")
    return row


__all__ = ["ensure_row", "read_row", "save_row"]
