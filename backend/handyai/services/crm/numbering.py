"""
Human-readable document numbers (ANG-2026-0001, RE-2026-0001).

The per-year counter row is advanced with one atomic upsert inside the caller's
transaction, so concurrent creations serialize on the row and a rolled-back
insert does not consume a number.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from handyai.models.counter import DocumentCounter

OFFER_PREFIX = "ANG"
INVOICE_PREFIX = "RE"


def _dialect_insert(dialect_name: str):
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"Document numbering is not supported on {dialect_name}")
    return insert


async def next_sequence_value(session: AsyncSession, scope: str) -> int:
    insert = _dialect_insert(session.get_bind().dialect.name)
    table = DocumentCounter.__table__
    stmt = (
        insert(table)
        .values(scope=scope, value=1)
        .on_conflict_do_update(
            index_elements=[table.c.scope],
            set_={"value": table.c.value + 1},
        )
        .returning(table.c.value)
    )
    result = await session.execute(stmt)
    return result.scalar_one()


def format_document_number(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}-{year}-{sequence:04d}"


async def next_document_number(session: AsyncSession, prefix: str, now: Optional[datetime] = None) -> str:
    year = (now or datetime.now(timezone.utc)).year
    sequence = await next_sequence_value(session, f"{prefix.lower()}:{year}")
    return format_document_number(prefix, year, sequence)
