"""
Document numbering.

Human-readable numbers (QUO-2025-000001, SO-2025-000042...) come from a
per-tenant counter table. The counter row is created on first use with an
INSERT ... ON CONFLICT DO NOTHING and then incremented with a single
UPDATE inside the caller's transaction, so two concurrent creations can
never receive the same number: the second UPDATE waits on the row lock
held by the first until it commits.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.dialects import postgresql, sqlite

from app.models import DocumentSequence

logger = logging.getLogger(__name__)

QUOTE_SEQUENCE = ("quote", "QUO")
SALES_ORDER_SEQUENCE = ("sales_order", "SO")
RETURN_ORDER_SEQUENCE = ("return_order", "RET")
EXPENSE_CLAIM_SEQUENCE = ("expense_claim", "EXP")


def _ensure_counter(db: Session, name: str, year: int):
    dialect = db.get_bind().dialect.name
    if dialect in ("postgresql", "sqlite"):
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        stmt = (
            insert(DocumentSequence)
            .values(name=name, year=year, last_value=0)
            .on_conflict_do_nothing(index_elements=["name", "year"])
        )
        db.execute(stmt)
        return

    exists = db.query(DocumentSequence.id).filter(
        DocumentSequence.name == name,
        DocumentSequence.year == year
    ).first()
    if not exists:
        db.add(DocumentSequence(name=name, year=year, last_value=0))
        db.flush()


def next_sequence_value(db: Session, name: str, year: int) -> int:
    """Atomically increment and return the counter for (name, year)"""
    _ensure_counter(db, name, year)

    db.query(DocumentSequence).filter(
        DocumentSequence.name == name,
        DocumentSequence.year == year
    ).update(
        {DocumentSequence.last_value: DocumentSequence.last_value + 1},
        synchronize_session=False
    )

    return db.query(DocumentSequence.last_value).filter(
        DocumentSequence.name == name,
        DocumentSequence.year == year
    ).scalar()


def next_document_number(db: Session, sequence: tuple, on_date: Optional[date] = None) -> str:
    """Generate the next number for a sequence: PREFIX-YYYY-NNNNNN"""
    name, prefix = sequence
    year = (on_date or date.today()).year
    value = next_sequence_value(db, name, year)
    number = f"{prefix}-{year}-{value:06d}"
    logger.debug(f"Allocated document number {number}")
    return number
