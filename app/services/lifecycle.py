"""
Status-transition guards for quotes, sales orders and expense claims.

Each transition loads the record, checks that its current status is one of
the allowed predecessors, then stamps the new status together with the
timestamp/actor fields in a single commit.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def ensure_status(record, allowed: Iterable[str], detail: str):
    """Raise 400 unless record.status is one of `allowed`"""
    if record.status not in allowed:
        raise HTTPException(status_code=400, detail=detail)


def ensure_not_status(record, blocked: Iterable[str], detail: str):
    """Raise 400 when record.status is one of `blocked`"""
    if record.status in blocked:
        raise HTTPException(status_code=400, detail=detail)


def transition(
    db: Session,
    record,
    new_status: str,
    actor_id: Optional[int] = None,
    timestamp_field: Optional[str] = None,
    actor_field: Optional[str] = None,
    **fields
):
    """Apply a status change with its timestamp/actor stamps and commit"""
    previous = record.status
    record.status = new_status
    if timestamp_field:
        setattr(record, timestamp_field, datetime.now())
    if actor_field:
        setattr(record, actor_field, actor_id)
    for key, value in fields.items():
        setattr(record, key, value)

    db.commit()
    db.refresh(record)

    logger.info(f"{type(record).__name__} {record.id}: {previous} -> {new_status} by user {actor_id}")
    return record
