"""
Shared helpers for tenant-scoped record access: soft-delete visibility,
lookups, partial updates and pagination.
"""

import math
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import inspect, or_
from sqlalchemy.orm import Session, Query

MAX_PAGE_SIZE = 200


def active(query: Query, model) -> Query:
    """Exclude soft-deleted rows"""
    return query.filter(model.deleted_at.is_(None))


def get_or_404(db: Session, model, record_id: int, detail: str, options: Optional[list] = None):
    query = db.query(model).filter(model.id == record_id)
    if hasattr(model, "deleted_at"):
        query = active(query, model)
    if options:
        query = query.options(*options)
    record = query.first()
    if not record:
        raise HTTPException(status_code=404, detail=detail)
    return record


def soft_delete(record):
    record.deleted_at = datetime.now()


def apply_updates(record, update_data: dict):
    """
    Copy a partial update onto a record. An explicit null is only accepted
    for nullable columns without a default.
    """
    columns = inspect(type(record)).columns
    for key, value in update_data.items():
        if value is None and key in columns:
            column = columns[key]
            if not column.nullable or column.default is not None:
                raise HTTPException(status_code=400, detail=f"Field '{key}' cannot be null")
    for key, value in update_data.items():
        setattr(record, key, value)


def contains_any(columns: list, text: str):
    """Case-insensitive "contains" over several columns (bound parameter, never interpolated SQL)"""
    pattern = f"%{text.strip()}%"
    return or_(*[column.ilike(pattern) for column in columns])


def paginate(query: Query, page: int, page_size: int) -> dict:
    page = max(page, 1)
    page_size = min(max(page_size, 1), MAX_PAGE_SIZE)
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * page_size).limit(page_size).all()
    return {
        "data": rows,
        "total": total,
        "page": page,
        "pageSize": page_size,
        "totalPages": math.ceil(total / page_size) if total else 0,
    }
