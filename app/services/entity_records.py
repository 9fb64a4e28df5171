"""
Contacts, addresses and documents attached to companies, employees and
suppliers.

Sub-records reference their owner through an (entity_type, entity_id)
pair. Their lifecycle is independent of the owner's: they are created,
updated and soft-deleted on their own, but can only be attached to an
owner that exists and is not deleted.
"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models import Contact, Address, EntityDocument, OwnerType
from app.services.listing import active, get_or_404, soft_delete, apply_updates

logger = logging.getLogger(__name__)

RECORD_LABELS = {
    Contact: "Contact",
    Address: "Address",
    EntityDocument: "Document",
}


def _owned(db: Session, model, owner_type: OwnerType):
    return active(db.query(model), model).filter(model.entity_type == owner_type.value)


def _clear_other_primaries(db: Session, model, owner_type: OwnerType, owner_id: int, keep_id=None):
    if not hasattr(model, "is_primary"):
        return
    query = _owned(db, model, owner_type).filter(
        model.entity_id == owner_id,
        model.is_primary.is_(True)
    )
    if keep_id is not None:
        query = query.filter(model.id != keep_id)
    for record in query.all():
        record.is_primary = False


def list_records(db: Session, model, owner_type: OwnerType, owner_id: int) -> list:
    query = _owned(db, model, owner_type).filter(model.entity_id == owner_id)
    if hasattr(model, "is_primary"):
        query = query.order_by(model.is_primary.desc(), model.id)
    else:
        query = query.order_by(model.id)
    return query.all()


def create_record(db: Session, model, owner_type: OwnerType, owner_model, owner_detail: str, data, user_id: int):
    """Attach a new sub-record to an existing owner"""
    get_or_404(db, owner_model, data.entity_id, owner_detail)

    values = data.model_dump()
    record = model(entity_type=owner_type.value, created_by=user_id, **values)
    if values.get("is_primary"):
        _clear_other_primaries(db, model, owner_type, data.entity_id)

    db.add(record)
    db.commit()
    db.refresh(record)

    logger.info(f"{RECORD_LABELS[model]} {record.id} added to {owner_type.value} {record.entity_id} by user {user_id}")
    return record


def _get_owned_or_404(db: Session, model, owner_type: OwnerType, record_id: int):
    record = _owned(db, model, owner_type).filter(model.id == record_id).first()
    if not record:
        raise HTTPException(status_code=404, detail=f"{RECORD_LABELS[model]} not found")
    return record


def update_record(db: Session, model, owner_type: OwnerType, record_id: int, data):
    record = _get_owned_or_404(db, model, owner_type, record_id)

    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    if update_data.get("is_primary"):
        _clear_other_primaries(db, model, owner_type, record.entity_id, keep_id=record.id)
    apply_updates(record, update_data)

    db.commit()
    db.refresh(record)

    logger.info(f"{RECORD_LABELS[model]} {record.id} updated")
    return record


def delete_record(db: Session, model, owner_type: OwnerType, record_id: int) -> dict:
    record = _get_owned_or_404(db, model, owner_type, record_id)
    soft_delete(record)
    db.commit()

    logger.info(f"{RECORD_LABELS[model]} {record.id} deleted")
    return {"message": f"{RECORD_LABELS[model]} deleted successfully"}
