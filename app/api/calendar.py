"""
Calendar API endpoints: events, participants and invitation responses.

A user sees an event when they created it, when it is company-wide or
public, or when they are invited as a user participant.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import and_, or_
from typing import Optional, List
from datetime import datetime, date, timedelta
import logging

from app.models import CalendarEvent, CalendarParticipant, User
from app.schemas import (
    CalendarEventCreate, CalendarEventUpdate, CalendarEvent as CalendarEventSchema,
    EventResponse, MessageResponse
)
from app.services.dependency import get_tenant_db, require_permission
from app.services.listing import active, apply_updates, soft_delete

router = APIRouter()
logger = logging.getLogger(__name__)

SHARED_VISIBILITY = ("company", "public")


def visible_to(user: User):
    """Filter clause for events the user is allowed to see"""
    return or_(
        CalendarEvent.created_by == user.id,
        CalendarEvent.visibility.in_(SHARED_VISIBILITY),
        CalendarEvent.participants.any(and_(
            CalendarParticipant.participant_type == "user",
            CalendarParticipant.participant_id == user.id
        ))
    )


def get_visible_event(db: Session, event_id: int, user: User) -> CalendarEvent:
    event = active(db.query(CalendarEvent), CalendarEvent).options(
        selectinload(CalendarEvent.participants)
    ).filter(CalendarEvent.id == event_id, visible_to(user)).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def build_participants(creator_id: int, participants: list) -> List[CalendarParticipant]:
    """Organizer row for the creator followed by the invited participants"""
    rows = [CalendarParticipant(
        participant_type="user",
        participant_id=creator_id,
        response_status="accepted",
        is_organizer=True,
        is_required=True,
        responded_at=datetime.now(),
    )]
    for p in participants:
        data = p if isinstance(p, dict) else p.model_dump()
        if data["participant_type"] == "user" and data.get("participant_id") == creator_id:
            continue
        rows.append(CalendarParticipant(
            participant_type=data["participant_type"],
            participant_id=data.get("participant_id"),
            external_email=data.get("external_email"),
            external_name=data.get("external_name"),
            is_required=data.get("is_required", True),
            response_status="pending",
            is_organizer=False,
        ))
    return rows


# ============ Events ============

@router.get("/", response_model=List[CalendarEventSchema])
async def list_events(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    event_type: Optional[str] = Query(None, alias="eventType"),
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("calendar.list"))
):
    """List events visible to the current user, overlapping the given range"""
    query = active(db.query(CalendarEvent), CalendarEvent).options(
        selectinload(CalendarEvent.participants)
    ).filter(visible_to(current_user))

    if start_date:
        query = query.filter(CalendarEvent.end_date >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        query = query.filter(
            CalendarEvent.start_date < datetime.combine(end_date + timedelta(days=1), datetime.min.time())
        )
    if event_type:
        query = query.filter(CalendarEvent.event_type == event_type)
    if status_filter:
        query = query.filter(CalendarEvent.status == status_filter)

    return query.order_by(CalendarEvent.start_date).all()


@router.get("/{event_id}", response_model=CalendarEventSchema)
async def get_event(
    event_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("calendar.view"))
):
    return get_visible_event(db, event_id, current_user)


@router.post("/", response_model=CalendarEventSchema, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: CalendarEventCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("calendar.create"))
):
    event = CalendarEvent(
        **event_data.model_dump(exclude={"participants"}),
        status="scheduled",
        created_by=current_user.id,
    )
    event.participants = build_participants(current_user.id, event_data.participants)

    db.add(event)
    db.commit()
    db.refresh(event)

    logger.info(f"Calendar event {event.id} created by user {current_user.id}")
    return event


@router.put("/{event_id}", response_model=CalendarEventSchema)
async def update_event(
    event_id: int,
    event_data: CalendarEventUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("calendar.update"))
):
    event = get_visible_event(db, event_id, current_user)
    if event.created_by != current_user.id:
        raise HTTPException(status_code=403, detail="Only the event creator can update this event")

    update_data = event_data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    participants = update_data.pop("participants", None)
    apply_updates(event, update_data)
    if event.end_date < event.start_date:
        raise HTTPException(status_code=400, detail="End date must be after start date")

    if participants is not None:
        event.participants = build_participants(event.created_by, participants)

    db.commit()
    db.refresh(event)

    logger.info(f"Calendar event {event.id} updated by user {current_user.id}")
    return event


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(
    event_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("calendar.delete"))
):
    event = get_visible_event(db, event_id, current_user)
    if event.created_by != current_user.id:
        raise HTTPException(status_code=403, detail="Only the event creator can delete this event")

    soft_delete(event)
    db.commit()

    logger.info(f"Calendar event {event.id} deleted by user {current_user.id}")
    return {"message": "Event deleted successfully"}


# ============ Invitations ============

@router.post("/{event_id}/respond", response_model=CalendarEventSchema)
async def respond_to_event(
    event_id: int,
    response: EventResponse,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("calendar.respond"))
):
    event = get_visible_event(db, event_id, current_user)

    participant = next(
        (p for p in event.participants if p.participant_type == "user" and p.participant_id == current_user.id),
        None
    )
    if not participant:
        raise HTTPException(status_code=404, detail="You are not invited to this event")

    participant.response_status = response.response_status
    participant.responded_at = datetime.now()
    db.commit()
    db.refresh(event)

    logger.info(f"User {current_user.id} responded '{response.response_status}' to event {event.id}")
    return event
