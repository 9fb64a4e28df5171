import logging
from collections import Counter, defaultdict
from datetime import date, datetime, timedelta
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from sqlalchemy.orm import Session, joinedload

from app.models import Quote, QuoteItem, SalesOrder, SalesOrderItem, Company, User
from app.schemas import (
    QuoteCreate, QuoteUpdate, Quote as QuoteSchema, QuoteSummary, QuoteReject, QuoteClone,
    QuoteConvert, QuoteStats, SalesOrder as SalesOrderSchema, Page, MessageResponse
)
from app.services.dependency import get_tenant_db, require_permission
from app.services.lifecycle import ensure_status, ensure_not_status, transition
from app.services.listing import active, get_or_404, soft_delete, apply_updates, contains_any, paginate
from app.services.pricing import (
    build_line_items, apply_totals, copy_line_items, normalize_discount_update, to_decimal, money
)
from app.services.sequence import next_document_number, QUOTE_SEQUENCE, SALES_ORDER_SEQUENCE
from app.utils.rate_limiter import limiter, RateLimits

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_VALIDITY_DAYS = 30
LOCKED_STATUSES = ("accepted", "rejected", "converted")
OPEN_STATUSES = ("sent", "viewed")
WON_STATUSES = ("accepted", "converted")


def with_client(record):
    record.client_name = record.client.name if record.client else None
    return record


def ensure_client(db: Session, client_id: int) -> Company:
    return get_or_404(db, Company, client_id, "Client not found")


def get_quote_or_404(db: Session, quote_id: int) -> Quote:
    return get_or_404(db, Quote, quote_id, "Quote not found", [joinedload(Quote.items)])


# ============================================================================
# Listing
# ============================================================================

@router.get("/", response_model=Page[QuoteSummary])
async def list_quotes(
    status_filter: Optional[str] = Query(None, alias="status"),
    client_id: Optional[int] = Query(None, alias="clientId"),
    assigned_to: Optional[int] = Query(None, alias="assignedTo"),
    company_id: Optional[int] = Query(None, alias="companyId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    min_amount: Optional[float] = Query(None, alias="minAmount"),
    max_amount: Optional[float] = Query(None, alias="maxAmount"),
    expired: Optional[bool] = None,
    expiring_in: Optional[int] = Query(None, alias="expiringIn", ge=0),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, alias="pageSize", ge=1, le=200),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("quotes.view"))
):
    """List quotes, newest first"""
    today = date.today()
    query = active(db.query(Quote), Quote).options(joinedload(Quote.client))

    if status_filter:
        query = query.filter(Quote.status == status_filter)
    if client_id:
        query = query.filter(Quote.client_id == client_id)
    if assigned_to:
        query = query.filter(Quote.assigned_to == assigned_to)
    if company_id:
        query = query.filter(Quote.company_id == company_id)
    if start_date:
        query = query.filter(Quote.quote_date >= start_date)
    if end_date:
        query = query.filter(Quote.quote_date <= end_date)
    if min_amount is not None:
        query = query.filter(Quote.total_amount >= min_amount)
    if max_amount is not None:
        query = query.filter(Quote.total_amount <= max_amount)
    if expired is True:
        query = query.filter(Quote.valid_until < today)
    elif expired is False:
        query = query.filter(Quote.valid_until >= today)
    if expiring_in is not None:
        query = query.filter(
            Quote.status.in_(OPEN_STATUSES),
            Quote.valid_until >= today,
            Quote.valid_until <= today + timedelta(days=expiring_in)
        )
    if search:
        query = query.filter(contains_any([Quote.quote_number, Quote.title], search))

    result = paginate(query.order_by(Quote.created_at.desc(), Quote.id.desc()), page, page_size)
    result["data"] = [with_client(q) for q in result["data"]]
    return result


@router.get("/stats", response_model=QuoteStats)
async def get_quote_stats(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("quotes.view"))
):
    quotes = active(db.query(Quote), Quote).options(joinedload(Quote.client)).all()
    today = date.today()

    def value_of(statuses):
        return sum((to_decimal(q.total_amount) for q in quotes if q.status in statuses), to_decimal(0))

    total_value = sum((to_decimal(q.total_amount) for q in quotes), to_decimal(0))
    won = sum(1 for q in quotes if q.status in WON_STATUSES)
    lost = sum(1 for q in quotes if q.status == "rejected")

    close_days = [
        (q.approved_at - q.created_at).total_seconds() / 86400
        for q in quotes
        if q.status in WON_STATUSES and q.approved_at and q.created_at
    ]

    client_totals = defaultdict(lambda: {"value": to_decimal(0), "count": 0, "name": None})
    for q in quotes:
        if q.status in WON_STATUSES:
            entry = client_totals[q.client_id]
            entry["value"] += to_decimal(q.total_amount)
            entry["count"] += 1
            entry["name"] = q.client.name if q.client else None
    top_clients = sorted(client_totals.items(), key=lambda item: item[1]["value"], reverse=True)[:5]

    return {
        "totalQuotes": len(quotes),
        "totalValue": float(money(total_value)),
        "acceptedValue": float(money(value_of(WON_STATUSES))),
        "rejectedValue": float(money(value_of(("rejected",)))),
        "pendingValue": float(money(value_of(("draft",) + OPEN_STATUSES))),
        "winRate": round(won / (won + lost) * 100, 2) if (won + lost) else 0.0,
        "averageValue": float(money(total_value / len(quotes))) if quotes else 0.0,
        "averageTimeToClose": round(sum(close_days) / len(close_days), 1) if close_days else None,
        "expiredCount": sum(
            1 for q in quotes
            if q.status == "expired" or (q.status in OPEN_STATUSES and q.valid_until < today)
        ),
        "byStatus": dict(Counter(q.status for q in quotes)),
        "topClients": [
            {
                "clientId": client_id,
                "clientName": entry["name"],
                "acceptedValue": float(money(entry["value"])),
                "quotes": entry["count"],
            }
            for client_id, entry in top_clients
        ],
    }


@router.get("/expiring", response_model=List[QuoteSummary])
async def list_expiring_quotes(
    days: int = Query(7, ge=0),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("quotes.view"))
):
    today = date.today()
    quotes = active(db.query(Quote), Quote).filter(
        Quote.status.in_(OPEN_STATUSES),
        Quote.valid_until >= today,
        Quote.valid_until <= today + timedelta(days=days)
    ).order_by(Quote.valid_until).all()
    return [with_client(q) for q in quotes]


@router.post("/mark-expired")
@limiter.limit(RateLimits.BULK_OPERATIONS)
async def mark_expired_quotes(
    request: Request,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("quotes.manage"))
):
    """Flip sent/viewed quotes past their validity date to expired"""
    updated = active(db.query(Quote), Quote).filter(
        Quote.status.in_(OPEN_STATUSES),
        Quote.valid_until < date.today()
    ).update({Quote.status: "expired"}, synchronize_session=False)
    db.commit()

    logger.info(f"Marked {updated} quotes as expired by user {current_user.id}")
    return {"updated": updated}


@router.get("/number/{quote_number}", response_model=QuoteSchema)
async def get_quote_by_number(
    quote_number: str,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("quotes.view"))
):
    quote = active(db.query(Quote), Quote).filter(Quote.quote_number == quote_number).first()
    if not quote:
        raise HTTPException(status_code=404, detail="Quote not found")
    return with_client(quote)


@router.get("/{quote_id}", response_model=QuoteSchema)
async def get_quote(
    quote_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("quotes.view"))
):
    return with_client(get_quote_or_404(db, quote_id))


# ============================================================================
# Create / Update / Delete
# ============================================================================

@router.post("/", response_model=QuoteSchema, status_code=status.HTTP_201_CREATED)
async def create_quote(
    quote_data: QuoteCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("quotes.create"))
):
    """Create a quote; number and totals are always assigned server-side"""
    ensure_client(db, quote_data.client_id)

    data = quote_data.model_dump(exclude={"items"})
    data["quote_date"] = data["quote_date"] or date.today()
    data["valid_until"] = data["valid_until"] or data["quote_date"] + timedelta(days=DEFAULT_VALIDITY_DAYS)
    if data["valid_until"] < data["quote_date"]:
        raise HTTPException(status_code=400, detail="Valid until date cannot be before quote date")

    quote = Quote(
        **data,
        quote_number=next_document_number(db, QUOTE_SEQUENCE, data["quote_date"]),
        status="draft",
        created_by=current_user.id,
    )
    quote.items = build_line_items(QuoteItem, quote_data.items)
    apply_totals(quote, quote.items)

    db.add(quote)
    db.commit()
    db.refresh(quote)

    logger.info(f"Quote created: {quote.quote_number} by user {current_user.id}")
    return with_client(quote)


@router.put("/{quote_id}", response_model=QuoteSchema)
async def update_quote(
    quote_id: int,
    quote_data: QuoteUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("quotes.update"))
):
    quote = get_quote_or_404(db, quote_id)
    ensure_not_status(quote, LOCKED_STATUSES, f"Cannot edit quote with status: {quote.status}")

    update_data = quote_data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    if update_data.get("client_id") is not None:
        ensure_client(db, update_data["client_id"])

    normalize_discount_update(update_data)
    items = update_data.pop("items", None)
    apply_updates(quote, update_data)
    if quote.valid_until < quote.quote_date:
        raise HTTPException(status_code=400, detail="Valid until date cannot be before quote date")

    if items is not None:
        quote.items = build_line_items(QuoteItem, items)
    if items is not None or "discount_percentage" in update_data or "discount_amount" in update_data:
        apply_totals(quote, quote.items)

    db.commit()
    db.refresh(quote)

    logger.info(f"Quote updated: {quote.quote_number} by user {current_user.id}")
    return with_client(quote)


@router.delete("/{quote_id}", response_model=MessageResponse)
async def delete_quote(
    quote_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("quotes.delete"))
):
    quote = get_or_404(db, Quote, quote_id, "Quote not found")
    soft_delete(quote)
    db.commit()

    logger.info(f"Quote deleted: {quote.quote_number} by user {current_user.id}")
    return {"message": "Quote deleted successfully"}


# ============================================================================
# Lifecycle
# ============================================================================

@router.post("/{quote_id}/send", response_model=QuoteSchema)
async def send_quote(
    quote_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("quotes.send"))
):
    quote = get_quote_or_404(db, quote_id)
    ensure_not_status(quote, LOCKED_STATUSES, f"Cannot send quote with status: {quote.status}")
    transition(db, quote, "sent", current_user.id, timestamp_field="sent_at")
    return with_client(quote)


@router.post("/{quote_id}/view", response_model=QuoteSchema)
async def mark_quote_viewed(
    quote_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("quotes.update"))
):
    quote = get_quote_or_404(db, quote_id)
    ensure_status(quote, ("sent",), "Only sent quotes can be marked as viewed")
    transition(db, quote, "viewed", current_user.id, timestamp_field="viewed_at")
    return with_client(quote)


@router.post("/{quote_id}/accept", response_model=QuoteSchema)
async def accept_quote(
    quote_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("quotes.accept"))
):
    quote = get_quote_or_404(db, quote_id)

    # Expiry is checked before the status
    if quote.valid_until < date.today():
        raise HTTPException(status_code=400, detail="Cannot accept an expired quote")
    if quote.status in WON_STATUSES:
        raise HTTPException(status_code=400, detail="Quote is already accepted")
    if quote.status == "rejected":
        raise HTTPException(status_code=400, detail="Cannot accept a rejected quote")

    transition(
        db, quote, "accepted", current_user.id,
        timestamp_field="approved_at", actor_field="approved_by_id"
    )
    return with_client(quote)


@router.post("/{quote_id}/reject", response_model=QuoteSchema)
async def reject_quote(
    quote_id: int,
    data: QuoteReject,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("quotes.reject"))
):
    quote = get_quote_or_404(db, quote_id)
    if quote.status in WON_STATUSES:
        raise HTTPException(status_code=400, detail="Cannot reject an accepted quote")
    if quote.status == "rejected":
        raise HTTPException(status_code=400, detail="Quote is already rejected")

    transition(
        db, quote, "rejected", current_user.id,
        timestamp_field="rejected_at", rejected_reason=data.reason
    )
    return with_client(quote)


@router.post("/{quote_id}/clone", response_model=QuoteSchema, status_code=status.HTTP_201_CREATED)
async def clone_quote(
    quote_id: int,
    data: QuoteClone,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("quotes.create"))
):
    """Copy a quote and its items under a new number"""
    source = get_quote_or_404(db, quote_id)
    client_id = data.new_client_id or source.client_id
    if data.new_client_id:
        ensure_client(db, data.new_client_id)

    today = date.today()
    clone = Quote(
        quote_number=next_document_number(db, QUOTE_SEQUENCE, today),
        client_id=client_id,
        company_id=source.company_id,
        assigned_to=source.assigned_to,
        title=data.new_title or f"{source.title} (Copy)",
        description=source.description,
        status="draft" if data.as_draft else "sent",
        quote_date=today,
        valid_until=data.new_valid_until or today + timedelta(days=DEFAULT_VALIDITY_DAYS),
        subtotal=source.subtotal,
        discount_percentage=source.discount_percentage,
        discount_amount=source.discount_amount,
        tax_amount=source.tax_amount,
        total_amount=source.total_amount,
        currency=source.currency,
        payment_terms=source.payment_terms,
        delivery_terms=source.delivery_terms,
        notes=source.notes,
        terms_conditions=source.terms_conditions,
        sent_at=None if data.as_draft else datetime.now(),
        created_by=current_user.id,
    )
    clone.items = copy_line_items(QuoteItem, source.items)

    db.add(clone)
    db.commit()
    db.refresh(clone)

    logger.info(f"Quote {source.quote_number} cloned to {clone.quote_number} by user {current_user.id}")
    return with_client(clone)


@router.post("/{quote_id}/convert", response_model=SalesOrderSchema, status_code=status.HTTP_201_CREATED)
async def convert_quote(
    quote_id: int,
    data: QuoteConvert,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("quotes.convert"))
):
    """Turn an accepted quote into a pending sales order"""
    quote = get_quote_or_404(db, quote_id)
    ensure_status(quote, ("accepted",), "Only accepted quotes can be converted to sales orders")

    today = date.today()
    order = SalesOrder(
        order_number=next_document_number(db, SALES_ORDER_SEQUENCE, today),
        quote_id=quote.id,
        client_id=quote.client_id,
        company_id=quote.company_id,
        assigned_to=quote.assigned_to,
        status="pending",
        order_date=today,
        expected_delivery_date=data.expected_delivery_date,
        shipping_method=data.shipping_method,
        shipping_address=data.shipping_address,
        billing_address=data.billing_address,
        discount_percentage=quote.discount_percentage,
        discount_amount=quote.discount_amount,
        shipping_cost=money(data.shipping_cost),
        total_paid=0,
        currency=quote.currency,
        notes=data.notes if data.notes is not None else quote.notes,
        created_by=current_user.id,
    )
    order.items = copy_line_items(SalesOrderItem, quote.items)
    apply_totals(order, order.items, shipping=True)
    db.add(order)
    db.flush()

    quote.status = "converted"
    quote.converted_at = datetime.now()
    quote.sales_order_id = order.id
    db.commit()
    db.refresh(order)

    logger.info(f"Quote {quote.quote_number} converted to order {order.order_number} by user {current_user.id}")
    return with_client(order)
