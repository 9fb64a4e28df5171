import logging
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from app.models import SalesOrder, SalesOrderItem, SalesOrderPayment, Company, User
from app.schemas import (
    SalesOrderCreate, SalesOrderUpdate, SalesOrder as SalesOrderSchema, SalesOrderSummary,
    OrderShip, OrderDeliver, OrderCancel, OrderReturn, PaymentCreate, PaymentResult,
    SalesOrderPayment as SalesOrderPaymentSchema, SalesOrderStats, Page, MessageResponse
)
from app.services.dependency import get_tenant_db, require_permission
from app.services.lifecycle import ensure_status, ensure_not_status, transition
from app.services.listing import active, get_or_404, soft_delete, apply_updates, contains_any, paginate
from app.services.pricing import (
    build_line_items, apply_totals, copy_line_items, normalize_discount_update, to_decimal, money
)
from app.services.sequence import next_document_number, SALES_ORDER_SEQUENCE, RETURN_ORDER_SEQUENCE

logger = logging.getLogger(__name__)

router = APIRouter()

CLOSED_STATUSES = ("completed", "cancelled", "returned")
FULFILLED_STATUSES = ("delivered", "completed", "cancelled", "returned")


def with_client(order: SalesOrder) -> SalesOrder:
    order.client_name = order.client.name if order.client else None
    return order


def get_order_or_404(db: Session, order_id: int) -> SalesOrder:
    return get_or_404(db, SalesOrder, order_id, "Sales order not found", [joinedload(SalesOrder.items)])


def payment_status_for(total_paid, total_amount) -> str:
    paid = to_decimal(total_paid)
    if paid >= to_decimal(total_amount):
        return "paid"
    if paid > 0:
        return "partially_paid"
    return "unpaid"


# ============================================================================
# Listing
# ============================================================================

@router.get("/", response_model=Page[SalesOrderSummary])
async def list_sales_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    payment_status: Optional[str] = Query(None, alias="paymentStatus"),
    priority: Optional[str] = None,
    order_type: Optional[str] = Query(None, alias="orderType"),
    client_id: Optional[int] = Query(None, alias="clientId"),
    assigned_to: Optional[int] = Query(None, alias="assignedTo"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    min_amount: Optional[float] = Query(None, alias="minAmount"),
    max_amount: Optional[float] = Query(None, alias="maxAmount"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, alias="pageSize", ge=1, le=200),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.view"))
):
    query = active(db.query(SalesOrder), SalesOrder).options(joinedload(SalesOrder.client))

    if status_filter:
        query = query.filter(SalesOrder.status == status_filter)
    if payment_status:
        query = query.filter(SalesOrder.payment_status == payment_status)
    if priority:
        query = query.filter(SalesOrder.priority == priority)
    if order_type:
        query = query.filter(SalesOrder.order_type == order_type)
    if client_id:
        query = query.filter(SalesOrder.client_id == client_id)
    if assigned_to:
        query = query.filter(SalesOrder.assigned_to == assigned_to)
    if start_date:
        query = query.filter(SalesOrder.order_date >= start_date)
    if end_date:
        query = query.filter(SalesOrder.order_date <= end_date)
    if min_amount is not None:
        query = query.filter(SalesOrder.total_amount >= min_amount)
    if max_amount is not None:
        query = query.filter(SalesOrder.total_amount <= max_amount)
    if search:
        query = query.filter(contains_any(
            [SalesOrder.order_number, SalesOrder.tracking_number, SalesOrder.notes], search
        ))

    result = paginate(query.order_by(SalesOrder.created_at.desc(), SalesOrder.id.desc()), page, page_size)
    result["data"] = [with_client(o) for o in result["data"]]
    return result


@router.get("/stats", response_model=SalesOrderStats)
async def get_sales_order_stats(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.view"))
):
    orders = active(db.query(SalesOrder), SalesOrder).all()
    today = date.today()

    total_value = sum((to_decimal(o.total_amount) for o in orders), to_decimal(0))
    total_paid = sum((to_decimal(o.total_paid) for o in orders), to_decimal(0))
    fulfillment = [
        (o.delivered_at.date() - o.order_date).days
        for o in orders if o.delivered_at and o.order_date
    ]

    return {
        "totalOrders": len(orders),
        "totalValue": float(money(total_value)),
        "totalPaid": float(money(total_paid)),
        "outstanding": float(money(total_value - total_paid)),
        "byStatus": dict(Counter(o.status for o in orders)),
        "byPriority": dict(Counter(o.priority for o in orders)),
        "byPaymentStatus": dict(Counter(o.payment_status for o in orders)),
        "averageFulfillmentDays": round(sum(fulfillment) / len(fulfillment), 1) if fulfillment else None,
        "overdueCount": sum(
            1 for o in orders
            if o.expected_delivery_date and o.expected_delivery_date < today and o.status not in FULFILLED_STATUSES
        ),
    }


@router.get("/overdue", response_model=List[SalesOrderSummary])
async def list_overdue_orders(
    days: int = Query(0, ge=0),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.view"))
):
    """Orders past their expected delivery date by at least `days` days"""
    cutoff = date.today() - timedelta(days=days)
    orders = active(db.query(SalesOrder), SalesOrder).filter(
        SalesOrder.expected_delivery_date.isnot(None),
        SalesOrder.expected_delivery_date < cutoff,
        SalesOrder.status.notin_(FULFILLED_STATUSES)
    ).order_by(SalesOrder.expected_delivery_date).all()
    return [with_client(o) for o in orders]


@router.get("/number/{order_number}", response_model=SalesOrderSchema)
async def get_sales_order_by_number(
    order_number: str,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.view"))
):
    order = active(db.query(SalesOrder), SalesOrder).filter(SalesOrder.order_number == order_number).first()
    if not order:
        raise HTTPException(status_code=404, detail="Sales order not found")
    return with_client(order)


@router.get("/{order_id}", response_model=SalesOrderSchema)
async def get_sales_order(
    order_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.view"))
):
    return with_client(get_order_or_404(db, order_id))


# ============================================================================
# Create / Update / Delete
# ============================================================================

@router.post("/", response_model=SalesOrderSchema, status_code=status.HTTP_201_CREATED)
async def create_sales_order(
    order_data: SalesOrderCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.create"))
):
    get_or_404(db, Company, order_data.client_id, "Client not found")

    data = order_data.model_dump(exclude={"items"})
    data["order_date"] = data["order_date"] or date.today()
    data["shipping_cost"] = money(data["shipping_cost"])

    order = SalesOrder(
        **data,
        order_number=next_document_number(db, SALES_ORDER_SEQUENCE, data["order_date"]),
        payment_status="unpaid",
        total_paid=0,
        created_by=current_user.id,
    )
    order.items = build_line_items(SalesOrderItem, order_data.items)
    apply_totals(order, order.items, shipping=True)

    db.add(order)
    db.commit()
    db.refresh(order)

    logger.info(f"Sales order created: {order.order_number} by user {current_user.id}")
    return with_client(order)


@router.put("/{order_id}", response_model=SalesOrderSchema)
async def update_sales_order(
    order_id: int,
    order_data: SalesOrderUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.update"))
):
    order = get_order_or_404(db, order_id)
    ensure_not_status(order, CLOSED_STATUSES, f"Cannot edit order with status: {order.status}")

    update_data = order_data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    if update_data.get("client_id") is not None:
        get_or_404(db, Company, update_data["client_id"], "Client not found")
    if "shipping_cost" in update_data:
        update_data["shipping_cost"] = money(update_data["shipping_cost"])

    normalize_discount_update(update_data)
    items = update_data.pop("items", None)
    apply_updates(order, update_data)

    if items is not None:
        order.items = build_line_items(SalesOrderItem, items)
    if items is not None or {"discount_percentage", "discount_amount", "shipping_cost"} & update_data.keys():
        apply_totals(order, order.items, shipping=True)
        order.payment_status = payment_status_for(order.total_paid, order.total_amount)

    db.commit()
    db.refresh(order)

    logger.info(f"Sales order updated: {order.order_number} by user {current_user.id}")
    return with_client(order)


@router.delete("/{order_id}", response_model=MessageResponse)
async def delete_sales_order(
    order_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.delete"))
):
    order = get_or_404(db, SalesOrder, order_id, "Sales order not found")
    soft_delete(order)
    db.commit()

    logger.info(f"Sales order deleted: {order.order_number} by user {current_user.id}")
    return {"message": "Sales order deleted successfully"}


# ============================================================================
# Fulfilment lifecycle
# ============================================================================

@router.post("/{order_id}/confirm", response_model=SalesOrderSchema)
async def confirm_order(
    order_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.confirm"))
):
    order = get_order_or_404(db, order_id)
    ensure_status(order, ("pending", "draft"), "Only pending or draft orders can be confirmed")
    transition(db, order, "confirmed", current_user.id, timestamp_field="confirmed_at", actor_field="confirmed_by")
    return with_client(order)


@router.post("/{order_id}/process", response_model=SalesOrderSchema)
async def process_order(
    order_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.process"))
):
    order = get_order_or_404(db, order_id)
    ensure_status(order, ("confirmed",), "Only confirmed orders can be processed")
    transition(db, order, "processing", current_user.id, timestamp_field="processing_at")
    return with_client(order)


@router.post("/{order_id}/ship", response_model=SalesOrderSchema)
async def ship_order(
    order_id: int,
    data: OrderShip,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.ship"))
):
    order = get_order_or_404(db, order_id)
    ensure_status(order, ("confirmed", "processing"), "Only confirmed or processing orders can be shipped")

    if not data.partial:
        for item in order.items:
            item.quantity_shipped = item.quantity

    fields = {}
    if data.carrier is not None:
        fields["carrier"] = data.carrier
    if data.tracking_number is not None:
        fields["tracking_number"] = data.tracking_number

    transition(
        db, order, "partially_shipped" if data.partial else "shipped", current_user.id,
        timestamp_field="shipped_at", **fields
    )
    return with_client(order)


@router.post("/{order_id}/deliver", response_model=SalesOrderSchema)
async def deliver_order(
    order_id: int,
    data: OrderDeliver,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.deliver"))
):
    order = get_order_or_404(db, order_id)
    ensure_status(
        order, ("shipped", "partially_shipped", "partially_delivered"),
        "Only shipped orders can be delivered"
    )

    if not data.partial:
        for item in order.items:
            item.quantity_delivered = item.quantity

    transition(
        db, order, "partially_delivered" if data.partial else "delivered", current_user.id,
        timestamp_field="delivered_at"
    )
    return with_client(order)


@router.post("/{order_id}/complete", response_model=SalesOrderSchema)
async def complete_order(
    order_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.complete"))
):
    order = get_order_or_404(db, order_id)
    ensure_status(order, ("delivered",), "Only delivered orders can be completed")
    transition(db, order, "completed", current_user.id, timestamp_field="completed_at")
    return with_client(order)


@router.post("/{order_id}/cancel", response_model=SalesOrderSchema)
async def cancel_order(
    order_id: int,
    data: OrderCancel,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.cancel"))
):
    order = get_order_or_404(db, order_id)
    ensure_not_status(order, CLOSED_STATUSES, f"Cannot cancel order with status: {order.status}")
    transition(
        db, order, "cancelled", current_user.id,
        timestamp_field="cancelled_at", actor_field="cancelled_by",
        cancellation_reason=data.reason
    )
    return with_client(order)


@router.post("/{order_id}/return", response_model=SalesOrderSchema, status_code=status.HTTP_201_CREATED)
async def return_order(
    order_id: int,
    data: OrderReturn,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.create_return"))
):
    """Create a return order for a delivered/completed order and mark the original returned"""
    original = get_order_or_404(db, order_id)
    ensure_status(original, ("delivered", "completed"), "Only delivered or completed orders can be returned")

    today = date.today()
    return_doc = SalesOrder(
        order_number=next_document_number(db, RETURN_ORDER_SEQUENCE, today),
        original_order_id=original.id,
        quote_id=original.quote_id,
        client_id=original.client_id,
        company_id=original.company_id,
        assigned_to=original.assigned_to,
        order_type=original.order_type,
        priority=original.priority,
        status="pending",
        payment_status="unpaid",
        order_date=today,
        shipping_address=original.shipping_address,
        billing_address=original.billing_address,
        subtotal=original.subtotal,
        discount_percentage=original.discount_percentage,
        discount_amount=original.discount_amount,
        tax_amount=original.tax_amount,
        shipping_cost=0,
        total_amount=money(to_decimal(original.total_amount) - to_decimal(original.shipping_cost)),
        total_paid=0,
        currency=original.currency,
        notes=f"Return of {original.order_number}: {data.reason}",
        return_reason=data.reason,
        created_by=current_user.id,
    )
    return_doc.items = copy_line_items(SalesOrderItem, original.items)
    db.add(return_doc)

    original.status = "returned"
    original.returned_at = datetime.now()
    original.return_reason = data.reason

    db.commit()
    db.refresh(return_doc)

    logger.info(
        f"Return order {return_doc.order_number} created for {original.order_number} by user {current_user.id}"
    )
    return with_client(return_doc)


@router.post("/{order_id}/clone", response_model=SalesOrderSchema, status_code=status.HTTP_201_CREATED)
async def clone_order(
    order_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.create"))
):
    source = get_order_or_404(db, order_id)

    today = date.today()
    clone = SalesOrder(
        order_number=next_document_number(db, SALES_ORDER_SEQUENCE, today),
        client_id=source.client_id,
        company_id=source.company_id,
        assigned_to=source.assigned_to,
        order_type=source.order_type,
        priority=source.priority,
        status="draft",
        payment_status="unpaid",
        order_date=today,
        shipping_method=source.shipping_method,
        shipping_address=source.shipping_address,
        billing_address=source.billing_address,
        subtotal=source.subtotal,
        discount_percentage=source.discount_percentage,
        discount_amount=source.discount_amount,
        tax_amount=source.tax_amount,
        shipping_cost=source.shipping_cost,
        total_amount=source.total_amount,
        total_paid=0,
        currency=source.currency,
        notes=source.notes,
        internal_notes=source.internal_notes,
        created_by=current_user.id,
    )
    clone.items = copy_line_items(SalesOrderItem, source.items)

    db.add(clone)
    db.commit()
    db.refresh(clone)

    logger.info(f"Sales order {source.order_number} cloned to {clone.order_number} by user {current_user.id}")
    return with_client(clone)


# ============================================================================
# Payments
# ============================================================================

@router.post("/{order_id}/payments", response_model=PaymentResult, status_code=status.HTTP_201_CREATED)
async def record_payment(
    order_id: int,
    data: PaymentCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.record_payment"))
):
    """Record a payment and refresh the order's paid total and payment status"""
    order = get_or_404(db, SalesOrder, order_id, "Sales order not found")
    if order.status == "cancelled":
        raise HTTPException(status_code=400, detail="Cannot record payment for a cancelled order")

    payment = SalesOrderPayment(
        amount=money(data.amount),
        payment_date=data.payment_date or date.today(),
        payment_method=data.payment_method,
        reference=data.reference,
        notes=data.notes,
        recorded_by=current_user.id,
    )
    order.payments.append(payment)
    db.flush()

    total_paid = money(db.query(func.coalesce(func.sum(SalesOrderPayment.amount), 0)).filter(
        SalesOrderPayment.sales_order_id == order.id
    ).scalar())
    order.total_paid = total_paid
    order.payment_status = payment_status_for(total_paid, order.total_amount)
    db.commit()

    total_order = money(order.total_amount)
    logger.info(f"Payment of {payment.amount} recorded on order {order.order_number} by user {current_user.id}")
    return {
        "totalPaid": float(total_paid),
        "totalOrder": float(total_order),
        "paymentStatus": order.payment_status,
        "remainingAmount": float(max(total_order - total_paid, to_decimal(0))),
    }


@router.get("/{order_id}/payments", response_model=List[SalesOrderPaymentSchema])
async def list_payments(
    order_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("orders.view"))
):
    order = get_or_404(db, SalesOrder, order_id, "Sales order not found")
    return order.payments
