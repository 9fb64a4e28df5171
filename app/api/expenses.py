import logging
from collections import Counter, defaultdict
from datetime import date
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session, joinedload

from app.models import ExpenseCategory, ExpenseClaim, ExpenseItem, Employee, User
from app.schemas import (
    ExpenseCategoryCreate, ExpenseCategoryUpdate, ExpenseCategory as ExpenseCategorySchema,
    ExpenseItemCreate, ExpenseItemUpdate,
    ExpenseClaimCreate, ExpenseClaimUpdate, ExpenseClaim as ExpenseClaimSchema, ExpenseClaimSummary,
    ClaimApprove, ClaimReject, ClaimPay, ExpenseStatistics, Page, MessageResponse
)
from app.services.dependency import get_tenant_db, require_permission
from app.services.lifecycle import ensure_status, transition
from app.services.listing import active, get_or_404, soft_delete, apply_updates, contains_any, paginate
from app.services.pricing import to_decimal, money
from app.services.sequence import next_document_number, EXPENSE_CLAIM_SEQUENCE

logger = logging.getLogger(__name__)

router = APIRouter()

DELETABLE_STATUSES = ("draft", "rejected", "cancelled")


def with_details(claim: ExpenseClaim) -> ExpenseClaim:
    claim.employee_name = claim.employee.full_name if claim.employee else None
    for item in claim.items:
        item.category_name = item.category.name if item.category else None
    return claim


def get_claim_or_404(db: Session, claim_id: int) -> ExpenseClaim:
    return get_or_404(db, ExpenseClaim, claim_id, "Expense claim not found", [joinedload(ExpenseClaim.items)])


def ensure_draft(claim: ExpenseClaim, action: str):
    if claim.status != "draft":
        raise HTTPException(status_code=400, detail=f"Cannot {action} claim with status: {claim.status}")


def validate_item(db: Session, category_id: int, amount, has_receipt: bool, receipt_url: Optional[str]):
    """Check an item against its category's limits and receipt policy"""
    category = get_or_404(db, ExpenseCategory, category_id, "Expense category not found")
    if not category.is_active:
        raise HTTPException(status_code=400, detail=f"Expense category '{category.name}' is inactive")
    if category.max_amount is not None and to_decimal(amount) > to_decimal(category.max_amount):
        raise HTTPException(
            status_code=400,
            detail=f"Amount exceeds the maximum of {money(category.max_amount)} allowed for '{category.name}'"
        )
    if category.requires_receipt and not (has_receipt or receipt_url):
        raise HTTPException(status_code=400, detail=f"A receipt is required for '{category.name}' expenses")
    return category


def recalculate_total(claim: ExpenseClaim):
    claim.total_amount = money(sum((to_decimal(item.amount) for item in claim.items), to_decimal(0)))


# ============================================================================
# Categories
# ============================================================================

@router.get("/categories", response_model=List[ExpenseCategorySchema])
async def list_expense_categories(
    active_only: bool = Query(False, alias="activeOnly"),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.list"))
):
    query = active(db.query(ExpenseCategory), ExpenseCategory)
    if active_only:
        query = query.filter(ExpenseCategory.is_active == True)
    return query.order_by(ExpenseCategory.name).all()


@router.get("/categories/{category_id}", response_model=ExpenseCategorySchema)
async def get_expense_category(
    category_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.list"))
):
    return get_or_404(db, ExpenseCategory, category_id, "Expense category not found")


@router.post("/categories", response_model=ExpenseCategorySchema, status_code=status.HTTP_201_CREATED)
async def create_expense_category(
    data: ExpenseCategoryCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.manage"))
):
    category = ExpenseCategory(**data.model_dump())
    db.add(category)
    db.commit()
    db.refresh(category)

    logger.info(f"Expense category created: {category.name} by user {current_user.id}")
    return category


@router.put("/categories/{category_id}", response_model=ExpenseCategorySchema)
async def update_expense_category(
    category_id: int,
    data: ExpenseCategoryUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.manage"))
):
    category = get_or_404(db, ExpenseCategory, category_id, "Expense category not found")

    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    apply_updates(category, update_data)
    db.commit()
    db.refresh(category)
    return category


@router.delete("/categories/{category_id}", response_model=MessageResponse)
async def delete_expense_category(
    category_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.manage"))
):
    category = get_or_404(db, ExpenseCategory, category_id, "Expense category not found")
    soft_delete(category)
    db.commit()

    logger.info(f"Expense category deleted: {category.name} by user {current_user.id}")
    return {"message": "Expense category deleted successfully"}


# ============================================================================
# Statistics
# ============================================================================

@router.get("/statistics", response_model=ExpenseStatistics)
async def get_expense_statistics(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.list"))
):
    claims = active(db.query(ExpenseClaim), ExpenseClaim).options(
        joinedload(ExpenseClaim.employee),
        joinedload(ExpenseClaim.items).joinedload(ExpenseItem.category)
    ).all()

    def amount_for(statuses):
        return sum((to_decimal(c.total_amount) for c in claims if c.status in statuses), to_decimal(0))

    total = amount_for(("draft", "submitted", "approved", "rejected", "paid", "cancelled"))

    by_category = defaultdict(lambda: {"count": 0, "amount": to_decimal(0)})
    by_employee = defaultdict(lambda: {"name": None, "count": 0, "amount": to_decimal(0)})
    by_month = defaultdict(lambda: {"count": 0, "amount": to_decimal(0)})
    for claim in claims:
        for item in claim.items:
            name = item.category.name if item.category else "Uncategorized"
            by_category[name]["count"] += 1
            by_category[name]["amount"] += to_decimal(item.amount)
        employee = by_employee[claim.employee_id]
        employee["name"] = claim.employee.full_name if claim.employee else None
        employee["count"] += 1
        employee["amount"] += to_decimal(claim.total_amount)
        month = by_month[claim.expense_date.strftime("%Y-%m")]
        month["count"] += 1
        month["amount"] += to_decimal(claim.total_amount)

    return {
        "totalClaims": len(claims),
        "totalAmount": float(money(total)),
        "pendingAmount": float(money(amount_for(("submitted",)))),
        "approvedAmount": float(money(amount_for(("approved",)))),
        "paidAmount": float(money(amount_for(("paid",)))),
        "averageAmount": float(money(total / len(claims))) if claims else 0.0,
        "byStatus": dict(Counter(c.status for c in claims)),
        "byCategory": [
            {"category": name, "count": v["count"], "amount": float(money(v["amount"]))}
            for name, v in sorted(by_category.items(), key=lambda kv: kv[1]["amount"], reverse=True)
        ],
        "byEmployee": [
            {"employeeId": emp_id, "employeeName": v["name"], "count": v["count"], "amount": float(money(v["amount"]))}
            for emp_id, v in sorted(by_employee.items(), key=lambda kv: kv[1]["amount"], reverse=True)
        ],
        "byMonth": [
            {"month": month, "count": v["count"], "amount": float(money(v["amount"]))}
            for month, v in sorted(by_month.items())
        ],
    }


# ============================================================================
# Claims
# ============================================================================

@router.get("/claims", response_model=Page[ExpenseClaimSummary])
async def list_expense_claims(
    employee_id: Optional[int] = Query(None, alias="employeeId"),
    status_filter: Optional[str] = Query(None, alias="status"),
    category_id: Optional[int] = Query(None, alias="categoryId"),
    from_date: Optional[date] = Query(None, alias="fromDate"),
    to_date: Optional[date] = Query(None, alias="toDate"),
    min_amount: Optional[float] = Query(None, alias="minAmount"),
    max_amount: Optional[float] = Query(None, alias="maxAmount"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, alias="pageSize", ge=1, le=200),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.list"))
):
    query = active(db.query(ExpenseClaim), ExpenseClaim).options(joinedload(ExpenseClaim.employee))

    if employee_id:
        query = query.filter(ExpenseClaim.employee_id == employee_id)
    if status_filter:
        query = query.filter(ExpenseClaim.status == status_filter)
    if category_id:
        query = query.filter(ExpenseClaim.items.any(ExpenseItem.category_id == category_id))
    if from_date:
        query = query.filter(ExpenseClaim.expense_date >= from_date)
    if to_date:
        query = query.filter(ExpenseClaim.expense_date <= to_date)
    if min_amount is not None:
        query = query.filter(ExpenseClaim.total_amount >= min_amount)
    if max_amount is not None:
        query = query.filter(ExpenseClaim.total_amount <= max_amount)
    if search:
        query = query.filter(contains_any([ExpenseClaim.title, ExpenseClaim.description], search))

    result = paginate(query.order_by(ExpenseClaim.created_at.desc(), ExpenseClaim.id.desc()), page, page_size)
    for claim in result["data"]:
        claim.employee_name = claim.employee.full_name if claim.employee else None
    return result


@router.get("/claims/{claim_id}", response_model=ExpenseClaimSchema)
async def get_expense_claim(
    claim_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.list"))
):
    return with_details(get_claim_or_404(db, claim_id))


@router.post("/claims", response_model=ExpenseClaimSchema, status_code=status.HTTP_201_CREATED)
async def create_expense_claim(
    claim_data: ExpenseClaimCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.create"))
):
    """Create a draft claim, optionally with its first items"""
    get_or_404(db, Employee, claim_data.employee_id, "Employee not found")
    for item in claim_data.items:
        validate_item(db, item.category_id, item.amount, item.has_receipt, item.receipt_url)

    claim = ExpenseClaim(
        **claim_data.model_dump(exclude={"items"}),
        claim_number=next_document_number(db, EXPENSE_CLAIM_SEQUENCE, claim_data.expense_date),
        status="draft",
        created_by=current_user.id,
    )
    claim.items = [ExpenseItem(**item.model_dump()) for item in claim_data.items]
    recalculate_total(claim)

    db.add(claim)
    db.commit()
    db.refresh(claim)

    logger.info(f"Expense claim created: {claim.claim_number} by user {current_user.id}")
    return with_details(claim)


@router.put("/claims/{claim_id}", response_model=ExpenseClaimSchema)
async def update_expense_claim(
    claim_id: int,
    claim_data: ExpenseClaimUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.update"))
):
    claim = get_claim_or_404(db, claim_id)
    ensure_draft(claim, "edit")

    update_data = claim_data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    apply_updates(claim, update_data)
    db.commit()
    db.refresh(claim)

    logger.info(f"Expense claim updated: {claim.claim_number} by user {current_user.id}")
    return with_details(claim)


@router.delete("/claims/{claim_id}", response_model=MessageResponse)
async def delete_expense_claim(
    claim_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.delete"))
):
    claim = get_or_404(db, ExpenseClaim, claim_id, "Expense claim not found")
    if claim.status not in DELETABLE_STATUSES:
        raise HTTPException(status_code=400, detail=f"Cannot delete claim with status: {claim.status}")

    soft_delete(claim)
    db.commit()

    logger.info(f"Expense claim deleted: {claim.claim_number} by user {current_user.id}")
    return {"message": "Expense claim deleted successfully"}


# ============================================================================
# Claim lifecycle
# ============================================================================

@router.post("/claims/{claim_id}/submit", response_model=ExpenseClaimSchema)
async def submit_expense_claim(
    claim_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.submit"))
):
    claim = get_claim_or_404(db, claim_id)
    ensure_status(claim, ("draft",), "Only draft claims can be submitted")
    if not claim.items:
        raise HTTPException(status_code=400, detail="Cannot submit a claim without expense items")

    transition(db, claim, "submitted", current_user.id, timestamp_field="submitted_at")
    return with_details(claim)


@router.post("/claims/{claim_id}/approve", response_model=ExpenseClaimSchema)
async def approve_expense_claim(
    claim_id: int,
    data: ClaimApprove,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.approve"))
):
    claim = get_claim_or_404(db, claim_id)
    ensure_status(claim, ("submitted",), "Only submitted claims can be approved")

    fields = {}
    if data.approval_notes:
        fields["notes"] = f"{claim.notes}\n{data.approval_notes}" if claim.notes else data.approval_notes

    transition(
        db, claim, "approved", current_user.id,
        timestamp_field="approved_at", actor_field="approved_by", **fields
    )
    return with_details(claim)


@router.post("/claims/{claim_id}/reject", response_model=ExpenseClaimSchema)
async def reject_expense_claim(
    claim_id: int,
    data: ClaimReject,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.approve"))
):
    claim = get_claim_or_404(db, claim_id)
    ensure_status(claim, ("submitted",), "Only submitted claims can be rejected")
    transition(
        db, claim, "rejected", current_user.id,
        timestamp_field="rejected_at", actor_field="rejected_by",
        rejection_reason=data.rejection_reason
    )
    return with_details(claim)


@router.post("/claims/{claim_id}/pay", response_model=ExpenseClaimSchema)
async def pay_expense_claim(
    claim_id: int,
    data: ClaimPay,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.pay"))
):
    claim = get_claim_or_404(db, claim_id)
    ensure_status(claim, ("approved",), "Only approved claims can be marked as paid")
    transition(
        db, claim, "paid", current_user.id,
        timestamp_field="paid_at", payment_reference=data.payment_reference
    )
    return with_details(claim)


@router.post("/claims/{claim_id}/cancel", response_model=ExpenseClaimSchema)
async def cancel_expense_claim(
    claim_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.update"))
):
    claim = get_claim_or_404(db, claim_id)
    ensure_status(claim, ("draft", "submitted"), "Only draft or submitted claims can be cancelled")
    transition(db, claim, "cancelled", current_user.id, timestamp_field="cancelled_at")
    return with_details(claim)


# ============================================================================
# Claim items
# ============================================================================

@router.post("/claims/{claim_id}/items", response_model=ExpenseClaimSchema, status_code=status.HTTP_201_CREATED)
async def add_expense_item(
    claim_id: int,
    data: ExpenseItemCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.update"))
):
    claim = get_claim_or_404(db, claim_id)
    ensure_draft(claim, "add items to")
    validate_item(db, data.category_id, data.amount, data.has_receipt, data.receipt_url)

    claim.items.append(ExpenseItem(**data.model_dump()))
    recalculate_total(claim)
    db.commit()
    db.refresh(claim)

    logger.info(f"Item added to expense claim {claim.claim_number} by user {current_user.id}")
    return with_details(claim)


@router.put("/claims/{claim_id}/items/{item_id}", response_model=ExpenseClaimSchema)
async def update_expense_item(
    claim_id: int,
    item_id: int,
    data: ExpenseItemUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.update"))
):
    claim = get_claim_or_404(db, claim_id)
    ensure_draft(claim, "edit items of")

    item = next((i for i in claim.items if i.id == item_id), None)
    if not item:
        raise HTTPException(status_code=404, detail="Expense item not found")

    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    apply_updates(item, update_data)
    validate_item(db, item.category_id, item.amount, item.has_receipt, item.receipt_url)
    recalculate_total(claim)
    db.commit()
    db.refresh(claim)
    return with_details(claim)


@router.delete("/claims/{claim_id}/items/{item_id}", response_model=ExpenseClaimSchema)
async def delete_expense_item(
    claim_id: int,
    item_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("expenses.update"))
):
    claim = get_claim_or_404(db, claim_id)
    ensure_draft(claim, "remove items from")

    item = next((i for i in claim.items if i.id == item_id), None)
    if not item:
        raise HTTPException(status_code=404, detail="Expense item not found")

    claim.items.remove(item)
    recalculate_total(claim)
    db.commit()
    db.refresh(claim)
    return with_details(claim)
