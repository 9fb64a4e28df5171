import logging
from datetime import date, datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from app.models import Supplier, Company, Contact, Address, OwnerType, User
from app.schemas import (
    SupplierCreate, SupplierUpdate, Supplier as SupplierSchema, SupplierBlock, SupplierStatistics,
    ContactCreate, ContactUpdate, Contact as ContactSchema,
    AddressCreate, AddressUpdate, Address as AddressSchema,
    Page, MessageResponse
)
from app.services.dependency import get_tenant_db, require_permission
from app.services.entity_records import list_records, create_record, update_record, delete_record
from app.services.listing import active, get_or_404, soft_delete, apply_updates, contains_any, paginate

logger = logging.getLogger(__name__)

router = APIRouter()


def with_company(supplier: Supplier) -> Supplier:
    supplier.company_name = supplier.company.name if supplier.company else None
    return supplier


def ensure_unique_code(db: Session, code: str, exclude_id: Optional[int] = None):
    query = active(db.query(Supplier), Supplier).filter(Supplier.code == code)
    if exclude_id is not None:
        query = query.filter(Supplier.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=400, detail="A supplier with this code already exists")


@router.get("/", response_model=Page[SupplierSchema])
async def list_suppliers(
    supplier_type: Optional[str] = Query(None, alias="supplierType"),
    status_filter: Optional[str] = Query(None, alias="status"),
    company_id: Optional[int] = Query(None, alias="companyId"),
    search_text: Optional[str] = Query(None, alias="searchText"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, alias="pageSize", ge=1, le=200),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.view"))
):
    query = active(db.query(Supplier), Supplier).options(joinedload(Supplier.company))

    if supplier_type:
        query = query.filter(Supplier.supplier_type == supplier_type)
    if status_filter:
        query = query.filter(Supplier.status == status_filter)
    if company_id:
        query = query.filter(Supplier.company_id == company_id)
    if search_text:
        query = query.filter(contains_any([Supplier.name, Supplier.code, Supplier.tax_id], search_text))

    result = paginate(query.order_by(Supplier.name), page, page_size)
    result["data"] = [with_company(s) for s in result["data"]]
    return result


@router.get("/statistics", response_model=SupplierStatistics)
async def get_supplier_statistics(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.view"))
):
    base = active(db.query(func.count(Supplier.id)), Supplier)
    month_start = date.today().replace(day=1)

    return {
        "total": base.scalar(),
        "active": base.filter(Supplier.status == "active").scalar(),
        "blocked": base.filter(Supplier.status == "blocked").scalar(),
        "manufacturers": base.filter(Supplier.supplier_type == "manufacturer").scalar(),
        "distributors": base.filter(Supplier.supplier_type == "distributor").scalar(),
        "thisMonth": base.filter(Supplier.created_at >= month_start).scalar(),
    }


@router.get("/company/{company_id}", response_model=List[SupplierSchema])
async def list_suppliers_by_company(
    company_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.view"))
):
    suppliers = active(db.query(Supplier), Supplier).filter(
        Supplier.company_id == company_id
    ).order_by(Supplier.name).all()
    return [with_company(s) for s in suppliers]


@router.get("/{supplier_id}", response_model=SupplierSchema)
async def get_supplier(
    supplier_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.view"))
):
    return with_company(get_or_404(db, Supplier, supplier_id, "Supplier not found"))


@router.post("/", response_model=SupplierSchema, status_code=status.HTTP_201_CREATED)
async def create_supplier(
    supplier_data: SupplierCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.create"))
):
    ensure_unique_code(db, supplier_data.code)
    if supplier_data.company_id is not None:
        get_or_404(db, Company, supplier_data.company_id, "Company not found")

    supplier = Supplier(**supplier_data.model_dump(), created_by=current_user.id)
    db.add(supplier)
    db.commit()
    db.refresh(supplier)

    logger.info(f"Supplier created: {supplier.code} by user {current_user.id}")
    return with_company(supplier)


@router.put("/{supplier_id}", response_model=SupplierSchema)
async def update_supplier(
    supplier_id: int,
    supplier_data: SupplierUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.update"))
):
    supplier = get_or_404(db, Supplier, supplier_id, "Supplier not found")

    update_data = supplier_data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "code" in update_data and update_data["code"] != supplier.code:
        ensure_unique_code(db, update_data["code"], exclude_id=supplier.id)
    if update_data.get("company_id") is not None:
        get_or_404(db, Company, update_data["company_id"], "Company not found")

    apply_updates(supplier, update_data)
    db.commit()
    db.refresh(supplier)

    logger.info(f"Supplier updated: {supplier.code} by user {current_user.id}")
    return with_company(supplier)


@router.delete("/{supplier_id}", response_model=MessageResponse)
async def delete_supplier(
    supplier_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.delete"))
):
    supplier = get_or_404(db, Supplier, supplier_id, "Supplier not found")
    soft_delete(supplier)
    db.commit()

    logger.info(f"Supplier deleted: {supplier.code} by user {current_user.id}")
    return {"message": "Supplier deleted successfully"}


# ============================================================================
# Blocking
# ============================================================================

@router.patch("/{supplier_id}/block", response_model=SupplierSchema)
async def block_supplier(
    supplier_id: int,
    data: SupplierBlock,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.block"))
):
    """Block a supplier, keeping the reason in its notes"""
    supplier = get_or_404(db, Supplier, supplier_id, "Supplier not found")

    entry = f"[BLOCKED {datetime.now().isoformat()}]: {data.reason}"
    supplier.notes = f"{supplier.notes}\n{entry}" if supplier.notes else entry
    supplier.status = "blocked"
    db.commit()
    db.refresh(supplier)

    logger.info(f"Supplier blocked: {supplier.code} by user {current_user.id}")
    return with_company(supplier)


@router.patch("/{supplier_id}/unblock", response_model=SupplierSchema)
async def unblock_supplier(
    supplier_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.block"))
):
    supplier = get_or_404(db, Supplier, supplier_id, "Supplier not found")
    if supplier.status != "blocked":
        raise HTTPException(status_code=400, detail="Supplier is not blocked")

    supplier.status = "active"
    db.commit()
    db.refresh(supplier)

    logger.info(f"Supplier unblocked: {supplier.code} by user {current_user.id}")
    return with_company(supplier)


# ============================================================================
# Contacts & Addresses
# ============================================================================

@router.get("/{supplier_id}/contacts", response_model=List[ContactSchema])
async def list_supplier_contacts(
    supplier_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.view"))
):
    get_or_404(db, Supplier, supplier_id, "Supplier not found")
    return list_records(db, Contact, OwnerType.SUPPLIER, supplier_id)


@router.post("/contacts", response_model=ContactSchema, status_code=status.HTTP_201_CREATED)
async def create_supplier_contact(
    data: ContactCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.update"))
):
    return create_record(db, Contact, OwnerType.SUPPLIER, Supplier, "Supplier not found", data, current_user.id)


@router.put("/contacts/{contact_id}", response_model=ContactSchema)
async def update_supplier_contact(
    contact_id: int,
    data: ContactUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.update"))
):
    return update_record(db, Contact, OwnerType.SUPPLIER, contact_id, data)


@router.delete("/contacts/{contact_id}", response_model=MessageResponse)
async def delete_supplier_contact(
    contact_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.update"))
):
    return delete_record(db, Contact, OwnerType.SUPPLIER, contact_id)


@router.get("/{supplier_id}/addresses", response_model=List[AddressSchema])
async def list_supplier_addresses(
    supplier_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.view"))
):
    get_or_404(db, Supplier, supplier_id, "Supplier not found")
    return list_records(db, Address, OwnerType.SUPPLIER, supplier_id)


@router.post("/addresses", response_model=AddressSchema, status_code=status.HTTP_201_CREATED)
async def create_supplier_address(
    data: AddressCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.update"))
):
    return create_record(db, Address, OwnerType.SUPPLIER, Supplier, "Supplier not found", data, current_user.id)


@router.put("/addresses/{address_id}", response_model=AddressSchema)
async def update_supplier_address(
    address_id: int,
    data: AddressUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.update"))
):
    return update_record(db, Address, OwnerType.SUPPLIER, address_id, data)


@router.delete("/addresses/{address_id}", response_model=MessageResponse)
async def delete_supplier_address(
    address_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("suppliers.update"))
):
    return delete_record(db, Address, OwnerType.SUPPLIER, address_id)
