import logging
from datetime import date
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models import Company, Contact, Address, OwnerType, User
from app.schemas import (
    CompanyCreate, CompanyUpdate, Company as CompanySchema, CompanyDetail, CompanyStatistics,
    ContactCreate, ContactUpdate, Contact as ContactSchema,
    AddressCreate, AddressUpdate, Address as AddressSchema,
    Page, MessageResponse
)
from app.services.dependency import get_tenant_db, require_permission
from app.services.entity_records import list_records, create_record, update_record, delete_record
from app.services.listing import active, get_or_404, soft_delete, apply_updates, contains_any, paginate

logger = logging.getLogger(__name__)

router = APIRouter()


def ensure_unique_code(db: Session, code: str, exclude_id: Optional[int] = None):
    query = active(db.query(Company), Company).filter(Company.code == code)
    if exclude_id is not None:
        query = query.filter(Company.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=400, detail="A company with this code already exists")


# ============================================================================
# Company CRUD
# ============================================================================

@router.get("/", response_model=Page[CompanySchema])
async def list_companies(
    company_type: Optional[str] = Query(None, alias="companyType"),
    status_filter: Optional[str] = Query(None, alias="status"),
    search_text: Optional[str] = Query(None, alias="searchText"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, alias="pageSize", ge=1, le=200),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("companies.view"))
):
    """List companies with optional filters"""
    query = active(db.query(Company), Company)

    if company_type:
        query = query.filter(Company.company_type == company_type)
    if status_filter:
        query = query.filter(Company.status == status_filter)
    if search_text:
        query = query.filter(contains_any(
            [Company.name, Company.trade_name, Company.code, Company.tax_id], search_text
        ))

    return paginate(query.order_by(Company.name), page, page_size)


@router.get("/statistics", response_model=CompanyStatistics)
async def get_company_statistics(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("companies.view"))
):
    base = active(db.query(func.count(Company.id)), Company)
    month_start = date.today().replace(day=1)

    return {
        "totalCompanies": base.scalar(),
        "activeCompanies": base.filter(Company.status == "active").scalar(),
        "clients": base.filter(Company.company_type == "client").scalar(),
        "suppliers": base.filter(Company.company_type == "supplier").scalar(),
        "partners": base.filter(Company.company_type == "partner").scalar(),
        "companiesThisMonth": base.filter(Company.created_at >= month_start).scalar(),
    }


@router.get("/{company_id}", response_model=CompanyDetail)
async def get_company(
    company_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("companies.view"))
):
    company = get_or_404(db, Company, company_id, "Company not found")
    company.contacts = list_records(db, Contact, OwnerType.COMPANY, company.id)
    company.addresses = list_records(db, Address, OwnerType.COMPANY, company.id)
    return company


@router.post("/", response_model=CompanySchema, status_code=status.HTTP_201_CREATED)
async def create_company(
    company_data: CompanyCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("companies.create"))
):
    ensure_unique_code(db, company_data.code)

    company = Company(**company_data.model_dump(), created_by=current_user.id)
    db.add(company)
    db.commit()
    db.refresh(company)

    logger.info(f"Company created: {company.code} by user {current_user.id}")
    return company


@router.put("/{company_id}", response_model=CompanySchema)
async def update_company(
    company_id: int,
    company_data: CompanyUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("companies.update"))
):
    company = get_or_404(db, Company, company_id, "Company not found")

    update_data = company_data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "code" in update_data and update_data["code"] != company.code:
        ensure_unique_code(db, update_data["code"], exclude_id=company.id)

    apply_updates(company, update_data)
    db.commit()
    db.refresh(company)

    logger.info(f"Company updated: {company.code} by user {current_user.id}")
    return company


@router.delete("/{company_id}", response_model=MessageResponse)
async def delete_company(
    company_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("companies.delete"))
):
    company = get_or_404(db, Company, company_id, "Company not found")
    soft_delete(company)
    db.commit()

    logger.info(f"Company deleted: {company.code} by user {current_user.id}")
    return {"message": "Company deleted successfully"}


# ============================================================================
# Contacts
# ============================================================================

@router.get("/{company_id}/contacts", response_model=List[ContactSchema])
async def list_company_contacts(
    company_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("companies.view"))
):
    get_or_404(db, Company, company_id, "Company not found")
    return list_records(db, Contact, OwnerType.COMPANY, company_id)


@router.post("/contacts", response_model=ContactSchema, status_code=status.HTTP_201_CREATED)
async def create_company_contact(
    data: ContactCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("companies.update"))
):
    return create_record(db, Contact, OwnerType.COMPANY, Company, "Company not found", data, current_user.id)


@router.put("/contacts/{contact_id}", response_model=ContactSchema)
async def update_company_contact(
    contact_id: int,
    data: ContactUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("companies.update"))
):
    return update_record(db, Contact, OwnerType.COMPANY, contact_id, data)


@router.delete("/contacts/{contact_id}", response_model=MessageResponse)
async def delete_company_contact(
    contact_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("companies.update"))
):
    return delete_record(db, Contact, OwnerType.COMPANY, contact_id)


# ============================================================================
# Addresses
# ============================================================================

@router.get("/{company_id}/addresses", response_model=List[AddressSchema])
async def list_company_addresses(
    company_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("companies.view"))
):
    get_or_404(db, Company, company_id, "Company not found")
    return list_records(db, Address, OwnerType.COMPANY, company_id)


@router.post("/addresses", response_model=AddressSchema, status_code=status.HTTP_201_CREATED)
async def create_company_address(
    data: AddressCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("companies.update"))
):
    return create_record(db, Address, OwnerType.COMPANY, Company, "Company not found", data, current_user.id)


@router.put("/addresses/{address_id}", response_model=AddressSchema)
async def update_company_address(
    address_id: int,
    data: AddressUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("companies.update"))
):
    return update_record(db, Address, OwnerType.COMPANY, address_id, data)


@router.delete("/addresses/{address_id}", response_model=MessageResponse)
async def delete_company_address(
    address_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("companies.update"))
):
    return delete_record(db, Address, OwnerType.COMPANY, address_id)
