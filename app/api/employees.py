import logging
from datetime import date
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session, joinedload

from app.models import (
    Employee, EmployeeType, EmployeeBenefit, Company, Contact, Address, EntityDocument, OwnerType, User
)
from app.schemas import (
    EmployeeCreate, EmployeeUpdate, Employee as EmployeeSchema, EmployeeType as EmployeeTypeSchema,
    EmployeeStatistics, BenefitCreate, BenefitUpdate, Benefit as BenefitSchema,
    ContactCreate, ContactUpdate, Contact as ContactSchema,
    AddressCreate, AddressUpdate, Address as AddressSchema,
    DocumentCreate, DocumentUpdate, Document as DocumentSchema,
    Page, MessageResponse
)
from app.services.dependency import get_tenant_db, require_permission
from app.services.entity_records import list_records, create_record, update_record, delete_record
from app.services.listing import active, get_or_404, soft_delete, apply_updates, contains_any, paginate

logger = logging.getLogger(__name__)

router = APIRouter()

EMPLOYEE_LOAD_OPTIONS = [
    joinedload(Employee.employee_type),
    joinedload(Employee.company),
    joinedload(Employee.manager),
]


def with_names(employee: Employee) -> Employee:
    """Attach display names of related records for serialization"""
    employee.employee_type_name = employee.employee_type.name if employee.employee_type else None
    employee.company_name = employee.company.name if employee.company else None
    employee.manager_name = employee.manager.full_name if employee.manager else None
    return employee


def validate_references(db: Session, data: dict, employee_id: Optional[int] = None):
    if data.get("employee_type_id") is not None:
        if not db.query(EmployeeType).filter(EmployeeType.id == data["employee_type_id"]).first():
            raise HTTPException(status_code=404, detail="Employee type not found")
    if data.get("company_id") is not None:
        get_or_404(db, Company, data["company_id"], "Company not found")
    if data.get("manager_id") is not None:
        if employee_id is not None and data["manager_id"] == employee_id:
            raise HTTPException(status_code=400, detail="An employee cannot be their own manager")
        get_or_404(db, Employee, data["manager_id"], "Manager not found")


def age_on(birth_date: date, today: date) -> int:
    return today.year - birth_date.year - ((today.month, today.day) < (birth_date.month, birth_date.day))


# ============================================================================
# Employee CRUD
# ============================================================================

@router.get("/", response_model=Page[EmployeeSchema])
async def list_employees(
    employee_type_id: Optional[int] = Query(None, alias="employeeTypeId"),
    company_id: Optional[int] = Query(None, alias="companyId"),
    department_id: Optional[int] = Query(None, alias="departmentId"),
    employment_status: Optional[str] = Query(None, alias="employmentStatus"),
    search_text: Optional[str] = Query(None, alias="searchText"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, alias="pageSize", ge=1, le=200),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.view"))
):
    query = active(db.query(Employee), Employee).options(*EMPLOYEE_LOAD_OPTIONS)

    if employee_type_id:
        query = query.filter(Employee.employee_type_id == employee_type_id)
    if company_id:
        query = query.filter(Employee.company_id == company_id)
    if department_id:
        query = query.filter(Employee.department_id == department_id)
    if employment_status:
        query = query.filter(Employee.employment_status == employment_status)
    if search_text:
        query = query.filter(contains_any(
            [Employee.full_name, Employee.short_name, Employee.number, Employee.job_title], search_text
        ))

    result = paginate(query.order_by(Employee.full_name), page, page_size)
    result["data"] = [with_names(e) for e in result["data"]]
    return result


@router.get("/types", response_model=List[EmployeeTypeSchema])
async def list_employee_types(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.view"))
):
    return db.query(EmployeeType).order_by(EmployeeType.name).all()


@router.get("/statistics", response_model=EmployeeStatistics)
async def get_employee_statistics(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.view"))
):
    employees = active(db.query(Employee), Employee).all()
    today = date.today()
    month_start = today.replace(day=1)

    ages = [age_on(e.birth_date, today) for e in employees if e.birth_date and e.employment_status == "active"]

    return {
        "total": len(employees),
        "active": sum(1 for e in employees if e.employment_status == "active"),
        "on_leave": sum(1 for e in employees if e.employment_status == "on_leave"),
        "terminated": sum(1 for e in employees if e.employment_status == "terminated"),
        "hiredThisMonth": sum(1 for e in employees if e.hire_date and e.hire_date >= month_start),
        "averageAge": round(sum(ages) / len(ages), 1) if ages else None,
    }


@router.get("/{employee_id}", response_model=EmployeeSchema)
async def get_employee(
    employee_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.view"))
):
    return with_names(get_or_404(db, Employee, employee_id, "Employee not found", EMPLOYEE_LOAD_OPTIONS))


@router.post("/", response_model=EmployeeSchema, status_code=status.HTTP_201_CREATED)
async def create_employee(
    employee_data: EmployeeCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.create"))
):
    data = employee_data.model_dump()
    validate_references(db, data)

    employee = Employee(**data, created_by=current_user.id)
    db.add(employee)
    db.commit()
    db.refresh(employee)

    logger.info(f"Employee created: {employee.id} ({employee.full_name}) by user {current_user.id}")
    return with_names(employee)


@router.put("/{employee_id}", response_model=EmployeeSchema)
async def update_employee(
    employee_id: int,
    employee_data: EmployeeUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.update"))
):
    employee = get_or_404(db, Employee, employee_id, "Employee not found")

    update_data = employee_data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    validate_references(db, update_data, employee_id=employee.id)

    apply_updates(employee, update_data)
    db.commit()
    db.refresh(employee)

    logger.info(f"Employee updated: {employee.id} by user {current_user.id}")
    return with_names(employee)


@router.delete("/{employee_id}", response_model=MessageResponse)
async def delete_employee(
    employee_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.delete"))
):
    employee = get_or_404(db, Employee, employee_id, "Employee not found")
    soft_delete(employee)
    db.commit()

    logger.info(f"Employee deleted: {employee.id} by user {current_user.id}")
    return {"message": "Employee deleted successfully"}


# ============================================================================
# Contacts & Addresses
# ============================================================================

@router.get("/{employee_id}/contacts", response_model=List[ContactSchema])
async def list_employee_contacts(
    employee_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.view"))
):
    get_or_404(db, Employee, employee_id, "Employee not found")
    return list_records(db, Contact, OwnerType.EMPLOYEE, employee_id)


@router.post("/contacts", response_model=ContactSchema, status_code=status.HTTP_201_CREATED)
async def create_employee_contact(
    data: ContactCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.update"))
):
    return create_record(db, Contact, OwnerType.EMPLOYEE, Employee, "Employee not found", data, current_user.id)


@router.put("/contacts/{contact_id}", response_model=ContactSchema)
async def update_employee_contact(
    contact_id: int,
    data: ContactUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.update"))
):
    return update_record(db, Contact, OwnerType.EMPLOYEE, contact_id, data)


@router.delete("/contacts/{contact_id}", response_model=MessageResponse)
async def delete_employee_contact(
    contact_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.update"))
):
    return delete_record(db, Contact, OwnerType.EMPLOYEE, contact_id)


@router.get("/{employee_id}/addresses", response_model=List[AddressSchema])
async def list_employee_addresses(
    employee_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.view"))
):
    get_or_404(db, Employee, employee_id, "Employee not found")
    return list_records(db, Address, OwnerType.EMPLOYEE, employee_id)


@router.post("/addresses", response_model=AddressSchema, status_code=status.HTTP_201_CREATED)
async def create_employee_address(
    data: AddressCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.update"))
):
    return create_record(db, Address, OwnerType.EMPLOYEE, Employee, "Employee not found", data, current_user.id)


@router.put("/addresses/{address_id}", response_model=AddressSchema)
async def update_employee_address(
    address_id: int,
    data: AddressUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.update"))
):
    return update_record(db, Address, OwnerType.EMPLOYEE, address_id, data)


@router.delete("/addresses/{address_id}", response_model=MessageResponse)
async def delete_employee_address(
    address_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.update"))
):
    return delete_record(db, Address, OwnerType.EMPLOYEE, address_id)


# ============================================================================
# Benefits
# ============================================================================

@router.get("/{employee_id}/benefits", response_model=List[BenefitSchema])
async def list_employee_benefits(
    employee_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.view"))
):
    get_or_404(db, Employee, employee_id, "Employee not found")
    return active(db.query(EmployeeBenefit), EmployeeBenefit).filter(
        EmployeeBenefit.employee_id == employee_id
    ).order_by(EmployeeBenefit.start_date.desc()).all()


@router.post("/benefits", response_model=BenefitSchema, status_code=status.HTTP_201_CREATED)
async def create_employee_benefit(
    data: BenefitCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.update"))
):
    get_or_404(db, Employee, data.employee_id, "Employee not found")
    if data.start_date and data.end_date and data.end_date < data.start_date:
        raise HTTPException(status_code=400, detail="End date cannot be before start date")

    benefit = EmployeeBenefit(**data.model_dump())
    db.add(benefit)
    db.commit()
    db.refresh(benefit)

    logger.info(f"Benefit {benefit.id} added to employee {benefit.employee_id} by user {current_user.id}")
    return benefit


@router.put("/benefits/{benefit_id}", response_model=BenefitSchema)
async def update_employee_benefit(
    benefit_id: int,
    data: BenefitUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.update"))
):
    benefit = get_or_404(db, EmployeeBenefit, benefit_id, "Benefit not found")

    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    apply_updates(benefit, update_data)
    db.commit()
    db.refresh(benefit)
    return benefit


@router.delete("/benefits/{benefit_id}", response_model=MessageResponse)
async def delete_employee_benefit(
    benefit_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.update"))
):
    benefit = get_or_404(db, EmployeeBenefit, benefit_id, "Benefit not found")
    soft_delete(benefit)
    db.commit()
    return {"message": "Benefit deleted successfully"}


# ============================================================================
# Documents
# ============================================================================

@router.get("/{employee_id}/documents", response_model=List[DocumentSchema])
async def list_employee_documents(
    employee_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.view"))
):
    get_or_404(db, Employee, employee_id, "Employee not found")
    return list_records(db, EntityDocument, OwnerType.EMPLOYEE, employee_id)


@router.post("/documents", response_model=DocumentSchema, status_code=status.HTTP_201_CREATED)
async def create_employee_document(
    data: DocumentCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.update"))
):
    return create_record(db, EntityDocument, OwnerType.EMPLOYEE, Employee, "Employee not found", data, current_user.id)


@router.put("/documents/{document_id}", response_model=DocumentSchema)
async def update_employee_document(
    document_id: int,
    data: DocumentUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.update"))
):
    return update_record(db, EntityDocument, OwnerType.EMPLOYEE, document_id, data)


@router.delete("/documents/{document_id}", response_model=MessageResponse)
async def delete_employee_document(
    document_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("employees.update"))
):
    return delete_record(db, EntityDocument, OwnerType.EMPLOYEE, document_id)
