import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, joinedload

from app.models import OnboardingProcess, OffboardingProcess, Employee, User
from app.schemas import OnboardingCreate, Onboarding, OffboardingCreate, Offboarding
from app.services.dependency import get_tenant_db, require_permission
from app.services.listing import active, get_or_404

logger = logging.getLogger(__name__)

router = APIRouter()


def with_employee(record):
    record.employee_name = record.employee.full_name if record.employee else None
    return record


@router.get("/processes", response_model=List[Onboarding])
async def list_onboarding_processes(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("onboarding.list"))
):
    processes = active(db.query(OnboardingProcess), OnboardingProcess).options(
        joinedload(OnboardingProcess.employee)
    ).order_by(OnboardingProcess.created_at.desc(), OnboardingProcess.id.desc()).all()
    return [with_employee(p) for p in processes]


@router.post("/processes", response_model=Onboarding, status_code=status.HTTP_201_CREATED)
async def create_onboarding_process(
    data: OnboardingCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("onboarding.create"))
):
    get_or_404(db, Employee, data.employee_id, "Employee not found")

    process = OnboardingProcess(**data.model_dump(), status="not_started", created_by=current_user.id)
    db.add(process)
    db.commit()
    db.refresh(process)

    logger.info(f"Onboarding process {process.id} started for employee {process.employee_id} by user {current_user.id}")
    return with_employee(process)


@router.get("/offboarding", response_model=List[Offboarding])
async def list_offboarding_processes(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("onboarding.offboarding_list"))
):
    processes = active(db.query(OffboardingProcess), OffboardingProcess).options(
        joinedload(OffboardingProcess.employee)
    ).order_by(OffboardingProcess.created_at.desc(), OffboardingProcess.id.desc()).all()
    return [with_employee(p) for p in processes]


@router.post("/offboarding", response_model=Offboarding, status_code=status.HTTP_201_CREATED)
async def create_offboarding_process(
    data: OffboardingCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("onboarding.offboarding_create"))
):
    get_or_404(db, Employee, data.employee_id, "Employee not found")

    process = OffboardingProcess(**data.model_dump(), status="initiated", initiated_by=current_user.id)
    db.add(process)
    db.commit()
    db.refresh(process)

    logger.info(f"Offboarding process {process.id} initiated for employee {process.employee_id} by user {current_user.id}")
    return with_employee(process)
