import logging
from datetime import date
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session, joinedload

from app.models import EmployeeShift, Employee, User
from app.schemas import ShiftCreate, ShiftUpdate, Shift, MessageResponse
from app.services.dependency import get_tenant_db, require_permission
from app.services.listing import active, get_or_404, soft_delete, apply_updates

logger = logging.getLogger(__name__)

router = APIRouter()


def with_employee(shift: EmployeeShift) -> EmployeeShift:
    shift.employee_name = shift.employee.full_name if shift.employee else None
    return shift


def check_times(shift: EmployeeShift):
    if shift.start_time and shift.end_time and shift.end_time <= shift.start_time:
        raise HTTPException(status_code=400, detail="Shift end time must be after start time")


@router.get("/", response_model=List[Shift])
async def list_shifts(
    employee_id: Optional[int] = Query(None, alias="employeeId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("shifts.list"))
):
    query = active(db.query(EmployeeShift), EmployeeShift).options(joinedload(EmployeeShift.employee))

    if employee_id:
        query = query.filter(EmployeeShift.employee_id == employee_id)
    if start_date:
        query = query.filter(EmployeeShift.shift_date >= start_date)
    if end_date:
        query = query.filter(EmployeeShift.shift_date <= end_date)

    shifts = query.order_by(EmployeeShift.shift_date.desc(), EmployeeShift.start_time).all()
    return [with_employee(s) for s in shifts]


@router.post("/", response_model=Shift, status_code=status.HTTP_201_CREATED)
async def create_shift(
    data: ShiftCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("shifts.create"))
):
    get_or_404(db, Employee, data.employee_id, "Employee not found")

    shift = EmployeeShift(**data.model_dump(), status="scheduled", assigned_by=current_user.id)
    check_times(shift)
    db.add(shift)
    db.commit()
    db.refresh(shift)

    logger.info(f"Shift {shift.id} on {shift.shift_date} assigned to employee {shift.employee_id} by user {current_user.id}")
    return with_employee(shift)


@router.put("/{shift_id}", response_model=Shift)
async def update_shift(
    shift_id: int,
    data: ShiftUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("shifts.update"))
):
    shift = get_or_404(db, EmployeeShift, shift_id, "Shift not found")

    # Explicit nulls keep the current value
    update_data = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    apply_updates(shift, update_data)
    check_times(shift)
    db.commit()
    db.refresh(shift)

    logger.info(f"Shift {shift.id} updated by user {current_user.id}")
    return with_employee(shift)


@router.delete("/{shift_id}", response_model=MessageResponse)
async def delete_shift(
    shift_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("shifts.delete"))
):
    shift = get_or_404(db, EmployeeShift, shift_id, "Shift not found")
    soft_delete(shift)
    db.commit()

    logger.info(f"Shift {shift.id} deleted by user {current_user.id}")
    return {"message": "Deleted successfully"}
