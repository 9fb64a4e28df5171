import logging
from typing import Optional, List

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session, joinedload

from app.models import PerformanceReview, PerformanceGoal, Employee, User
from app.schemas import ReviewCreate, Review, GoalCreate, Goal
from app.services.dependency import get_tenant_db, require_permission
from app.services.listing import active, get_or_404

logger = logging.getLogger(__name__)

router = APIRouter()


def with_employee(record):
    record.employee_name = record.employee.full_name if record.employee else None
    return record


# ============================================================================
# Reviews
# ============================================================================

@router.get("/reviews", response_model=List[Review])
async def list_reviews(
    employee_id: Optional[int] = Query(None, alias="employeeId"),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("performance.list"))
):
    query = active(db.query(PerformanceReview), PerformanceReview).options(
        joinedload(PerformanceReview.employee)
    )
    if employee_id:
        query = query.filter(PerformanceReview.employee_id == employee_id)
    reviews = query.order_by(PerformanceReview.review_period_end.desc(), PerformanceReview.id.desc()).all()
    return [with_employee(r) for r in reviews]


@router.post("/reviews", response_model=Review, status_code=status.HTTP_201_CREATED)
async def create_review(
    data: ReviewCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("performance.create"))
):
    get_or_404(db, Employee, data.employee_id, "Employee not found")
    if data.reviewer_id is not None:
        get_or_404(db, Employee, data.reviewer_id, "Reviewer not found")

    review = PerformanceReview(**data.model_dump(), status="draft", created_by=current_user.id)
    db.add(review)
    db.commit()
    db.refresh(review)

    logger.info(f"Performance review {review.id} created for employee {review.employee_id} by user {current_user.id}")
    return with_employee(review)


# ============================================================================
# Goals
# ============================================================================

@router.get("/goals", response_model=List[Goal])
async def list_goals(
    employee_id: Optional[int] = Query(None, alias="employeeId"),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("performance.goals_list"))
):
    query = active(db.query(PerformanceGoal), PerformanceGoal).options(joinedload(PerformanceGoal.employee))
    if employee_id:
        query = query.filter(PerformanceGoal.employee_id == employee_id)
    goals = query.order_by(PerformanceGoal.target_date, PerformanceGoal.id).all()
    return [with_employee(g) for g in goals]


@router.post("/goals", response_model=Goal, status_code=status.HTTP_201_CREATED)
async def create_goal(
    data: GoalCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("performance.goals_create"))
):
    get_or_404(db, Employee, data.employee_id, "Employee not found")

    goal = PerformanceGoal(**data.model_dump(), status="active", set_by=current_user.id)
    db.add(goal)
    db.commit()
    db.refresh(goal)

    logger.info(f"Goal {goal.id} set for employee {goal.employee_id} by user {current_user.id}")
    return with_employee(goal)
