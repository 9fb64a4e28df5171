"""
Tenant Seed Utility

Populates default reference data in a freshly created tenant database:
- Employee types
- Expense categories
"""

from sqlalchemy.orm import Session
import logging

from app.models import EmployeeType, ExpenseCategory

logger = logging.getLogger(__name__)


# =============================================================================
# DEFAULT EMPLOYEE TYPES
# =============================================================================

DEFAULT_EMPLOYEE_TYPES = [
    {"code": "full_time", "name": "Full-time", "description": "Permanent full-time employee"},
    {"code": "part_time", "name": "Part-time", "description": "Permanent part-time employee"},
    {"code": "contractor", "name": "Contractor", "description": "External contractor"},
    {"code": "intern", "name": "Intern", "description": "Internship or traineeship"},
]


# =============================================================================
# DEFAULT EXPENSE CATEGORIES
# =============================================================================

DEFAULT_EXPENSE_CATEGORIES = [
    {"name": "Travel", "icon": "plane", "color": "#3B82F6", "requires_receipt": True},
    {"name": "Meals", "icon": "utensils", "color": "#F59E0B", "requires_receipt": True, "max_amount": 50},
    {"name": "Accommodation", "icon": "bed", "color": "#8B5CF6", "requires_receipt": True},
    {"name": "Mileage", "icon": "car", "color": "#10B981", "requires_receipt": False},
    {"name": "Office Supplies", "icon": "paperclip", "color": "#6B7280", "requires_receipt": True},
]


def seed_employee_types(db: Session) -> int:
    created = 0
    for et_data in DEFAULT_EMPLOYEE_TYPES:
        existing = db.query(EmployeeType).filter(EmployeeType.code == et_data["code"]).first()
        if existing:
            continue
        db.add(EmployeeType(**et_data))
        created += 1
    return created


def seed_expense_categories(db: Session) -> int:
    # Only seed an empty catalogue; tenants manage their own categories afterwards
    if db.query(ExpenseCategory).count() > 0:
        return 0
    for cat_data in DEFAULT_EXPENSE_CATEGORIES:
        db.add(ExpenseCategory(is_active=True, **cat_data))
    return len(DEFAULT_EXPENSE_CATEGORIES)


def seed_tenant_defaults(db: Session) -> dict:
    """
    Seed all defaults for a tenant database. Safe to run more than once.

    Returns:
        dict with the number of rows created per table
    """
    results = {
        "employee_types": seed_employee_types(db),
        "expense_categories": seed_expense_categories(db),
    }
    db.flush()
    logger.info(f"Tenant defaults seeded: {results}")
    return results
