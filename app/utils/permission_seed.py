"""
Permissions Seed Utility

Automatically populates the permissions table from a static
(module, action) dictionary, and makes sure the built-in "admin" role
holds every permission.

Permissions are global system vocabulary and are NOT tenant-specific.
Admins can later assign these permissions to roles. Routers refer to a
permission by its string form, "module.action" (e.g. "quotes.accept").
"""

import logging
from sqlalchemy.orm import Session

from app.models import Permission, Role, RolePermission

logger = logging.getLogger(__name__)

ADMIN_ROLE_NAME = "admin"

# =============================================================================
# PERMISSIONS DICTIONARY
# =============================================================================
# Single source of truth for all system permissions.
# DO NOT rename existing module/action pairs once deployed.
# Add new permissions instead.
# =============================================================================
PERMISSIONS_DICTIONARY = {
    # =============================================================================
    # PLATFORM
    # =============================================================================
    "tenants": {
        "view": "View tenants",
        "create": "Create tenants",
        "update": "Edit tenants",
        "delete": "Delete tenants",
    },

    "users": {
        "view": "View users",
        "create": "Create users",
    },

    # =============================================================================
    # MASTER DATA
    # =============================================================================
    "companies": {
        "view": "View companies",
        "create": "Create companies",
        "update": "Edit companies",
        "delete": "Delete companies",
    },

    "employees": {
        "view": "View employees",
        "create": "Create employees",
        "update": "Edit employees",
        "delete": "Delete employees",
    },

    "products": {
        "view": "View products",
        "create": "Create products",
        "update": "Edit products",
        "delete": "Delete products",
        "view_stock": "View stock levels and movements",
        "manage_stock": "Adjust stock",
        "bulk_update": "Bulk update prices",
    },

    "suppliers": {
        "view": "View suppliers",
        "create": "Create suppliers",
        "update": "Edit suppliers",
        "delete": "Delete suppliers",
        "block": "Block and unblock suppliers",
    },

    # =============================================================================
    # SALES
    # =============================================================================
    "quotes": {
        "view": "View quotes",
        "create": "Create quotes",
        "update": "Edit quotes",
        "delete": "Delete quotes",
        "send": "Send quotes to clients",
        "accept": "Accept quotes",
        "reject": "Reject quotes",
        "convert": "Convert accepted quotes to sales orders",
        "manage": "Run quote maintenance (expiry sweep)",
    },

    "orders": {
        "view": "View sales orders",
        "create": "Create sales orders",
        "update": "Edit sales orders",
        "delete": "Delete sales orders",
        "confirm": "Confirm sales orders",
        "process": "Start processing sales orders",
        "ship": "Ship sales orders",
        "deliver": "Mark sales orders as delivered",
        "complete": "Complete sales orders",
        "cancel": "Cancel sales orders",
        "create_return": "Create return orders",
        "record_payment": "Record sales order payments",
    },

    # =============================================================================
    # EXPENSES
    # =============================================================================
    "expenses": {
        "list": "View expense claims",
        "create": "Create expense claims",
        "update": "Edit expense claims",
        "delete": "Delete expense claims",
        "submit": "Submit expense claims",
        "approve": "Approve or reject expense claims",
        "pay": "Mark expense claims as paid",
        "manage": "Manage expense categories",
    },

    # =============================================================================
    # CONTENT
    # =============================================================================
    "content": {
        "view": "View content",
        "create": "Create content",
        "update": "Edit content",
        "delete": "Delete content",
        "publish": "Publish and unpublish content",
        "manage": "Manage content categories and tags",
    },

    # =============================================================================
    # CALENDAR & HR
    # =============================================================================
    "calendar": {
        "list": "List calendar events",
        "view": "View calendar events",
        "create": "Create calendar events",
        "update": "Edit calendar events",
        "delete": "Delete calendar events",
        "respond": "Respond to event invitations",
    },

    "onboarding": {
        "list": "List onboarding processes",
        "create": "Create onboarding processes",
        "offboarding_list": "List offboarding processes",
        "offboarding_create": "Create offboarding processes",
    },

    "performance": {
        "list": "List performance reviews",
        "create": "Create performance reviews",
        "goals_list": "List performance goals",
        "goals_create": "Create performance goals",
    },

    "shifts": {
        "list": "List shifts",
        "create": "Create shifts",
        "update": "Edit shifts",
        "delete": "Delete shifts",
    },
}


def all_permission_codes() -> list:
    return [
        f"{module}.{action}"
        for module, actions in PERMISSIONS_DICTIONARY.items()
        for action in actions.keys()
    ]


def seed_permissions(db: Session):
    """
    Seed permissions from PERMISSIONS_DICTIONARY.

    This function is idempotent:
    - Existing permissions are not modified
    - Missing permissions are created
    - No permissions are deleted
    - The admin role is created if missing and granted every permission

    Args:
        db: SQLAlchemy database session
    """
    logger.info("Seeding permissions...")

    try:
        for module, actions in PERMISSIONS_DICTIONARY.items():
            for action, description in actions.items():
                exists = (
                    db.query(Permission)
                    .filter_by(module=module, action=action)
                    .first()
                )
                if exists:
                    continue

                db.add(Permission(module=module, action=action, description=description))
        db.flush()

        admin_role = db.query(Role).filter(Role.name == ADMIN_ROLE_NAME).first()
        if not admin_role:
            admin_role = Role(name=ADMIN_ROLE_NAME, description="Full access to every module")
            db.add(admin_role)
            db.flush()

        granted = {
            rp.permission_id
            for rp in db.query(RolePermission).filter(RolePermission.role_id == admin_role.id).all()
        }
        for permission in db.query(Permission).all():
            if permission.id not in granted:
                admin_role.role_permissions.append(RolePermission(permission_id=permission.id))

        db.commit()
        logger.info("Permissions seeding completed successfully.")

    except Exception as e:
        db.rollback()
        logger.error(f"Error seeding permissions: {e}")
        raise
