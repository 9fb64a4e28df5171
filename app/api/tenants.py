import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db, tenant_resolver
from app.models import Tenant, User
from app.schemas import TenantCreate, TenantUpdate, Tenant as TenantSchema, MessageResponse
from app.services.dependency import require_permission
from app.services.listing import apply_updates

logger = logging.getLogger(__name__)

router = APIRouter()


def get_tenant_or_404(db: Session, tenant_id: int) -> Tenant:
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id, Tenant.deleted_at.is_(None)).first()
    if not tenant:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant


@router.get("/", response_model=List[TenantSchema])
async def list_tenants(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("tenants.view"))
):
    return db.query(Tenant).filter(Tenant.deleted_at.is_(None)).order_by(Tenant.name).all()


@router.get("/slug/{slug}", response_model=TenantSchema)
async def get_tenant_by_slug(
    slug: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("tenants.view"))
):
    tenant = db.query(Tenant).filter(Tenant.slug == slug, Tenant.deleted_at.is_(None)).first()
    if not tenant:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant


@router.get("/{tenant_id}", response_model=TenantSchema)
async def get_tenant(
    tenant_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("tenants.view"))
):
    return get_tenant_or_404(db, tenant_id)


@router.post("/", response_model=TenantSchema, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    data: TenantCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("tenants.create"))
):
    if db.query(Tenant).filter(Tenant.slug == data.slug).first():
        raise HTTPException(status_code=400, detail="A tenant with this slug already exists")

    tenant = Tenant(**data.model_dump())
    db.add(tenant)
    db.commit()
    db.refresh(tenant)

    logger.info(f"Tenant created: {tenant.slug} by user {current_user.id}")
    return tenant


@router.put("/{tenant_id}", response_model=TenantSchema)
async def update_tenant(
    tenant_id: int,
    data: TenantUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("tenants.update"))
):
    tenant = get_tenant_or_404(db, tenant_id)

    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    apply_updates(tenant, update_data)
    db.commit()
    db.refresh(tenant)

    if "database_url" in update_data:
        # Next request rebuilds the pool against the new database
        tenant_resolver.dispose(tenant.id)

    logger.info(f"Tenant updated: {tenant.slug} by user {current_user.id}")
    return tenant


@router.delete("/{tenant_id}", response_model=MessageResponse)
async def delete_tenant(
    tenant_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("tenants.delete"))
):
    tenant = get_tenant_or_404(db, tenant_id)
    if tenant.id == current_user.tenant_id:
        raise HTTPException(status_code=400, detail="Cannot delete your own tenant")

    tenant.deleted_at = datetime.now()
    tenant.is_active = False
    db.commit()
    tenant_resolver.dispose(tenant.id)

    logger.info(f"Tenant deleted: {tenant.slug} by user {current_user.id}")
    return {"message": "Tenant deleted successfully"}
