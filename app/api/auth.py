import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models import User
from app.schemas import UserLogin, Token, UserCreate, User as UserSchema, UserProfile, PasswordChange, MessageResponse
from app.services.auth import authenticate_user, record_login, create_user, change_password
from app.services.dependency import get_current_user, get_user_permissions, require_permission
from app.utils.rate_limiter import limiter, RateLimits
from app.utils.security import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=Token)
@limiter.limit(RateLimits.LOGIN)
async def login(request: Request, user_credentials: UserLogin, db: Session = Depends(get_db)):
    user = authenticate_user(db, user_credentials.email, user_credentials.password)
    if not user:
        logger.warning(f"Failed login attempt for {user_credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    record_login(db, user)
    access_token = create_access_token(data={"sub": user.email, "tenant_id": user.tenant_id})

    logger.info(f"User {user.id} logged in")
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=UserProfile)
async def read_users_me(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    profile = UserProfile.model_validate(current_user)
    profile.tenant_name = current_user.tenant.name if current_user.tenant else None
    profile.role_name = current_user.role.name if current_user.role else None
    profile.permissions = get_user_permissions(db, current_user)
    return profile


@router.post("/change-password", response_model=MessageResponse)
async def update_password(
    data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    change_password(db, current_user, data.current_password, data.new_password)
    return {"message": "Password changed successfully"}


@router.post("/users", response_model=UserSchema, status_code=status.HTTP_201_CREATED)
async def create_tenant_user(
    data: UserCreate,
    current_user: User = Depends(require_permission("users.create")),
    db: Session = Depends(get_db)
):
    """Create a user in the caller's tenant"""
    return create_user(
        db,
        email=data.email,
        password=data.password,
        tenant_id=current_user.tenant_id,
        full_name=data.full_name,
        role_id=data.role_id,
    )
