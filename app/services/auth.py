import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.models import User, Role
from app.utils.security import get_password_hash, verify_password, validate_password_complexity

logger = logging.getLogger(__name__)

PASSWORD_RULES = "Password must contain at least 8 characters, 1 uppercase letter, and 1 special character"


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


def record_login(db: Session, user: User):
    user.last_login_at = datetime.now()
    db.commit()


def create_user(db: Session, email: str, password: str, tenant_id: Optional[int],
                full_name: Optional[str] = None, role_id: Optional[int] = None) -> User:
    if get_user_by_email(db, email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    if not validate_password_complexity(password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=PASSWORD_RULES)

    if role_id is not None and not db.query(Role).filter(Role.id == role_id).first():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")

    user = User(
        email=email.lower(),
        full_name=full_name,
        hashed_password=get_password_hash(password),
        tenant_id=tenant_id,
        role_id=role_id,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"User created: {user.email} (tenant {tenant_id})")
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str):
    if not verify_password(current_password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")

    if not validate_password_complexity(new_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=PASSWORD_RULES)

    user.hashed_password = get_password_hash(new_password)
    db.commit()
    logger.info(f"Password changed for user {user.id}")
