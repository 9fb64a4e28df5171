"""
Shared fixtures for the API test suite.

The suite runs in-process against in-memory SQLite databases: one for the
main database and one per tenant, rebuilt for every test.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TENANT_DATABASE_URL_TEMPLATE"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret-key"

import pytest
from fastapi.testclient import TestClient

from main import app
from app.database import Base, SessionLocal, engine, tenant_resolver
from app.models import Role, Tenant, User
from app.utils.permission_seed import seed_permissions, ADMIN_ROLE_NAME
from app.utils.security import create_access_token, get_password_hash

ADMIN_EMAIL = "admin@acme.com"
ADMIN_PASSWORD = "Admin123!"
VIEWER_EMAIL = "viewer@acme.com"
VIEWER_PASSWORD = "Viewer123!"

client = TestClient(app)


def api_request(method: str, endpoint: str, token: str = None, data: dict = None, params: dict = None):
    """Make an API request"""
    headers = {}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return client.request(method, f"/api{endpoint}", headers=headers, json=data, params=params)


def token_for(user: User) -> str:
    return create_access_token({"sub": user.email, "tenant_id": user.tenant_id})


@pytest.fixture(autouse=True)
def main_db():
    tenant_resolver.dispose_all()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed_permissions(db)
        yield db
    finally:
        db.close()
        tenant_resolver.dispose_all()


@pytest.fixture
def tenant(main_db):
    tenant = Tenant(name="Acme", slug="acme", is_active=True)
    main_db.add(tenant)
    main_db.commit()
    main_db.refresh(tenant)
    return tenant


@pytest.fixture
def tenant_db(tenant):
    """Direct session on the tenant database, bypassing the API"""
    db = tenant_resolver.get_session(tenant)
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def admin_user(main_db, tenant):
    role = main_db.query(Role).filter(Role.name == ADMIN_ROLE_NAME).first()
    user = User(
        email=ADMIN_EMAIL,
        full_name="Ada Admin",
        hashed_password=get_password_hash(ADMIN_PASSWORD),
        tenant_id=tenant.id,
        role_id=role.id,
        is_active=True,
    )
    main_db.add(user)
    main_db.commit()
    main_db.refresh(user)
    return user


@pytest.fixture
def viewer_user(main_db, tenant):
    user = User(
        email=VIEWER_EMAIL,
        full_name="Victor Viewer",
        hashed_password=get_password_hash(VIEWER_PASSWORD),
        tenant_id=tenant.id,
        is_active=True,
    )
    main_db.add(user)
    main_db.commit()
    main_db.refresh(user)
    return user


@pytest.fixture
def token(admin_user):
    return token_for(admin_user)


@pytest.fixture
def viewer_token(viewer_user):
    return token_for(viewer_user)


@pytest.fixture
def client_company(token):
    response = api_request("POST", "/companies/", token, {
        "code": "CLI001",
        "name": "Globex Corporation",
        "company_type": "client",
        "tax_id": "PT500100200",
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def employee(token):
    response = api_request("POST", "/employees/", token, {
        "number": "E001",
        "full_name": "Maria Silva",
        "short_name": "Maria",
        "job_title": "Accountant",
        "hire_date": "2023-03-01",
        "birth_date": "1990-05-10",
    })
    assert response.status_code == 201, response.text
    return response.json()
