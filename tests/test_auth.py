"""
Authentication, permission and tenant isolation tests
"""

from datetime import timedelta

from app.models import Role, Tenant, User
from app.utils.permission_seed import ADMIN_ROLE_NAME, all_permission_codes
from app.utils.security import create_access_token, get_password_hash

from conftest import api_request, token_for, ADMIN_EMAIL, ADMIN_PASSWORD


# ============================================================================
# Login
# ============================================================================

def test_login_returns_bearer_token(admin_user):
    response = api_request("POST", "/auth/login", data={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["access_token"]


def test_login_with_wrong_password(admin_user):
    response = api_request("POST", "/auth/login", data={"email": ADMIN_EMAIL, "password": "Wrong123!"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Incorrect email or password"


def test_login_inactive_user(main_db, admin_user):
    admin_user.is_active = False
    main_db.commit()

    response = api_request("POST", "/auth/login", data={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 403
    assert response.json()["detail"] == "User account is inactive"


def test_me_lists_permissions(token):
    response = api_request("GET", "/auth/me", token)
    assert response.status_code == 200
    profile = response.json()
    assert profile["email"] == ADMIN_EMAIL
    assert profile["tenant_name"] == "Acme"
    assert profile["role_name"] == ADMIN_ROLE_NAME
    assert set(profile["permissions"]) == set(all_permission_codes())


def test_missing_token_is_rejected(admin_user):
    response = api_request("GET", "/companies/")
    assert response.status_code in (401, 403)


def test_expired_token_is_rejected(admin_user):
    expired = create_access_token({"sub": admin_user.email}, expires_delta=timedelta(minutes=-5))
    response = api_request("GET", "/auth/me", expired)
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


def test_token_for_unknown_user(admin_user):
    ghost = create_access_token({"sub": "ghost@acme.com"})
    response = api_request("GET", "/auth/me", ghost)
    assert response.status_code == 401
    assert response.json()["detail"] == "User not found"


# ============================================================================
# Passwords & users
# ============================================================================

def test_change_password(token):
    response = api_request("POST", "/auth/change-password", token, {
        "current_password": ADMIN_PASSWORD,
        "new_password": "Changed456#",
    })
    assert response.status_code == 200
    assert response.json()["message"] == "Password changed successfully"

    login = api_request("POST", "/auth/login", data={"email": ADMIN_EMAIL, "password": "Changed456#"})
    assert login.status_code == 200


def test_change_password_wrong_current(token):
    response = api_request("POST", "/auth/change-password", token, {
        "current_password": "NotMine123!",
        "new_password": "Changed456#",
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Current password is incorrect"


def test_change_password_requires_complexity(token):
    response = api_request("POST", "/auth/change-password", token, {
        "current_password": ADMIN_PASSWORD,
        "new_password": "alllowercase",
    })
    assert response.status_code == 400
    assert "uppercase" in response.json()["detail"]


def test_create_user_in_own_tenant(token, tenant):
    response = api_request("POST", "/auth/users", token, {
        "email": "New.Person@Acme.com",
        "full_name": "New Person",
        "password": "Welcome1!",
    })
    assert response.status_code == 201
    user = response.json()
    assert user["email"] == "new.person@acme.com"
    assert user["tenant_id"] == tenant.id

    duplicate = api_request("POST", "/auth/users", token, {
        "email": "new.person@acme.com",
        "password": "Welcome1!",
    })
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "Email already registered"


# ============================================================================
# Permissions
# ============================================================================

def test_user_without_role_is_denied(viewer_token):
    response = api_request("GET", "/companies/", viewer_token)
    assert response.status_code == 403
    assert response.json()["detail"] == "Permission 'companies.view' not authorized"


def test_user_without_tenant_cannot_reach_tenant_data(main_db):
    role = main_db.query(Role).filter(Role.name == ADMIN_ROLE_NAME).first()
    user = User(email="floating@acme.com", hashed_password=get_password_hash("Floating1!"),
                role_id=role.id, is_active=True)
    main_db.add(user)
    main_db.commit()

    response = api_request("GET", "/companies/", token_for(user))
    assert response.status_code == 403
    assert response.json()["detail"] == "User is not assigned to a tenant"


def test_inactive_tenant_is_refused(main_db, tenant, token):
    tenant.is_active = False
    main_db.commit()

    response = api_request("GET", "/companies/", token)
    assert response.status_code == 403
    assert response.json()["detail"] == "Tenant is inactive"


# ============================================================================
# Tenants
# ============================================================================

def test_tenant_crud(token):
    response = api_request("POST", "/tenants/", token, {"name": "Initech", "slug": "initech"})
    assert response.status_code == 201
    created = response.json()

    duplicate = api_request("POST", "/tenants/", token, {"name": "Initech 2", "slug": "initech"})
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "A tenant with this slug already exists"

    by_slug = api_request("GET", "/tenants/slug/initech", token)
    assert by_slug.json()["id"] == created["id"]

    updated = api_request("PUT", f"/tenants/{created['id']}", token, {"name": "Initech Ltd"})
    assert updated.json()["name"] == "Initech Ltd"

    deleted = api_request("DELETE", f"/tenants/{created['id']}", token)
    assert deleted.json()["message"] == "Tenant deleted successfully"
    assert api_request("GET", f"/tenants/{created['id']}", token).status_code == 404


def test_tenant_slug_must_be_lowercase(token):
    response = api_request("POST", "/tenants/", token, {"name": "Bad", "slug": "Bad Slug"})
    assert response.status_code == 422


def test_cannot_delete_own_tenant(token, tenant):
    response = api_request("DELETE", f"/tenants/{tenant.id}", token)
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot delete your own tenant"


def test_tenants_do_not_share_data(main_db, token, client_company):
    other = Tenant(name="Umbrella", slug="umbrella", is_active=True)
    main_db.add(other)
    main_db.commit()

    role = main_db.query(Role).filter(Role.name == ADMIN_ROLE_NAME).first()
    other_admin = User(email="admin@umbrella.com", hashed_password=get_password_hash("Umbrella1!"),
                       tenant_id=other.id, role_id=role.id, is_active=True)
    main_db.add(other_admin)
    main_db.commit()
    other_token = token_for(other_admin)

    response = api_request("GET", "/companies/", other_token)
    assert response.status_code == 200
    assert response.json()["total"] == 0
    assert api_request("GET", f"/companies/{client_company['id']}", other_token).status_code == 404

    # Same code is free in the other tenant
    response = api_request("POST", "/companies/", other_token, {"code": "CLI001", "name": "Other Globex"})
    assert response.status_code == 201


def test_health_check():
    response = api_request("GET", "/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
