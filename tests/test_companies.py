"""
Company, contact and address tests
"""

from conftest import api_request
from app.models import Company


def create_company(token, code, name, **extra):
    response = api_request("POST", "/companies/", token, {"code": code, "name": name, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def test_create_and_get_company(token, client_company):
    response = api_request("GET", f"/companies/{client_company['id']}", token)
    assert response.status_code == 200
    company = response.json()
    assert company["code"] == "CLI001"
    assert company["status"] == "active"
    assert company["contacts"] == []
    assert company["addresses"] == []


def test_duplicate_code_is_rejected(token, client_company):
    response = api_request("POST", "/companies/", token, {"code": "CLI001", "name": "Copycat"})
    assert response.status_code == 400
    assert response.json()["detail"] == "A company with this code already exists"


def test_code_change_is_rechecked(token, client_company):
    other = create_company(token, "SUP001", "Supplies Inc", company_type="supplier")
    response = api_request("PUT", f"/companies/{other['id']}", token, {"code": "CLI001"})
    assert response.status_code == 400

    response = api_request("PUT", f"/companies/{other['id']}", token, {"code": "SUP002", "rating": 4})
    assert response.status_code == 200
    assert response.json()["code"] == "SUP002"
    assert response.json()["rating"] == 4


def test_update_without_fields(token, client_company):
    response = api_request("PUT", f"/companies/{client_company['id']}", token, {})
    assert response.status_code == 400
    assert response.json()["detail"] == "No fields to update"


def test_list_filters_and_pagination(token, client_company):
    create_company(token, "SUP001", "Acme Supplies", company_type="supplier")
    create_company(token, "PAR001", "Beta Partners", company_type="partner", status="inactive")

    response = api_request("GET", "/companies/", token, params={"pageSize": 2})
    page = response.json()
    assert page["total"] == 3
    assert page["pageSize"] == 2
    assert page["totalPages"] == 2
    assert [c["name"] for c in page["data"]] == ["Acme Supplies", "Beta Partners"]

    response = api_request("GET", "/companies/", token, params={"companyType": "supplier"})
    assert [c["code"] for c in response.json()["data"]] == ["SUP001"]

    # Search matches tax id case-insensitively and is combined with the other filters
    response = api_request("GET", "/companies/", token, params={"searchText": "pt500"})
    assert [c["code"] for c in response.json()["data"]] == ["CLI001"]
    response = api_request("GET", "/companies/", token, params={"searchText": "pt500", "status": "inactive"})
    assert response.json()["total"] == 0


def test_statistics(token, client_company):
    create_company(token, "SUP001", "Acme Supplies", company_type="supplier", status="inactive")

    stats = api_request("GET", "/companies/statistics", token).json()
    assert stats["totalCompanies"] == 2
    assert stats["activeCompanies"] == 1
    assert stats["clients"] == 1
    assert stats["suppliers"] == 1
    assert stats["partners"] == 0
    assert stats["companiesThisMonth"] == 2


def test_soft_deleted_company_disappears(token, client_company, tenant_db):
    response = api_request("DELETE", f"/companies/{client_company['id']}", token)
    assert response.json()["message"] == "Company deleted successfully"

    assert api_request("GET", f"/companies/{client_company['id']}", token).status_code == 404
    assert api_request("GET", "/companies/", token).json()["total"] == 0
    assert api_request("DELETE", f"/companies/{client_company['id']}", token).status_code == 404

    row = tenant_db.query(Company).filter(Company.id == client_company["id"]).one()
    assert row.deleted_at is not None
    assert row.code == "CLI001"


def test_null_for_required_field_is_rejected(token, client_company):
    response = api_request("PUT", f"/companies/{client_company['id']}", token, {"code": None})
    assert response.status_code == 400
    assert response.json()["detail"] == "Field 'code' cannot be null"

    response = api_request("PUT", f"/companies/{client_company['id']}", token, {"tax_id": None})
    assert response.status_code == 200
    assert response.json()["tax_id"] is None
    assert response.json()["code"] == "CLI001"


# ============================================================================
# Contacts & Addresses
# ============================================================================

def test_primary_contact_is_unique(token, client_company):
    first = api_request("POST", "/companies/contacts", token, {
        "entity_id": client_company["id"],
        "contact_type": "email",
        "contact_value": "info@globex.com",
        "is_primary": True,
    }).json()
    second = api_request("POST", "/companies/contacts", token, {
        "entity_id": client_company["id"],
        "contact_type": "phone",
        "contact_value": "+351 210 000 000",
        "is_primary": True,
    }).json()

    contacts = api_request("GET", f"/companies/{client_company['id']}/contacts", token).json()
    primaries = [c["id"] for c in contacts if c["is_primary"]]
    assert primaries == [second["id"]]

    # Promoting the first one demotes the second
    api_request("PUT", f"/companies/contacts/{first['id']}", token, {"is_primary": True})
    contacts = api_request("GET", f"/companies/{client_company['id']}/contacts", token).json()
    assert [c["id"] for c in contacts if c["is_primary"]] == [first["id"]]


def test_contact_for_missing_company(token):
    response = api_request("POST", "/companies/contacts", token, {
        "entity_id": 999,
        "contact_type": "email",
        "contact_value": "nobody@nowhere.com",
    })
    assert response.status_code == 404
    assert response.json()["detail"] == "Company not found"


def test_contact_delete(token, client_company):
    contact = api_request("POST", "/companies/contacts", token, {
        "entity_id": client_company["id"],
        "contact_type": "email",
        "contact_value": "sales@globex.com",
    }).json()

    response = api_request("DELETE", f"/companies/contacts/{contact['id']}", token)
    assert response.json()["message"] == "Contact deleted successfully"
    assert api_request("GET", f"/companies/{client_company['id']}/contacts", token).json() == []


def test_addresses_show_on_company_detail(token, client_company):
    response = api_request("POST", "/companies/addresses", token, {
        "entity_id": client_company["id"],
        "address_type": "billing",
        "street_line1": "Rua Augusta 100",
        "city": "Lisboa",
        "postal_code": "1100-053",
        "is_primary": True,
    })
    assert response.status_code == 201
    address = response.json()
    assert address["country"] == "PT"

    updated = api_request("PUT", f"/companies/addresses/{address['id']}", token, {"city": "Porto"}).json()
    assert updated["city"] == "Porto"

    detail = api_request("GET", f"/companies/{client_company['id']}", token).json()
    assert [a["city"] for a in detail["addresses"]] == ["Porto"]

    response = api_request("DELETE", f"/companies/addresses/{address['id']}", token)
    assert response.json()["message"] == "Address deleted successfully"
