"""
Supplier tests
"""

from conftest import api_request


def create_supplier(token, code, name, **extra):
    response = api_request("POST", "/suppliers/", token, {"code": code, "name": name, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def test_create_linked_to_company(token, client_company):
    supplier = create_supplier(token, "SUP-1", "Parts Co", company_id=client_company["id"],
                               supplier_type="manufacturer")
    assert supplier["company_name"] == "Globex Corporation"
    assert supplier["status"] == "active"

    by_company = api_request("GET", f"/suppliers/company/{client_company['id']}", token).json()
    assert [s["code"] for s in by_company] == ["SUP-1"]


def test_create_validations(token):
    create_supplier(token, "SUP-1", "Parts Co")

    response = api_request("POST", "/suppliers/", token, {"code": "SUP-1", "name": "Again"})
    assert response.status_code == 400
    assert response.json()["detail"] == "A supplier with this code already exists"

    response = api_request("POST", "/suppliers/", token, {"code": "SUP-2", "name": "Ghost", "company_id": 404})
    assert response.status_code == 404
    assert response.json()["detail"] == "Company not found"


def test_block_and_unblock(token):
    supplier = create_supplier(token, "SUP-1", "Parts Co", notes="Preferred for bolts")

    response = api_request("PATCH", f"/suppliers/{supplier['id']}/block", token, {"reason": "Late deliveries"})
    assert response.status_code == 200
    blocked = response.json()
    assert blocked["status"] == "blocked"
    assert blocked["notes"].startswith("Preferred for bolts\n[BLOCKED ")
    assert blocked["notes"].endswith("]: Late deliveries")

    response = api_request("PATCH", f"/suppliers/{supplier['id']}/unblock", token)
    assert response.json()["status"] == "active"

    response = api_request("PATCH", f"/suppliers/{supplier['id']}/unblock", token)
    assert response.status_code == 400


def test_block_requires_reason(token):
    supplier = create_supplier(token, "SUP-1", "Parts Co")
    response = api_request("PATCH", f"/suppliers/{supplier['id']}/block", token, {"reason": ""})
    assert response.status_code == 422


def test_list_and_statistics(token):
    create_supplier(token, "M-1", "Maker", supplier_type="manufacturer")
    create_supplier(token, "D-1", "Dealer", supplier_type="distributor", tax_id="PT999")
    blocked = create_supplier(token, "D-2", "Another Dealer")
    api_request("PATCH", f"/suppliers/{blocked['id']}/block", token, {"reason": "Quality"})

    page = api_request("GET", "/suppliers/", token, params={"supplierType": "distributor"}).json()
    assert [s["code"] for s in page["data"]] == ["D-2", "D-1"]

    page = api_request("GET", "/suppliers/", token, params={"searchText": "pt999"}).json()
    assert [s["code"] for s in page["data"]] == ["D-1"]

    stats = api_request("GET", "/suppliers/statistics", token).json()
    assert stats == {
        "total": 3,
        "active": 2,
        "blocked": 1,
        "manufacturers": 1,
        "distributors": 2,
        "thisMonth": 3,
    }


def test_contacts_and_delete(token):
    supplier = create_supplier(token, "SUP-1", "Parts Co")
    response = api_request("POST", "/suppliers/contacts", token, {
        "entity_id": supplier["id"],
        "contact_type": "email",
        "contact_value": "orders@parts.com",
    })
    assert response.status_code == 201
    assert len(api_request("GET", f"/suppliers/{supplier['id']}/contacts", token).json()) == 1

    response = api_request("DELETE", f"/suppliers/{supplier['id']}", token)
    assert response.json()["message"] == "Supplier deleted successfully"
    assert api_request("GET", f"/suppliers/{supplier['id']}", token).status_code == 404
