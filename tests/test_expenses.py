"""
Expense claim tests
"""

from datetime import date

import pytest

from conftest import api_request


@pytest.fixture
def categories(token):
    response = api_request("GET", "/expenses/categories", token)
    assert response.status_code == 200
    return {c["name"]: c for c in response.json()}


def item(category, amount, **extra):
    return {
        "category_id": category["id"],
        "description": f"{category['name']} expense",
        "amount": amount,
        "expense_date": "2025-04-10",
        **extra,
    }


def create_claim(token, employee_id, items=None, **extra):
    payload = {
        "employee_id": employee_id,
        "title": "Client visit Porto",
        "expense_date": "2025-04-10",
        "items": items or [],
    }
    payload.update(extra)
    response = api_request("POST", "/expenses/claims", token, payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_seeded_categories(categories):
    assert set(categories) == {"Travel", "Meals", "Accommodation", "Mileage", "Office Supplies"}
    assert categories["Meals"]["max_amount"] == 50
    assert categories["Mileage"]["requires_receipt"] is False


def test_create_with_items(token, employee, categories):
    claim = create_claim(token, employee["id"], [
        item(categories["Mileage"], 42.3),
        item(categories["Travel"], 120, has_receipt=True),
    ])
    assert claim["claim_number"] == "EXP-2025-000001"
    assert claim["status"] == "draft"
    assert claim["total_amount"] == 162.3
    assert claim["employee_name"] == "Maria Silva"
    assert {i["category_name"] for i in claim["items"]} == {"Mileage", "Travel"}


def test_item_policies(token, employee, categories):
    response = api_request("POST", "/expenses/claims", token, {
        "employee_id": employee["id"],
        "title": "Lunch",
        "expense_date": "2025-04-10",
        "items": [item(categories["Meals"], 80, has_receipt=True)],
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Amount exceeds the maximum of 50.00 allowed for 'Meals'"

    claim = create_claim(token, employee["id"])
    response = api_request("POST", f"/expenses/claims/{claim['id']}/items", token, item(categories["Travel"], 30))
    assert response.status_code == 400
    assert response.json()["detail"] == "A receipt is required for 'Travel' expenses"

    api_request("PUT", f"/expenses/categories/{categories['Travel']['id']}", token, {"is_active": False})
    response = api_request("POST", f"/expenses/claims/{claim['id']}/items", token,
                           item(categories["Travel"], 30, has_receipt=True))
    assert response.status_code == 400
    assert response.json()["detail"] == "Expense category 'Travel' is inactive"


def test_item_changes_recompute_total(token, employee, categories):
    claim = create_claim(token, employee["id"])

    response = api_request("POST", f"/expenses/claims/{claim['id']}/items", token, item(categories["Mileage"], 10))
    assert response.status_code == 201
    claim = response.json()
    assert claim["total_amount"] == 10.0

    claim = api_request("POST", f"/expenses/claims/{claim['id']}/items", token,
                        item(categories["Meals"], 25.5, receipt_url="https://files.test/r1.pdf")).json()
    assert claim["total_amount"] == 35.5

    mileage_item = next(i for i in claim["items"] if i["category_name"] == "Mileage")
    claim = api_request("PUT", f"/expenses/claims/{claim['id']}/items/{mileage_item['id']}", token,
                        {"amount": 14.5}).json()
    assert claim["total_amount"] == 40.0

    claim = api_request("DELETE", f"/expenses/claims/{claim['id']}/items/{mileage_item['id']}", token).json()
    assert claim["total_amount"] == 25.5
    assert len(claim["items"]) == 1


def test_submit_approve_pay(token, employee, categories):
    claim = create_claim(token, employee["id"], notes="Trip to client")

    response = api_request("POST", f"/expenses/claims/{claim['id']}/submit", token)
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot submit a claim without expense items"

    api_request("POST", f"/expenses/claims/{claim['id']}/items", token, item(categories["Mileage"], 60))
    submitted = api_request("POST", f"/expenses/claims/{claim['id']}/submit", token).json()
    assert submitted["status"] == "submitted"
    assert submitted["submitted_at"] is not None

    # Submitted claims are frozen
    response = api_request("POST", f"/expenses/claims/{claim['id']}/items", token, item(categories["Mileage"], 5))
    assert response.status_code == 400
    response = api_request("PUT", f"/expenses/claims/{claim['id']}", token, {"title": "Changed"})
    assert response.status_code == 400

    response = api_request("POST", f"/expenses/claims/{claim['id']}/pay", token, {})
    assert response.status_code == 400

    approved = api_request("POST", f"/expenses/claims/{claim['id']}/approve", token,
                           {"approval_notes": "OK for reimbursement"}).json()
    assert approved["status"] == "approved"
    assert approved["notes"] == "Trip to client\nOK for reimbursement"
    assert approved["approved_by"] is not None

    paid = api_request("POST", f"/expenses/claims/{claim['id']}/pay", token, {"payment_reference": "TRF-881"}).json()
    assert paid["status"] == "paid"
    assert paid["payment_reference"] == "TRF-881"

    response = api_request("DELETE", f"/expenses/claims/{claim['id']}", token)
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot delete claim with status: paid"


def test_reject_and_delete(token, employee, categories):
    claim = create_claim(token, employee["id"], [item(categories["Mileage"], 20)])
    api_request("POST", f"/expenses/claims/{claim['id']}/submit", token)

    response = api_request("POST", f"/expenses/claims/{claim['id']}/reject", token, {"rejection_reason": ""})
    assert response.status_code == 422

    rejected = api_request("POST", f"/expenses/claims/{claim['id']}/reject", token,
                           {"rejection_reason": "Missing details"}).json()
    assert rejected["status"] == "rejected"
    assert rejected["rejection_reason"] == "Missing details"

    response = api_request("DELETE", f"/expenses/claims/{claim['id']}", token)
    assert response.json()["message"] == "Expense claim deleted successfully"
    assert api_request("GET", f"/expenses/claims/{claim['id']}", token).status_code == 404


def test_cancel(token, employee, categories):
    claim = create_claim(token, employee["id"], [item(categories["Mileage"], 20)])
    cancelled = api_request("POST", f"/expenses/claims/{claim['id']}/cancel", token).json()
    assert cancelled["status"] == "cancelled"

    response = api_request("POST", f"/expenses/claims/{claim['id']}/cancel", token)
    assert response.status_code == 400


def test_list_filters(token, employee, categories):
    mileage = create_claim(token, employee["id"], [item(categories["Mileage"], 20)], title="Mileage March")
    meals = create_claim(token, employee["id"], [item(categories["Meals"], 30, has_receipt=True)],
                         title="Team lunch")

    page = api_request("GET", "/expenses/claims", token, params={"categoryId": categories["Meals"]["id"]}).json()
    assert [c["id"] for c in page["data"]] == [meals["id"]]

    page = api_request("GET", "/expenses/claims", token, params={"search": "march"}).json()
    assert [c["id"] for c in page["data"]] == [mileage["id"]]

    page = api_request("GET", "/expenses/claims", token, params={"minAmount": 25}).json()
    assert [c["id"] for c in page["data"]] == [meals["id"]]


def test_statistics(token, employee, categories):
    first = create_claim(token, employee["id"], [item(categories["Mileage"], 20)])
    create_claim(token, employee["id"], [item(categories["Meals"], 40, has_receipt=True)])
    api_request("POST", f"/expenses/claims/{first['id']}/submit", token)

    stats = api_request("GET", "/expenses/statistics", token).json()
    assert stats["totalClaims"] == 2
    assert stats["totalAmount"] == 60.0
    assert stats["pendingAmount"] == 20.0
    assert stats["averageAmount"] == 30.0
    assert stats["byStatus"] == {"submitted": 1, "draft": 1}
    assert [c["category"] for c in stats["byCategory"]] == ["Meals", "Mileage"]
    assert stats["byEmployee"][0]["employeeName"] == "Maria Silva"
    assert stats["byMonth"] == [{"month": "2025-04", "count": 2, "amount": 60.0}]


def test_categories_crud(token):
    response = api_request("POST", "/expenses/categories", token, {"name": "Training", "max_amount": 500})
    assert response.status_code == 201
    category = response.json()
    assert category["requires_receipt"] is True

    response = api_request("GET", "/expenses/categories", token, params={"activeOnly": "true"})
    assert "Training" in [c["name"] for c in response.json()]

    response = api_request("DELETE", f"/expenses/categories/{category['id']}", token)
    assert response.json()["message"] == "Expense category deleted successfully"
    assert api_request("GET", f"/expenses/categories/{category['id']}", token).status_code == 404


def test_claim_numbers_follow_expense_year(token, employee):
    claim = create_claim(token, employee["id"], expense_date=date(2024, 12, 30).isoformat())
    assert claim["claim_number"] == "EXP-2024-000001"
