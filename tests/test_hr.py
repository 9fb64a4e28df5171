"""
Onboarding, performance and shift tests
"""

from conftest import api_request


# ============================================================================
# Onboarding
# ============================================================================

def test_onboarding_process(token, employee):
    response = api_request("POST", "/onboarding/processes", token, {
        "employee_id": employee["id"],
        "start_date": "2024-02-01",
    })
    assert response.status_code == 201
    process = response.json()
    assert process["status"] == "not_started"
    assert process["employee_name"] == "Maria Silva"

    processes = api_request("GET", "/onboarding/processes", token).json()
    assert [p["id"] for p in processes] == [process["id"]]


def test_onboarding_requires_existing_employee(token):
    response = api_request("POST", "/onboarding/processes", token, {"employee_id": 42, "start_date": "2024-02-01"})
    assert response.status_code == 404
    assert response.json()["detail"] == "Employee not found"


def test_offboarding_process(token, employee):
    response = api_request("POST", "/onboarding/offboarding", token, {
        "employee_id": employee["id"],
        "termination_date": "2024-12-31",
        "termination_type": "resignation",
    })
    assert response.status_code == 201
    assert response.json()["status"] == "initiated"

    response = api_request("POST", "/onboarding/offboarding", token, {
        "employee_id": employee["id"],
        "termination_date": "2024-12-31",
        "termination_type": "vanished",
    })
    assert response.status_code == 422

    processes = api_request("GET", "/onboarding/offboarding", token).json()
    assert len(processes) == 1


# ============================================================================
# Performance
# ============================================================================

def test_reviews(token, employee):
    manager = api_request("POST", "/employees/", token, {"full_name": "Paulo Reis"}).json()

    response = api_request("POST", "/performance/reviews", token, {
        "employee_id": employee["id"],
        "reviewer_id": manager["id"],
        "review_period_start": "2024-01-01",
        "review_period_end": "2024-12-31",
        "review_type": "annual",
    })
    assert response.status_code == 201
    assert response.json()["status"] == "draft"

    response = api_request("POST", "/performance/reviews", token, {
        "employee_id": employee["id"],
        "reviewer_id": 999,
        "review_period_start": "2024-01-01",
        "review_period_end": "2024-12-31",
        "review_type": "annual",
    })
    assert response.status_code == 404
    assert response.json()["detail"] == "Reviewer not found"

    reviews = api_request("GET", "/performance/reviews", token, params={"employeeId": employee["id"]}).json()
    assert len(reviews) == 1
    assert api_request("GET", "/performance/reviews", token, params={"employeeId": manager["id"]}).json() == []


def test_review_period_must_be_ordered(token, employee):
    response = api_request("POST", "/performance/reviews", token, {
        "employee_id": employee["id"],
        "review_period_start": "2024-12-31",
        "review_period_end": "2024-01-01",
        "review_type": "annual",
    })
    assert response.status_code == 422


def test_goals(token, employee):
    for title, target in [("Close Q2 books", "2024-06-30"), ("Close Q1 books", "2024-03-31")]:
        response = api_request("POST", "/performance/goals", token, {
            "employee_id": employee["id"],
            "title": title,
            "start_date": "2024-01-01",
            "target_date": target,
        })
        assert response.status_code == 201
        assert response.json()["status"] == "active"

    goals = api_request("GET", "/performance/goals", token).json()
    assert [g["title"] for g in goals] == ["Close Q1 books", "Close Q2 books"]

    response = api_request("POST", "/performance/goals", token, {
        "employee_id": employee["id"],
        "title": "Backwards",
        "start_date": "2024-06-01",
        "target_date": "2024-01-01",
    })
    assert response.status_code == 422


# ============================================================================
# Shifts
# ============================================================================

def create_shift(token, employee_id, shift_date, start="09:00:00", end="17:00:00"):
    return api_request("POST", "/shifts/", token, {
        "employee_id": employee_id,
        "shift_date": shift_date,
        "start_time": start,
        "end_time": end,
    })


def test_shift_lifecycle(token, employee):
    response = create_shift(token, employee["id"], "2024-03-04")
    assert response.status_code == 201
    shift = response.json()
    assert shift["status"] == "scheduled"
    assert shift["employee_name"] == "Maria Silva"

    response = api_request("PUT", f"/shifts/{shift['id']}", token, {"status": "completed", "notes": None})
    assert response.status_code == 200
    assert response.json()["status"] == "completed"

    response = api_request("DELETE", f"/shifts/{shift['id']}", token)
    assert response.json()["message"] == "Deleted successfully"
    assert api_request("PUT", f"/shifts/{shift['id']}", token, {"notes": "late"}).status_code == 404


def test_shift_times_must_be_ordered(token, employee):
    response = create_shift(token, employee["id"], "2024-03-04", start="17:00:00", end="09:00:00")
    assert response.status_code == 400
    assert response.json()["detail"] == "Shift end time must be after start time"

    shift = create_shift(token, employee["id"], "2024-03-04").json()
    response = api_request("PUT", f"/shifts/{shift['id']}", token, {"end_time": "08:00:00"})
    assert response.status_code == 400


def test_shift_update_ignores_nulls(token, employee):
    shift = create_shift(token, employee["id"], "2024-03-04").json()
    response = api_request("PUT", f"/shifts/{shift['id']}", token, {"start_time": None})
    assert response.status_code == 400
    assert response.json()["detail"] == "No fields to update"


def test_shift_date_filters(token, employee):
    for day in ("2024-03-01", "2024-03-10", "2024-03-20"):
        create_shift(token, employee["id"], day)

    shifts = api_request("GET", "/shifts/", token, params={"startDate": "2024-03-05", "endDate": "2024-03-31"}).json()
    assert [s["shift_date"] for s in shifts] == ["2024-03-20", "2024-03-10"]
