"""
Calendar event tests
"""

import pytest

from conftest import api_request, token_for
from app.models import Role, User
from app.utils.permission_seed import ADMIN_ROLE_NAME
from app.utils.security import get_password_hash


@pytest.fixture
def colleague(main_db, tenant):
    role = main_db.query(Role).filter(Role.name == ADMIN_ROLE_NAME).first()
    user = User(
        email="colleague@acme.com",
        full_name="Carl Colleague",
        hashed_password=get_password_hash("Colleague123!"),
        tenant_id=tenant.id,
        role_id=role.id,
        is_active=True,
    )
    main_db.add(user)
    main_db.commit()
    main_db.refresh(user)
    return user


@pytest.fixture
def colleague_token(colleague):
    return token_for(colleague)


def create_event(token, title="Sprint review", **extra):
    payload = {
        "title": title,
        "start_date": "2025-06-02T10:00:00",
        "end_date": "2025-06-02T11:00:00",
    }
    payload.update(extra)
    response = api_request("POST", "/calendar/", token, payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_creator_is_organizer(token, admin_user):
    event = create_event(token)
    assert event["status"] == "scheduled"
    assert event["visibility"] == "private"
    assert len(event["participants"]) == 1

    organizer = event["participants"][0]
    assert organizer["participant_id"] == admin_user.id
    assert organizer["is_organizer"] is True
    assert organizer["response_status"] == "accepted"


def test_end_before_start_is_rejected(token):
    response = api_request("POST", "/calendar/", token, {
        "title": "Backwards",
        "start_date": "2025-06-02T10:00:00",
        "end_date": "2025-06-02T09:00:00",
    })
    assert response.status_code == 422

    event = create_event(token)
    response = api_request("PUT", f"/calendar/{event['id']}", token, {"end_date": "2025-06-01T09:00:00"})
    assert response.status_code == 400
    assert response.json()["detail"] == "End date must be after start date"


def test_null_dates_are_rejected(token):
    event = create_event(token)
    for field in ("start_date", "end_date", "title"):
        response = api_request("PUT", f"/calendar/{event['id']}", token, {field: None})
        assert response.status_code == 400
        assert response.json()["detail"] == f"Field '{field}' cannot be null"

    response = api_request("PUT", f"/calendar/{event['id']}", token, {"location": None})
    assert response.status_code == 200


def test_external_participant_needs_email(token):
    response = api_request("POST", "/calendar/", token, {
        "title": "Client call",
        "start_date": "2025-06-02T10:00:00",
        "end_date": "2025-06-02T11:00:00",
        "participants": [{"participant_type": "external", "external_name": "Bob"}],
    })
    assert response.status_code == 422


def test_visibility(token, colleague_token, colleague):
    private = create_event(token, "Private focus time")
    company = create_event(token, "All hands", visibility="company")
    invited = create_event(token, "1:1", participants=[
        {"participant_type": "user", "participant_id": colleague.id},
        {"participant_type": "external", "external_email": "guest@example.com", "external_name": "Guest"},
    ])

    seen = {e["id"] for e in api_request("GET", "/calendar/", colleague_token).json()}
    assert seen == {company["id"], invited["id"]}

    response = api_request("GET", f"/calendar/{private['id']}", colleague_token)
    assert response.status_code == 404

    assert len(api_request("GET", "/calendar/", token).json()) == 3


def test_only_creator_can_change(token, colleague_token):
    event = create_event(token, visibility="public")

    response = api_request("PUT", f"/calendar/{event['id']}", colleague_token, {"title": "Hijacked"})
    assert response.status_code == 403
    assert response.json()["detail"] == "Only the event creator can update this event"

    response = api_request("DELETE", f"/calendar/{event['id']}", colleague_token)
    assert response.status_code == 403

    response = api_request("PUT", f"/calendar/{event['id']}", token, {"title": "Sprint demo", "location": "Room 2"})
    assert response.json()["title"] == "Sprint demo"

    response = api_request("DELETE", f"/calendar/{event['id']}", token)
    assert response.json()["message"] == "Event deleted successfully"
    assert api_request("GET", f"/calendar/{event['id']}", token).status_code == 404


def test_respond_to_invitation(token, colleague_token, colleague):
    event = create_event(token, participants=[{"participant_type": "user", "participant_id": colleague.id}])

    response = api_request("POST", f"/calendar/{event['id']}/respond", colleague_token,
                           {"response_status": "tentative"})
    assert response.status_code == 200
    invitee = next(p for p in response.json()["participants"] if p["participant_id"] == colleague.id)
    assert invitee["response_status"] == "tentative"
    assert invitee["responded_at"] is not None

    response = api_request("POST", f"/calendar/{event['id']}/respond", colleague_token,
                           {"response_status": "maybe"})
    assert response.status_code == 422


def test_respond_when_not_invited(token, colleague_token):
    event = create_event(token, visibility="company")
    response = api_request("POST", f"/calendar/{event['id']}/respond", colleague_token,
                           {"response_status": "accepted"})
    assert response.status_code == 404
    assert response.json()["detail"] == "You are not invited to this event"


def test_replacing_participants_keeps_organizer(token, admin_user, colleague):
    event = create_event(token, participants=[{"participant_type": "user", "participant_id": colleague.id}])

    response = api_request("PUT", f"/calendar/{event['id']}", token, {
        "participants": [{"participant_type": "external", "external_email": "vendor@example.com"}],
    })
    participants = response.json()["participants"]
    assert [p["participant_type"] for p in participants] == ["user", "external"]
    assert participants[0]["participant_id"] == admin_user.id
    assert participants[0]["is_organizer"] is True


def test_list_range_and_filters(token):
    create_event(token, "June", event_type="meeting")
    create_event(token, "July deadline", event_type="deadline",
                 start_date="2025-07-15T00:00:00", end_date="2025-07-15T23:59:00")

    june = api_request("GET", "/calendar/", token, params={"startDate": "2025-06-01", "endDate": "2025-06-30"}).json()
    assert [e["title"] for e in june] == ["June"]

    deadlines = api_request("GET", "/calendar/", token, params={"eventType": "deadline"}).json()
    assert [e["title"] for e in deadlines] == ["July deadline"]
