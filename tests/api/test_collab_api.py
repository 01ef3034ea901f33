"""
协作服务 API 测试
"""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from services.collab_service.main import create_app
from shared.auth.tokens import create_access_token
from shared.database.connection import DatabaseManager
from shared.realtime.change_feed import InMemoryChangeFeed
from tests.conftest import ALICE, BOB, CAROL, PROFILES

pytestmark = pytest.mark.api

API = "/api/v1"


def auth(user_id):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def client():
    app = create_app(db=DatabaseManager("sqlite+aiosqlite:///:memory:"), change_feed=InMemoryChangeFeed())
    with TestClient(app) as test_client:
        for profile in PROFILES:
            response = test_client.put(f"{API}/profile", headers=auth(profile["id"]),
                                       json={"email": profile["email"], "full_name": profile["full_name"]})
            assert response.status_code == 200
        yield test_client


@pytest.fixture
def group_id(client):
    """alice 创建的小组，bob 已加入"""
    response = client.post(f"{API}/groups", headers=auth(ALICE),
                           json={"name": "Goa trip", "total_budget": 90000})
    assert response.status_code == 201
    gid = response.json()["id"]

    invitation = client.post(f"{API}/groups/{gid}/invitations", headers=auth(ALICE),
                             json={"invitee_email": "bob@example.com"})
    assert invitation.status_code == 201
    accepted = client.post(f"{API}/invitations/{invitation.json()['id']}/accept", headers=auth(BOB))
    assert accepted.status_code == 200
    return gid


def test_health(client):
    response = client.get(f"{API}/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"


def test_missing_token_is_401(client):
    response = client.get(f"{API}/groups")

    assert response.status_code == 401
    body = response.json()
    assert body["status"] == "error"
    assert body["error_code"] == "NOT_AUTHORIZED"
    assert body["message"] == "Please sign in"


def test_profile_display_name(client):
    response = client.get(f"{API}/profile", headers=auth(CAROL))
    assert response.json()["display_name"] == "carol"


def test_group_membership_flow(client, group_id):
    groups = client.get(f"{API}/groups", headers=auth(BOB)).json()
    assert [(g["id"], g["user_role"], g["member_count"]) for g in groups] == [(group_id, "member", 2)]

    members = client.get(f"{API}/groups/{group_id}/members", headers=auth(BOB)).json()
    assert [m["profile"]["display_name"] for m in members] == ["Alice Sharma", "Bob Mehta"]

    assert client.get(f"{API}/invitations", headers=auth(BOB)).json() == []


def test_non_member_is_403(client, group_id):
    response = client.get(f"{API}/groups/{group_id}/messages", headers=auth(CAROL))

    assert response.status_code == 403
    assert response.json()["message"] == "You are not a member of this group"


def test_owner_removal_is_403(client, group_id):
    members = client.get(f"{API}/groups/{group_id}/members", headers=auth(ALICE)).json()
    owner = next(m for m in members if m["role"] == "owner")

    response = client.delete(f"{API}/groups/{group_id}/members/{owner['id']}", headers=auth(ALICE))

    assert response.status_code == 403
    assert response.json()["message"] == "The group owner cannot be removed"


def test_duplicate_vote_is_409(client, group_id):
    proposed = client.post(f"{API}/groups/{group_id}/votes", headers=auth(ALICE),
                           json={"destination_name": "Paris", "cost": 80000})
    assert proposed.status_code == 201

    duplicate = client.post(f"{API}/groups/{group_id}/votes/Paris", headers=auth(ALICE))
    assert duplicate.status_code == 409
    assert duplicate.json()["message"] == "You've already voted for this destination"

    second = client.post(f"{API}/groups/{group_id}/votes/Paris", headers=auth(BOB))
    assert second.status_code == 201

    tallies = client.get(f"{API}/groups/{group_id}/votes", headers=auth(BOB)).json()
    assert [(t["destination_name"], t["count"], t["percentage"], t["user_voted"]) for t in tallies] == [
        ("Paris", 2, 100.0, True),
    ]


def test_budget_split_and_payment(client, group_id):
    summary = client.get(f"{API}/groups/{group_id}/budget", headers=auth(BOB)).json()
    splits = {s["user_id"]: s for s in summary["splits"]}
    assert {s["amount"] for s in splits.values()} == {45000}

    paid = client.post(f"{API}/groups/{group_id}/budget/{splits[BOB]['id']}/payment",
                       headers=auth(BOB), json={"paid_amount": 15000})
    assert paid.status_code == 200

    forbidden = client.post(f"{API}/groups/{group_id}/budget/{splits[ALICE]['id']}/payment",
                            headers=auth(BOB), json={})
    assert forbidden.status_code == 403

    reduced = client.post(f"{API}/groups/{group_id}/budget/{splits[BOB]['id']}/payment",
                          headers=auth(BOB), json={"paid_amount": 100})
    assert reduced.status_code == 422

    summary = client.get(f"{API}/groups/{group_id}/budget", headers=auth(ALICE)).json()
    assert summary["total_paid"] == 15000
    assert summary["total_remaining"] == 75000


def test_itinerary_and_transport(client, group_id):
    for title, start in (("Dinner", "20:00:00"), ("Beach", "09:00:00")):
        response = client.post(f"{API}/groups/{group_id}/itinerary", headers=auth(BOB),
                               json={"day_date": "2024-12-21", "title": title, "start_time": start})
        assert response.status_code == 201

    days = client.get(f"{API}/groups/{group_id}/itinerary", headers=auth(ALICE)).json()
    assert [i["title"] for i in days[0]["items"]] == ["Beach", "Dinner"]

    booking = client.post(f"{API}/groups/{group_id}/transport", headers=auth(ALICE), json={
        "transport_type": "cab", "from_location": "Airport", "to_location": "Calangute",
        "departure_date": "2024-12-20",
    })
    assert booking.status_code == 201
    assert 1000 <= booking.json()["estimated_price"] < 5000

    transport = client.get(f"{API}/groups/{group_id}/transport", headers=auth(BOB)).json()
    assert transport["total_estimated_cost"] == booking.json()["estimated_price"]


def test_expense_summary(client):
    response = client.post(f"{API}/expenses/summary", json={
        "budget": 21000,
        "duration_days": 7,
        "expenses": [
            {"id": "1", "category": "food", "amount": 1000, "description": "Thali", "spent_on": "2024-05-01"},
            {"id": "2", "category": "transport", "amount": 1000, "description": "Auto", "spent_on": "2024-05-01"},
        ],
    })

    body = response.json()
    assert body["daily_budget"] == 3000
    assert body["daily_average"] == 2000
    assert body["remaining"] == 19000


def test_saved_trips_and_reviews(client):
    saved = client.post(f"{API}/saved-trips", headers=auth(BOB), json={"destination_name": "Goa", "cost": 14000})
    assert saved.status_code == 201
    duplicate = client.post(f"{API}/saved-trips", headers=auth(BOB), json={"destination_name": "Goa"})
    assert duplicate.status_code == 409

    review = client.post(f"{API}/reviews", headers=auth(ALICE),
                         json={"destination_name": "Goa", "rating": 4, "review_text": "Lovely beaches"})
    assert review.status_code == 201

    listing = client.get(f"{API}/reviews", params={"destination": "Goa"}).json()
    assert listing["count"] == 1
    assert listing["reviews"][0]["author"] == "Alice Sharma"

    assert client.delete(f"{API}/reviews/{review.json()['id']}", headers=auth(BOB)).status_code == 403
    assert client.delete(f"{API}/reviews/{review.json()['id']}", headers=auth(ALICE)).status_code == 204


def test_message_stream(client, group_id):
    client.post(f"{API}/groups/{group_id}/messages", headers=auth(ALICE), json={"message": "Welcome!"})
    token = create_access_token(BOB)

    with client.websocket_connect(f"{API}/groups/{group_id}/messages/stream?token={token}") as websocket:
        snapshot = websocket.receive_json()
        assert snapshot["type"] == "snapshot"
        assert [r["message"] for r in snapshot["rows"]] == ["Welcome!"]

        websocket.send_json({"message": ""})
        error = websocket.receive_json()
        assert error["type"] == "error"

        websocket.send_json({"message": "Thanks!"})
        insert = websocket.receive_json()
        assert insert["type"] == "insert"
        assert insert["row"]["message"] == "Thanks!"
        assert insert["row"]["profile"]["display_name"] == "Bob Mehta"

    messages = client.get(f"{API}/groups/{group_id}/messages", headers=auth(ALICE)).json()
    assert [m["message"] for m in messages] == ["Welcome!", "Thanks!"]


def test_message_stream_rejects_non_members(client, group_id):
    token = create_access_token(CAROL)

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"{API}/groups/{group_id}/messages/stream?token={token}") as websocket:
            websocket.receive_json()
    assert exc_info.value.code == 4403


def test_message_stream_reports_bad_frames(client, group_id):
    token = create_access_token(BOB)

    with client.websocket_connect(f"{API}/groups/{group_id}/messages/stream?token={token}") as websocket:
        assert websocket.receive_json()["type"] == "snapshot"

        websocket.send_text("hello not json")
        error = websocket.receive_json()
        assert error == {"type": "error", "message": "Message must be valid JSON", "error_code": "VALIDATION_ERROR"}

        websocket.send_json({"message": "x" * 4001})
        error = websocket.receive_json()
        assert error["type"] == "error"
        assert error["message"] == "String should have at most 4000 characters"

        websocket.send_json({"message": "   "})
        assert websocket.receive_json()["message"] == "Message cannot be empty"

        websocket.send_json({"message": "Still here"})
        insert = websocket.receive_json()
        assert insert["type"] == "insert"
        assert insert["row"]["message"] == "Still here"


def test_message_stream_ends_when_member_is_removed(client, group_id):
    members = client.get(f"{API}/groups/{group_id}/members", headers=auth(ALICE)).json()
    bob = next(m for m in members if m["user_id"] == BOB)
    token = create_access_token(BOB)

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"{API}/groups/{group_id}/messages/stream?token={token}") as websocket:
            assert websocket.receive_json()["type"] == "snapshot"

            removed = client.delete(f"{API}/groups/{group_id}/members/{bob['id']}", headers=auth(ALICE))
            assert removed.status_code == 204
            sent = client.post(f"{API}/groups/{group_id}/messages", headers=auth(ALICE),
                               json={"message": "Hotel booked for Friday"})
            assert sent.status_code == 201

            event = websocket.receive_json()
            assert event["type"] == "error"
            assert event["error_code"] == "NOT_AUTHORIZED"
            websocket.receive_json()
    assert exc_info.value.code == 4403


def test_non_member_gets_403_for_unknown_rows(client, group_id):
    missing = "00000000-0000-0000-0000-000000000999"

    deleted = client.delete(f"{API}/groups/{group_id}/itinerary/{missing}", headers=auth(CAROL))
    paid = client.post(f"{API}/groups/{group_id}/budget/{missing}/payment", headers=auth(CAROL), json={})
    removed = client.delete(f"{API}/groups/{group_id}/members/{missing}", headers=auth(CAROL))

    assert [deleted.status_code, paid.status_code, removed.status_code] == [403, 403, 403]
