"""
Tests for the HTTP API.
"""
from decimal import Decimal

from tripledger.core.security import create_member_token


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_requests_without_token_are_rejected(client):
    response = client.get("/api/trips")
    assert response.status_code == 401


def test_token_for_unknown_member_is_rejected(client, group):
    token = create_member_token(4242, group.id)
    response = client.get("/api/trips", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_trip_lifecycle(client, auth_headers):
    response = client.post("/api/trips", headers=auth_headers, json={
        "name": "Azores", "start_date": "2026-12-31", "end_date": "2027-01-02",
    })
    assert response.status_code == 201
    trip = response.json()
    assert [day["date"] for day in trip["days"]] == ["2026-12-31", "2027-01-01", "2027-01-02"]

    response = client.get(f"/api/trips/{trip['id']}/days", headers=auth_headers)
    assert [day["day_number"] for day in response.json()] == [1, 2, 3]

    response = client.get("/api/trips", headers=auth_headers)
    assert [t["name"] for t in response.json()] == ["Azores"]

    response = client.delete(f"/api/trips/{trip['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert client.get(f"/api/trips/{trip['id']}", headers=auth_headers).status_code == 404


def test_invalid_trip_range(client, auth_headers):
    response = client.post("/api/trips", headers=auth_headers, json={
        "name": "Backwards", "start_date": "2026-05-04", "end_date": "2026-05-01",
    })
    assert response.status_code == 400
    assert "before start date" in response.json()["error"]


def test_schedule_change_conflict(client, auth_headers, trip, members):
    client.post("/api/expenses", headers=auth_headers, json={
        "trip_id": trip.id,
        "day_id": trip.days[0].id,
        "payer_id": members[0].id,
        "description": "Pastel de nata",
        "amount": "6",
        "participants": [{"participant_id": members[0].id}],
    })

    impact = client.get(f"/api/trips/{trip.id}/schedule-impact", headers=auth_headers).json()
    assert impact == {"days": 3, "events": 0, "expenses": 1, "has_content": True}

    response = client.put(f"/api/trips/{trip.id}", headers=auth_headers, json={"end_date": "2026-05-02"})
    assert response.status_code == 409
    assert response.json()["details"]["expenses"] == 1

    response = client.put(f"/api/trips/{trip.id}", headers=auth_headers, json={
        "end_date": "2026-05-02", "confirm_schedule_reset": True,
    })
    assert response.status_code == 200
    assert len(response.json()["days"]) == 2


def test_expense_crud(client, auth_headers, trip, members):
    ana, ben, _ = members
    response = client.post("/api/expenses", headers=auth_headers, json={
        "trip_id": trip.id,
        "payer_id": ana.id,
        "description": "Museum tickets",
        "amount": "48.00",
        "split_type": "manual",
        "participants": [
            {"participant_id": ana.id, "split_percentage": "50"},
            {"participant_id": ben.id, "split_percentage": "25"},
            {"external_name": "Dana", "split_percentage": "25"},
        ],
    })
    assert response.status_code == 201
    expense = response.json()
    assert expense["payer_name"] == "Ana"
    assert [row["participant_name"] for row in expense["participants"]] == ["Ana", "Ben", None]
    assert Decimal(expense["participants"][2]["amount_owed"]) == Decimal("12")

    response = client.put(f"/api/expenses/{expense['id']}", headers=auth_headers, json={"description": "Museum"})
    assert response.json()["description"] == "Museum"

    response = client.get(f"/api/expenses?trip_id={trip.id}", headers=auth_headers)
    assert [e["id"] for e in response.json()] == [expense["id"]]

    response = client.get("/api/external-participants", headers=auth_headers)
    assert [p["name"] for p in response.json()] == ["Dana"]

    assert client.delete(f"/api/expenses/{expense['id']}", headers=auth_headers).status_code == 200
    response = client.get(f"/api/expenses/{expense['id']}", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "Expense not found"


def test_invalid_split_is_reported(client, auth_headers, trip, members):
    response = client.post("/api/expenses", headers=auth_headers, json={
        "trip_id": trip.id,
        "payer_id": members[0].id,
        "description": "Boat",
        "amount": "100",
        "split_type": "manual",
        "participants": [
            {"participant_id": members[0].id, "split_percentage": "50"},
            {"participant_id": members[1].id, "split_percentage": "50.02"},
        ],
    })
    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "Split percentages must sum to 100% (got 100.02%)"
    assert body["details"][0]["code"] == "percentage_sum"


def test_sub_cent_amounts_are_rejected(client, auth_headers, trip, members):
    payload = {
        "trip_id": trip.id,
        "payer_id": members[0].id,
        "description": "Gum",
        "amount": "0.004",
        "participants": [{"participant_id": members[0].id}, {"participant_id": members[1].id}],
    }
    response = client.post("/api/expenses", headers=auth_headers, json=payload)
    assert response.status_code == 422

    payload.update(amount="10", split_type="manual", participants=None, line_items=[
        {"description": "Gum", "amount": "9.999", "participants": [{"participant_id": members[0].id}]},
    ])
    response = client.post("/api/expenses", headers=auth_headers, json=payload)
    assert response.status_code == 422
    assert client.get("/api/expenses", headers=auth_headers).json() == []


def test_personal_summary_lists_trips_without_expenses(client, auth_headers, trip):
    personal = client.get("/api/expenses/personal-summary", headers=auth_headers).json()
    assert [t["trip_id"] for t in personal["trip_breakdowns"]] == [trip.id]
    assert Decimal(personal["trip_breakdowns"][0]["total_expenses"]) == Decimal("0")


def test_other_groups_trip_is_not_found(client, db, trip, members, other_group_member):
    token = create_member_token(other_group_member.id, other_group_member.group_id)
    response = client.get(f"/api/trips/{trip.id}", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 404


def test_balance_summaries(client, auth_headers, trip, members):
    ana, ben, chloe = members
    client.post("/api/expenses", headers=auth_headers, json={
        "trip_id": trip.id,
        "payer_id": ana.id,
        "description": "Groceries",
        "amount": "60",
        "participants": [{"participant_id": m.id} for m in members],
    })
    client.post("/api/expenses", headers=auth_headers, json={
        "trip_id": trip.id,
        "payer_id": ben.id,
        "description": "Fuel",
        "amount": "30",
        "participants": [{"participant_id": ana.id}, {"participant_id": ben.id}],
    })

    personal = client.get("/api/expenses/personal-summary", headers=auth_headers).json()
    assert Decimal(personal["total_owed_to_you"]) == Decimal("40")
    assert Decimal(personal["total_you_owe"]) == Decimal("15")
    assert Decimal(personal["net_balance"]) == Decimal("25")
    assert personal["warnings"] == []

    summary = client.get(f"/api/expenses/summary?trip_id={trip.id}", headers=auth_headers).json()
    assert Decimal(summary["total_expenses"]) == Decimal("90")
    transfers = {(t["from_party"]["name"], t["to_party"]["name"]): Decimal(t["amount"]) for t in summary["transfers"]}
    assert transfers == {("Ben", "Ana"): Decimal("5.00"), ("Chloe", "Ana"): Decimal("20.00")}

    response = client.get("/api/expenses/summary?trip_id=9999", headers=auth_headers)
    assert response.status_code == 404


def test_register_external_participant(client, auth_headers):
    first = client.post("/api/external-participants", headers=auth_headers, json={"name": " Eli "})
    second = client.post("/api/external-participants", headers=auth_headers, json={"name": "Eli"})
    assert first.status_code == 200
    assert first.json()["id"] == second.json()["id"]
    assert first.json()["name"] == "Eli"

    blank = client.post("/api/external-participants", headers=auth_headers, json={"name": "   "})
    assert blank.status_code == 422
