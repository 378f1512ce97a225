"""
Tests for expense endpoints.
"""
from decimal import Decimal
import pytest
from planner.schemas.group import MemberCreate
from planner.services import group_service


@pytest.fixture
def trip(client, login, group_with_members):
    group = group_with_members[0]
    login(group.id, "Alice")
    response = client.post("/api/trips", json={
        "name": "Ring Road",
        "destination": "Iceland",
        "start_date": "2025-06-01",
        "end_date": "2025-06-03"
    })
    assert response.status_code == 201
    return response.json()


def split(*pairs):
    return [{"participant_id": member_id, "split_percentage": pct} for member_id, pct in pairs]


def test_create_trip_creates_days(trip):
    assert [d["date"] for d in trip["days"]] == ["2025-06-01", "2025-06-02", "2025-06-03"]


def test_create_expense(client, trip, group_with_members):
    """Test expense creation with an equal three-way split."""
    _, alice, bob, carol = group_with_members
    response = client.post("/api/expenses", json={
        "description": "Dinner",
        "amount": "90.00",
        "owner_id": alice.id,
        "trip_id": trip["id"],
        "day_id": trip["days"][0]["id"],
        "participants": split((alice.id, "33.33"), (bob.id, "33.33"), (carol.id, "33.34"))
    })
    assert response.status_code == 201
    data = response.json()
    assert data["owner_name"] == "Alice"
    assert [Decimal(p["amount_owed"]) for p in data["participants"]] == [Decimal("30.00")] * 3

    summary = client.get("/api/expenses/summary", params={"tripId": trip["id"]}).json()
    balances = {b["member_name"]: b for b in summary["balances"]}
    assert Decimal(balances["Alice"]["net_balance"]) == Decimal("60")
    assert Decimal(balances["Bob"]["total_owing"]) == Decimal("30")
    assert sum(Decimal(b["net_balance"]) for b in summary["balances"]) == 0
    assert Decimal(summary["total_expenses"]) == Decimal("90")
    assert summary["trip"]["name"] == "Ring Road"
    assert {(s["from_member_name"], s["to_member_name"]) for s in summary["settlements"]} == {
        ("Bob", "Alice"), ("Carol", "Alice")
    }


def test_create_expense_rejects_bad_percentages(client, trip, group_with_members):
    _, alice, bob, _ = group_with_members
    response = client.post("/api/expenses", json={
        "description": "Fuel",
        "amount": "50",
        "owner_id": alice.id,
        "trip_id": trip["id"],
        "participants": split((alice.id, "50"), (bob.id, "40"))
    })
    assert response.status_code == 400
    assert response.json()["details"]["code"] == "VALIDATION_ERROR"
    assert client.get("/api/expenses").json() == []


def test_create_expense_rejects_outsiders(client, trip, group_with_members, db):
    from planner.schemas.group import GroupCreate
    _, alice, _, _ = group_with_members
    _, stranger = group_service.create_group(db, GroupCreate(name="Other", access_code="code-1234", traveler_name="Eve"))

    response = client.post("/api/expenses", json={
        "description": "Fuel",
        "amount": "50",
        "owner_id": alice.id,
        "trip_id": trip["id"],
        "participants": split((stranger.id, "100"))
    })
    assert response.status_code == 400

    response = client.post("/api/expenses", json={
        "description": "Fuel",
        "amount": "50",
        "owner_id": alice.id,
        "trip_id": 9999,
        "participants": split((alice.id, "100"))
    })
    assert response.status_code == 404


def test_participant_needs_exactly_one_identity(client, trip, group_with_members):
    _, alice, bob, _ = group_with_members
    response = client.post("/api/expenses", json={
        "description": "Taxi",
        "amount": "20",
        "owner_id": alice.id,
        "trip_id": trip["id"],
        "participants": [{"participant_id": bob.id, "external_name": "Sam", "split_percentage": "100"}]
    })
    assert response.status_code == 422


def test_line_items_and_external_participants(client, trip, group_with_members):
    _, alice, bob, _ = group_with_members
    response = client.post("/api/expenses", json={
        "description": "Groceries",
        "amount": "30",
        "owner_id": alice.id,
        "trip_id": trip["id"],
        "line_items": [
            {"description": "Bread", "amount": "5", "quantity": 2, "participants": split((bob.id, "100"))},
            {"description": "Cheese", "amount": "20", "participants": [
                {"participant_id": bob.id, "split_percentage": "50"},
                {"external_name": " Sam ", "split_percentage": "50"}
            ]}
        ]
    })
    assert response.status_code == 201
    items = response.json()["line_items"]
    assert [Decimal(p["amount_owed"]) for p in items[0]["participants"]] == [Decimal("10.00")]
    assert items[1]["participants"][1]["external_name"] == "Sam"
    assert items[1]["participants"][1]["external_participant_id"] is not None

    registry = client.get("/api/external-participants").json()
    assert [p["name"] for p in registry] == ["Sam"]

    summary = client.get("/api/expenses/summary").json()
    bob_balance = next(b for b in summary["balances"] if b["member_name"] == "Bob")
    assert Decimal(bob_balance["total_owing"]) == Decimal("20")


def test_update_amount_recomputes_shares(client, trip, group_with_members):
    _, alice, bob, _ = group_with_members
    created = client.post("/api/expenses", json={
        "description": "Hotel",
        "amount": "100",
        "owner_id": alice.id,
        "trip_id": trip["id"],
        "participants": split((alice.id, "50"), (bob.id, "50"))
    }).json()

    response = client.put(f"/api/expenses/{created['id']}", json={"amount": "120"})
    assert response.status_code == 200
    assert [Decimal(p["amount_owed"]) for p in response.json()["participants"]] == [Decimal("60.00")] * 2

    response = client.put(f"/api/expenses/{created['id']}", json={"participants": split((bob.id, "100"))})
    participants = response.json()["participants"]
    assert [(p["participant_id"], Decimal(p["amount_owed"])) for p in participants] == [(bob.id, Decimal("120.00"))]


@pytest.mark.parametrize("field", ["description", "amount", "owner_id"])
def test_update_rejects_null_required_fields(client, trip, group_with_members, field):
    _, alice, bob, _ = group_with_members
    created = client.post("/api/expenses", json={
        "description": "Hotel",
        "amount": "100",
        "owner_id": alice.id,
        "trip_id": trip["id"],
        "participants": split((alice.id, "50"), (bob.id, "50"))
    }).json()

    response = client.put(f"/api/expenses/{created['id']}", json={field: None})
    assert response.status_code == 400
    assert response.json()["details"]["code"] == "VALIDATION_ERROR"

    unchanged = client.get(f"/api/expenses/{created['id']}").json()
    assert unchanged["description"] == "Hotel"
    assert Decimal(unchanged["amount"]) == Decimal("100")
    assert unchanged["owner_id"] == alice.id


def test_whitespace_external_name_is_rejected(client, trip, group_with_members):
    alice = group_with_members[1]
    response = client.post("/api/expenses", json={
        "description": "Taxi",
        "amount": "40",
        "owner_id": alice.id,
        "trip_id": trip["id"],
        "participants": [
            {"participant_id": alice.id, "split_percentage": "50"},
            {"external_name": "   ", "split_percentage": "50"}
        ]
    })
    assert response.status_code == 422


def test_delete_expense(client, trip, group_with_members):
    _, alice, bob, _ = group_with_members
    created = client.post("/api/expenses", json={
        "description": "Museum",
        "amount": "40",
        "owner_id": alice.id,
        "trip_id": trip["id"],
        "participants": split((bob.id, "100"))
    }).json()

    assert client.delete(f"/api/expenses/{created['id']}").status_code == 204
    assert client.get(f"/api/expenses/{created['id']}").status_code == 404


def test_read_only_member_cannot_create(client, login, trip, group_with_members, db):
    group, alice, _, _ = group_with_members
    group_service.add_member(db, group.id, MemberCreate(traveler_name="Reader"))
    login(group.id, "Reader")

    assert client.get("/api/expenses", params={"tripId": trip["id"]}).status_code == 200
    response = client.post("/api/expenses", json={
        "description": "Snacks",
        "amount": "10",
        "owner_id": alice.id,
        "trip_id": trip["id"],
        "participants": split((alice.id, "100"))
    })
    assert response.status_code == 403
    assert response.json()["details"]["code"] == "PERMISSION_DENIED"


def test_personal_summary(client, login, trip, group_with_members):
    group, alice, bob, carol = group_with_members
    client.post("/api/expenses", json={
        "description": "Dinner",
        "amount": "90",
        "owner_id": alice.id,
        "trip_id": trip["id"],
        "participants": split((alice.id, "33.33"), (bob.id, "33.33"), (carol.id, "33.34"))
    })

    login(group.id, "Bob")
    summary = client.get("/api/expenses/personal-summary").json()
    assert summary["current_member_name"] == "Bob"
    assert Decimal(summary["total_you_owe"]) == Decimal("30")
    assert summary["people_you_owe"][0]["member_name"] == "Alice"
    assert summary["trip_breakdowns"][0]["trip_name"] == "Ring Road"
