from __future__ import annotations

import logging

from conftest import add_block, add_booking, room_named, utc

from app.domain.models import Block, Booking


def booking_payload(prop, room=None, start="2024-01-10T15:00:00Z", end="2024-01-15T11:00:00Z", **extra):
    payload = {
        "property_id": prop.id,
        "room_id": room.id if room else None,
        "customer_name": "Kim Minji",
        "check_in": start,
        "check_out": end,
        "price": 450.0,
    }
    payload.update(extra)
    return payload


# ---------------------------------------------------------------------------
# properties / listings
# ---------------------------------------------------------------------------


def test_create_property_with_rooms(client):
    response = client.post(
        "/api/v1/properties",
        json={"name": "Hanok", "base_price": 200, "rooms": [{"name": "East"}, {"name": "West"}]},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Hanok"
    assert sorted(r["name"] for r in body["rooms"]) == ["East", "West"]

    listings = client.get("/api/v1/listings", params={"property_id": body["id"]}).json()
    assert [l["type"] for l in listings] == ["PROPERTY", "ROOM", "ROOM"]
    assert listings[0]["name"] == "Hanok (Entire Place)"
    assert listings[0]["room_id"] is None
    assert all(l["property_id"] == body["id"] for l in listings)


def test_add_room_and_missing_property(client, villa):
    response = client.post(f"/api/v1/properties/{villa.id}/rooms", json={"name": "Room C"})
    assert response.status_code == 201
    assert response.json()["property_id"] == villa.id

    assert client.get("/api/v1/properties/nope").status_code == 404


# ---------------------------------------------------------------------------
# bookings
# ---------------------------------------------------------------------------


def test_create_booking(client, db, villa):
    room_a = room_named(villa, "Room A")
    response = client.post("/api/v1/bookings", json=booking_payload(villa, room_a))

    assert response.status_code == 201
    body = response.json()
    assert body["room_id"] == room_a.id
    assert body["source"] == "DIRECT"
    assert body["status"] == "CONFIRMED"
    assert db.query(Booking).count() == 1


def test_other_room_can_be_booked_for_same_dates(client, villa):
    client.post("/api/v1/bookings", json=booking_payload(villa, room_named(villa, "Room A")))
    response = client.post("/api/v1/bookings", json=booking_payload(villa, room_named(villa, "Room B")))
    assert response.status_code == 201


def test_entire_property_rejected_when_room_is_booked(client, db, villa):
    room_a = room_named(villa, "Room A")
    first = client.post("/api/v1/bookings", json=booking_payload(villa, room_a)).json()

    response = client.post(
        "/api/v1/bookings",
        json=booking_payload(villa, start="2024-01-12T15:00:00Z", end="2024-01-14T11:00:00Z"),
    )

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["error"] == "CONFLICT"
    assert detail["conflict_type"] == "CHILD_BLOCKED"
    assert detail["conflicting_interval"]["source_id"] == first["id"]
    assert detail["conflicting_interval"]["room_id"] == room_a.id
    assert db.query(Booking).count() == 1


def test_room_rejected_when_property_is_blocked(client, db, villa):
    add_block(db, villa, utc(2024, 1, 1), utc(2024, 1, 31), reason="Renovation")

    response = client.post("/api/v1/bookings", json=booking_payload(villa, room_named(villa, "Room B")))

    assert response.status_code == 409
    assert response.json()["detail"]["conflict_type"] == "PARENT_BLOCKED"


def test_override_creates_conflicting_booking(client, db, villa):
    add_booking(db, villa, utc(2024, 1, 10), utc(2024, 1, 15))

    response = client.post("/api/v1/bookings", json=booking_payload(villa, override=True))

    assert response.status_code == 201
    assert db.query(Booking).count() == 2


def test_checkout_day_checkin_is_allowed(client, db, villa):
    add_booking(db, villa, utc(2024, 1, 5, 15), utc(2024, 1, 10, 15))

    response = client.post(
        "/api/v1/bookings",
        json=booking_payload(villa, start="2024-01-10T15:00:00Z", end="2024-01-12T11:00:00Z"),
    )
    assert response.status_code == 201


def test_cancelled_bookings_do_not_block(client, db, villa):
    add_booking(db, villa, utc(2024, 1, 10), utc(2024, 1, 15), status="CANCELLED")

    response = client.post("/api/v1/bookings", json=booking_payload(villa))
    assert response.status_code == 201


def test_booking_validation(client, villa, db):
    other = client.post("/api/v1/properties", json={"name": "Other", "rooms": [{"name": "X"}]}).json()
    foreign_room_id = other["rooms"][0]["id"]

    payload = booking_payload(villa)
    payload["room_id"] = foreign_room_id
    assert client.post("/api/v1/bookings", json=payload).status_code == 400

    payload = booking_payload(villa, start="2024-01-15T00:00:00Z", end="2024-01-15T00:00:00Z")
    assert client.post("/api/v1/bookings", json=payload).status_code == 400

    payload = booking_payload(villa)
    payload["property_id"] = "missing"
    assert client.post("/api/v1/bookings", json=payload).status_code == 404

    payload = booking_payload(villa, price=0)
    assert client.post("/api/v1/bookings", json=payload).status_code == 422


def test_list_bookings_and_blocks(client, db, villa):
    add_booking(db, villa, utc(2024, 1, 10), utc(2024, 1, 12), customer_name="Lee")
    add_block(db, villa, utc(2024, 1, 20), utc(2024, 1, 21), room=room_named(villa, "Room A"))

    body = client.get("/api/v1/bookings", params={"property_id": villa.id}).json()
    assert [b["customer_name"] for b in body["bookings"]] == ["Lee"]
    assert len(body["blocks"]) == 1

    everything = client.get("/api/v1/bookings").json()
    assert len(everything["bookings"]) == 1


# ---------------------------------------------------------------------------
# blocks
# ---------------------------------------------------------------------------


def test_create_and_delete_block(client, db, villa):
    room_a = room_named(villa, "Room A")
    response = client.post(
        "/api/v1/blocks",
        json={
            "property_id": villa.id,
            "room_id": room_a.id,
            "start_date": "2024-02-01T00:00:00Z",
            "end_date": "2024-02-03T00:00:00Z",
            "reason": "Deep cleaning",
        },
    )
    assert response.status_code == 201
    block_id = response.json()["id"]

    assert client.delete(f"/api/v1/blocks/{block_id}").status_code == 204
    assert db.query(Block).count() == 0
    assert client.delete(f"/api/v1/blocks/{block_id}").status_code == 404


def test_block_conflicts_with_booking(client, db, villa):
    room_a = room_named(villa, "Room A")
    add_booking(db, villa, utc(2024, 2, 1), utc(2024, 2, 5), room=room_a)

    payload = {
        "property_id": villa.id,
        "start_date": "2024-02-02T00:00:00Z",
        "end_date": "2024-02-03T00:00:00Z",
    }
    response = client.post("/api/v1/blocks", json=payload)
    assert response.status_code == 409
    assert response.json()["detail"]["conflict_type"] == "CHILD_BLOCKED"

    payload["override"] = True
    assert client.post("/api/v1/blocks", json=payload).status_code == 201


def test_block_override_logs_warning(client, db, villa, caplog):
    add_booking(db, villa, utc(2024, 3, 1), utc(2024, 3, 4))

    payload = {
        "property_id": villa.id,
        "room_id": room_named(villa, "Room B").id,
        "start_date": "2024-03-02T00:00:00Z",
        "end_date": "2024-03-03T00:00:00Z",
        "override": True,
    }
    with caplog.at_level(logging.WARNING, logger="app.api.v1.blocks"):
        response = client.post("/api/v1/blocks", json=payload)

    assert response.status_code == 201
    assert any(
        "BLOCKS_API: Conflict overridden" in r.getMessage() and "PARENT_BLOCKED" in r.getMessage()
        for r in caplog.records
    )
