"""Endpoint tests for darshan bookings, admin transitions and the event stream."""
from __future__ import annotations

import json
from datetime import date, timedelta

from bhakthas.extensions import db
from bhakthas.models import DarshanBooking
from bhakthas.realtime import BookingEvent, booking_channel


def _book(client, headers, temple_id, payload):
    return client.post(f"/temples/{temple_id}/bookings", json=payload, headers=headers)


def test_create_booking_endpoint(client, user, make_temple, booking_payload) -> None:
    _, headers = user
    temple_id = make_temple()

    response = _book(client, headers, temple_id, booking_payload)

    assert response.status_code == 201
    booking = response.get_json()["booking"]
    assert booking["status"] == "awaiting"
    assert booking["amount_paid"] == 200
    assert booking["darshan_time"] == "10:30"
    assert booking["invoice_number"].startswith("INV-")
    assert booking["needs_attention"] is False
    assert len(booking["bhaktha_details"]) == 2


def test_create_booking_requires_login(client, make_temple, booking_payload) -> None:
    response = _book(client, {}, make_temple(), booking_payload)

    assert response.status_code == 401


def test_create_booking_unknown_temple(client, user, booking_payload) -> None:
    _, headers = user

    response = _book(client, headers, 999, booking_payload)

    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"


def test_create_booking_invalid_phone(client, user, make_temple, booking_payload) -> None:
    _, headers = user
    booking_payload["phone"] = "12345"

    response = _book(client, headers, make_temple(), booking_payload)

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_payload"


def test_booking_visible_to_owner_and_admin_only(client, user, admin, make_user, make_temple, booking_payload) -> None:
    _, headers = user
    _, admin_headers = admin
    _, stranger_headers = make_user("user", name="Stranger")
    booking_id = _book(client, headers, make_temple(), booking_payload).get_json()["booking"]["id"]

    assert client.get(f"/bookings/{booking_id}", headers=headers).status_code == 200
    assert client.get(f"/bookings/{booking_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/bookings/{booking_id}", headers=stranger_headers).status_code == 403

    mine = client.get("/users/me/bookings", headers=headers).get_json()["bookings"]
    assert [b["id"] for b in mine] == [booking_id]
    assert client.get("/users/me/bookings", headers=stranger_headers).get_json()["bookings"] == []


def test_admin_status_update_requires_admin(client, user, make_temple, booking_payload) -> None:
    _, headers = user
    booking_id = _book(client, headers, make_temple(), booking_payload).get_json()["booking"]["id"]

    unauthenticated = client.put(f"/admin/bookings/{booking_id}/status", json={"status": "confirmed"})
    as_user = client.put(f"/admin/bookings/{booking_id}/status", json={"status": "confirmed"}, headers=headers)

    assert unauthenticated.status_code == 401
    assert as_user.status_code == 403
    assert client.get(f"/bookings/{booking_id}", headers=headers).get_json()["booking"]["status"] == "awaiting"


def test_admin_confirms_then_cannot_cancel(client, user, admin, make_temple, booking_payload) -> None:
    _, headers = user
    _, admin_headers = admin
    booking_id = _book(client, headers, make_temple(), booking_payload).get_json()["booking"]["id"]

    confirmed = client.put(f"/admin/bookings/{booking_id}/status", json={"status": "confirmed"}, headers=admin_headers)
    assert confirmed.status_code == 200
    assert confirmed.get_json()["booking"]["status"] == "confirmed"

    cancelled = client.put(f"/admin/bookings/{booking_id}/status", json={"status": "cancelled"}, headers=admin_headers)
    assert cancelled.status_code == 409
    assert cancelled.get_json()["error"] == "invalid_transition"


def test_admin_status_update_validates_status(client, user, admin, make_temple, booking_payload) -> None:
    _, headers = user
    _, admin_headers = admin
    booking_id = _book(client, headers, make_temple(), booking_payload).get_json()["booking"]["id"]

    missing = client.put(f"/admin/bookings/{booking_id}/status", json={}, headers=admin_headers)
    unknown = client.put(f"/admin/bookings/{booking_id}/status", json={"status": "paid"}, headers=admin_headers)
    absent = client.put("/admin/bookings/999/status", json={"status": "confirmed"}, headers=admin_headers)

    assert missing.status_code == 400
    assert unknown.status_code == 400
    assert unknown.get_json()["error"] == "invalid_status"
    assert absent.status_code == 404


def test_admin_list_flags_past_awaiting_bookings(app, client, user, admin, make_temple, booking_payload) -> None:
    _, headers = user
    _, admin_headers = admin
    temple_id = make_temple()
    stale_id = _book(client, headers, temple_id, booking_payload).get_json()["booking"]["id"]
    _book(client, headers, temple_id, booking_payload)

    with app.app_context():
        stale = db.session.get(DarshanBooking, stale_id)
        stale.darshan_date = date.today() - timedelta(days=2)
        db.session.commit()

    response = client.get("/admin/bookings", headers=admin_headers)
    body = response.get_json()

    assert response.status_code == 200
    assert len(body["bookings"]) == 2
    assert body["needs_attention"] == 1

    awaiting = client.get("/admin/bookings?status=confirmed", headers=admin_headers).get_json()
    assert awaiting["bookings"] == []


def _parse_sse(raw: str) -> list[tuple[str, dict]]:
    events = []
    for block in raw.strip().split("\n\n"):
        lines = block.splitlines()
        if not lines or lines[0].startswith(":"):
            continue
        name = lines[0].removeprefix("event: ")
        data = json.loads(lines[1].removeprefix("data: "))
        events.append((name, data))
    return events


def test_event_stream_for_terminal_booking_sends_snapshot_only(client, user, admin, make_temple, booking_payload) -> None:
    _, headers = user
    _, admin_headers = admin
    booking_id = _book(client, headers, make_temple(), booking_payload).get_json()["booking"]["id"]
    client.put(f"/admin/bookings/{booking_id}/status", json={"status": "refunded"}, headers=admin_headers)

    response = client.get(f"/bookings/{booking_id}/events", headers=headers)

    assert response.status_code == 200
    assert response.mimetype == "text/event-stream"
    events = _parse_sse(response.get_data(as_text=True))
    assert [name for name, _ in events] == ["snapshot"]
    assert events[0][1]["status"] == "refunded"
    assert booking_channel.subscriber_count(booking_id) == 0


def test_event_stream_delivers_status_change(client, user, make_temple, booking_payload) -> None:
    _, headers = user
    booking_id = _book(client, headers, make_temple(), booking_payload).get_json()["booking"]["id"]

    response = client.get(f"/bookings/{booking_id}/events", headers=headers, buffered=False)
    assert booking_channel.subscriber_count(booking_id) == 1
    booking_channel.publish(
        BookingEvent(booking_id=booking_id, status="confirmed", previous_status="awaiting", updated_at="2026-10-19T10:00:00")
    )

    events = _parse_sse(response.get_data(as_text=True))
    response.close()

    assert [name for name, _ in events] == ["snapshot", "status"]
    assert events[0][1]["status"] == "awaiting"
    assert events[1][1] == {
        "booking_id": booking_id,
        "status": "confirmed",
        "previous_status": "awaiting",
        "updated_at": "2026-10-19T10:00:00",
    }
    assert booking_channel.subscriber_count(booking_id) == 0


def test_event_stream_rejects_other_users(client, user, make_user, make_temple, booking_payload) -> None:
    _, headers = user
    _, stranger_headers = make_user("user", name="Stranger")
    booking_id = _book(client, headers, make_temple(), booking_payload).get_json()["booking"]["id"]

    response = client.get(f"/bookings/{booking_id}/events", headers=stranger_headers)

    assert response.status_code == 403
    assert booking_channel.subscriber_count(booking_id) == 0


def test_event_stream_snapshot_sees_change_committed_while_subscribing(
    client, user, make_temple, booking_payload, monkeypatch
) -> None:
    _, headers = user
    booking_id = _book(client, headers, make_temple(), booking_payload).get_json()["booking"]["id"]
    real_subscribe = booking_channel.subscribe

    def subscribe_after_admin_confirms(target_id):
        # An admin transition lands just before the stream subscribes; nobody is listening yet
        DarshanBooking.query.filter_by(booking_id=target_id).update(
            {"status": "confirmed"}, synchronize_session=False
        )
        db.session.commit()
        booking_channel.publish(
            BookingEvent(booking_id=target_id, status="confirmed", previous_status="awaiting",
                         updated_at="2026-10-19T10:00:00")
        )
        return real_subscribe(target_id)

    monkeypatch.setattr(booking_channel, "subscribe", subscribe_after_admin_confirms)

    response = client.get(f"/bookings/{booking_id}/events", headers=headers)

    events = _parse_sse(response.get_data(as_text=True))
    assert [name for name, _ in events] == ["snapshot"]
    assert events[0][1]["status"] == "confirmed"
