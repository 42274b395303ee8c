from datetime import time

from tests.support import MEMBER, OTHER_MEMBER, TODAY, TOMORROW, TRAINER, club_time, identity_headers


def _reservation(class_id, day=TODAY, kind="recurring", **extra):
    return {"booking_date": day.isoformat(), "occurrence": {"kind": kind, "id": class_id}, **extra}


def test_reservation_flow(client, make_member, make_class, published):
    make_member()
    yoga = make_class(capacity=2)
    headers = identity_headers(MEMBER)

    # Schedule shows the class with no seats taken
    r = client.get("/api/v1/schedule", params={"start_date": TODAY.isoformat()}, headers=headers)
    assert r.status_code == 200
    (row,) = r.json()["occurrences"]
    assert row["occurrence_id"] == yoga.id
    assert (row["current_bookings"], row["spots_left"]) == (0, 2)

    # Reserve
    r = client.post("/api/v1/bookings", json=_reservation(yoga.id), headers=headers)
    assert r.status_code == 201
    body = r.json()
    assert body["remaining_classes"] == 11
    assert body["booking"]["status"] == "confirmed"
    assert "Classes left this month: 11" in body["message"]
    booking_id = body["booking"]["id"]

    r = client.get("/api/v1/schedule", params={"start_date": TODAY.isoformat()}, headers=headers)
    assert r.json()["occurrences"][0]["spots_left"] == 1

    r = client.get("/api/v1/bookings", params={"status": "confirmed"}, headers=headers)
    assert [b["id"] for b in r.json()] == [booking_id]

    # Cancel well before the cutoff
    r = client.get(f"/api/v1/bookings/{booking_id}/can-cancel", headers=headers)
    assert r.json()["can_cancel"] is True

    r = client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=headers)
    assert r.status_code == 200
    assert r.json()["remaining_classes"] == 12
    assert r.json()["booking"]["status"] == "cancelled"

    assert [name for name, _ in published] == ["ReservationCreated", "ReservationCancelled"]


def test_refusals_carry_machine_readable_codes(client, make_member, make_class):
    make_member()
    yoga = make_class()
    headers = identity_headers(MEMBER)

    assert client.post("/api/v1/bookings", json=_reservation(yoga.id), headers=headers).status_code == 201

    r = client.post("/api/v1/bookings", json=_reservation(yoga.id), headers=headers)
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "already_booked"

    # Wednesday's class does not run on Thursday
    r = client.post("/api/v1/bookings", json=_reservation(yoga.id, day=TOMORROW), headers=headers)
    assert r.status_code == 404


def test_cancellation_cutoff_via_api(client, clock, make_member, make_class):
    make_member()
    yoga = make_class(start=time(18, 0), end=time(19, 0))
    headers = identity_headers(MEMBER)
    booking_id = client.post("/api/v1/bookings", json=_reservation(yoga.id), headers=headers).json()[
        "booking"
    ]["id"]

    clock.set(club_time(TODAY, 17, 30))

    r = client.get(f"/api/v1/bookings/{booking_id}/can-cancel", headers=headers)
    assert r.json() == {"can_cancel": False, "reason": "within_time_limit", "minutes_until_class": 30}
    r = client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=headers)
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "within_time_limit"

    # Staff can still release the seat
    r = client.post(
        f"/api/v1/bookings/{booking_id}/force-cancel",
        json={"reason": "Injury"},
        headers=identity_headers(TRAINER),
    )
    assert r.status_code == 200
    assert r.json()["remaining_classes"] == 12


def test_staff_booking_roster_and_attendance(client, make_member, make_class):
    make_member()
    yoga = make_class()
    staff = identity_headers(TRAINER)

    r = client.post(
        "/api/v1/bookings", json=_reservation(yoga.id, user_id=MEMBER.user_id), headers=staff
    )
    assert r.status_code == 201
    booking_id = r.json()["booking"]["id"]

    r = client.get(
        "/api/v1/bookings/roster",
        params={"kind": "recurring", "occurrence_id": yoga.id, "date": TODAY.isoformat()},
        headers=staff,
    )
    assert [b["user_id"] for b in r.json()] == [MEMBER.user_id]

    r = client.post(f"/api/v1/bookings/{booking_id}/attendance", json={"attended": False}, headers=staff)
    assert r.status_code == 200
    assert r.json()["attended"] is False

    r = client.get("/api/v1/quotas/me", headers=identity_headers(MEMBER))
    assert r.json()["remaining_classes"] == 10


def test_members_cannot_act_for_others(client, make_member, make_class):
    make_member()
    make_member(OTHER_MEMBER.user_id)
    yoga = make_class()

    r = client.post(
        "/api/v1/bookings",
        json=_reservation(yoga.id, user_id=OTHER_MEMBER.user_id),
        headers=identity_headers(MEMBER),
    )
    assert r.status_code == 403

    r = client.get(
        "/api/v1/bookings/roster",
        params={"kind": "recurring", "occurrence_id": yoga.id, "date": TODAY.isoformat()},
        headers=identity_headers(MEMBER),
    )
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "not_allowed"


def test_identity_is_required(client):
    r = client.get("/api/v1/bookings")
    assert r.status_code == 401
    assert r.json()["detail"]["code"] == "not_authenticated"

    r = client.get("/api/v1/bookings", headers={"X-User-Id": "someone", "X-User-Role": "janitor"})
    assert r.status_code == 403


def test_malformed_payloads_are_rejected(client):
    headers = identity_headers(MEMBER)
    r = client.post(
        "/api/v1/bookings",
        json={"booking_date": "2025-03-05T18:00:00", "occurrence": {"kind": "recurring", "id": "x"}},
        headers=headers,
    )
    assert r.status_code == 422

    r = client.post(
        "/api/v1/bookings",
        json={**_reservation("x"), "seats": 2},
        headers=headers,
    )
    assert r.status_code == 422


def test_booking_counts(client, make_member, make_class, make_one_off):
    make_member()
    yoga = make_class()
    make_one_off()
    headers = identity_headers(MEMBER)
    client.post("/api/v1/bookings", json=_reservation(yoga.id), headers=headers)

    r = client.get(
        "/api/v1/schedule/counts",
        params=[("dates", TODAY.isoformat()), ("dates", TOMORROW.isoformat())],
        headers=headers,
    )

    assert r.status_code == 200
    assert r.json()["counts"] == [
        {"occurrence_id": yoga.id, "kind": "recurring", "date": TODAY.isoformat(), "count": 1}
    ]
