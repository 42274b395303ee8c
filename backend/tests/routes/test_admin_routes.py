from tests.support import ADMIN, MEMBER, TODAY, TOMORROW, TRAINER, identity_headers


def test_schedule_administration_flow(client, make_member, published):
    make_member()
    staff = identity_headers(TRAINER)

    # Create a Wednesday template
    r = client.post(
        "/api/v1/admin/recurring-classes",
        json={
            "title": "Spinning",
            "day_of_week": TODAY.weekday(),
            "start_time": "19:00",
            "end_time": "19:45",
            "max_capacity": 8,
        },
        headers=staff,
    )
    assert r.status_code == 201
    class_id = r.json()["id"]

    # Member books it
    r = client.post(
        "/api/v1/bookings",
        json={"booking_date": TODAY.isoformat(), "occurrence": {"kind": "recurring", "id": class_id}},
        headers=identity_headers(MEMBER),
    )
    assert r.status_code == 201

    # Shrink the date to the one seat already taken
    r = client.post(
        "/api/v1/admin/overrides",
        json={"recurring_class_id": class_id, "override_date": TODAY.isoformat(), "max_capacity": 1},
        headers=staff,
    )
    assert r.status_code == 201
    override_id = r.json()["id"]

    r = client.get(
        "/api/v1/admin/overrides",
        params={"start_date": TODAY.isoformat(), "end_date": TODAY.isoformat()},
        headers=staff,
    )
    assert [o["id"] for o in r.json()] == [override_id]

    r = client.get("/api/v1/schedule", params={"start_date": TODAY.isoformat()}, headers=staff)
    occurrence = r.json()["occurrences"][0]
    assert (occurrence["max_capacity"], occurrence["spots_left"], occurrence["is_special"]) == (1, 0, True)

    r = client.delete(f"/api/v1/admin/overrides/{override_id}", headers=staff)
    assert r.status_code == 204

    # Cancel the date outright
    r = client.post(
        "/api/v1/admin/disable-class",
        json={
            "occurrence": {"kind": "recurring", "id": class_id},
            "date": TODAY.isoformat(),
            "reason": "Broken bikes",
        },
        headers=staff,
    )
    assert r.status_code == 200
    assert len(r.json()["cancelled_booking_ids"]) == 1

    r = client.get("/api/v1/schedule", params={"start_date": TODAY.isoformat()}, headers=staff)
    assert r.json()["occurrences"] == []
    assert published[-1][0] == "OccurrenceDisabled"

    r = client.get("/api/v1/quotas/me", headers=identity_headers(MEMBER))
    assert r.json()["remaining_classes"] == 12


def test_class_full_envelope(client, make_member, make_class):
    make_member()
    yoga = make_class()
    client.post(
        "/api/v1/bookings",
        json={"booking_date": TODAY.isoformat(), "occurrence": {"kind": "recurring", "id": yoga.id}},
        headers=identity_headers(MEMBER),
    )

    r = client.post(
        "/api/v1/admin/overrides",
        json={"recurring_class_id": yoga.id, "override_date": TODAY.isoformat(), "max_capacity": 1},
        headers=identity_headers(TRAINER),
    )
    assert r.status_code == 201

    r = client.post(
        "/api/v1/bookings",
        json={"booking_date": TODAY.isoformat(), "occurrence": {"kind": "recurring", "id": yoga.id}},
        headers=identity_headers(ADMIN),
    )
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["code"] == "class_full"
    assert set(detail) == {"message", "code", "details"}


def test_one_off_lifecycle(client):
    staff = identity_headers(TRAINER)
    r = client.post(
        "/api/v1/admin/one-offs",
        json={
            "title": "Self-defence seminar",
            "occurrence_date": TOMORROW.isoformat(),
            "start_time": "11:00",
            "end_time": "13:00",
            "max_capacity": 20,
            "notes": "Bring water",
        },
        headers=staff,
    )
    assert r.status_code == 201
    one_off_id = r.json()["id"]

    r = client.get("/api/v1/schedule", params={"start_date": TOMORROW.isoformat()}, headers=staff)
    (occurrence,) = r.json()["occurrences"]
    assert (occurrence["kind"], occurrence["is_special"], occurrence["notes"]) == (
        "one_off",
        True,
        "Bring water",
    )

    r = client.post(f"/api/v1/admin/one-offs/{one_off_id}/toggle", headers=staff)
    assert r.json()["is_enabled"] is False

    r = client.get("/api/v1/admin/one-offs", params={"start_date": TOMORROW.isoformat()}, headers=staff)
    assert [o["id"] for o in r.json()] == [one_off_id]

    r = client.delete(f"/api/v1/admin/one-offs/{one_off_id}", headers=staff)
    assert r.status_code == 204


def test_instructor_assignment_route(client, make_class):
    yoga = make_class(instructor="Marta")
    staff = identity_headers(TRAINER)

    r = client.put(
        f"/api/v1/admin/recurring-classes/{yoga.id}/instructor",
        json={"instructor_name": "Irene", "assignment_date": TODAY.isoformat()},
        headers=staff,
    )
    assert r.status_code == 200

    r = client.get("/api/v1/schedule", params={"start_date": TODAY.isoformat()}, headers=staff)
    assert r.json()["occurrences"][0]["instructor"] == "Irene"


def test_members_are_kept_out(client, make_class):
    yoga = make_class()
    headers = identity_headers(MEMBER)

    assert client.get("/api/v1/admin/recurring-classes", headers=headers).status_code == 403
    assert client.post(f"/api/v1/admin/recurring-classes/{yoga.id}/toggle", headers=headers).status_code == 403
    r = client.post(
        "/api/v1/admin/disable-class",
        json={"occurrence": {"kind": "recurring", "id": yoga.id}, "date": TODAY.isoformat()},
        headers=headers,
    )
    assert r.status_code == 403


def test_unknown_ids_return_404(client):
    r = client.post(
        "/api/v1/admin/recurring-classes/01HZZZZZZZZZZZZZZZZZZZZZZZ/toggle",
        headers=identity_headers(TRAINER),
    )
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "class_not_found"
