"""HTTP API tests: auth, volunteer approval and the SOS routes."""

import uuid

from tests.conftest import ADMIN_EMAIL, ADMIN_PASSWORD


def _unique():
    return uuid.uuid4().hex[:6]


def _admin_token(client):
    r = client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert r.status_code == 200, r.json()
    return r.json()["access_token"]


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def _approved_volunteer(client, admin_token, name="Vol"):
    """Register, approve and log in a volunteer. Return (id, token)."""
    email = f"vol_{_unique()}@test.com"
    r = client.post(
        "/api/volunteers/register",
        json={"name": name, "email": email, "password": "pass", "phone": "555"},
    )
    assert r.status_code == 201
    vid = r.json()["id"]
    client.put(f"/api/admin/volunteers/{vid}/status", headers=_auth(admin_token), json={"status": "Approved"})
    token = client.post("/api/volunteers/login", json={"email": email, "password": "pass"}).json()["access_token"]
    return vid, token


def _create_sos(client, **fields):
    body = {"latitude": 12.9, "longitude": 77.5}
    body.update(fields)
    r = client.post("/api/sos", json=body)
    assert r.status_code == 201
    return r.json()


def test_pending_volunteer_cannot_login(client):
    email = f"pend_{_unique()}@test.com"
    r = client.post("/api/volunteers/register", json={"name": "P", "email": email, "password": "pass"})
    assert r.status_code == 201
    assert r.json()["status"] == "Pending"

    r = client.post("/api/volunteers/login", json={"email": email, "password": "pass"})
    assert r.status_code == 401


def test_duplicate_registration_rejected(client):
    email = f"dup_{_unique()}@test.com"
    client.post("/api/volunteers/register", json={"name": "D", "email": email, "password": "pass"})
    r = client.post("/api/volunteers/register", json={"name": "D", "email": email, "password": "pass"})
    assert r.status_code == 400


def test_wrong_password_rejected(client):
    admin = _admin_token(client)
    email = f"wp_{_unique()}@test.com"
    r = client.post("/api/volunteers/register", json={"name": "W", "email": email, "password": "pass"})
    client.put(f"/api/admin/volunteers/{r.json()['id']}/status", headers=_auth(admin), json={"status": "Approved"})
    r = client.post("/api/volunteers/login", json={"email": email, "password": "nope"})
    assert r.status_code == 401
    r = client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": "nope"})
    assert r.status_code == 401


def test_suspended_volunteer_token_stops_working(client):
    admin = _admin_token(client)
    vid, token = _approved_volunteer(client, admin)
    assert client.get("/api/volunteers/my-sos", headers=_auth(token)).status_code == 200

    client.put(f"/api/admin/volunteers/{vid}/status", headers=_auth(admin), json={"status": "Suspended"})
    assert client.get("/api/volunteers/my-sos", headers=_auth(token)).status_code == 401


def test_create_requires_location(client):
    r = client.post("/api/sos", json={"name": "No Location"})
    assert r.status_code == 400
    r = client.post("/api/sos", json={"latitude": 120, "longitude": 0})
    assert r.status_code == 422


def test_create_accepts_form_field_names(client):
    sos = _create_sos(client, name="Asha", userProvidedAddress="12 Hill Rd")
    assert sos["requester_name"] == "Asha"
    assert sos["provided_address"] == "12 Hill Rd"
    assert sos["status"] == "Pending"


def test_full_flow_over_http(client):
    admin = _admin_token(client)
    a_id, a_token = _approved_volunteer(client, admin, name="Alpha")
    _, b_token = _approved_volunteer(client, admin, name="Bravo")
    sos = _create_sos(client)
    sos_id = sos["id"]
    assert sos["requester_name"] == "Anonymous"

    pool = client.get("/api/volunteers/my-sos", headers=_auth(b_token)).json()
    assert sos_id in {s["id"] for s in pool}

    r = client.put(f"/api/sos/{sos_id}/accept", headers=_auth(a_token))
    assert r.status_code == 200
    assert r.json()["status"] == "Accepted"
    assert r.json()["assigned_volunteer"] == {"id": a_id, "name": "Alpha"}

    r = client.put(f"/api/sos/{sos_id}/accept", headers=_auth(b_token))
    assert r.status_code == 409

    pool = client.get("/api/volunteers/my-sos", headers=_auth(b_token)).json()
    assert sos_id not in {s["id"] for s in pool}

    r = client.put(f"/api/sos/{sos_id}/status", headers=_auth(b_token), json={"status": "Completed"})
    assert r.status_code == 403

    r = client.put(f"/api/sos/{sos_id}/status", headers=_auth(a_token), json={"status": "Completed"})
    assert r.status_code == 200
    assert r.json()["status"] == "Completed"

    r = client.patch(f"/api/admin/sos/{sos_id}/cancel", headers=_auth(admin))
    assert r.status_code == 400
    assert client.get(f"/api/sos/{sos_id}").json()["status"] == "Completed"


def test_status_outside_enumeration_is_rejected(client):
    admin = _admin_token(client)
    _, token = _approved_volunteer(client, admin)
    sos_id = _create_sos(client)["id"]
    client.put(f"/api/sos/{sos_id}/accept", headers=_auth(token))
    r = client.put(f"/api/sos/{sos_id}/status", headers=_auth(token), json={"status": "In Progress"})
    assert r.status_code == 422


def test_accept_requires_token(client):
    sos_id = _create_sos(client)["id"]
    assert client.put(f"/api/sos/{sos_id}/accept").status_code == 401
    assert client.put(f"/api/sos/{sos_id}/accept", headers=_auth("junk")).status_code == 401


def test_admin_assign_and_cancel(client):
    admin = _admin_token(client)
    vid, _ = _approved_volunteer(client, admin, name="Charlie")
    sos_id = _create_sos(client)["id"]

    r = client.put(f"/api/sos/{sos_id}/assign", headers=_auth(admin), json={"volunteerId": vid})
    assert r.status_code == 200
    assert r.json()["status"] == "Accepted"
    assert r.json()["assigned_volunteer"]["name"] == "Charlie"

    r = client.put(f"/api/sos/{sos_id}/assign", headers=_auth(admin), json={"volunteerId": 999999})
    assert r.status_code == 404

    r = client.patch(f"/api/admin/sos/{sos_id}/cancel", headers=_auth(admin))
    assert r.status_code == 200
    assert r.json()["status"] == "Cancelled"
    assert r.json()["assigned_volunteer_id"] is None


def test_admin_closes_out_stuck_request(client):
    admin = _admin_token(client)
    vid, token = _approved_volunteer(client, admin, name="Delta")
    sos_id = _create_sos(client)["id"]
    client.put(f"/api/sos/{sos_id}/accept", headers=_auth(token))

    r = client.put(f"/api/sos/{sos_id}/assign", headers=_auth(admin), json={"status": "Completed"})
    assert r.status_code == 200
    assert r.json()["status"] == "Completed"
    assert r.json()["assigned_volunteer"] == {"id": vid, "name": "Delta"}

    r = client.put(f"/api/sos/{sos_id}/assign", headers=_auth(admin), json={})
    assert r.status_code == 400


def test_assign_requires_admin(client):
    admin = _admin_token(client)
    vid, token = _approved_volunteer(client, admin)
    sos_id = _create_sos(client)["id"]
    r = client.put(f"/api/sos/{sos_id}/assign", headers=_auth(token), json={"volunteerId": vid})
    assert r.status_code == 403


def test_requester_cancel(client):
    sos_id = _create_sos(client)["id"]
    r = client.patch(f"/api/sos/{sos_id}/cancel")
    assert r.status_code == 200
    assert r.json()["status"] == "Cancelled"
    r = client.patch(f"/api/sos/{sos_id}/cancel")
    assert r.status_code == 400
    assert client.patch("/api/sos/unknown/cancel").status_code == 404


def test_chat_over_http(client):
    sos_id = _create_sos(client)["id"]
    r = client.post(f"/api/sos/{sos_id}/chat", json={"sender": "Requester", "message": "Help"})
    assert r.status_code == 200
    assert r.json()["sosId"] == sos_id
    assert r.json()["sender"] == "Requester"
    assert r.json()["message"] == "Help"

    chat = client.get(f"/api/sos/{sos_id}").json()["chat"]
    assert [(m["sender"], m["message"]) for m in chat] == [("Requester", "Help")]

    assert client.post("/api/sos/unknown/chat", json={"message": "x"}).status_code == 404


def test_chat_on_cancelled_request_over_http(client):
    sos_id = _create_sos(client)["id"]
    assert client.patch(f"/api/sos/{sos_id}/cancel").status_code == 200
    r = client.post(f"/api/sos/{sos_id}/chat", json={"message": "still there?"})
    assert r.status_code == 200
    assert r.json()["sender"] == "Anonymous"
    assert [m["message"] for m in client.get(f"/api/sos/{sos_id}").json()["chat"]] == ["still there?"]


def test_admin_listing_and_analytics(client):
    admin = _admin_token(client)
    before = client.get("/api/admin/analytics", headers=_auth(admin)).json()
    sos_id = _create_sos(client)["id"]

    listing = client.get("/api/admin/sos", headers=_auth(admin)).json()
    assert sos_id in {s["id"] for s in listing}

    after = client.get("/api/admin/analytics", headers=_auth(admin)).json()
    assert after["total_sos"] == before["total_sos"] + 1
    assert after["sos_by_status"]["Pending"] == before["sos_by_status"]["Pending"] + 1

    volunteers = client.get("/api/admin/volunteers", headers=_auth(admin))
    assert volunteers.status_code == 200


def test_admin_routes_reject_volunteers(client):
    admin = _admin_token(client)
    _, token = _approved_volunteer(client, admin)
    assert client.get("/api/admin/sos", headers=_auth(token)).status_code == 403
    assert client.get("/api/admin/analytics").status_code == 401
