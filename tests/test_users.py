ADDRESS = {"street_address": "3 Marina Road", "city": "Lagos", "state": "Lagos", "country": "Nigeria"}


def test_profile_read_and_update(client, alice, headers_for):
    h = headers_for(alice)
    assert client.get("/api/users/profile", headers=h).json()["email"] == "alice@example.com"

    resp = client.put("/api/users/profile", json={"phone_number": "+2348000000000"}, headers=h)
    assert resp.status_code == 200
    assert resp.json()["phone_number"] == "+2348000000000"

    empty = client.put("/api/users/profile", json={}, headers=h)
    assert empty.status_code == 400


def test_first_address_becomes_default(client, alice, headers_for):
    h = headers_for(alice)
    first = client.post("/api/users/me/addresses", json=ADDRESS, headers=h)
    assert first.status_code == 201
    assert first.json()["is_default"] is True

    second = client.post("/api/users/me/addresses", json={**ADDRESS, "city": "Abuja"}, headers=h)
    assert second.json()["is_default"] is False


def test_new_default_replaces_old_one(client, alice, headers_for):
    h = headers_for(alice)
    first = client.post("/api/users/me/addresses", json=ADDRESS, headers=h).json()
    second = client.post("/api/users/me/addresses", json={**ADDRESS, "is_default": True}, headers=h).json()

    listed = {a["id"]: a["is_default"] for a in client.get("/api/users/me/addresses", headers=h).json()}
    assert listed == {first["id"]: False, second["id"]: True}


def test_default_cannot_be_unset_directly(client, alice, alice_lagos, headers_for):
    resp = client.put(f"/api/users/me/addresses/{alice_lagos.id}", json={"is_default": False}, headers=headers_for(alice))
    assert resp.status_code == 400


def test_address_update(client, alice, alice_lagos, headers_for):
    resp = client.put(f"/api/users/me/addresses/{alice_lagos.id}", json={"city": "Ikeja"}, headers=headers_for(alice))
    assert resp.status_code == 200
    assert resp.json()["city"] == "Ikeja"


def test_other_users_address_is_not_found(client, bob, alice_lagos, headers_for):
    h = headers_for(bob)
    assert client.put(f"/api/users/me/addresses/{alice_lagos.id}", json={"city": "X"}, headers=h).status_code == 404
    assert client.delete(f"/api/users/me/addresses/{alice_lagos.id}", headers=h).status_code == 404


def test_address_delete_rules(client, alice, alice_lagos, new_address, headers_for):
    h = headers_for(alice)
    last = client.delete(f"/api/users/me/addresses/{alice_lagos.id}", headers=h)
    assert last.status_code == 400

    spare = new_address(alice, city="Abuja", is_default=False)
    default = client.delete(f"/api/users/me/addresses/{alice_lagos.id}", headers=h)
    assert default.status_code == 400

    ok = client.delete(f"/api/users/me/addresses/{spare.id}", headers=h)
    assert ok.status_code == 200
    assert [a["id"] for a in client.get("/api/users/me/addresses", headers=h).json()] == [alice_lagos.id]


def test_address_used_by_order_cannot_be_deleted(client, alice, alice_lagos, new_address, place_order, headers_for):
    spare = new_address(alice, city="Abuja", is_default=False)
    place_order(alice, address=spare)

    resp = client.delete(f"/api/users/me/addresses/{spare.id}", headers=headers_for(alice))
    assert resp.status_code == 409


def test_admin_lists_and_reads_users(client, admin, alice, headers_for):
    h = headers_for(admin)
    emails = {u["email"] for u in client.get("/api/users/", headers=h).json()}
    assert emails == {"admin@example.com", "alice@example.com"}
    assert client.get(f"/api/users/{alice.id}", headers=h).json()["full_name"] == "Alice"
    assert client.get("/api/users/9999", headers=h).status_code == 404


def test_admin_cannot_delete_or_demote_self(client, admin, headers_for):
    h = headers_for(admin)
    assert client.delete(f"/api/users/{admin.id}", headers=h).status_code == 400
    assert client.put(f"/api/users/{admin.id}/role", json={"role": "user"}, headers=h).status_code == 400


def test_role_changes(client, admin, alice, headers_for):
    h = headers_for(admin)
    bad = client.put(f"/api/users/{alice.id}/role", json={"role": "superuser"}, headers=h)
    assert bad.status_code == 400
    assert "admin, user" in bad.json()["error"]

    promoted = client.put(f"/api/users/{alice.id}/role", json={"role": "admin"}, headers=h)
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "admin"
    # role is read from the database, not the token
    assert client.get("/api/users/", headers=headers_for(alice)).status_code == 200


def test_user_with_orders_cannot_be_deleted(client, admin, alice, bob, place_order, headers_for):
    place_order(alice)
    h = headers_for(admin)
    assert client.delete(f"/api/users/{alice.id}", headers=h).status_code == 409

    assert client.delete(f"/api/users/{bob.id}", headers=h).status_code == 200
    assert client.get(f"/api/users/{bob.id}", headers=h).status_code == 404
