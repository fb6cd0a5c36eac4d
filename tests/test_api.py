from uuid import uuid4


async def test_health(client):
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_login_and_me(client, admin_user):
    resp = await client.post("/api/auth/login", json={
        "email": "admin@example.com",
        "password": "admin123",
    })
    assert resp.status_code == 200
    token = resp.json()["access_token"]
    assert resp.json()["user"]["role"] == "admin"

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "admin@example.com"


async def test_login_wrong_password(client, admin_user):
    resp = await client.post("/api/auth/login", json={
        "email": "admin@example.com",
        "password": "wrong",
    })
    assert resp.status_code == 401


async def test_units_require_auth(client):
    resp = await client.get("/api/units")
    assert resp.status_code == 401


async def test_list_units(client, employee_headers, make_unit, feed_stub):
    await make_unit(12, 3)
    await make_unit(120, 1, "reserved", buyer_name="Ali")
    await make_unit(21, 4)
    feed_stub.rows = [{"unitNumber": "120", "buyerName": "Sara"}]

    resp = await client.get(
        "/api/units",
        params={"search": "12", "status": "all", "block": "all"},
        headers=employee_headers,
    )

    assert resp.status_code == 200
    body = resp.json()
    assert [u["unit_number"] for u in body["units"]] == [12, 120]
    assert body["total"] == 2
    assert body["stats"] == {"total": 3, "available": 2, "reserved": 0, "sold": 1}
    sold = body["units"][1]
    assert sold["status"] == "sold"
    assert sold["buyer_name"] == "Sara"
    assert sold["sale_info"]["buyerName"] == "Sara"
    assert body["feed"]["available"] is True


async def test_list_units_rejects_bad_filters(client, employee_headers):
    resp = await client.get("/api/units", params={"block": "40"}, headers=employee_headers)
    assert resp.status_code == 422

    resp = await client.get("/api/units", params={"status": "pending"}, headers=employee_headers)
    assert resp.status_code == 422


async def test_stats_and_blocks(client, employee_headers, make_unit):
    await make_unit(1, 2)
    await make_unit(2, 2, "sold")
    await make_unit(3, 5, "reserved")

    stats = await client.get("/api/units/stats", headers=employee_headers)
    assert stats.json()["stats"] == {"total": 3, "available": 1, "reserved": 1, "sold": 1}

    grid = await client.get("/api/units/blocks", headers=employee_headers)
    assert [b["block_number"] for b in grid.json()["blocks"]] == [2, 5]


async def test_get_unit(client, employee_headers, make_unit):
    unit = await make_unit(12, 3)

    resp = await client.get(f"/api/units/{unit.id}", headers=employee_headers)
    assert resp.status_code == 200
    assert resp.json()["unit_number"] == 12

    missing = await client.get(f"/api/units/{uuid4()}", headers=employee_headers)
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"


async def test_mutations_require_admin(client, employee_headers, make_unit):
    unit = await make_unit(12, 3)

    resp = await client.post(
        f"/api/units/{unit.id}/actions",
        json={"action": "sell"},
        headers=employee_headers,
    )
    assert resp.status_code == 403


async def test_guided_actions(client, admin_headers, make_unit):
    unit = await make_unit(12, 3)

    held = await client.post(
        f"/api/units/{unit.id}/actions",
        json={"action": "reserve_temporary", "buyer_name": "Ali"},
        headers=admin_headers,
    )
    assert held.status_code == 200
    assert held.json()["status"] == "reserved"
    assert held.json()["reservation_expires_at"] is not None
    assert held.json()["hold_remaining"] == {"hours": 48, "minutes": 0}

    again = await client.post(
        f"/api/units/{unit.id}/actions",
        json={"action": "reserve_permanent"},
        headers=admin_headers,
    )
    assert again.status_code == 409
    assert again.json()["error"] == "invalid_transition"

    sold = await client.post(
        f"/api/units/{unit.id}/actions",
        json={"action": "sell"},
        headers=admin_headers,
    )
    assert sold.json()["status"] == "sold"
    assert sold.json()["reservation_expires_at"] is None

    listed = await client.get("/api/units/stats", headers=admin_headers)
    assert listed.json()["stats"]["sold"] == 1


async def test_patch_unit(client, admin_headers, make_unit):
    unit = await make_unit(12, 3)

    resp = await client.patch(
        f"/api/units/{unit.id}",
        json={"price": 150000, "notes": "corner lot"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["price"] == 150000
    assert body["notes"] == "corner lot"

    negative = await client.patch(f"/api/units/{unit.id}", json={"price": -5}, headers=admin_headers)
    assert negative.status_code == 422


async def test_patch_conflict(client, admin_headers, make_unit):
    unit = await make_unit(12, 3)

    first = await client.patch(f"/api/units/{unit.id}", json={"notes": "a"}, headers=admin_headers)
    read_at = first.json()["updated_at"]

    second = await client.patch(
        f"/api/units/{unit.id}",
        json={"notes": "b", "expected_updated_at": read_at},
        headers=admin_headers,
    )
    assert second.status_code == 200

    stale = await client.patch(
        f"/api/units/{unit.id}",
        json={"notes": "c", "expected_updated_at": read_at},
        headers=admin_headers,
    )
    assert stale.status_code == 409
    assert stale.json()["error"] == "conflict"


async def test_feed_endpoints(client, employee_headers, feed_stub):
    feed_stub.rows = [{"unitNumber": 12}, {"unitNumber": 7}]

    resp = await client.get("/api/sales-feed", headers=employee_headers)
    assert resp.json()["unit_numbers"] == ["7", "12"]
    assert resp.json()["sold_count"] == 2

    feed_stub.fail_with = 503
    refreshed = await client.post("/api/sales-feed/refresh", headers=employee_headers)
    body = refreshed.json()
    assert refreshed.status_code == 200
    assert body["stale"] is True
    assert body["error"]
    assert body["unit_numbers"] == ["7", "12"]
