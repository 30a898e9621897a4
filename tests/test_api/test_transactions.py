"""API tests for /api/transactions."""


def test_checkout(client, add_equipment):
    a = add_equipment("CAM-001", condition="SCRATCHES")
    b = add_equipment("LENS-001")

    res = client.post("/api/transactions", json={"equipment_ids": [a, b], "project": "Music video"})
    assert res.status_code == 201
    data = res.json()
    assert data["id"].startswith("TXN-")
    assert data["status"] == "OPEN"
    assert data["items"] == [a, b]
    assert data["pre_checkout_conditions"] == {str(a): "SCRATCHES", str(b): "OK"}
    assert data["project"] == "Music video"
    assert data["closed_at"] is None

    assert client.get(f"/api/equipment/{a}").json()["status"] == "CHECKED_OUT"


def test_checkout_with_unavailable_item_changes_nothing(client, add_equipment):
    a = add_equipment("CAM-001")
    b = add_equipment("CAM-002")
    client.put(f"/api/equipment/{b}", json={"status": "MAINTENANCE"})

    res = client.post("/api/transactions", json={"equipment_ids": [a, b]})
    assert res.status_code == 422
    detail = res.json()["detail"]
    assert detail["reason"] == "not_available"
    assert detail["items"][0]["barcode"] == "CAM-002"

    assert client.get(f"/api/equipment/{a}").json()["status"] == "AVAILABLE"
    assert client.get("/api/transactions").json()["total"] == 0


def test_checkout_empty_list_rejected(client):
    assert client.post("/api/transactions", json={"equipment_ids": []}).status_code == 422


def test_checkout_on_behalf_requires_manager(client, add_equipment, add_user, login):
    item_id = add_equipment("CAM-001")
    add_user("crew1")
    other_id = add_user("crew2")
    login("crew1")

    res = client.post("/api/transactions", json={"equipment_ids": [item_id], "holder_id": other_id})
    assert res.status_code == 403


def test_manager_checks_out_for_crew(client, add_equipment, add_user, login):
    item_id = add_equipment("CAM-001")
    add_user("boss", role="manager")
    crew_id = add_user("crew1")
    login("boss")

    res = client.post("/api/transactions", json={"equipment_ids": [item_id], "holder_id": crew_id})
    assert res.status_code == 201
    assert res.json()["user_id"] == crew_id
    assert client.get(f"/api/equipment/{item_id}").json()["assigned_to"] == crew_id


def test_transaction_detail(client, add_equipment):
    a = add_equipment("CAM-001")
    b = add_equipment("LENS-001")
    txn_id = client.post("/api/transactions", json={"equipment_ids": [a, b]}).json()["id"]
    client.post(f"/api/equipment/{a}/return", json={"condition": "LOOSE_MOUNT"})

    res = client.get(f"/api/transactions/{txn_id}")
    assert res.status_code == 200
    data = res.json()
    assert data["outstanding"] == 2
    first = data["entries"][0]
    assert first["barcode"] == "CAM-001"
    assert first["status"] == "PENDING_VERIFICATION"
    assert first["pre_checkout_condition"] == "OK"
    assert first["current_condition"] == "LOOSE_MOUNT"


def test_transaction_not_found(client):
    res = client.get("/api/transactions/TXN-NOPE22")
    assert res.status_code == 404
    assert res.json()["detail"]["reason"] == "transaction_not_found"


def test_list_filters(client, add_equipment):
    a = add_equipment("CAM-001")
    b = add_equipment("CAM-002")
    client.post("/api/transactions", json={"equipment_ids": [a]})
    client.post("/api/transactions", json={"equipment_ids": [b]})
    client.post(f"/api/equipment/{a}/return", json={})
    client.post(f"/api/equipment/{a}/verify", json={"outcome": "AVAILABLE"})

    assert client.get("/api/transactions").json()["total"] == 2
    assert client.get("/api/transactions?status=OPEN").json()["total"] == 1
    assert client.get("/api/transactions?status=CLOSED").json()["total"] == 1


def test_partial_verification_keeps_transaction_open(client, add_equipment):
    a = add_equipment("A")
    b = add_equipment("B")
    txn_id = client.post("/api/transactions", json={"equipment_ids": [a, b]}).json()["id"]

    client.post(f"/api/equipment/{a}/return", json={})
    first = client.post(f"/api/equipment/{a}/verify", json={"outcome": "AVAILABLE"}).json()
    assert first["auto_closed"] is False
    assert client.get(f"/api/transactions/{txn_id}").json()["status"] == "OPEN"

    client.post(f"/api/equipment/{b}/return", json={"condition": "NOT_FUNCTIONING"})
    second = client.post(f"/api/equipment/{b}/verify", json={"outcome": "DAMAGED"}).json()
    assert second["auto_closed"] is True
    assert client.get(f"/api/transactions/{txn_id}").json()["status"] == "CLOSED"


def test_add_and_remove_items(client, add_equipment):
    a = add_equipment("A")
    b = add_equipment("B")
    txn_id = client.post("/api/transactions", json={"equipment_ids": [a]}).json()["id"]

    res = client.post(f"/api/transactions/{txn_id}/items", json={"equipment_id": b})
    assert res.status_code == 201
    assert res.json()["items"] == [a, b]

    dup = client.post(f"/api/transactions/{txn_id}/items", json={"equipment_id": b})
    assert dup.status_code == 409

    res = client.delete(f"/api/transactions/{txn_id}/items/{a}")
    assert res.status_code == 200
    assert res.json()["items"] == [b]
    assert res.json()["status"] == "OPEN"
    item = client.get(f"/api/equipment/{a}").json()
    assert item["status"] == "AVAILABLE"
    assert item["assigned_to"] is None


def test_add_to_closed_transaction_rejected(client, add_equipment):
    a = add_equipment("A")
    b = add_equipment("B")
    txn_id = client.post("/api/transactions", json={"equipment_ids": [a]}).json()["id"]
    client.post(f"/api/equipment/{a}/return", json={})
    client.post(f"/api/equipment/{a}/verify", json={"outcome": "AVAILABLE"})

    res = client.post(f"/api/transactions/{txn_id}/items", json={"equipment_id": b})
    assert res.status_code == 409
    assert res.json()["detail"]["reason"] == "transaction_closed"
    assert client.get(f"/api/equipment/{b}").json()["status"] == "AVAILABLE"


def test_crew_cannot_edit_membership(client, add_equipment, add_user, login):
    a = add_equipment("A")
    b = add_equipment("B")
    txn_id = client.post("/api/transactions", json={"equipment_ids": [a]}).json()["id"]
    add_user("crew1")
    login("crew1")

    assert client.post(f"/api/transactions/{txn_id}/items", json={"equipment_id": b}).status_code == 403
    assert client.delete(f"/api/transactions/{txn_id}/items/{a}").status_code == 403
