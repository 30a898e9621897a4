"""API tests for /api/equipment."""


def test_create_equipment(client):
    res = client.post("/api/equipment", json={"barcode": "CAM-001", "name": "Sony A7S III", "category": "Camera"})
    assert res.status_code == 201
    data = res.json()
    assert data["barcode"] == "CAM-001"
    assert data["status"] == "AVAILABLE"
    assert data["condition"] == "OK"
    assert data["assigned_to"] is None


def test_create_ignores_status_and_assignee(client, add_user):
    holder_id = add_user("u1")
    res = client.post("/api/equipment", json={
        "barcode": "CAM-002", "name": "FX6", "status": "CHECKED_OUT", "assigned_to": holder_id,
    })
    assert res.status_code == 201
    assert res.json()["status"] == "AVAILABLE"
    assert res.json()["assigned_to"] is None


def test_duplicate_barcode(client, add_equipment):
    add_equipment("DUP-001")
    res = client.post("/api/equipment", json={"barcode": "DUP-001", "name": "Second"})
    assert res.status_code == 409
    assert res.json()["detail"]["reason"] == "barcode_exists"


def test_list_and_filter(client, add_equipment):
    add_equipment("CAM-001", name="Sony A7S III", category="Camera")
    add_equipment("AUD-001", name="Sennheiser MKH 416", category="Audio")

    data = client.get("/api/equipment").json()
    assert data["total"] == 2
    assert [i["barcode"] for i in data["items"]] == ["AUD-001", "CAM-001"]

    assert client.get("/api/equipment?category=Audio").json()["total"] == 1
    assert client.get("/api/equipment?search=sony").json()["total"] == 1
    assert client.get("/api/equipment?status=CHECKED_OUT").json()["total"] == 0


def test_get_by_barcode(client, add_equipment):
    item_id = add_equipment("LENS-001")
    res = client.get("/api/equipment/by-barcode/LENS-001")
    assert res.status_code == 200
    assert res.json()["id"] == item_id
    assert client.get("/api/equipment/by-barcode/NOPE").status_code == 404


def test_get_equipment_not_found(client):
    res = client.get("/api/equipment/99999")
    assert res.status_code == 404
    assert res.json()["detail"]["reason"] == "equipment_not_found"


def test_update_descriptive_fields(client, add_equipment):
    item_id = add_equipment("CAM-001", name="Old Name")
    res = client.put(f"/api/equipment/{item_id}", json={"name": "New Name", "location": "Truck 2"})
    assert res.status_code == 200
    assert res.json()["name"] == "New Name"
    assert res.json()["location"] == "Truck 2"

    history = client.get(f"/api/equipment/{item_id}/history").json()
    assert [h["action"] for h in history] == ["CREATE", "EDIT"]


def test_update_status_to_maintenance(client, add_equipment):
    item_id = add_equipment("CAM-001")
    res = client.put(f"/api/equipment/{item_id}", json={"status": "MAINTENANCE"})
    assert res.status_code == 200
    assert res.json()["status"] == "MAINTENANCE"


def test_update_status_to_checked_out_rejected(client, add_equipment):
    item_id = add_equipment("CAM-001")
    res = client.put(f"/api/equipment/{item_id}", json={"status": "CHECKED_OUT"})
    assert res.status_code == 409
    assert res.json()["detail"]["reason"] == "status_requires_workflow"
    assert client.get(f"/api/equipment/{item_id}").json()["status"] == "AVAILABLE"


def test_return_and_verify_flow(client, add_equipment):
    item_id = add_equipment("CAM-001")
    txn = client.post("/api/transactions", json={"equipment_ids": [item_id], "project": "Shoot A"}).json()

    res = client.post(f"/api/equipment/{item_id}/return", json={"condition": "SCRATCHES"})
    assert res.status_code == 200
    assert res.json()["status"] == "PENDING_VERIFICATION"
    assert res.json()["condition"] == "SCRATCHES"
    assert res.json()["assigned_to"] is not None

    pending = client.get("/api/equipment/pending").json()
    assert [p["id"] for p in pending] == [item_id]

    res = client.post(f"/api/equipment/{item_id}/verify", json={"outcome": "AVAILABLE"})
    assert res.status_code == 200
    data = res.json()
    assert data["equipment"]["status"] == "AVAILABLE"
    assert data["equipment"]["assigned_to"] is None
    assert data["auto_closed"] is True
    assert data["transaction_id"] == txn["id"]

    again = client.post(f"/api/equipment/{item_id}/verify", json={"outcome": "AVAILABLE"})
    assert again.status_code == 409
    assert again.json()["detail"]["reason"] == "not_pending_verification"


def test_return_available_item_rejected(client, add_equipment):
    item_id = add_equipment("CAM-001")
    res = client.post(f"/api/equipment/{item_id}/return", json={"condition": "OK"})
    assert res.status_code == 409
    assert res.json()["detail"]["reason"] == "not_checked_out"


def test_verify_lost_outcome_rejected(client, add_equipment):
    item_id = add_equipment("CAM-001")
    client.post("/api/transactions", json={"equipment_ids": [item_id]})
    client.post(f"/api/equipment/{item_id}/return", json={})
    res = client.post(f"/api/equipment/{item_id}/verify", json={"outcome": "LOST"})
    assert res.status_code == 422


def test_crew_cannot_verify_or_create(client, add_equipment, add_user, login):
    item_id = add_equipment("CAM-001")
    add_user("crew1")
    login("crew1")

    assert client.post("/api/equipment", json={"barcode": "X-1", "name": "X"}).status_code == 403
    assert client.post(f"/api/equipment/{item_id}/verify", json={"outcome": "AVAILABLE"}).status_code == 403
    assert client.get("/api/equipment/pending").status_code == 403
    assert client.get(f"/api/equipment/{item_id}").status_code == 200


def test_crew_checkout_and_return(client, add_equipment, add_user, login):
    item_id = add_equipment("CAM-001")
    crew_id = add_user("crew1")
    login("crew1")

    txn = client.post("/api/transactions", json={"equipment_ids": [item_id]})
    assert txn.status_code == 201
    assert txn.json()["user_id"] == crew_id

    res = client.post(f"/api/equipment/{item_id}/return", json={"condition": "NEEDS_BATTERY"})
    assert res.status_code == 200
    assert res.json()["assigned_to"] == crew_id


def test_requires_login(client):
    client.get("/logout", follow_redirects=False)
    assert client.get("/api/equipment").status_code == 401


def test_crew_cannot_return_someone_elses_item(client, add_equipment, add_user, login):
    item_id = add_equipment("CAM-001")
    add_user("alice")
    add_user("bob")
    login("alice")
    client.post("/api/transactions", json={"equipment_ids": [item_id]})

    login("bob")
    res = client.post(f"/api/equipment/{item_id}/return", json={"condition": "OK"})
    assert res.status_code == 403
    assert client.get(f"/api/equipment/{item_id}").json()["status"] == "CHECKED_OUT"


def test_manager_returns_on_behalf_of_holder(client, add_equipment, add_user, login):
    item_id = add_equipment("CAM-001")
    crew_id = add_user("alice")
    add_user("boss", role="manager")
    login("alice")
    client.post("/api/transactions", json={"equipment_ids": [item_id]})

    login("boss")
    res = client.post(f"/api/equipment/{item_id}/return", json={"condition": "OK"})
    assert res.status_code == 200
    assert res.json()["assigned_to"] == crew_id
