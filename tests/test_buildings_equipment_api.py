from __future__ import annotations

from fastapi.testclient import TestClient


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _building(client: TestClient, token: str, name: str, fmx_name: str) -> dict:
    r = client.post("/buildings", headers=_auth(token), json={"name": name, "fmxBuildingName": fmx_name})
    assert r.status_code == 201, r.text
    return r.json()


def _equipment(client: TestClient, token: str, building_id: int, name: str, fmx_name: str, eq_type: str = "Pump") -> dict:
    r = client.post(
        "/equipment",
        headers=_auth(token),
        json={"buildingId": building_id, "name": name, "type": eq_type, "fmxEquipmentName": fmx_name},
    )
    assert r.status_code == 201, r.text
    return r.json()


def test_building_crud(client: TestClient, admin_token: str):
    created = _building(client, admin_token, "Main", "MAIN-01")
    bid = int(created["id"])
    assert created["fmxBuildingName"] == "MAIN-01"
    assert created["equipmentCount"] == 0

    rows = client.get("/buildings", headers=_auth(admin_token)).json()
    assert [r["name"] for r in rows] == ["Main"]

    r = client.put(
        f"/buildings/{bid}",
        headers=_auth(admin_token),
        json={"name": "Main Campus", "fmxBuildingName": "MAIN-01"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["name"] == "Main Campus"

    r = client.get(f"/buildings/{bid}", headers=_auth(admin_token))
    assert r.status_code == 200
    assert r.json()["name"] == "Main Campus"

    r = client.delete(f"/buildings/{bid}", headers=_auth(admin_token))
    assert r.status_code == 200
    assert r.json() == {"message": "Building deleted successfully"}

    r = client.get(f"/buildings/{bid}", headers=_auth(admin_token))
    assert r.status_code == 404
    assert r.json() == {"error": "Building not found"}


def test_building_validation_and_duplicates(client: TestClient, admin_token: str):
    r = client.post("/buildings", headers=_auth(admin_token), json={"name": "  ", "fmxBuildingName": "X"})
    assert r.status_code == 400
    assert r.json() == {"error": "Name and FMX Building Name are required"}

    _building(client, admin_token, "Main", "MAIN-01")
    r = client.post("/buildings", headers=_auth(admin_token), json={"name": "Other", "fmxBuildingName": "MAIN-01"})
    assert r.status_code == 409

    r = client.get("/buildings/abc", headers=_auth(admin_token))
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid building ID"}


def test_building_delete_blocked_by_equipment(client: TestClient, admin_token: str):
    building = _building(client, admin_token, "Main", "MAIN-01")
    eq = _equipment(client, admin_token, building["id"], "RTU-1", "RTU-1-FMX", "Rooftop Unit")

    r = client.delete(f"/buildings/{building['id']}", headers=_auth(admin_token))
    assert r.status_code == 409
    assert r.json() == {"error": "Cannot delete building with existing equipment"}

    assert client.delete(f"/equipment/{eq['id']}", headers=_auth(admin_token)).status_code == 200
    assert client.delete(f"/buildings/{building['id']}", headers=_auth(admin_token)).status_code == 200


def test_equipment_crud_and_filter(client: TestClient, admin_token: str):
    north = _building(client, admin_token, "North", "N-01")
    south = _building(client, admin_token, "South", "S-01")
    n1 = _equipment(client, admin_token, north["id"], "Boiler", "N-BOILER", "Boiler")
    _equipment(client, admin_token, south["id"], "Chiller", "S-CHILLER", "Chiller")

    assert n1["building"]["fmxBuildingName"] == "N-01"
    assert n1["assignmentCount"] == 0

    all_rows = client.get("/equipment", headers=_auth(admin_token)).json()
    assert [r["name"] for r in all_rows] == ["Boiler", "Chiller"]

    north_rows = client.get(f"/equipment?buildingId={north['id']}", headers=_auth(admin_token)).json()
    assert [r["fmxEquipmentName"] for r in north_rows] == ["N-BOILER"]

    r = client.put(
        f"/equipment/{n1['id']}",
        headers=_auth(admin_token),
        json={"buildingId": north["id"], "name": "Boiler 1", "type": "Boiler", "fmxEquipmentName": "N-BOILER-1"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["fmxEquipmentName"] == "N-BOILER-1"

    building = client.get(f"/buildings/{north['id']}", headers=_auth(admin_token)).json()
    assert building["equipmentCount"] == 1
    assert building["equipment"][0]["name"] == "Boiler 1"


def test_equipment_validation(client: TestClient, admin_token: str):
    r = client.post("/equipment", headers=_auth(admin_token), json={"name": "X", "type": "Pump"})
    assert r.status_code == 400
    assert r.json() == {"error": "Building ID, name, type, and FMX Equipment Name are required"}

    r = client.post(
        "/equipment",
        headers=_auth(admin_token),
        json={"buildingId": 999, "name": "X", "type": "Pump", "fmxEquipmentName": "X-1"},
    )
    assert r.status_code == 400
    assert r.json() == {"error": "Building not found"}

    building = _building(client, admin_token, "Main", "MAIN-01")
    _equipment(client, admin_token, building["id"], "Pump", "PUMP-1")
    r = client.post(
        "/equipment",
        headers=_auth(admin_token),
        json={"buildingId": building["id"], "name": "Pump copy", "type": "Pump", "fmxEquipmentName": "PUMP-1"},
    )
    assert r.status_code == 409
    assert r.json() == {"error": "Equipment with this FMX name already exists"}

    r = client.get("/equipment/12345", headers=_auth(admin_token))
    assert r.status_code == 404
    assert r.json() == {"error": "Equipment not found"}


def test_equipment_delete_blocked_by_assignment(client: TestClient, admin_token: str, pm_graph: dict[str, int]):
    r = client.delete(f"/equipment/{pm_graph['pump_a_id']}", headers=_auth(admin_token))
    assert r.status_code == 409
    assert r.json() == {"error": "Cannot delete equipment with existing assignments"}
