from __future__ import annotations

from fastapi.testclient import TestClient

from fmx_pm.db.models import PMTemplateTask
from fmx_pm.services.pm_template_service import PMTemplateService


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _second_task(client: TestClient, token: str, graph: dict[str, int]) -> int:
    r = client.post(
        "/task-templates",
        headers=_auth(token),
        json={
            "name": "Yearly overhaul",
            "instructionId": graph["instruction_id"],
            "requestTypeId": graph["request_type_id"],
            "firstDueDate": "2026-07-01",
            "repeatEnum": "YEARLY",
            "yearlyEveryXYears": 1,
        },
    )
    assert r.status_code == 201, r.text
    return int(r.json()["id"])


def test_pm_template_lists_tasks_and_counts(client: TestClient, admin_token: str, pm_graph: dict[str, int]):
    r = client.get(f"/pm-templates/{pm_graph['pm_template_id']}", headers=_auth(admin_token))
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["name"] == "Pump PM"
    assert data["taskCount"] == 1
    assert data["assignmentCount"] == 2
    assert data["tasks"][0]["taskTemplate"]["name"] == "Weekly pump check"


def test_pm_template_update_replaces_task_list(client: TestClient, admin_token: str, pm_graph: dict[str, int]):
    yearly_id = _second_task(client, admin_token, pm_graph)
    pid = pm_graph["pm_template_id"]

    r = client.put(
        f"/pm-templates/{pid}",
        headers=_auth(admin_token),
        json={"name": "Pump PM", "description": "with overhaul", "taskTemplateIds": [yearly_id]},
    )
    assert r.status_code == 200, r.text
    data = r.json()
    assert [t["taskTemplateId"] for t in data["tasks"]] == [yearly_id]
    assert data["description"] == "with overhaul"

    with client.app.state.db_sessionmaker() as db:
        links = db.query(PMTemplateTask).filter(PMTemplateTask.pm_template_id == pid).all()
        assert [link.task_template_id for link in links] == [yearly_id]


def test_pm_template_unknown_task_rejected_without_changes(
    client: TestClient, admin_token: str, pm_graph: dict[str, int]
):
    pid = pm_graph["pm_template_id"]
    r = client.put(
        f"/pm-templates/{pid}",
        headers=_auth(admin_token),
        json={"name": "Pump PM", "taskTemplateIds": [pm_graph["task_template_id"], 9999]},
    )
    assert r.status_code == 400
    assert r.json() == {"error": "One or more task templates not found"}

    data = client.get(f"/pm-templates/{pid}", headers=_auth(admin_token)).json()
    assert [t["taskTemplateId"] for t in data["tasks"]] == [pm_graph["task_template_id"]]


def test_pm_template_validation_and_duplicate(client: TestClient, admin_token: str, pm_graph: dict[str, int]):
    r = client.post("/pm-templates", headers=_auth(admin_token), json={"name": " "})
    assert r.status_code == 400
    assert r.json() == {"error": "Name is required"}

    r = client.post("/pm-templates", headers=_auth(admin_token), json={"name": "Pump PM"})
    assert r.status_code == 400
    assert r.json() == {"error": "A PM template with this name already exists"}

    r = client.post("/pm-templates", headers=_auth(admin_token), json={"name": "Empty PM"})
    assert r.status_code == 201
    assert r.json()["taskCount"] == 0


def test_pm_template_rename_race_is_rejected(
    client: TestClient, admin_token: str, pm_graph: dict[str, int], monkeypatch
):
    r = client.post("/pm-templates", headers=_auth(admin_token), json={"name": "Spare PM"})
    assert r.status_code == 201, r.text
    spare_id = r.json()["id"]

    # another writer claims the name after the pre-check
    monkeypatch.setattr(PMTemplateService, "_ensure_unique", lambda self, db, name, **kw: None)
    r = client.put(
        f"/pm-templates/{spare_id}",
        headers=_auth(admin_token),
        json={"name": "Pump PM", "taskTemplateIds": [pm_graph["task_template_id"]]},
    )
    assert r.status_code == 400
    assert r.json() == {"error": "A PM template with this name already exists"}

    r = client.get(f"/pm-templates/{spare_id}", headers=_auth(admin_token))
    assert r.json()["name"] == "Spare PM"
    assert r.json()["tasks"] == []


def test_pm_template_delete_requires_no_assignments(client: TestClient, admin_token: str, pm_graph: dict[str, int]):
    pid = pm_graph["pm_template_id"]
    r = client.delete(f"/pm-templates/{pid}", headers=_auth(admin_token))
    assert r.status_code == 400
    assert r.json()["error"].startswith("Cannot delete PM template that is assigned to equipment")

    for row in client.get(f"/assignments?pmTemplateId={pid}", headers=_auth(admin_token)).json():
        assert client.delete(f"/assignments/{row['id']}", headers=_auth(admin_token)).status_code == 200

    r = client.delete(f"/pm-templates/{pid}", headers=_auth(admin_token))
    assert r.status_code == 200
    with client.app.state.db_sessionmaker() as db:
        assert db.query(PMTemplateTask).filter(PMTemplateTask.pm_template_id == pid).count() == 0


def test_assignment_listing_and_settings(client: TestClient, admin_token: str, pm_graph: dict[str, int]):
    rows = client.get("/assignments", headers=_auth(admin_token)).json()
    assert [r["equipment"]["name"] for r in rows] == ["Pump A", "Pump B"]
    first = rows[0]
    assert first["buildingId"] == pm_graph["building_id"]
    assert first["outsourced"] is True
    assert first["assignedUsers"] == "tech@example.com"
    assert first["remindBeforeDaysPrimary"] == 3
    assert first["remindAfterDays"] is None
    assert first["pmTemplate"]["name"] == "Pump PM"
    assert first["equipment"]["building"]["fmxBuildingName"] == "NP-01"

    r = client.put(
        f"/assignments/{first['id']}",
        headers=_auth(admin_token),
        json={"outsourced": False, "remindAfterDays": 0, "assignedUsers": ""},
    )
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["outsourced"] is False
    assert data["remindAfterDays"] == 0
    assert data["remindBeforeDaysPrimary"] is None
    assert data["assignedUsers"] is None

    r = client.put(f"/assignments/{first['id']}", headers=_auth(admin_token), json={"remindAfterDays": -2})
    assert r.status_code == 400
    assert r.json() == {"error": "Reminder days must be non-negative whole numbers"}


def test_duplicate_assignment_names_equipment_and_building(
    client: TestClient, admin_token: str, pm_graph: dict[str, int]
):
    r = client.post(
        "/assignments",
        headers=_auth(admin_token),
        json={"pmTemplateId": pm_graph["pm_template_id"], "equipmentIds": [pm_graph["pump_b_id"]]},
    )
    assert r.status_code == 400
    assert r.json() == {"error": "PM Template is already assigned to: Pump B (North Plant)"}


def test_assignment_create_errors(client: TestClient, admin_token: str, pm_graph: dict[str, int]):
    r = client.post("/assignments", headers=_auth(admin_token), json={"pmTemplateId": pm_graph["pm_template_id"]})
    assert r.status_code == 400
    assert r.json() == {"error": "PM Template ID and equipment IDs are required"}

    r = client.post(
        "/assignments",
        headers=_auth(admin_token),
        json={"pmTemplateId": 999, "equipmentIds": [pm_graph["pump_a_id"]]},
    )
    assert r.status_code == 404
    assert r.json() == {"error": "PM Template not found"}

    other = client.post("/pm-templates", headers=_auth(admin_token), json={"name": "Other PM"}).json()
    r = client.post(
        "/assignments",
        headers=_auth(admin_token),
        json={"pmTemplateId": other["id"], "equipmentIds": [pm_graph["pump_a_id"], 4242]},
    )
    assert r.status_code == 400
    assert r.json() == {"error": "One or more equipment items not found"}
    assert client.get(f"/assignments?pmTemplateId={other['id']}", headers=_auth(admin_token)).json() == []


def test_delete_assignment_message(client: TestClient, admin_token: str, pm_graph: dict[str, int]):
    rows = client.get("/assignments", headers=_auth(admin_token)).json()
    r = client.delete(f"/assignments/{rows[0]['id']}", headers=_auth(admin_token))
    assert r.status_code == 200
    assert r.json() == {"message": 'Removed assignment of "Pump PM" from Pump A (North Plant)'}

    r = client.get(f"/assignments/{rows[0]['id']}", headers=_auth(admin_token))
    assert r.status_code == 404


def test_available_equipment_excludes_assigned(client: TestClient, admin_token: str, pm_graph: dict[str, int]):
    bid = pm_graph["building_id"]
    r = client.post(
        "/equipment",
        headers=_auth(admin_token),
        json={"buildingId": bid, "name": "Fan 1", "type": "Fan", "fmxEquipmentName": "NP-FAN-1"},
    )
    assert r.status_code == 201

    r = client.get(
        f"/assignments/available-equipment?buildingId={bid}&pmTemplateId={pm_graph['pm_template_id']}",
        headers=_auth(admin_token),
    )
    assert r.status_code == 200, r.text
    data = r.json()
    assert [e["name"] for e in data["equipment"]] == ["Fan 1"]
    assert data["equipmentTypes"] == ["Fan"]
    assert data["excludedCount"] == 2

    r = client.get(f"/assignments/available-equipment?buildingId={bid}", headers=_auth(admin_token))
    assert [e["name"] for e in r.json()["equipment"]] == ["Fan 1", "Pump A", "Pump B"]

    r = client.get("/assignments/available-equipment", headers=_auth(admin_token))
    assert r.status_code == 400
    assert r.json() == {"error": "Building ID is required"}
