from __future__ import annotations

import datetime as dt
from io import BytesIO

import openpyxl
from fastapi.testclient import TestClient

from fmx_pm.db.models import Equipment


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _rtu_scenario(client: TestClient, token: str) -> dict[str, int]:
    def post(path: str, body: dict) -> dict:
        r = client.post(path, headers=_auth(token), json=body)
        assert r.status_code == 201, r.text
        return r.json()

    building = post("/buildings", {"name": "Main", "fmxBuildingName": "MAIN-01"})
    rtu = post(
        "/equipment",
        {"buildingId": building["id"], "name": "RTU-1", "type": "Rooftop Unit", "fmxEquipmentName": "RTU-1-FMX"},
    )
    instruction = post("/instructions", {"name": "RTU filter", "steps": ["Check filter", "Replace if dirty"]})
    request_type = post("/request-types", {"name": "Preventive Maintenance"})
    task = post(
        "/task-templates",
        {
            "name": "Monthly RTU filter",
            "instructionId": instruction["id"],
            "requestTypeId": request_type["id"],
            "firstDueDate": "2026-11-01",
            "repeatEnum": "MONTHLY",
            "monthlyMode": "DAY_OF_MONTH",
            "monthlyEveryXMonths": 1,
        },
    )
    pm = post("/pm-templates", {"name": "RTU PM", "taskTemplateIds": [task["id"]]})
    post("/assignments", {"pmTemplateId": pm["id"], "equipmentIds": [rtu["id"]]})
    return {"building_id": building["id"], "rtu_id": rtu["id"]}


def test_validate_reports_counts(client: TestClient, admin_token: str, pm_graph: dict[str, int]):
    r = client.post("/export/validate", headers=_auth(admin_token), json={"includeAllEquipment": True})
    assert r.status_code == 200, r.text
    assert r.json() == {
        "isValid": True,
        "errors": [],
        "assignmentCount": 2,
        "taskCount": 1,
        "instructionCount": 1,
        "equipmentCount": 2,
        "buildingCount": 1,
    }

    r = client.post(
        "/export/validate", headers=_auth(admin_token), json={"equipmentIds": [pm_graph["pump_b_id"]]}
    )
    assert r.json()["assignmentCount"] == 1


def test_validate_requires_a_selection(client: TestClient, admin_token: str):
    r = client.post("/export/validate", headers=_auth(admin_token), json={})
    assert r.status_code == 400
    assert r.json() == {"error": "No buildings or equipment specified for validation"}

    r = client.post("/export", headers=_auth(admin_token), json={"buildingIds": []})
    assert r.status_code == 400
    assert r.json() == {"error": "No buildings or equipment specified for export"}


def test_empty_selection_is_not_found(client: TestClient, admin_token: str, pm_graph: dict[str, int]):
    r = client.post("/export", headers=_auth(admin_token), json={"buildingIds": [9999]})
    assert r.status_code == 404
    assert r.json() == {"error": "No assignments found for the specified criteria"}

    r = client.post("/export/validate", headers=_auth(admin_token), json={"equipmentIds": [9999]})
    assert r.status_code == 404


def test_export_rtu_scenario(client: TestClient, admin_token: str):
    ids = _rtu_scenario(client, admin_token)

    r = client.post("/export", headers=_auth(admin_token), json={"buildingIds": [ids["building_id"]]})
    assert r.status_code == 200, r.text
    assert r.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    expected_name = f"fmx-planned-maintenance-{dt.date.today().isoformat()}.xlsx"
    assert r.headers["content-disposition"] == f'attachment; filename="{expected_name}"'

    wb = openpyxl.load_workbook(BytesIO(r.content))

    instructions = wb["Instructions"]
    assert instructions.max_row == 4
    assert instructions["A4"].value == "RTU filter"
    assert instructions["C4"].value == "Check filter\nReplace if dirty"

    tasks = wb["Time-based tasks"]
    assert tasks.max_row == 4
    row = [tasks.cell(row=4, column=c).value for c in range(1, 29)]
    assert row[:7] == ["RTU filter", "Monthly RTU filter", "Preventive Maintenance", "MAIN-01", None, "2026-11-01", "MONTHLY"]
    assert row[7] is None
    assert row[8:16] == [None] * 8
    assert row[16:18] == ["DAY_OF_MONTH", 1]
    assert row[18] is None
    assert row[26:] == ["RTU-1-FMX", 1]

    occurrences = wb["Occurrences"]
    assert occurrences.max_row == 2
    assert [occurrences.cell(row=2, column=c).value for c in range(1, 8)] == [
        "Monthly RTU filter",
        "RTU-1-FMX",
        None,
        None,
        None,
        None,
        None,
    ]


def test_blank_equipment_name_blocks_export(client: TestClient, admin_token: str):
    ids = _rtu_scenario(client, admin_token)
    with client.app.state.db_sessionmaker() as db:
        eq = db.get(Equipment, ids["rtu_id"])
        eq.fmx_equipment_name = ""
        db.commit()

    r = client.post("/export/validate", headers=_auth(admin_token), json={"equipmentIds": [ids["rtu_id"]]})
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["isValid"] is False
    assert len(data["errors"]) == 1
    assert data["errors"][0]["field"] == "equipment.fmxEquipmentName"
    assert "RTU-1" in data["errors"][0]["item"]

    r = client.post("/export", headers=_auth(admin_token), json={"equipmentIds": [ids["rtu_id"]]})
    assert r.status_code == 400
    message = r.json()["error"]
    assert message.startswith("Export validation failed:")
    assert "equipment.fmxEquipmentName:" in message
    assert message.endswith("Please fix these issues before exporting.")


def test_export_persists_validation_warning(client: TestClient, admin_token: str):
    ids = _rtu_scenario(client, admin_token)
    with client.app.state.db_sessionmaker() as db:
        db.get(Equipment, ids["rtu_id"]).fmx_equipment_name = " "
        db.commit()

    assert client.post("/export", headers=_auth(admin_token), json={"includeAllEquipment": True}).status_code == 400

    r = client.get("/logs/server?level=warning", headers=_auth(admin_token))
    assert r.status_code == 200
    messages = [item["message"] for item in r.json()["items"]]
    assert any("Export refused" in m for m in messages)
