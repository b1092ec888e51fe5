from __future__ import annotations

from pathlib import Path
import sys

# Ensure repo root is importable
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))


import pytest
from fastapi.testclient import TestClient

from fmx_pm.api.app import create_app
from fmx_pm.core.settings import Settings

TEST_TOKEN = "test-admin-token"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    db_path = tmp_path / "test.db"
    return Settings(
        env="test",
        request_types_file=str(REPO_ROOT / "config" / "request_types.yaml"),
        database_url=f"sqlite:///{db_path}",
        auto_create_db=True,
        admin_token=TEST_TOKEN,
        cors_allow_origins=[],
    )


@pytest.fixture()
def client(settings: Settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def admin_token() -> str:
    return TEST_TOKEN


@pytest.fixture()
def auth_headers(admin_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture()
def pm_graph(client: TestClient, auth_headers: dict[str, str]) -> dict[str, int]:
    """One building with two pumps, a weekly task in a PM template assigned to both."""

    def post(path: str, body: dict) -> dict:
        resp = client.post(path, headers=auth_headers, json=body)
        assert resp.status_code == 201, resp.text
        return resp.json()

    building = post("/buildings", {"name": "North Plant", "fmxBuildingName": "NP-01"})
    pump_a = post(
        "/equipment",
        {"buildingId": building["id"], "name": "Pump A", "type": "Pump", "fmxEquipmentName": "NP-PUMP-A"},
    )
    pump_b = post(
        "/equipment",
        {"buildingId": building["id"], "name": "Pump B", "type": "Pump", "fmxEquipmentName": "NP-PUMP-B"},
    )
    instruction = post(
        "/instructions",
        {
            "name": "Pump inspection",
            "description": "Quarterly pump checks",
            "steps": [{"text": "Check seals"}, {"text": "Check vibration"}],
        },
    )
    request_type = post("/request-types", {"name": "Preventive Maintenance"})
    task = post(
        "/task-templates",
        {
            "name": "Weekly pump check",
            "instructionId": instruction["id"],
            "requestTypeId": request_type["id"],
            "firstDueDate": "2026-01-05",
            "repeatEnum": "WEEKLY",
            "weeklyMon": True,
            "weeklyThur": True,
            "weeklyEveryXWeeks": 2,
            "estTimeHours": 1.5,
        },
    )
    pm_template = post("/pm-templates", {"name": "Pump PM", "taskTemplateIds": [task["id"]]})
    created = post(
        "/assignments",
        {
            "pmTemplateId": pm_template["id"],
            "equipmentIds": [pump_a["id"], pump_b["id"]],
            "assignedUsers": "tech@example.com",
            "outsourced": True,
            "remindBeforeDaysPrimary": 3,
        },
    )
    assert created == {"created": 2}

    return {
        "building_id": building["id"],
        "pump_a_id": pump_a["id"],
        "pump_b_id": pump_b["id"],
        "instruction_id": instruction["id"],
        "request_type_id": request_type["id"],
        "task_template_id": task["id"],
        "pm_template_id": pm_template["id"],
    }
