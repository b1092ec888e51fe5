from __future__ import annotations

import datetime as dt
from io import BytesIO
from types import SimpleNamespace

import openpyxl
import pytest

from fmx_pm.services.fmx_export import (
    ExportFilter,
    ExportRows,
    build_export_rows,
    decimal_text,
    export_filename,
)
from fmx_pm.services.fmx_workbook import (
    INSTRUCTIONS_SHEET,
    OCCURRENCES_SHEET,
    TASK_COLUMNS,
    TASKS_SHEET,
    render_workbook,
)
from fmx_pm.services.recurrence import FREQUENCY_COLUMNS


def _task(task_id: int, repeat: str, **freq) -> SimpleNamespace:
    instruction = SimpleNamespace(
        id=100 + task_id,
        name=f"Instruction {task_id}",
        description="How to",
        steps=[
            SimpleNamespace(order_index=1, text="Replace if dirty"),
            SimpleNamespace(order_index=0, text="Check filter"),
        ],
    )
    values = {col: None for col in FREQUENCY_COLUMNS}
    values.update(freq)
    return SimpleNamespace(
        id=task_id,
        name=f"Task {task_id}",
        instruction=instruction,
        request_type=SimpleNamespace(id=1, name="Inspection"),
        location="Roof",
        first_due_date=dt.date(2026, 2, 1),
        repeat_enum=repeat,
        exclude_from=None,
        exclude_thru=None,
        next_due_mode="FIXED",
        inventory_names=None,
        inventory_quantities=None,
        est_time_hours=2.0,
        notes="",
        **values,
    )


def _graph() -> list[SimpleNamespace]:
    main = SimpleNamespace(id=1, name="Main", fmx_building_name="MAIN-01")
    annex = SimpleNamespace(id=2, name="Annex", fmx_building_name="ANNEX-01")
    rtu1 = SimpleNamespace(id=1, name="RTU-1", fmx_equipment_name="RTU-1-FMX", building=main)
    rtu2 = SimpleNamespace(id=2, name="RTU-2", fmx_equipment_name="RTU-2-FMX", building=main)
    fan = SimpleNamespace(id=3, name="Fan", fmx_equipment_name="FAN-FMX", building=annex)

    # stray daily value must not leak into a weekly row
    weekly = _task(1, "WEEKLY", weekly_mon=True, weekly_fri=True, weekly_every_x_weeks=2, daily_every_x_days=5)
    template = SimpleNamespace(id=1, name="Rooftop PM", tasks=[SimpleNamespace(task_template=weekly)])

    def assignment(eq, **kw):
        values = dict(
            assigned_users=None,
            outsourced=False,
            remind_before_days_primary=None,
            remind_before_days_secondary=None,
            remind_after_days=None,
        )
        values.update(kw)
        return SimpleNamespace(equipment=eq, pm_template=template, **values)

    return [
        assignment(rtu1, outsourced=True, remind_before_days_primary=0, assigned_users="ann@example.com"),
        assignment(rtu2),
        assignment(fan, remind_after_days=2),
    ]


def test_rows_dedup_by_instruction_and_task_building():
    rows = build_export_rows(_graph())

    assert len(rows.instructions) == 1
    assert rows.instructions[0].cells() == ["Instruction 1", "How to", "Check filter\nReplace if dirty"]

    assert [(t.building, t.equipment_items) for t in rows.tasks] == [
        ("MAIN-01", ["RTU-1-FMX", "RTU-2-FMX"]),
        ("ANNEX-01", ["FAN-FMX"]),
    ]
    assert len(rows.occurrences) == 3


def test_task_row_only_fills_active_variant():
    cells = build_export_rows(_graph()).tasks[0].cells()
    assert len(cells) == len(TASK_COLUMNS) == 28
    assert cells[:7] == ["Instruction 1", "Task 1", "Inspection", "MAIN-01", "Roof", "2026-02-01", "WEEKLY"]
    assert cells[7] is None  # daily
    assert cells[8:15] == [None, "Y", None, None, None, "Y", None]
    assert cells[15] == 2
    assert cells[16:19] == [None, None, None]
    assert cells[21] == "FIXED"
    assert cells[24] == "2"
    assert cells[25] is None
    assert cells[26:] == ["RTU-1-FMX\nRTU-2-FMX", 2]


def test_occurrence_cells():
    occ = build_export_rows(_graph()).occurrences
    assert occ[0].cells() == ["Task 1", "RTU-1-FMX", "ann@example.com", "Y", 0, None, None]
    assert occ[1].cells() == ["Task 1", "RTU-2-FMX", None, None, None, None, None]
    assert occ[2].cells()[-1] == 2


def test_decimal_text_and_filename():
    assert decimal_text(None) is None
    assert decimal_text(2.0) == "2"
    assert decimal_text(1.5) == "1.5"
    assert decimal_text(0) == "0"
    assert decimal_text(0.25) == "0.25"
    assert decimal_text(1e16) == "10000000000000000"
    assert decimal_text(0.00001) == "0.00001"
    assert decimal_text(1.5e-7) == "0.00000015"
    assert export_filename(dt.date(2026, 10, 18)) == "fmx-planned-maintenance-2026-10-18.xlsx"


def test_export_filter_requires_exactly_one_selector():
    assert ExportFilter.from_payload({"includeAllEquipment": True}).include_all
    assert ExportFilter.from_payload({"buildingIds": ["3", 3, 4]}).building_ids == (3, 4)

    with pytest.raises(ValueError, match="No buildings or equipment specified for validation"):
        ExportFilter.from_payload({"buildingIds": []}, purpose="validation")
    with pytest.raises(ValueError, match="Specify only one"):
        ExportFilter.from_payload({"includeAllEquipment": True, "equipmentIds": [1]})
    with pytest.raises(ValueError):
        ExportFilter.from_payload({"equipmentIds": ["abc"]})


def _merged(ws) -> set[str]:
    return {str(r) for r in ws.merged_cells.ranges}


def test_workbook_layout():
    wb = openpyxl.load_workbook(BytesIO(render_workbook(build_export_rows(_graph()))))
    assert wb.sheetnames == [INSTRUCTIONS_SHEET, TASKS_SHEET, OCCURRENCES_SHEET]

    ws = wb[INSTRUCTIONS_SHEET]
    assert "A1:C2" in _merged(ws)
    assert ws["A1"].value == "Instructions"
    assert [ws.cell(row=3, column=c).value for c in (1, 2, 3)] == ["Name*", "Description", "Steps*"]
    assert ws["C4"].value == "Check filter\nReplace if dirty"
    assert ws["A3"].fill.start_color.rgb.endswith("993366")

    ws = wb[TASKS_SHEET]
    merged = _merged(ws)
    assert {"A1:G1", "I1:P1", "Q1:R1", "T1:Z1", "AA1:AB1"} <= merged
    assert "H1" not in merged and ws["H1"].value == "DAILY"
    assert ws["S1"].value == "YEARLY"
    assert {"I2:O2", "T2:U2", "W2:X2"} <= merged
    assert {"A2:A3", "H2:H3", "P2:P3", "AB2:AB3"} <= merged
    assert ws["I2"].value == "Weekly on"
    assert ws["I3"].value == "Sun"
    assert ws["A2"].value == "Instruction*"
    assert ws["H1"].fill.start_color.rgb.endswith("548235")
    assert ws["I3"].fill.start_color.rgb.endswith("BF8F00")
    assert ws.max_row == 5
    assert ws["D4"].value == "MAIN-01"
    assert ws["AB5"].value == 1

    ws = wb[OCCURRENCES_SHEET]
    assert ws["A1"].value == "Task name"
    assert ws["G1"].value == "Email reminder days after"
    assert ws["A1"].font.bold
    assert ws.max_row == 4
    assert ws["D2"].value == "Y"
    assert ws["E2"].value == 0


def test_empty_rows_render_headers_only():
    wb = openpyxl.load_workbook(BytesIO(render_workbook(ExportRows())))
    assert wb[OCCURRENCES_SHEET].max_row == 1
    assert wb[INSTRUCTIONS_SHEET]["A3"].value == "Name*"
