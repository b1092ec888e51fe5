"""FMX planned-maintenance export.

Selects assignments, validates them, flattens the graph into the three FMX
import sheets and hands the rows to :mod:`fmx_pm.services.fmx_workbook`.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy.orm import Session

from fmx_pm.db.models import Equipment, PMTemplateAssignment
from fmx_pm.services.export_validation import (
    NoAssignmentsError,
    ValidationResult,
    format_validation_errors,
    validate_export_data,
)
from fmx_pm.services.fmx_workbook import render_workbook
from fmx_pm.services.recurrence import Daily, Monthly, Weekly, Yearly, from_columns

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class ExportValidationError(ValueError):
    """The selected data is incomplete; ``result`` holds every issue."""

    def __init__(self, result: ValidationResult) -> None:
        self.result = result
        self.message = format_validation_errors(result.errors)
        super().__init__(self.message)


def _id_list(values: Any, message: str) -> tuple[int, ...]:
    if values is None:
        return ()
    if not isinstance(values, (list, tuple)):
        raise ValueError(message)
    out: list[int] = []
    for raw in values:
        if isinstance(raw, bool):
            raise ValueError(message)
        try:
            value = int(str(raw).strip())
        except ValueError:
            raise ValueError(message) from None
        if value not in out:
            out.append(value)
    return tuple(out)


@dataclass(frozen=True)
class ExportFilter:
    """Which equipment's assignments to export. Exactly one selector is set."""

    include_all: bool = False
    building_ids: tuple[int, ...] = ()
    equipment_ids: tuple[int, ...] = ()

    @classmethod
    def from_payload(cls, payload: dict[str, Any], *, purpose: str = "export") -> "ExportFilter":
        include_all = bool(payload.get("includeAllEquipment") or False)
        building_ids = _id_list(payload.get("buildingIds"), "buildingIds must be a list of ids")
        equipment_ids = _id_list(payload.get("equipmentIds"), "equipmentIds must be a list of ids")
        chosen = sum(1 for selector in (include_all, building_ids, equipment_ids) if selector)
        if chosen == 0:
            raise ValueError(f"No buildings or equipment specified for {purpose}")
        if chosen > 1:
            raise ValueError("Specify only one of includeAllEquipment, buildingIds or equipmentIds")
        return cls(include_all=include_all, building_ids=building_ids, equipment_ids=equipment_ids)


def load_assignments(db: Session, flt: ExportFilter) -> list[PMTemplateAssignment]:
    q = db.query(PMTemplateAssignment).join(Equipment, PMTemplateAssignment.equipment_id == Equipment.id)
    if flt.equipment_ids:
        q = q.filter(Equipment.id.in_(flt.equipment_ids))
    elif flt.building_ids:
        q = q.filter(Equipment.building_id.in_(flt.building_ids))
    return q.order_by(PMTemplateAssignment.id.asc()).all()


def summarize(assignments: Sequence[Any]) -> dict[str, int]:
    """Distinct entity counts reached by ``assignments``."""
    tasks: set[int] = set()
    instructions: set[int] = set()
    for a in assignments:
        for link in a.pm_template.tasks or []:
            tasks.add(link.task_template.id)
            if link.task_template.instruction is not None:
                instructions.add(link.task_template.instruction.id)
    return {
        "assignmentCount": len(assignments),
        "taskCount": len(tasks),
        "instructionCount": len(instructions),
        "equipmentCount": len({a.equipment.id for a in assignments}),
        "buildingCount": len({a.equipment.building.id for a in assignments}),
    }


# ---------- Rows ----------


def _iso(value: Optional[dt.date]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        value = value.date()
    return value.isoformat()


def _text(value: Optional[str]) -> Optional[str]:
    return value if value not in (None, "") else None


def decimal_text(value: Optional[float]) -> Optional[str]:
    """1.5 -> "1.5", 2.0 -> "2", 1e16 -> "10000000000000000"; None stays blank."""
    if value is None:
        return None
    text = format(Decimal(repr(float(value))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


@dataclass
class InstructionRow:
    name: str
    description: Optional[str]
    steps: str

    def cells(self) -> list[Any]:
        return [self.name, self.description, self.steps]


@dataclass
class TaskRow:
    instruction: str
    name: str
    request_type: str
    building: str
    location: Optional[str]
    first_due_date: Optional[str]
    repeat: str
    daily_every_x_days: Optional[int] = None
    weekly_days: tuple[Optional[str], ...] = (None,) * 7
    weekly_every_x_weeks: Optional[int] = None
    monthly_mode: Optional[str] = None
    monthly_every_x_months: Optional[int] = None
    yearly_every_x_years: Optional[int] = None
    exclude_from: Optional[str] = None
    exclude_thru: Optional[str] = None
    next_due_mode: Optional[str] = None
    inventory_names: Optional[str] = None
    inventory_quantities: Optional[str] = None
    est_time_hours: Optional[str] = None
    notes: Optional[str] = None
    equipment_items: list[str] = field(default_factory=list)

    def cells(self) -> list[Any]:
        return [
            self.instruction,
            self.name,
            self.request_type,
            self.building,
            self.location,
            self.first_due_date,
            self.repeat,
            self.daily_every_x_days,
            *self.weekly_days,
            self.weekly_every_x_weeks,
            self.monthly_mode,
            self.monthly_every_x_months,
            self.yearly_every_x_years,
            self.exclude_from,
            self.exclude_thru,
            self.next_due_mode,
            self.inventory_names,
            self.inventory_quantities,
            self.est_time_hours,
            self.notes,
            "\n".join(self.equipment_items) or None,
            len(self.equipment_items),
        ]


@dataclass
class OccurrenceRow:
    task_name: str
    equipment_item: str
    assigned_users: Optional[str]
    outsourced: Optional[str]
    remind_before_days_primary: Optional[int]
    remind_before_days_secondary: Optional[int]
    remind_after_days: Optional[int]

    def cells(self) -> list[Any]:
        return [
            self.task_name,
            self.equipment_item,
            self.assigned_users,
            self.outsourced,
            self.remind_before_days_primary,
            self.remind_before_days_secondary,
            self.remind_after_days,
        ]


@dataclass
class ExportRows:
    instructions: list[InstructionRow] = field(default_factory=list)
    tasks: list[TaskRow] = field(default_factory=list)
    occurrences: list[OccurrenceRow] = field(default_factory=list)


def _task_row(task: Any, building: Any) -> TaskRow:
    row = TaskRow(
        instruction=task.instruction.name,
        name=task.name,
        request_type=task.request_type.name,
        building=building.fmx_building_name,
        location=_text(task.location),
        first_due_date=_iso(task.first_due_date),
        repeat=task.repeat_enum,
        exclude_from=_iso(task.exclude_from),
        exclude_thru=_iso(task.exclude_thru),
        next_due_mode=task.next_due_mode,
        inventory_names=_text(task.inventory_names),
        inventory_quantities=_text(task.inventory_quantities),
        est_time_hours=decimal_text(task.est_time_hours),
        notes=_text(task.notes),
    )
    # Only the active variant's columns are filled.
    recurrence = from_columns(task.repeat_enum, task)
    if isinstance(recurrence, Daily):
        row.daily_every_x_days = recurrence.every_x_days
    elif isinstance(recurrence, Weekly):
        row.weekly_days = tuple("Y" if flag else None for flag in recurrence.days)
        row.weekly_every_x_weeks = recurrence.every_x_weeks
    elif isinstance(recurrence, Monthly):
        row.monthly_mode = recurrence.monthly_mode.value
        row.monthly_every_x_months = recurrence.every_x_months
    elif isinstance(recurrence, Yearly):
        row.yearly_every_x_years = recurrence.every_x_years
    return row


def build_export_rows(assignments: Sequence[Any]) -> ExportRows:
    """Flatten validated assignments into the three sheet row sets.

    Instructions are keyed by instruction id, tasks by (task template id,
    building id); occurrences get one row per (assignment, task) pair.
    """
    instructions: dict[int, InstructionRow] = {}
    tasks: dict[tuple[int, int], TaskRow] = {}
    occurrences: list[OccurrenceRow] = []

    for assignment in assignments:
        equipment = assignment.equipment
        building = equipment.building
        for link in assignment.pm_template.tasks or []:
            task = link.task_template
            instruction = task.instruction

            if instruction.id not in instructions:
                steps = sorted(instruction.steps or [], key=lambda s: s.order_index)
                instructions[instruction.id] = InstructionRow(
                    name=instruction.name,
                    description=_text(instruction.description),
                    steps="\n".join(step.text for step in steps),
                )

            key = (task.id, building.id)
            if key not in tasks:
                tasks[key] = _task_row(task, building)
            tasks[key].equipment_items.append(equipment.fmx_equipment_name)

            occurrences.append(
                OccurrenceRow(
                    task_name=task.name,
                    equipment_item=equipment.fmx_equipment_name,
                    assigned_users=_text(assignment.assigned_users),
                    outsourced="Y" if assignment.outsourced else None,
                    remind_before_days_primary=assignment.remind_before_days_primary,
                    remind_before_days_secondary=assignment.remind_before_days_secondary,
                    remind_after_days=assignment.remind_after_days,
                )
            )

    return ExportRows(
        instructions=list(instructions.values()),
        tasks=list(tasks.values()),
        occurrences=occurrences,
    )


def export_filename(today: dt.date, *, prefix: str = "fmx-planned-maintenance") -> str:
    return f"{prefix}-{today.isoformat()}.xlsx"


@dataclass(frozen=True)
class ExportArtifact:
    filename: str
    content: bytes
    media_type: str = XLSX_MEDIA_TYPE


def validate_selection(db: Session, flt: ExportFilter) -> tuple[ValidationResult, dict[str, int]]:
    assignments = load_assignments(db, flt)
    result = validate_export_data(assignments)
    return result, summarize(assignments)


def generate_export(
    db: Session,
    flt: ExportFilter,
    *,
    today: Optional[dt.date] = None,
    prefix: str = "fmx-planned-maintenance",
) -> ExportArtifact:
    """Build the FMX workbook for the selected equipment.

    Validation always runs first; nothing is rendered when it fails.
    Raises NoAssignmentsError or ExportValidationError.
    """
    assignments = load_assignments(db, flt)
    if not assignments:
        raise NoAssignmentsError()

    result = validate_export_data(assignments)
    if not result.is_valid:
        logger.warning("Export refused: %s validation issue(s)", len(result.errors))
        raise ExportValidationError(result)

    rows = build_export_rows(assignments)
    content = render_workbook(rows)
    filename = export_filename(today or dt.date.today(), prefix=prefix)
    logger.info(
        "Generated %s: %s instruction(s), %s task row(s), %s occurrence(s)",
        filename,
        len(rows.instructions),
        len(rows.tasks),
        len(rows.occurrences),
    )
    return ExportArtifact(filename=filename, content=content)
