"""Pre-flight checks for the FMX export.

Walks the same assignment graph the export uses and collects every missing or
invalid value instead of stopping at the first one. Each equipment, building,
task template and instruction is checked once no matter how many assignments
reach it.
"""

from __future__ import annotations

import logging
import math
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Optional, Sequence

from fmx_pm.services.recurrence import COUNT_RULES, column_issues

logger = logging.getLogger(__name__)

NO_ASSIGNMENTS_MESSAGE = "No assignments found for the specified criteria"

# recurrence column -> reported field
_RECURRENCE_FIELDS = {
    "repeat_enum": "task.repeatEnum",
    "daily_every_x_days": "task.dailyEveryXDays",
    "weekly_days": "task.weeklyDays",
    "weekly_every_x_weeks": "task.weeklyEveryXWeeks",
    "monthly_mode": "task.monthlyMode",
    "monthly_every_x_months": "task.monthlyEveryXMonths",
    "yearly_every_x_years": "task.yearlyEveryXYears",
}


class NoAssignmentsError(LookupError):
    """Raised when there is nothing to validate or export."""

    def __init__(self, message: str = NO_ASSIGNMENTS_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    message: str
    item: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: list[ValidationIssue]


def _blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _est_time_ok(value: Any) -> bool:
    try:
        hours = float(value)
    except (TypeError, ValueError):
        return False
    return not math.isnan(hours) and hours >= 0


def validate_export_data(assignments: Sequence[Any]) -> ValidationResult:
    """Check that every record the export needs is complete.

    ``assignments`` are PMTemplateAssignment rows with their relationships
    loaded (equipment.building, pm_template.tasks.task_template with
    instruction.steps and request_type). Never mutates them.

    Raises NoAssignmentsError for an empty input; otherwise always returns a
    result, with ``is_valid`` False when any issue was found.
    """
    if not assignments:
        raise NoAssignmentsError()

    errors: list[ValidationIssue] = []
    seen_equipment: set[int] = set()
    seen_buildings: set[int] = set()
    seen_tasks: set[int] = set()
    seen_instructions: set[int] = set()

    def add(field: str, message: str, item: Optional[str]) -> None:
        errors.append(ValidationIssue(field=field, message=message, item=item))

    for a_idx, assignment in enumerate(assignments):
        context = f"Assignment {a_idx + 1}"
        equipment = assignment.equipment
        building = equipment.building

        if equipment.id not in seen_equipment:
            seen_equipment.add(equipment.id)
            if _blank(equipment.fmx_equipment_name):
                add(
                    "equipment.fmxEquipmentName",
                    "FMX Equipment Name is required for export",
                    f"{equipment.name} ({context})",
                )

        if building.id not in seen_buildings:
            seen_buildings.add(building.id)
            if _blank(building.fmx_building_name):
                add(
                    "building.fmxBuildingName",
                    "FMX Building Name is required for export",
                    f"{building.name} ({context})",
                )

        for t_idx, link in enumerate(assignment.pm_template.tasks or []):
            task = link.task_template
            if task.id in seen_tasks:
                continue
            seen_tasks.add(task.id)
            task_context = f"{context}, Task {t_idx + 1}"
            label = f"{task.name} ({task_context})"

            if _blank(task.name):
                add("task.name", "Task name is required", task_context)
            if task.first_due_date is None:
                add("task.firstDueDate", "First due date is required", label)
            if _blank(task.repeat_enum):
                add("task.repeatEnum", "Repeat frequency is required", label)

            for column, message in column_issues(task.repeat_enum, task):
                item = label
                if column in COUNT_RULES:
                    item = f"{label} - Current value: {getattr(task, column, None)}"
                add(_RECURRENCE_FIELDS.get(column, f"task.{column}"), message, item)

            request_type = task.request_type
            if request_type is None or _blank(request_type.name):
                add("task.requestType", "Request type is required and must be valid in FMX", label)

            instruction = task.instruction
            if instruction is None:
                add("task.instruction", "Instruction set is required", label)
            elif instruction.id not in seen_instructions:
                seen_instructions.add(instruction.id)
                if _blank(instruction.name):
                    add("instruction.name", "Instruction name is required", f"Unnamed ({task_context})")
                steps = list(instruction.steps or [])
                if not steps:
                    add("instruction.steps", "Instruction must have at least one step", f"{instruction.name} ({task_context})")
                elif any(_blank(step.text) for step in steps):
                    add("instruction.steps", "All instruction steps must have text", f"{instruction.name} ({task_context})")

            if task.exclude_from is not None and task.exclude_thru is not None:
                if task.exclude_from >= task.exclude_thru:
                    add("task.excludeDates", 'Exclude "from" date must be before "thru" date', label)

            if task.est_time_hours is not None and not _est_time_ok(task.est_time_hours):
                add("task.estTimeHours", "Estimated time must be a positive number", label)

    if errors:
        logger.info("Export validation found %s issue(s) across %s assignment(s)", len(errors), len(assignments))
    return ValidationResult(is_valid=not errors, errors=errors)


def format_validation_errors(errors: Iterable[ValidationIssue]) -> str:
    """Render issues grouped by field as a multi-line message."""
    grouped: "OrderedDict[str, list[ValidationIssue]]" = OrderedDict()
    for issue in errors:
        grouped.setdefault(issue.field, []).append(issue)
    if not grouped:
        return ""

    lines = ["Export validation failed:", ""]
    for field, issues in grouped.items():
        lines.append(f"{field}:")
        for issue in issues:
            line = f"  • {issue.message}"
            if issue.item:
                line += f" ({issue.item})"
            lines.append(line)
        lines.append("")
    lines.append("Please fix these issues before exporting.")
    return "\n".join(lines)
