from __future__ import annotations

import datetime as dt
import logging
import math
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from fmx_pm.db.models import InstructionSet, PMTemplateTask, RequestType, TaskTemplate
from fmx_pm.services.errors import ConflictError, NotFoundError, commit_or_conflict
from fmx_pm.services.recurrence import (
    NextDueMode,
    parse_recurrence,
    to_columns,
)

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "Task template with this name already exists"
IN_USE_MESSAGE = "Cannot delete task template that is used by PM templates"
REQUIRED_MESSAGE = "Name, instruction, request type, first due date, and repeat frequency are required"
EXCLUDE_ORDER_MESSAGE = 'Exclude "from" date must be before "thru" date'
EST_TIME_MESSAGE = "Estimated time must be a positive number"

# JSON attribute -> task_templates column
FREQUENCY_FIELDS = {
    "dailyEveryXDays": "daily_every_x_days",
    "weeklySun": "weekly_sun",
    "weeklyMon": "weekly_mon",
    "weeklyTues": "weekly_tues",
    "weeklyWed": "weekly_wed",
    "weeklyThur": "weekly_thur",
    "weeklyFri": "weekly_fri",
    "weeklySat": "weekly_sat",
    "weeklyEveryXWeeks": "weekly_every_x_weeks",
    "monthlyMode": "monthly_mode",
    "monthlyEveryXMonths": "monthly_every_x_months",
    "yearlyEveryXYears": "yearly_every_x_years",
}


def _norm_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_id(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_date(value: Any, *, label: str) -> Optional[dt.date]:
    """Accept a date, a datetime or an ISO string; only the date part is kept."""
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return dt.date.fromisoformat(text[:10])
    except ValueError:
        raise ValueError(f"Invalid {label}") from None


def parse_est_time(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValueError(EST_TIME_MESSAGE)
    try:
        hours = float(value)
    except (TypeError, ValueError):
        raise ValueError(EST_TIME_MESSAGE) from None
    if math.isnan(hours) or math.isinf(hours) or hours < 0:
        raise ValueError(EST_TIME_MESSAGE)
    return hours


def _iso(value: Optional[dt.date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class TaskTemplateService:
    def list_task_templates(self, db: Session) -> list[TaskTemplate]:
        return db.query(TaskTemplate).order_by(TaskTemplate.name.asc()).all()

    def get_task_template(self, db: Session, task_template_id: int) -> TaskTemplate:
        row = db.get(TaskTemplate, int(task_template_id))
        if row is None:
            raise NotFoundError("Task template not found")
        return row

    def validate_payload(self, db: Session, payload: dict[str, Any]) -> dict[str, Any]:
        """Check a task-template body and return the full column set to store.

        Every frequency column is present in the result; those not used by
        the chosen repeat mode are None.
        """
        name = _norm_text(payload.get("name"))
        instruction_id = _as_id(payload.get("instructionId"))
        request_type_id = _as_id(payload.get("requestTypeId"))
        repeat_enum = _norm_text(payload.get("repeatEnum"))
        first_due_raw = payload.get("firstDueDate")
        if (
            name is None
            or instruction_id is None
            or request_type_id is None
            or repeat_enum is None
            or _norm_text(first_due_raw) is None
        ):
            raise ValueError(REQUIRED_MESSAGE)

        first_due_date = parse_date(first_due_raw, label="first due date")

        if db.get(InstructionSet, instruction_id) is None:
            raise ValueError("Instruction not found")
        if db.get(RequestType, request_type_id) is None:
            raise ValueError("Request type not found")

        fields = {column: payload.get(attr) for attr, column in FREQUENCY_FIELDS.items()}
        recurrence = parse_recurrence(repeat_enum, fields)

        exclude_from = parse_date(payload.get("excludeFrom"), label="exclude from date")
        exclude_thru = parse_date(payload.get("excludeThru"), label="exclude thru date")
        if exclude_from is not None and exclude_thru is not None and exclude_from >= exclude_thru:
            raise ValueError(EXCLUDE_ORDER_MESSAGE)

        next_due_raw = _norm_text(payload.get("nextDueMode")) or NextDueMode.FIXED.value
        try:
            next_due_mode = NextDueMode(next_due_raw.upper())
        except ValueError:
            raise ValueError("Invalid next due date mode") from None

        return {
            "name": name,
            "instruction_id": instruction_id,
            "request_type_id": request_type_id,
            "location": _norm_text(payload.get("location")),
            "first_due_date": first_due_date,
            **to_columns(recurrence),
            "exclude_from": exclude_from,
            "exclude_thru": exclude_thru,
            "next_due_mode": next_due_mode.value,
            "inventory_names": _norm_text(payload.get("inventoryNames")),
            "inventory_quantities": _norm_text(payload.get("inventoryQuantities")),
            "est_time_hours": parse_est_time(payload.get("estTimeHours")),
            "notes": _norm_text(payload.get("notes")),
        }

    def _ensure_unique(self, db: Session, name: str, *, task_template_id: Optional[int] = None) -> None:
        q = db.query(TaskTemplate.id).filter(TaskTemplate.name == name)
        if task_template_id is not None:
            q = q.filter(TaskTemplate.id != task_template_id)
        if q.first() is not None:
            raise ConflictError(DUPLICATE_MESSAGE)

    def create_task_template(self, db: Session, payload: dict[str, Any]) -> TaskTemplate:
        cleaned = self.validate_payload(db, payload)
        self._ensure_unique(db, cleaned["name"])
        row = TaskTemplate(**cleaned)
        db.add(row)
        commit_or_conflict(db, DUPLICATE_MESSAGE)
        db.refresh(row)
        logger.info("Created task template id=%s repeat=%s", row.id, row.repeat_enum)
        return row

    def update_task_template(self, db: Session, task_template_id: int, payload: dict[str, Any]) -> TaskTemplate:
        row = self.get_task_template(db, task_template_id)
        cleaned = self.validate_payload(db, payload)
        self._ensure_unique(db, cleaned["name"], task_template_id=row.id)
        # Full overwrite: cleaned carries every frequency column, so the
        # previous variant's values are cleared in the same statement.
        for key, value in cleaned.items():
            setattr(row, key, value)
        commit_or_conflict(db, DUPLICATE_MESSAGE)
        db.refresh(row)
        logger.info("Updated task template id=%s repeat=%s", row.id, row.repeat_enum)
        return row

    def delete_task_template(self, db: Session, task_template_id: int) -> None:
        row = self.get_task_template(db, task_template_id)
        if self.pm_template_count(db, row.id) > 0:
            raise ConflictError(IN_USE_MESSAGE)
        db.delete(row)
        commit_or_conflict(db, IN_USE_MESSAGE)
        logger.info("Deleted task template id=%s", task_template_id)

    def pm_template_count(self, db: Session, task_template_id: int) -> int:
        return int(
            db.query(func.count(PMTemplateTask.id))
            .filter(PMTemplateTask.task_template_id == task_template_id)
            .scalar()
            or 0
        )

    def task_template_out(self, db: Session, row: TaskTemplate) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": int(row.id),
            "name": row.name,
            "instructionId": int(row.instruction_id),
            "requestTypeId": int(row.request_type_id),
            "location": row.location,
            "firstDueDate": _iso(row.first_due_date),
            "repeatEnum": row.repeat_enum,
        }
        for attr, column in FREQUENCY_FIELDS.items():
            out[attr] = getattr(row, column)
        out.update(
            {
                "excludeFrom": _iso(row.exclude_from),
                "excludeThru": _iso(row.exclude_thru),
                "nextDueMode": row.next_due_mode,
                "inventoryNames": row.inventory_names,
                "inventoryQuantities": row.inventory_quantities,
                "estTimeHours": row.est_time_hours,
                "notes": row.notes,
                "instruction": {"id": int(row.instruction.id), "name": row.instruction.name}
                if row.instruction is not None
                else None,
                "requestType": {"id": int(row.request_type.id), "name": row.request_type.name}
                if row.request_type is not None
                else None,
                "pmTemplateCount": self.pm_template_count(db, row.id),
                "createdAt": row.created_at,
                "updatedAt": row.updated_at,
            }
        )
        return out
