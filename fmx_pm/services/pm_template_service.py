from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from fmx_pm.db.models import Building, Equipment, PMTemplate, PMTemplateAssignment, PMTemplateTask, TaskTemplate
from fmx_pm.services.errors import ConflictError, NotFoundError, commit_or_conflict, flush_or_conflict

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "A PM template with this name already exists"
ASSIGNED_MESSAGE = "Cannot delete PM template that is assigned to equipment. Remove all assignments first."
REMINDER_MESSAGE = "Reminder days must be non-negative whole numbers"


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


def _id_list(values: Any, message: str) -> list[int]:
    """Parse a list of ids, dropping repeats but keeping first-seen order."""
    if values is None:
        return []
    if not isinstance(values, list):
        raise ValueError(message)
    out: list[int] = []
    for raw in values:
        value = _as_id(raw)
        if value is None:
            raise ValueError(message)
        if value not in out:
            out.append(value)
    return out


def _reminder(value: Any) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    parsed = _as_id(value)
    if parsed is None or parsed < 0:
        raise ValueError(REMINDER_MESSAGE)
    return parsed


class PMTemplateService:
    def list_pm_templates(self, db: Session) -> list[PMTemplate]:
        return db.query(PMTemplate).order_by(PMTemplate.name.asc()).all()

    def get_pm_template(self, db: Session, pm_template_id: int) -> PMTemplate:
        row = db.get(PMTemplate, int(pm_template_id))
        if row is None:
            raise NotFoundError("PM template not found")
        return row

    def validate_payload(self, db: Session, payload: dict[str, Any]) -> dict[str, Any]:
        name = _norm_text(payload.get("name"))
        if name is None:
            raise ValueError("Name is required")
        task_ids = _id_list(payload.get("taskTemplateIds"), "One or more task templates not found")
        if task_ids:
            found = db.query(func.count(TaskTemplate.id)).filter(TaskTemplate.id.in_(task_ids)).scalar() or 0
            if int(found) != len(task_ids):
                raise ValueError("One or more task templates not found")
        return {
            "name": name,
            "description": _norm_text(payload.get("description")),
            "task_template_ids": task_ids,
        }

    def _ensure_unique(self, db: Session, name: str, *, pm_template_id: Optional[int] = None) -> None:
        q = db.query(PMTemplate.id).filter(PMTemplate.name == name)
        if pm_template_id is not None:
            q = q.filter(PMTemplate.id != pm_template_id)
        if q.first() is not None:
            raise ConflictError(DUPLICATE_MESSAGE, status_code=400)

    def create_pm_template(self, db: Session, payload: dict[str, Any]) -> PMTemplate:
        cleaned = self.validate_payload(db, payload)
        self._ensure_unique(db, cleaned["name"])
        row = PMTemplate(name=cleaned["name"], description=cleaned["description"])
        row.tasks = [PMTemplateTask(task_template_id=tid) for tid in cleaned["task_template_ids"]]
        db.add(row)
        commit_or_conflict(db, DUPLICATE_MESSAGE, status_code=400)
        db.refresh(row)
        logger.info("Created PM template id=%s tasks=%s", row.id, len(row.tasks))
        return row

    def update_pm_template(self, db: Session, pm_template_id: int, payload: dict[str, Any]) -> PMTemplate:
        """Overwrite name/description and replace the task list in one transaction."""
        row = self.get_pm_template(db, pm_template_id)
        cleaned = self.validate_payload(db, payload)
        self._ensure_unique(db, cleaned["name"], pm_template_id=row.id)

        row.name = cleaned["name"]
        row.description = cleaned["description"]
        row.tasks = []
        flush_or_conflict(db, DUPLICATE_MESSAGE, status_code=400)
        row.tasks = [PMTemplateTask(task_template_id=tid) for tid in cleaned["task_template_ids"]]
        commit_or_conflict(db, DUPLICATE_MESSAGE, status_code=400)
        db.refresh(row)
        logger.info("Updated PM template id=%s tasks=%s", row.id, len(row.tasks))
        return row

    def delete_pm_template(self, db: Session, pm_template_id: int) -> None:
        row = self.get_pm_template(db, pm_template_id)
        if self.assignment_count(db, row.id) > 0:
            raise ConflictError(ASSIGNED_MESSAGE, status_code=400)
        db.delete(row)
        commit_or_conflict(db, ASSIGNED_MESSAGE, status_code=400)
        logger.info("Deleted PM template id=%s", pm_template_id)

    def assignment_count(self, db: Session, pm_template_id: int) -> int:
        return int(
            db.query(func.count(PMTemplateAssignment.id))
            .filter(PMTemplateAssignment.pm_template_id == pm_template_id)
            .scalar()
            or 0
        )

    def pm_template_out(self, db: Session, row: PMTemplate) -> dict[str, Any]:
        links = list(row.tasks or [])
        return {
            "id": int(row.id),
            "name": row.name,
            "description": row.description,
            "tasks": [
                {
                    "id": int(link.id),
                    "taskTemplateId": int(link.task_template_id),
                    "taskTemplate": {
                        "id": int(link.task_template.id),
                        "name": link.task_template.name,
                        "repeatEnum": link.task_template.repeat_enum,
                    },
                }
                for link in links
            ],
            "taskCount": len(links),
            "assignmentCount": self.assignment_count(db, row.id),
            "createdAt": row.created_at,
            "updatedAt": row.updated_at,
        }


class AssignmentService:
    """Bindings of a PM template to individual equipment items."""

    def list_assignments(self, db: Session, *, pm_template_id: Optional[int] = None) -> list[PMTemplateAssignment]:
        q = (
            db.query(PMTemplateAssignment)
            .join(PMTemplate, PMTemplateAssignment.pm_template_id == PMTemplate.id)
            .join(Equipment, PMTemplateAssignment.equipment_id == Equipment.id)
            .join(Building, Equipment.building_id == Building.id)
        )
        if pm_template_id is not None:
            q = q.filter(PMTemplateAssignment.pm_template_id == int(pm_template_id))
        return q.order_by(PMTemplate.name.asc(), Building.name.asc(), Equipment.name.asc()).all()

    def get_assignment(self, db: Session, assignment_id: int) -> PMTemplateAssignment:
        row = db.get(PMTemplateAssignment, int(assignment_id))
        if row is None:
            raise NotFoundError("Assignment not found")
        return row

    def validate_settings(self, payload: dict[str, Any]) -> dict[str, Any]:
        return {
            "assigned_users": _norm_text(payload.get("assignedUsers")),
            "outsourced": bool(payload.get("outsourced") or False),
            "remind_before_days_primary": _reminder(payload.get("remindBeforeDaysPrimary")),
            "remind_before_days_secondary": _reminder(payload.get("remindBeforeDaysSecondary")),
            "remind_after_days": _reminder(payload.get("remindAfterDays")),
        }

    def create_assignments(self, db: Session, payload: dict[str, Any]) -> int:
        """Assign one PM template to several equipment items at once.

        All-or-nothing: unknown equipment or an existing (template, equipment)
        pair rejects the whole batch. Returns the number of rows created.
        """
        required = "PM Template ID and equipment IDs are required"
        pm_template_id = _as_id(payload.get("pmTemplateId"))
        equipment_ids = _id_list(payload.get("equipmentIds"), required)
        if pm_template_id is None or not equipment_ids:
            raise ValueError(required)
        settings = self.validate_settings(payload)

        if db.get(PMTemplate, pm_template_id) is None:
            raise NotFoundError("PM Template not found")

        equipment = db.query(Equipment).filter(Equipment.id.in_(equipment_ids)).all()
        if len(equipment) != len(equipment_ids):
            raise ValueError("One or more equipment items not found")

        taken = {
            int(eid)
            for (eid,) in db.query(PMTemplateAssignment.equipment_id)
            .filter(
                PMTemplateAssignment.pm_template_id == pm_template_id,
                PMTemplateAssignment.equipment_id.in_(equipment_ids),
            )
            .all()
        }
        if taken:
            labels = ", ".join(f"{eq.name} ({eq.building.name})" for eq in equipment if eq.id in taken)
            raise ConflictError(f"PM Template is already assigned to: {labels}", status_code=400)

        by_id = {eq.id: eq for eq in equipment}
        for eid in equipment_ids:
            db.add(
                PMTemplateAssignment(
                    pm_template_id=pm_template_id,
                    equipment_id=eid,
                    building_id=by_id[eid].building_id,
                    **settings,
                )
            )
        commit_or_conflict(db, "PM Template is already assigned to the selected equipment", status_code=400)
        logger.info("Assigned PM template id=%s to %s equipment item(s)", pm_template_id, len(equipment_ids))
        return len(equipment_ids)

    def update_assignment(self, db: Session, assignment_id: int, payload: dict[str, Any]) -> PMTemplateAssignment:
        row = self.get_assignment(db, assignment_id)
        for key, value in self.validate_settings(payload).items():
            setattr(row, key, value)
        commit_or_conflict(db, "Assignment could not be updated")
        db.refresh(row)
        logger.info("Updated assignment id=%s", row.id)
        return row

    def delete_assignment(self, db: Session, assignment_id: int) -> str:
        row = self.get_assignment(db, assignment_id)
        message = (
            f'Removed assignment of "{row.pm_template.name}" from '
            f"{row.equipment.name} ({row.equipment.building.name})"
        )
        db.delete(row)
        db.commit()
        logger.info("Deleted assignment id=%s", assignment_id)
        return message

    def assignment_out(self, row: PMTemplateAssignment) -> dict[str, Any]:
        eq = row.equipment
        return {
            "id": int(row.id),
            "pmTemplateId": int(row.pm_template_id),
            "equipmentId": int(row.equipment_id),
            "buildingId": int(row.building_id),
            "assignedUsers": row.assigned_users,
            "outsourced": bool(row.outsourced),
            "remindBeforeDaysPrimary": row.remind_before_days_primary,
            "remindBeforeDaysSecondary": row.remind_before_days_secondary,
            "remindAfterDays": row.remind_after_days,
            "pmTemplate": {
                "id": int(row.pm_template.id),
                "name": row.pm_template.name,
                "description": row.pm_template.description,
            },
            "equipment": {
                "id": int(eq.id),
                "name": eq.name,
                "type": eq.type,
                "fmxEquipmentName": eq.fmx_equipment_name,
                "building": {
                    "id": int(eq.building.id),
                    "name": eq.building.name,
                    "fmxBuildingName": eq.building.fmx_building_name,
                },
            },
            "createdAt": row.created_at,
            "updatedAt": row.updated_at,
        }
