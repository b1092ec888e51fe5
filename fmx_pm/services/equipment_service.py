from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from fmx_pm.db.models import Building, Equipment, PMTemplateAssignment
from fmx_pm.services.errors import ConflictError, NotFoundError, commit_or_conflict

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "Equipment with this FMX name already exists"
IN_USE_MESSAGE = "Cannot delete equipment with existing assignments"


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


class EquipmentService:
    def list_equipment(self, db: Session, *, building_id: Optional[int] = None) -> list[Equipment]:
        q = db.query(Equipment).join(Building, Equipment.building_id == Building.id)
        if building_id is not None:
            q = q.filter(Equipment.building_id == int(building_id))
        return q.order_by(Building.name.asc(), Equipment.name.asc()).all()

    def get_equipment(self, db: Session, equipment_id: int) -> Equipment:
        row = db.get(Equipment, int(equipment_id))
        if row is None:
            raise NotFoundError("Equipment not found")
        return row

    def validate_payload(self, db: Session, payload: dict[str, Any]) -> dict[str, Any]:
        building_id = _as_id(payload.get("buildingId"))
        name = _norm_text(payload.get("name"))
        eq_type = _norm_text(payload.get("type"))
        fmx_name = _norm_text(payload.get("fmxEquipmentName"))
        if building_id is None or name is None or eq_type is None or fmx_name is None:
            raise ValueError("Building ID, name, type, and FMX Equipment Name are required")
        if db.get(Building, building_id) is None:
            raise ValueError("Building not found")
        return {
            "building_id": building_id,
            "name": name,
            "type": eq_type,
            "fmx_equipment_name": fmx_name,
        }

    def _ensure_unique(self, db: Session, fmx_name: str, *, equipment_id: Optional[int] = None) -> None:
        q = db.query(Equipment.id).filter(Equipment.fmx_equipment_name == fmx_name)
        if equipment_id is not None:
            q = q.filter(Equipment.id != equipment_id)
        if q.first() is not None:
            raise ConflictError(DUPLICATE_MESSAGE)

    def create_equipment(self, db: Session, payload: dict[str, Any]) -> Equipment:
        cleaned = self.validate_payload(db, payload)
        self._ensure_unique(db, cleaned["fmx_equipment_name"])
        row = Equipment(**cleaned)
        db.add(row)
        commit_or_conflict(db, DUPLICATE_MESSAGE)
        db.refresh(row)
        logger.info("Created equipment id=%s fmx_name=%s", row.id, row.fmx_equipment_name)
        return row

    def update_equipment(self, db: Session, equipment_id: int, payload: dict[str, Any]) -> Equipment:
        row = self.get_equipment(db, equipment_id)
        cleaned = self.validate_payload(db, payload)
        self._ensure_unique(db, cleaned["fmx_equipment_name"], equipment_id=row.id)
        for key, value in cleaned.items():
            setattr(row, key, value)
        commit_or_conflict(db, DUPLICATE_MESSAGE)
        db.refresh(row)
        logger.info("Updated equipment id=%s", row.id)
        return row

    def delete_equipment(self, db: Session, equipment_id: int) -> None:
        row = self.get_equipment(db, equipment_id)
        if self.assignment_count(db, row.id) > 0:
            raise ConflictError(IN_USE_MESSAGE)
        db.delete(row)
        commit_or_conflict(db, IN_USE_MESSAGE)
        logger.info("Deleted equipment id=%s", equipment_id)

    def assignment_count(self, db: Session, equipment_id: int) -> int:
        return int(
            db.query(func.count(PMTemplateAssignment.id))
            .filter(PMTemplateAssignment.equipment_id == equipment_id)
            .scalar()
            or 0
        )

    def available_equipment(
        self,
        db: Session,
        *,
        building_id: int,
        pm_template_id: Optional[int] = None,
    ) -> dict[str, Any]:
        """Equipment in a building not yet assigned the given PM template."""
        excluded: list[int] = []
        if pm_template_id is not None:
            excluded = [
                int(eid)
                for (eid,) in db.query(PMTemplateAssignment.equipment_id)
                .filter(
                    PMTemplateAssignment.pm_template_id == pm_template_id,
                    PMTemplateAssignment.building_id == building_id,
                )
                .all()
            ]
        q = db.query(Equipment).filter(Equipment.building_id == building_id)
        if excluded:
            q = q.filter(Equipment.id.notin_(excluded))
        rows = q.order_by(Equipment.type.asc(), Equipment.name.asc()).all()
        return {
            "equipment": [self.equipment_out(db, r) for r in rows],
            "equipmentTypes": sorted({r.type for r in rows}),
            "excludedCount": len(excluded),
        }

    def equipment_out(self, db: Session, row: Equipment) -> dict[str, Any]:
        building = row.building
        return {
            "id": int(row.id),
            "buildingId": int(row.building_id),
            "name": row.name,
            "type": row.type,
            "fmxEquipmentName": row.fmx_equipment_name,
            "building": {
                "id": int(building.id),
                "name": building.name,
                "fmxBuildingName": building.fmx_building_name,
            }
            if building is not None
            else None,
            "assignmentCount": self.assignment_count(db, row.id),
            "createdAt": row.created_at,
            "updatedAt": row.updated_at,
        }
