from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from fmx_pm.db.models import Building, Equipment
from fmx_pm.services.errors import ConflictError, NotFoundError, commit_or_conflict

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "Building with this name or FMX name already exists"


def _norm_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class BuildingService:
    def list_buildings(self, db: Session) -> list[Building]:
        return db.query(Building).order_by(Building.name.asc()).all()

    def get_building(self, db: Session, building_id: int) -> Building:
        row = db.get(Building, int(building_id))
        if row is None:
            raise NotFoundError("Building not found")
        return row

    def validate_payload(self, payload: dict[str, Any]) -> dict[str, Any]:
        name = _norm_text(payload.get("name"))
        fmx_name = _norm_text(payload.get("fmxBuildingName"))
        if name is None or fmx_name is None:
            raise ValueError("Name and FMX Building Name are required")
        return {"name": name, "fmx_building_name": fmx_name}

    def _ensure_unique(self, db: Session, cleaned: dict[str, Any], *, building_id: Optional[int] = None) -> None:
        q = db.query(Building.id).filter(
            (Building.name == cleaned["name"]) | (Building.fmx_building_name == cleaned["fmx_building_name"])
        )
        if building_id is not None:
            q = q.filter(Building.id != building_id)
        if q.first() is not None:
            raise ConflictError(DUPLICATE_MESSAGE)

    def create_building(self, db: Session, payload: dict[str, Any]) -> Building:
        cleaned = self.validate_payload(payload)
        self._ensure_unique(db, cleaned)
        row = Building(**cleaned)
        db.add(row)
        commit_or_conflict(db, DUPLICATE_MESSAGE)
        db.refresh(row)
        logger.info("Created building id=%s name=%s", row.id, row.name)
        return row

    def update_building(self, db: Session, building_id: int, payload: dict[str, Any]) -> Building:
        cleaned = self.validate_payload(payload)
        row = self.get_building(db, building_id)
        self._ensure_unique(db, cleaned, building_id=row.id)
        for key, value in cleaned.items():
            setattr(row, key, value)
        commit_or_conflict(db, DUPLICATE_MESSAGE)
        db.refresh(row)
        logger.info("Updated building id=%s", row.id)
        return row

    def delete_building(self, db: Session, building_id: int) -> None:
        row = self.get_building(db, building_id)
        count = db.query(func.count(Equipment.id)).filter(Equipment.building_id == row.id).scalar() or 0
        if count > 0:
            raise ConflictError("Cannot delete building with existing equipment")
        db.delete(row)
        commit_or_conflict(db, "Cannot delete building with existing equipment")
        logger.info("Deleted building id=%s", building_id)

    def building_ref(self, row: Building) -> dict[str, Any]:
        return {"id": int(row.id), "name": row.name, "fmxBuildingName": row.fmx_building_name}

    def building_out(self, row: Building) -> dict[str, Any]:
        equipment = list(row.equipment or [])
        return {
            **self.building_ref(row),
            "equipment": [
                {
                    "id": int(eq.id),
                    "name": eq.name,
                    "type": eq.type,
                    "fmxEquipmentName": eq.fmx_equipment_name,
                }
                for eq in equipment
            ],
            "equipmentCount": len(equipment),
            "createdAt": row.created_at,
            "updatedAt": row.updated_at,
        }
