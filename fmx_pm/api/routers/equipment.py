from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from fmx_pm.api.deps import get_current_principal, get_db, parse_id
from fmx_pm.api.errors import service_errors
from fmx_pm.services.equipment_service import EquipmentService

router = APIRouter(prefix="/equipment", tags=["equipment"])
_service = EquipmentService()


class EquipmentIn(BaseModel):
    buildingId: Optional[Any] = None
    name: Optional[str] = Field(default=None, max_length=200)
    type: Optional[str] = Field(default=None, max_length=100)
    fmxEquipmentName: Optional[str] = Field(default=None, max_length=200)


@router.get("")
def list_equipment(
    buildingId: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    _principal=Depends(get_current_principal),
):
    building_id = parse_id(buildingId, "building") if buildingId else None
    rows = _service.list_equipment(db, building_id=building_id)
    return [_service.equipment_out(db, r) for r in rows]


@router.post("", status_code=201)
def create_equipment(req: EquipmentIn, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    with service_errors():
        row = _service.create_equipment(db, req.model_dump())
    return _service.equipment_out(db, row)


@router.get("/{equipment_id}")
def get_equipment(equipment_id: str, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    eid = parse_id(equipment_id, "equipment")
    with service_errors():
        row = _service.get_equipment(db, eid)
    return _service.equipment_out(db, row)


@router.put("/{equipment_id}")
def update_equipment(
    equipment_id: str,
    req: EquipmentIn,
    db: Session = Depends(get_db),
    _principal=Depends(get_current_principal),
):
    eid = parse_id(equipment_id, "equipment")
    with service_errors():
        row = _service.update_equipment(db, eid, req.model_dump())
    return _service.equipment_out(db, row)


@router.delete("/{equipment_id}")
def delete_equipment(equipment_id: str, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    eid = parse_id(equipment_id, "equipment")
    with service_errors():
        _service.delete_equipment(db, eid)
    return {"message": "Equipment deleted successfully"}
