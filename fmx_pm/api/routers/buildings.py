from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from fmx_pm.api.deps import get_current_principal, get_db, parse_id
from fmx_pm.api.errors import service_errors
from fmx_pm.services.building_service import BuildingService

router = APIRouter(prefix="/buildings", tags=["buildings"])
_service = BuildingService()


class BuildingIn(BaseModel):
    name: Optional[str] = Field(default=None, max_length=200)
    fmxBuildingName: Optional[str] = Field(default=None, max_length=200)


@router.get("")
def list_buildings(db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    return [_service.building_out(b) for b in _service.list_buildings(db)]


@router.post("", status_code=201)
def create_building(req: BuildingIn, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    with service_errors():
        row = _service.create_building(db, req.model_dump())
    return _service.building_out(row)


@router.get("/{building_id}")
def get_building(building_id: str, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    bid = parse_id(building_id, "building")
    with service_errors():
        row = _service.get_building(db, bid)
    return _service.building_out(row)


@router.put("/{building_id}")
def update_building(
    building_id: str,
    req: BuildingIn,
    db: Session = Depends(get_db),
    _principal=Depends(get_current_principal),
):
    bid = parse_id(building_id, "building")
    with service_errors():
        row = _service.update_building(db, bid, req.model_dump())
    return _service.building_out(row)


@router.delete("/{building_id}")
def delete_building(building_id: str, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    bid = parse_id(building_id, "building")
    with service_errors():
        _service.delete_building(db, bid)
    return {"message": "Building deleted successfully"}
