from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from fmx_pm.api.deps import get_current_principal, get_db, parse_id
from fmx_pm.api.errors import service_errors
from fmx_pm.services.equipment_service import EquipmentService
from fmx_pm.services.pm_template_service import AssignmentService

router = APIRouter(prefix="/assignments", tags=["assignments"])
_service = AssignmentService()
_equipment_service = EquipmentService()


class AssignmentSettingsIn(BaseModel):
    assignedUsers: Optional[str] = None
    outsourced: bool = False
    remindBeforeDaysPrimary: Optional[Any] = None
    remindBeforeDaysSecondary: Optional[Any] = None
    remindAfterDays: Optional[Any] = None


class AssignmentCreateIn(AssignmentSettingsIn):
    pmTemplateId: Optional[Any] = None
    equipmentIds: list[Any] = Field(default_factory=list)


@router.get("")
def list_assignments(
    pmTemplateId: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    _principal=Depends(get_current_principal),
):
    pm_template_id = parse_id(pmTemplateId, "PM template") if pmTemplateId else None
    return [_service.assignment_out(r) for r in _service.list_assignments(db, pm_template_id=pm_template_id)]


@router.post("", status_code=201)
def create_assignments(req: AssignmentCreateIn, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    with service_errors():
        created = _service.create_assignments(db, req.model_dump())
    return {"created": created}


# Declared before /{assignment_id} so the literal path wins.
@router.get("/available-equipment")
def available_equipment(
    buildingId: Optional[str] = Query(default=None),
    pmTemplateId: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    _principal=Depends(get_current_principal),
):
    if not buildingId:
        raise HTTPException(status_code=400, detail="Building ID is required")
    building_id = parse_id(buildingId, "building")
    pm_template_id = parse_id(pmTemplateId, "PM template") if pmTemplateId else None
    return _equipment_service.available_equipment(db, building_id=building_id, pm_template_id=pm_template_id)


@router.get("/{assignment_id}")
def get_assignment(assignment_id: str, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    aid = parse_id(assignment_id, "assignment")
    with service_errors():
        row = _service.get_assignment(db, aid)
    return _service.assignment_out(row)


@router.put("/{assignment_id}")
def update_assignment(
    assignment_id: str,
    req: AssignmentSettingsIn,
    db: Session = Depends(get_db),
    _principal=Depends(get_current_principal),
):
    aid = parse_id(assignment_id, "assignment")
    with service_errors():
        row = _service.update_assignment(db, aid, req.model_dump())
    return _service.assignment_out(row)


@router.delete("/{assignment_id}")
def delete_assignment(assignment_id: str, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    aid = parse_id(assignment_id, "assignment")
    with service_errors():
        message = _service.delete_assignment(db, aid)
    return {"message": message}
