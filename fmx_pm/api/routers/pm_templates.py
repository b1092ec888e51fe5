from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from fmx_pm.api.deps import get_current_principal, get_db, parse_id
from fmx_pm.api.errors import service_errors
from fmx_pm.services.pm_template_service import PMTemplateService

router = APIRouter(prefix="/pm-templates", tags=["pm-templates"])
_service = PMTemplateService()


class PMTemplateIn(BaseModel):
    name: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    taskTemplateIds: list[Any] = Field(default_factory=list)


@router.get("")
def list_pm_templates(db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    return [_service.pm_template_out(db, r) for r in _service.list_pm_templates(db)]


@router.post("", status_code=201)
def create_pm_template(req: PMTemplateIn, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    with service_errors():
        row = _service.create_pm_template(db, req.model_dump())
    return _service.pm_template_out(db, row)


@router.get("/{pm_template_id}")
def get_pm_template(pm_template_id: str, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    pid = parse_id(pm_template_id, "PM template")
    with service_errors():
        row = _service.get_pm_template(db, pid)
    return _service.pm_template_out(db, row)


@router.put("/{pm_template_id}")
def update_pm_template(
    pm_template_id: str,
    req: PMTemplateIn,
    db: Session = Depends(get_db),
    _principal=Depends(get_current_principal),
):
    pid = parse_id(pm_template_id, "PM template")
    with service_errors():
        row = _service.update_pm_template(db, pid, req.model_dump())
    return _service.pm_template_out(db, row)


@router.delete("/{pm_template_id}")
def delete_pm_template(pm_template_id: str, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    pid = parse_id(pm_template_id, "PM template")
    with service_errors():
        _service.delete_pm_template(db, pid)
    return {"message": "PM template deleted successfully"}
