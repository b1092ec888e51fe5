from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from fmx_pm.api.deps import get_current_principal, get_db, parse_id
from fmx_pm.api.errors import service_errors
from fmx_pm.services.task_template_service import TaskTemplateService

router = APIRouter(prefix="/task-templates", tags=["task-templates"])
_service = TaskTemplateService()


class TaskTemplateIn(BaseModel):
    """Task template body. Frequency fields are checked against repeatEnum by the service."""

    name: Optional[str] = Field(default=None, max_length=200)
    instructionId: Optional[Any] = None
    requestTypeId: Optional[Any] = None
    location: Optional[str] = Field(default=None, max_length=200)
    firstDueDate: Optional[str] = None
    repeatEnum: Optional[str] = None

    dailyEveryXDays: Optional[Any] = None

    weeklySun: Optional[bool] = None
    weeklyMon: Optional[bool] = None
    weeklyTues: Optional[bool] = None
    weeklyWed: Optional[bool] = None
    weeklyThur: Optional[bool] = None
    weeklyFri: Optional[bool] = None
    weeklySat: Optional[bool] = None
    weeklyEveryXWeeks: Optional[Any] = None

    monthlyMode: Optional[str] = None
    monthlyEveryXMonths: Optional[Any] = None

    yearlyEveryXYears: Optional[Any] = None

    excludeFrom: Optional[str] = None
    excludeThru: Optional[str] = None
    nextDueMode: Optional[str] = None
    inventoryNames: Optional[str] = None
    inventoryQuantities: Optional[str] = None
    estTimeHours: Optional[Any] = None
    notes: Optional[str] = None


@router.get("")
def list_task_templates(db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    return [_service.task_template_out(db, r) for r in _service.list_task_templates(db)]


@router.post("", status_code=201)
def create_task_template(req: TaskTemplateIn, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    with service_errors():
        row = _service.create_task_template(db, req.model_dump())
    return _service.task_template_out(db, row)


@router.get("/{task_template_id}")
def get_task_template(task_template_id: str, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    tid = parse_id(task_template_id, "task template")
    with service_errors():
        row = _service.get_task_template(db, tid)
    return _service.task_template_out(db, row)


@router.put("/{task_template_id}")
def update_task_template(
    task_template_id: str,
    req: TaskTemplateIn,
    db: Session = Depends(get_db),
    _principal=Depends(get_current_principal),
):
    tid = parse_id(task_template_id, "task template")
    with service_errors():
        row = _service.update_task_template(db, tid, req.model_dump())
    return _service.task_template_out(db, row)


@router.delete("/{task_template_id}")
def delete_task_template(
    task_template_id: str,
    db: Session = Depends(get_db),
    _principal=Depends(get_current_principal),
):
    tid = parse_id(task_template_id, "task template")
    with service_errors():
        _service.delete_task_template(db, tid)
    return {"message": "Task template deleted successfully"}
