from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from fmx_pm.api.deps import get_current_principal, get_db, get_settings
from fmx_pm.core.settings import Settings
from fmx_pm.services.export_validation import NoAssignmentsError
from fmx_pm.services.fmx_export import ExportFilter, ExportValidationError, generate_export, validate_selection

router = APIRouter(prefix="/export", tags=["export"])


class ExportIn(BaseModel):
    includeAllEquipment: Optional[bool] = None
    buildingIds: Optional[list[Any]] = None
    equipmentIds: Optional[list[Any]] = None


def _filter(req: ExportIn, purpose: str) -> ExportFilter:
    try:
        return ExportFilter.from_payload(req.model_dump(), purpose=purpose)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/validate")
def validate_export(req: ExportIn, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    flt = _filter(req, "validation")
    try:
        result, counts = validate_selection(db, flt)
    except NoAssignmentsError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc
    return {
        "isValid": result.is_valid,
        "errors": [issue.to_dict() for issue in result.errors],
        **counts,
    }


@router.post("")
def export_workbook(
    req: ExportIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    _principal=Depends(get_current_principal),
):
    flt = _filter(req, "export")
    try:
        artifact = generate_export(db, flt, prefix=settings.export_filename_prefix)
    except NoAssignmentsError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc
    except ExportValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
    )
