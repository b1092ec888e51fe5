from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from fmx_pm.api.deps import get_current_principal, get_db, parse_id
from fmx_pm.api.errors import service_errors
from fmx_pm.services.request_type_service import RequestTypeService

router = APIRouter(prefix="/request-types", tags=["request-types"])
_service = RequestTypeService()


class RequestTypeIn(BaseModel):
    name: Optional[str] = Field(default=None, max_length=200)


@router.get("")
def list_request_types(db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    return [_service.request_type_out(db, r) for r in _service.list_request_types(db)]


@router.post("", status_code=201)
def create_request_type(req: RequestTypeIn, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    with service_errors():
        row = _service.create_request_type(db, req.model_dump())
    return _service.request_type_out(db, row)


@router.get("/{request_type_id}")
def get_request_type(request_type_id: str, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    rid = parse_id(request_type_id, "request type")
    with service_errors():
        row = _service.get_request_type(db, rid)
    return _service.request_type_out(db, row)


@router.put("/{request_type_id}")
def update_request_type(
    request_type_id: str,
    req: RequestTypeIn,
    db: Session = Depends(get_db),
    _principal=Depends(get_current_principal),
):
    rid = parse_id(request_type_id, "request type")
    with service_errors():
        row = _service.update_request_type(db, rid, req.model_dump())
    return _service.request_type_out(db, row)


@router.delete("/{request_type_id}")
def delete_request_type(request_type_id: str, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    rid = parse_id(request_type_id, "request type")
    with service_errors():
        _service.delete_request_type(db, rid)
    return {"message": "Request type deleted successfully"}
