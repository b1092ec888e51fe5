from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from fmx_pm.api.deps import get_current_principal, get_db, parse_id
from fmx_pm.api.errors import service_errors
from fmx_pm.services.instruction_service import InstructionService

router = APIRouter(prefix="/instructions", tags=["instructions"])
_service = InstructionService()


class InstructionIn(BaseModel):
    name: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    # [{"text": "..."}] or ["..."]
    steps: Optional[list[Any]] = None


@router.get("")
def list_instructions(db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    return [_service.instruction_out(db, r) for r in _service.list_instructions(db)]


@router.post("", status_code=201)
def create_instruction(req: InstructionIn, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    with service_errors():
        row = _service.create_instruction(db, req.model_dump())
    return _service.instruction_out(db, row)


@router.get("/{instruction_id}")
def get_instruction(instruction_id: str, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    iid = parse_id(instruction_id, "instruction")
    with service_errors():
        row = _service.get_instruction(db, iid)
    return _service.instruction_out(db, row)


@router.put("/{instruction_id}")
def update_instruction(
    instruction_id: str,
    req: InstructionIn,
    db: Session = Depends(get_db),
    _principal=Depends(get_current_principal),
):
    iid = parse_id(instruction_id, "instruction")
    with service_errors():
        row = _service.update_instruction(db, iid, req.model_dump())
    return _service.instruction_out(db, row)


@router.delete("/{instruction_id}")
def delete_instruction(instruction_id: str, db: Session = Depends(get_db), _principal=Depends(get_current_principal)):
    iid = parse_id(instruction_id, "instruction")
    with service_errors():
        _service.delete_instruction(db, iid)
    return {"message": "Instruction deleted successfully"}
