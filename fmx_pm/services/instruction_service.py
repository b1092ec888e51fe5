from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from fmx_pm.db.models import InstructionSet, InstructionStep, TaskTemplate
from fmx_pm.services.errors import ConflictError, NotFoundError, commit_or_conflict, flush_or_conflict

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "Instruction with this name already exists"
IN_USE_MESSAGE = "Cannot delete instruction that is used by task templates"


def _norm_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _step_text(step: Any) -> Optional[str]:
    # Steps arrive as {"text": "..."} objects or plain strings.
    if isinstance(step, dict):
        return _norm_text(step.get("text"))
    return _norm_text(step)


class InstructionService:
    def list_instructions(self, db: Session) -> list[InstructionSet]:
        return db.query(InstructionSet).order_by(InstructionSet.name.asc()).all()

    def get_instruction(self, db: Session, instruction_id: int) -> InstructionSet:
        row = db.get(InstructionSet, int(instruction_id))
        if row is None:
            raise NotFoundError("Instruction not found")
        return row

    def validate_payload(self, payload: dict[str, Any]) -> dict[str, Any]:
        name = _norm_text(payload.get("name"))
        if name is None:
            raise ValueError("Name is required")
        steps = payload.get("steps")
        if not isinstance(steps, list) or not steps:
            raise ValueError("At least one step is required")
        texts: list[str] = []
        for i, step in enumerate(steps):
            text = _step_text(step)
            if text is None:
                raise ValueError(f"Step {i + 1} cannot be empty")
            texts.append(text)
        return {
            "name": name,
            "description": _norm_text(payload.get("description")),
            "steps": texts,
        }

    def _ensure_unique(self, db: Session, name: str, *, instruction_id: Optional[int] = None) -> None:
        q = db.query(InstructionSet.id).filter(InstructionSet.name == name)
        if instruction_id is not None:
            q = q.filter(InstructionSet.id != instruction_id)
        if q.first() is not None:
            raise ConflictError(DUPLICATE_MESSAGE)

    def create_instruction(self, db: Session, payload: dict[str, Any]) -> InstructionSet:
        cleaned = self.validate_payload(payload)
        self._ensure_unique(db, cleaned["name"])
        row = InstructionSet(name=cleaned["name"], description=cleaned["description"])
        row.steps = [InstructionStep(order_index=i, text=t) for i, t in enumerate(cleaned["steps"])]
        db.add(row)
        commit_or_conflict(db, DUPLICATE_MESSAGE)
        db.refresh(row)
        logger.info("Created instruction id=%s steps=%s", row.id, len(row.steps))
        return row

    def update_instruction(self, db: Session, instruction_id: int, payload: dict[str, Any]) -> InstructionSet:
        """Overwrite name/description and replace every step.

        Old steps are deleted and the new list re-indexed from 0 in the same
        transaction, so a failure leaves the previous steps untouched.
        """
        cleaned = self.validate_payload(payload)
        row = self.get_instruction(db, instruction_id)
        self._ensure_unique(db, cleaned["name"], instruction_id=row.id)

        row.name = cleaned["name"]
        row.description = cleaned["description"]
        # Flush the orphan deletes before inserting so (set, order_index) stays unique.
        row.steps = []
        flush_or_conflict(db, DUPLICATE_MESSAGE)
        row.steps = [InstructionStep(order_index=i, text=t) for i, t in enumerate(cleaned["steps"])]
        commit_or_conflict(db, DUPLICATE_MESSAGE)
        db.refresh(row)
        logger.info("Updated instruction id=%s steps=%s", row.id, len(row.steps))
        return row

    def delete_instruction(self, db: Session, instruction_id: int) -> None:
        row = self.get_instruction(db, instruction_id)
        if self.task_count(db, row.id) > 0:
            raise ConflictError(IN_USE_MESSAGE)
        db.delete(row)
        commit_or_conflict(db, IN_USE_MESSAGE)
        logger.info("Deleted instruction id=%s", instruction_id)

    def task_count(self, db: Session, instruction_id: int) -> int:
        return int(
            db.query(func.count(TaskTemplate.id)).filter(TaskTemplate.instruction_id == instruction_id).scalar() or 0
        )

    def instruction_out(self, db: Session, row: InstructionSet) -> dict[str, Any]:
        steps = sorted(row.steps or [], key=lambda s: s.order_index)
        return {
            "id": int(row.id),
            "name": row.name,
            "description": row.description,
            "steps": [{"id": int(s.id), "orderIndex": int(s.order_index), "text": s.text} for s in steps],
            "stepCount": len(steps),
            "taskCount": self.task_count(db, row.id),
            "createdAt": row.created_at,
            "updatedAt": row.updated_at,
        }
