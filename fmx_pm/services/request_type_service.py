from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from sqlalchemy import func
from sqlalchemy.orm import Session

from fmx_pm.db.models import RequestType, TaskTemplate
from fmx_pm.services.errors import ConflictError, NotFoundError, commit_or_conflict

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "Request type with this name already exists"
IN_USE_MESSAGE = "Cannot delete request type that is used by task templates"


def load_request_type_names(path: str | Path) -> list[str]:
    """Read the seed list. Accepts a bare list or a mapping with a ``request_types`` key."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or []
    if isinstance(data, dict):
        data = data.get("request_types") or []
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of request type names")
    return [str(x).strip() for x in data if x is not None and str(x).strip()]


class RequestTypeService:
    def list_request_types(self, db: Session) -> list[RequestType]:
        return db.query(RequestType).order_by(RequestType.name.asc()).all()

    def get_request_type(self, db: Session, request_type_id: int) -> RequestType:
        row = db.get(RequestType, int(request_type_id))
        if row is None:
            raise NotFoundError("Request type not found")
        return row

    def validate_payload(self, payload: dict[str, Any]) -> dict[str, Any]:
        name = str(payload.get("name") or "").strip()
        if not name:
            raise ValueError("Name is required")
        return {"name": name}

    def _ensure_unique(self, db: Session, name: str, *, request_type_id: Optional[int] = None) -> None:
        q = db.query(RequestType.id).filter(RequestType.name == name)
        if request_type_id is not None:
            q = q.filter(RequestType.id != request_type_id)
        if q.first() is not None:
            raise ConflictError(DUPLICATE_MESSAGE)

    def create_request_type(self, db: Session, payload: dict[str, Any]) -> RequestType:
        cleaned = self.validate_payload(payload)
        self._ensure_unique(db, cleaned["name"])
        row = RequestType(**cleaned)
        db.add(row)
        commit_or_conflict(db, DUPLICATE_MESSAGE)
        db.refresh(row)
        logger.info("Created request type id=%s name=%s", row.id, row.name)
        return row

    def update_request_type(self, db: Session, request_type_id: int, payload: dict[str, Any]) -> RequestType:
        cleaned = self.validate_payload(payload)
        row = self.get_request_type(db, request_type_id)
        self._ensure_unique(db, cleaned["name"], request_type_id=row.id)
        row.name = cleaned["name"]
        commit_or_conflict(db, DUPLICATE_MESSAGE)
        db.refresh(row)
        logger.info("Updated request type id=%s", row.id)
        return row

    def delete_request_type(self, db: Session, request_type_id: int) -> None:
        row = self.get_request_type(db, request_type_id)
        if self.task_count(db, row.id) > 0:
            raise ConflictError(IN_USE_MESSAGE)
        db.delete(row)
        commit_or_conflict(db, IN_USE_MESSAGE)
        logger.info("Deleted request type id=%s", request_type_id)

    def ensure_request_types(self, db: Session, names: list[str]) -> int:
        """Insert any of ``names`` not already present. Returns the number added."""
        existing = {n for (n,) in db.query(RequestType.name).all()}
        added = 0
        for raw in names:
            name = str(raw or "").strip()
            if not name or name in existing:
                continue
            db.add(RequestType(name=name))
            existing.add(name)
            added += 1
        commit_or_conflict(db, DUPLICATE_MESSAGE)
        return added

    def task_count(self, db: Session, request_type_id: int) -> int:
        return int(
            db.query(func.count(TaskTemplate.id)).filter(TaskTemplate.request_type_id == request_type_id).scalar()
            or 0
        )

    def request_type_out(self, db: Session, row: RequestType) -> dict[str, Any]:
        return {
            "id": int(row.id),
            "name": row.name,
            "taskCount": self.task_count(db, row.id),
            "createdAt": row.created_at,
            "updatedAt": row.updated_at,
        }
