from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class NotFoundError(LookupError):
    """Requested row does not exist."""


class ConflictError(Exception):
    """Write rejected because of a uniqueness or referential rule.

    Most conflicts surface as 409; a few (duplicate assignment, PM template
    name clash, PM template still assigned) are reported as 400.
    """

    def __init__(self, message: str, *, status_code: int = 409) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@contextmanager
def conflict_on_integrity_error(db: Session, message: str, *, status_code: int = 409) -> Iterator[None]:
    """Roll back and raise ConflictError(message) when a constraint trips inside the block."""
    try:
        yield
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Constraint violation translated to conflict: %s (%s)", message, exc.orig)
        raise ConflictError(message, status_code=status_code) from exc


def flush_or_conflict(db: Session, message: str, *, status_code: int = 409) -> None:
    with conflict_on_integrity_error(db, message, status_code=status_code):
        db.flush()


def commit_or_conflict(db: Session, message: str, *, status_code: int = 409) -> None:
    """Commit, translating a constraint violation into ConflictError(message)."""
    with conflict_on_integrity_error(db, message, status_code=status_code):
        db.commit()
