from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fmx_pm.db.models import ServerLog


class DBLogHandler(logging.Handler):
    """Writes selected log records to the ``server_logs`` table.

    Attach it to the ``fmx_pm`` logger with a WARNING threshold; records from
    SQLAlchemy itself are skipped to avoid logging loops.
    """

    def __init__(
        self,
        sessionmaker: Callable[[], Session],
        *,
        level: int = logging.WARNING,
    ) -> None:
        super().__init__(level=level)
        self._sessionmaker = sessionmaker

    def emit(self, record: logging.LogRecord) -> None:
        if record.name.startswith("sqlalchemy"):
            return
        try:
            msg = self.format(record)
            with self._sessionmaker() as db:
                db.add(
                    ServerLog(
                        level=record.levelname,
                        logger=record.name,
                        message=msg,
                        source="backend",
                        client_ip=None,
                        meta={"pathname": record.pathname, "lineno": record.lineno},
                    )
                )
                db.commit()
        except SQLAlchemyError:
            # Never raise from logging
            self.handleError(record)
