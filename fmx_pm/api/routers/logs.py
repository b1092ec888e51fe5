from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fmx_pm.api.deps import get_current_principal, get_db
from fmx_pm.db.models import ServerLog

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("/server")
def query_server_logs(
    db: Session = Depends(get_db),
    _principal=Depends(get_current_principal),
    level: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    q = db.query(ServerLog)
    if level:
        q = q.filter(ServerLog.level == level.upper())

    total = q.count()
    rows = q.order_by(ServerLog.ts.desc(), ServerLog.id.desc()).offset(offset).limit(limit).all()
    return {
        "total": total,
        "items": [
            {
                "ts": r.ts,
                "level": r.level,
                "logger": r.logger,
                "source": r.source,
                "message": r.message,
                "meta": r.meta,
            }
            for r in rows
        ],
    }
