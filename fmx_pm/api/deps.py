from __future__ import annotations

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from fmx_pm.api.middleware import UNAUTHORIZED_MESSAGE
from fmx_pm.api.security import Authenticator, Principal
from fmx_pm.core.settings import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_authenticator(request: Request) -> Authenticator:
    return request.app.state.authenticator


def get_db(request: Request):
    SessionLocal = request.app.state.db_sessionmaker
    db: Session = SessionLocal()  # type: ignore
    try:
        yield db
    finally:
        db.close()


def get_current_principal(request: Request) -> Principal:
    """Return the caller, re-checking the token if the middleware did not run."""
    cached = getattr(request.state, "principal", None)
    if isinstance(cached, Principal):
        return cached

    principal = get_authenticator(request).authenticate(request.headers.get("authorization"))
    if principal is None:
        raise HTTPException(status_code=401, detail=UNAUTHORIZED_MESSAGE)
    request.state.principal = principal
    return principal


def parse_id(raw: str, label: str) -> int:
    """Path ids arrive as text so a malformed one gets a readable 400."""
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID") from None
    if value < 1:
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID")
    return value
