from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Literal, Optional, Protocol


@dataclass(slots=True)
class Principal:
    """Authenticated caller for a request.

    There is a single admin credential today; ``type`` and ``subject`` leave
    room for per-user identities behind a different Authenticator.
    """

    type: Literal["admin"]
    subject: str


class Authenticator(Protocol):
    def authenticate(self, authorization: Optional[str]) -> Optional[Principal]:
        """Return a Principal for a valid Authorization header value, else None."""
        ...


def extract_token(authorization: Optional[str]) -> str:
    """Accept ``Bearer <token>`` or the bare token."""
    raw = (authorization or "").strip()
    if raw.lower().startswith("bearer "):
        raw = raw.split(" ", 1)[1].strip()
    return raw


class StaticTokenAuthenticator:
    """Compares the presented token with one configured shared secret."""

    def __init__(self, token: str) -> None:
        self._token = (token or "").strip()

    def authenticate(self, authorization: Optional[str]) -> Optional[Principal]:
        if not self._token:
            return None
        presented = extract_token(authorization)
        if not presented:
            return None
        if not secrets.compare_digest(presented.encode("utf-8"), self._token.encode("utf-8")):
            return None
        return Principal(type="admin", subject="admin")


def is_path_allowlisted(path: str, *, env: str) -> bool:
    """Decide if the path should bypass auth enforcement. Keep this list minimal."""
    path = (path or "/").strip() or "/"

    if path == "/health":
        return True

    if env.lower() in ("dev", "development", "local"):
        if path.startswith("/docs") or path.startswith("/redoc") or path == "/openapi.json":
            return True

    return False
