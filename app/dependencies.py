import secrets
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from itsdangerous import BadData, URLSafeTimedSerializer
from fastapi import Request
from fastapi.responses import Response

from dinner_planner.config import get_secret_key
from dinner_planner.core.planner import Planner

SESSION_COOKIE = "dp_session"
SESSION_MAX_AGE = 60 * 60 * 24  # 1 day
MAX_SESSIONS = 1000


def _get_signer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(get_secret_key())


def create_session_token(session_id: str) -> str:
    return _get_signer().dumps(session_id)


def read_session_token(token: str) -> Optional[str]:
    """Return the session id inside a signed token, or None if invalid/expired."""
    try:
        return _get_signer().loads(token, max_age=SESSION_MAX_AGE)
    except BadData:
        return None


@dataclass
class Session:
    id: str
    planner: Planner
    is_new: bool = False

    def attach(self, response: Response) -> Response:
        """Set the session cookie on a response when the session was just created."""
        if self.is_new:
            response.set_cookie(
                SESSION_COOKIE,
                create_session_token(self.id),
                httponly=True,
                samesite="lax",
                max_age=SESSION_MAX_AGE,
            )
        return response


# Planner state lives in process memory only, least recently seen first.
_planners: OrderedDict[str, tuple[Planner, float]] = OrderedDict()


def _evict(now: float) -> None:
    """Drop sessions idle longer than the cookie lifetime, then trim to MAX_SESSIONS."""
    while _planners:
        _, last_seen = next(iter(_planners.values()))
        if now - last_seen <= SESSION_MAX_AGE:
            break
        _planners.popitem(last=False)
    while len(_planners) > MAX_SESSIONS:
        _planners.popitem(last=False)


def _touch(session_id: str, now: float) -> Planner:
    entry = _planners.pop(session_id, None)
    planner = entry[0] if entry else Planner()
    _planners[session_id] = (planner, now)
    return planner


async def get_session(request: Request) -> Session:
    """FastAPI dependency: this browser's session, created on first visit."""
    now = time.time()
    token = request.cookies.get(SESSION_COOKIE)
    session_id = read_session_token(token) if token else None
    is_new = session_id is None
    if is_new:
        session_id = secrets.token_urlsafe(16)
    planner = _touch(session_id, now)
    _evict(now)
    return Session(session_id, planner, is_new=is_new)


def reset_sessions() -> None:
    _planners.clear()
