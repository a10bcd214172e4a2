"""In-process session tokens for the HTTP API"""
import secrets
import time
from typing import Callable, Dict, Optional, Tuple

from ..config import settings
from ..schemas.auth import AuthUser


class SessionStore:
    """
    Maps opaque random tokens to signed-in users; lost on restart.

    Every token expires `ttl_seconds` after creation. Expired entries are
    dropped when looked up and swept on each new sign-in, so the map only
    holds live sessions.
    """

    def __init__(self, ttl_seconds: Optional[int] = None, clock: Optional[Callable[[], float]] = None):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.session_ttl_seconds
        self.clock = clock or time.time
        self._sessions: Dict[str, Tuple[AuthUser, float]] = {}

    def _sweep(self, now: float) -> None:
        expired = [token for token, (_, expires_at) in self._sessions.items() if expires_at <= now]
        for token in expired:
            del self._sessions[token]

    def create(self, user: AuthUser) -> str:
        now = self.clock()
        self._sweep(now)
        token = secrets.token_urlsafe(32)
        self._sessions[token] = (user, now + self.ttl_seconds)
        return token

    def get(self, token: Optional[str]) -> Optional[AuthUser]:
        if not token:
            return None
        entry = self._sessions.get(token)
        if entry is None:
            return None
        user, expires_at = entry
        if expires_at <= self.clock():
            del self._sessions[token]
            return None
        return user

    def revoke(self, token: Optional[str]) -> None:
        if token:
            self._sessions.pop(token, None)
