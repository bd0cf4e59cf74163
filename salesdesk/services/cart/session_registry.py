# salesdesk/services/cart/session_registry.py

from datetime import datetime, timezone

from salesdesk.core.config import DEFAULT_CURRENCY, SESSION_IDLE_MINUTES
from salesdesk.core.exceptions import NotFound, PermissionDenied
from salesdesk.constants.error_codes import ErrorCode
from salesdesk.services.cart.session import Actor, CartSession
from salesdesk.utils.logger import get_logger

logger = get_logger("salesdesk.services.cart")


class SessionRegistry:
    """In-memory cart sessions for this process, keyed by session id."""

    def __init__(self):
        self._sessions: dict[str, CartSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, actor: Actor, currency: str | None = None) -> CartSession:
        session = CartSession(actor, currency=currency or DEFAULT_CURRENCY)
        self._sessions[session.id] = session
        logger.info("Cart session opened", extra={"session_id": session.id, "username": actor.username})
        return session

    def get(self, session_id: str, actor: Actor) -> CartSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFound("Cart session not found", ErrorCode.SESSION_NOT_FOUND)
        if session.actor.username != actor.username:
            raise PermissionDenied(actor.role, "use another user's cart session")
        return session

    def discard(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.reset()

    def sweep_idle(self, max_idle_minutes: int = SESSION_IDLE_MINUTES, now: datetime | None = None) -> int:
        """Reset and drop sessions idle for longer than the limit. Sessions busy with an intent are skipped."""
        now = now or datetime.now(timezone.utc)
        limit = max_idle_minutes * 60

        stale = [
            sid for sid, s in self._sessions.items()
            if s.idle_for(now) > limit and not s.lock.locked()
        ]
        for sid in stale:
            self.discard(sid)

        if stale:
            logger.info("Idle cart sessions dropped", extra={"count": len(stale)})
        return len(stale)


registry = SessionRegistry()
