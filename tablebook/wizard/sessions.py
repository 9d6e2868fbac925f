"""Registry of active booking-wizard sessions."""

import logging
from collections.abc import Callable
from uuid import uuid4

from tablebook.wizard.state_machine import BookingWizard

logger = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    """No wizard session with the given id."""


class WizardSessionRegistry:
    """Holds wizards by session id.

    Args:
        factory: Builds a fresh, unstarted BookingWizard.
        max_sessions: Oldest sessions are dropped beyond this count.
    """

    def __init__(self, factory: Callable[[], BookingWizard], max_sessions: int = 100) -> None:
        self.factory = factory
        self.max_sessions = max_sessions
        self._sessions: dict[str, BookingWizard] = {}

    def create(self) -> tuple[str, BookingWizard]:
        if len(self._sessions) >= self.max_sessions:
            oldest = next(iter(self._sessions))
            del self._sessions[oldest]
            logger.info("Dropped booking session %s (registry full)", oldest)
        session_id = uuid4().hex[:8]
        wizard = self.factory()
        self._sessions[session_id] = wizard
        return session_id, wizard

    def get(self, session_id: str) -> BookingWizard:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(session_id) from None

    def discard(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
