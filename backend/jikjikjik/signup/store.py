"""In-memory registry of live signup wizards, keyed by session id.

Sessions idle for longer than the TTL are dropped on the next access;
nothing is persisted across restarts.
"""

import logging
import time
from typing import Callable, Optional

from jikjikjik.config import settings
from jikjikjik.middleware.exceptions import ResourceNotFoundError
from jikjikjik.signup.wizard import SignupWizard

logger = logging.getLogger(__name__)


class SignupSessionStore:

    def __init__(
        self,
        factory: Callable[[], SignupWizard],
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.factory = factory
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.signup_session_ttl_seconds
        self.clock = clock
        self._sessions: dict[str, tuple[SignupWizard, float]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> SignupWizard:
        self.purge_expired()
        wizard = self.factory()
        self._sessions[wizard.id] = (wizard, self.clock())
        logger.info("Signup session opened: %s (%d live)", wizard.id[:8], len(self._sessions))
        return wizard

    def get(self, session_id: str) -> SignupWizard:
        """Return the wizard and mark it active. Unknown or idle-expired ids raise 404."""
        self.purge_expired()
        try:
            wizard, _ = self._sessions[session_id]
        except KeyError:
            raise ResourceNotFoundError("Signup session", session_id) from None
        self._sessions[session_id] = (wizard, self.clock())
        return wizard

    def discard(self, session_id: str) -> None:
        entry = self._sessions.pop(session_id, None)
        if entry is None:
            raise ResourceNotFoundError("Signup session", session_id)
        entry[0].close()
        logger.info("Signup session closed: %s", session_id[:8])

    def purge_expired(self) -> int:
        now = self.clock()
        expired = [
            sid for sid, (_, touched) in self._sessions.items()
            if now - touched > self.ttl_seconds
        ]
        for sid in expired:
            wizard, _ = self._sessions.pop(sid)
            wizard.close()
        if expired:
            logger.info("Purged %d idle signup session(s)", len(expired))
        return len(expired)

    def close_all(self) -> None:
        for wizard, _ in self._sessions.values():
            wizard.close()
        self._sessions.clear()
