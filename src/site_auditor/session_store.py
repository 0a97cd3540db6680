"""In-memory store of crawl sessions.

Records live for the lifetime of the process; there is no eviction. A
deployment that keeps the process running for long needs a durable store
with TTL eviction instead.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from site_auditor.models import CrawlSession

logger = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    """Raised when mutating a session id the store does not know."""


class SessionStore:
    """Thread-safe mapping of test id to CrawlSession.

    Readers always receive a deep copy so they never observe a record
    halfway through an update. Only the crawler that created a session
    mutates it, through ``mutate()``.
    """

    def __init__(self):
        self._sessions: Dict[str, CrawlSession] = {}
        self._lock = threading.RLock()

    def create(self, session: CrawlSession) -> None:
        """Insert a new session record.

        Raises:
            ValueError: If the id is already in use
        """
        with self._lock:
            if session.test_id in self._sessions:
                raise ValueError(f"Session {session.test_id} already exists")
            self._sessions[session.test_id] = session
        logger.debug(f"Session created: {session.test_id}")

    def get(self, test_id: str) -> Optional[CrawlSession]:
        """Return a consistent snapshot of a session, or None."""
        with self._lock:
            session = self._sessions.get(test_id)
            return copy.deepcopy(session) if session is not None else None

    @contextmanager
    def mutate(self, test_id: str) -> Iterator[CrawlSession]:
        """Yield the live record with the store lock held.

        Raises:
            SessionNotFoundError: If the id is unknown
        """
        with self._lock:
            session = self._sessions.get(test_id)
            if session is None:
                raise SessionNotFoundError(test_id)
            yield session

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def __contains__(self, test_id: object) -> bool:
        with self._lock:
            return test_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


# Process-wide default store
default_store = SessionStore()
