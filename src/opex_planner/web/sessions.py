"""Per-browser-session planner state.

The session cookie only holds a random token; the planner itself, along with
the working copies of product tags and allocations, lives in process memory.
Entries idle for longer than the session lifetime are evicted, matching the
cookie's max age.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from opex_planner.planner import ExpensePlanner
from opex_planner.tagging import ProductTagger


@dataclass
class PlannerSession:
    """Everything one user is editing."""

    planner: ExpensePlanner
    tagger: ProductTagger | None = None
    # {vendor_id: {product: {column: amount}}}; None until first loaded
    allocations: dict[str, dict[str, dict[str, float]]] | None = None
    lock: threading.RLock = field(default_factory=threading.RLock)
    last_access: float = 0.0


class PlannerStore:
    """Thread-safe map of session token to PlannerSession, with idle expiry."""

    def __init__(self, max_age_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._sessions: dict[str, PlannerSession] = {}
        self._lock = threading.Lock()

    def get(self, token: str) -> PlannerSession | None:
        with self._lock:
            self._evict_expired(self._clock())
            return self._sessions.get(token)

    def get_or_create(self, token: str, factory: Callable[[], PlannerSession]) -> PlannerSession:
        """Return the session for token, creating it with factory on first use.

        Expired sessions are dropped first, so a token that has been idle past
        the lifetime gets a freshly loaded planner.
        """
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            session = self._sessions.get(token)
            if session is None:
                session = factory()
                self._sessions[token] = session
            session.last_access = now
            return session

    def _evict_expired(self, now: float) -> None:
        cutoff = now - self.max_age_seconds
        expired = [token for token, session in self._sessions.items() if session.last_access < cutoff]
        for token in expired:
            del self._sessions[token]

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
