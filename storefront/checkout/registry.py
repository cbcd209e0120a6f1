"""
Registre en mémoire des sessions de checkout ouvertes par l'adaptateur HTTP.
Préoccupation d'UI uniquement: une session expirée ou perdue (redémarrage) oblige
simplement le client à relancer le checkout; aucune compensation n'est nécessaire.
"""
from typing import Dict, Optional, Tuple
import threading
import time

from storefront.config import CHECKOUT_SESSION_TTL_SECONDS
from .session import CheckoutSession


class SessionRegistry:
    def __init__(self, ttl_seconds: int = CHECKOUT_SESSION_TTL_SECONDS, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._items: Dict[str, Tuple[float, CheckoutSession]] = {}
        self._lock = threading.Lock()

    def put(self, session: CheckoutSession) -> None:
        with self._lock:
            self._purge()
            self._items[session.id] = (self._clock(), session)

    def get(self, session_id: str) -> Optional[CheckoutSession]:
        with self._lock:
            self._purge()
            entry = self._items.get(session_id)
            if entry is None:
                return None
            # Chaque accès prolonge la session
            self._items[session_id] = (self._clock(), entry[1])
            return entry[1]

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._items.pop(session_id, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            self._purge()
            return len(self._items)

    def _purge(self) -> None:
        now = self._clock()
        expired = [k for k, (ts, _) in self._items.items() if now - ts > self.ttl_seconds]
        for k in expired:
            del self._items[k]


sessions = SessionRegistry()
