"""In-memory presence registry.

Maps a user id to the Socket.IO session id of their live connection. One
entry per user: a reconnect (or a second tab) replaces the previous handle.
Process-local and lost on restart; it is a liveness cache, the message
store is the durable record.
"""
import logging
import threading
from datetime import datetime
from typing import Dict, Optional, Set

from jobnest_server.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class PresenceEntry:
    def __init__(self, user_id: str, handle: str, user_kind=None, connected_at: Optional[datetime] = None):
        self.user_id = user_id
        self.handle = handle
        self.user_kind = user_kind
        self.connected_at = connected_at or utc_now()


class PresenceRegistry:
    """Thread-safe user id -> connection handle map."""

    def __init__(self):
        self._entries: Dict[str, PresenceEntry] = {}
        self._lock = threading.Lock()

    def register(self, user_id: str, handle: str, user_kind=None) -> Optional[str]:
        """Track handle as user_id's live connection. Returns the handle it replaced, if any."""
        entry = PresenceEntry(user_id, handle, user_kind)
        with self._lock:
            previous = self._entries.get(user_id)
            self._entries[user_id] = entry
        if previous and previous.handle != handle:
            logger.info(f"PRESENCE: user={user_id} reconnected, {previous.handle} replaced by {handle}")
            return previous.handle
        return None

    def unregister(self, user_id: str, handle: Optional[str] = None) -> bool:
        """Remove user_id's entry. No-op if absent.

        When handle is given the entry is only removed if it still belongs to
        that connection, so a stale session closing does not evict its
        replacement. Returns True if an entry was removed.
        """
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return False
            if handle is not None and entry.handle != handle:
                return False
            del self._entries[user_id]
        return True

    def lookup(self, user_id: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(user_id)
        return entry.handle if entry else None

    def get_entry(self, user_id: str) -> Optional[PresenceEntry]:
        with self._lock:
            return self._entries.get(user_id)

    def is_online(self, user_id: str) -> bool:
        return self.lookup(user_id) is not None

    def list_online(self) -> Set[str]:
        with self._lock:
            return set(self._entries)

    def __len__(self):
        with self._lock:
            return len(self._entries)
