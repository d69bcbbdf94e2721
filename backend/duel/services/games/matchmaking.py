from typing import Dict, Optional

from duel.models import Connection


class MatchmakingQueue:
    """One waiting slot per game mode.

    A connection occupies at most one slot; queueing it under another mode
    moves it.
    """

    def __init__(self):
        self._slots: Dict[str, Connection] = {}

    def enqueue_or_pair(self, conn: Connection) -> Optional[Connection]:
        """Return the waiting opponent for ``conn``'s mode, or park ``conn``.

        The opponent's slot is cleared when a pairing is made. Re-queueing
        the connection already waiting in the slot leaves it waiting.
        """
        waiting = self._slots.get(conn.mode)
        if waiting is not None and waiting.sid != conn.sid:
            del self._slots[conn.mode]
            self.remove(conn.sid)
            return waiting
        self.remove(conn.sid)
        self._slots[conn.mode] = conn
        return None

    def remove(self, sid: str) -> bool:
        for mode, waiting in list(self._slots.items()):
            if waiting.sid == sid:
                del self._slots[mode]
                return True
        return False

    def is_waiting(self, sid: str) -> bool:
        return any(c.sid == sid for c in self._slots.values())

    def waiting_modes(self):
        return sorted(self._slots)

    def __len__(self):
        return len(self._slots)
