"""Connection status published by the live session layer."""

import threading

from pydantic import BaseModel


class ConnectionStatus(BaseModel):
    """Read-only snapshot of the current connection."""
    status_code: int = 0
    key_confirmed: bool = False
    active_peer_id: str = ""

    def as_list(self) -> list:
        return [self.status_code, self.key_confirmed, self.active_peer_id]


DISCONNECTED = ConnectionStatus()


class ConnectionStatusBoard:
    """Holds the latest published status; readers never wait on writers
    beyond the assignment itself."""

    def __init__(self) -> None:
        self._status = DISCONNECTED
        self._lock = threading.Lock()

    def publish(self, status_code: int, key_confirmed: bool, active_peer_id: str) -> None:
        status = ConnectionStatus(
            status_code=status_code,
            key_confirmed=key_confirmed,
            active_peer_id=active_peer_id,
        )
        with self._lock:
            self._status = status

    def clear(self) -> None:
        with self._lock:
            self._status = DISCONNECTED

    def snapshot(self) -> ConnectionStatus:
        with self._lock:
            return self._status.model_copy()
