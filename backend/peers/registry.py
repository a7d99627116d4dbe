"""
Peer registry: known peers, favorites and recent sessions.

Favorites and recent sessions are independent projections over the
persisted records. Removing a peer cascades to its favorites entry and,
because the cached password lives inside the record, to that password too.
"""

import logging
import threading
from typing import Iterable

from peers.models import PeerConfig, PeerDisplay, PeerInfo, is_valid_peer_id
from peers.store import PeerStore
from storage.config_store import ConfigStore

logger = logging.getLogger(__name__)

FAVORITES_KEY = "fav"


def normalize_favorites(ids: Iterable[object]) -> list[str]:
    """Drop empty, non-string and duplicate entries, keeping first-seen order."""
    seen: set[str] = set()
    result = []
    for peer_id in ids:
        if not isinstance(peer_id, str) or not peer_id or peer_id in seen:
            continue
        seen.add(peer_id)
        result.append(peer_id)
    return result


class PeerRegistry:
    """Persists and queries known peers, favorites and recent sessions."""

    def __init__(self, store: PeerStore, local_config: ConfigStore):
        self._store = store
        self._local = local_config
        self._fav_lock = threading.Lock()
        self._updated_lock = threading.Lock()
        self._updated = False

    @property
    def store(self) -> PeerStore:
        return self._store

    def _mark_updated(self) -> None:
        with self._updated_lock:
            self._updated = True

    def recent_sessions_updated(self) -> bool:
        """Report whether the recent sessions changed since the last call."""
        with self._updated_lock:
            updated = self._updated
            self._updated = False
            return updated

    # --- Favorites ---

    def list_favorites(self) -> list[str]:
        with self._fav_lock:
            return self._local.get_list(FAVORITES_KEY)

    def store_favorites(self, ids: Iterable[object]) -> list[str]:
        """Replace the favorites list. Returns what was stored."""
        favorites = normalize_favorites(ids)
        with self._fav_lock:
            self._local.set(FAVORITES_KEY, favorites)
        return favorites

    # --- Peers ---

    def get_peer(self, peer_id: str) -> PeerConfig:
        """Return the stored peer, or an empty record for unknown ids."""
        peer = self._store.load(peer_id)
        if peer is None:
            return PeerConfig(id=peer_id if isinstance(peer_id, str) else "")
        return peer

    def get_peer_display(self, peer_id: str) -> PeerDisplay:
        return PeerDisplay.from_config(peer_id, self.get_peer(peer_id))

    def add_peer(
        self,
        peer_id: str,
        username: str = "",
        hostname: str = "",
        platform: str = "",
        alias: str = "",
    ) -> bool:
        """Create or refresh a peer record after a connection or manual add."""
        if not is_valid_peer_id(peer_id):
            logger.warning("Ignoring peer with invalid id")
            return False

        def refresh(peer: PeerConfig) -> bool:
            peer.info = PeerInfo(
                username=username or peer.info.username,
                hostname=hostname or peer.info.hostname,
                platform=platform or peer.info.platform,
            )
            if alias:
                peer.options["alias"] = alias
            return True

        self._store.update(peer_id, refresh, create=True)
        self._mark_updated()
        logger.info(f"Stored peer {peer_id}")
        return True

    def remove_peer(self, peer_id: str) -> None:
        """Delete a peer record and its favorites entry. Unknown ids are a no-op."""
        removed = self._store.remove(peer_id)
        with self._fav_lock:
            favorites = self._local.get_list(FAVORITES_KEY)
            if peer_id in favorites:
                self._local.set(
                    FAVORITES_KEY, [f for f in favorites if f != peer_id]
                )
                removed = True
        if removed:
            self._mark_updated()
            logger.info(f"Removed peer {peer_id}")

    def list_recent_sessions(self) -> list[PeerDisplay]:
        return [PeerDisplay.from_config(p.id, p) for p in self._store.peers()]

    # --- Peer options ---

    def get_peer_option(self, peer_id: str, name: str) -> str:
        return self.get_peer(peer_id).options.get(name, "")

    def set_peer_option(self, peer_id: str, name: str, value: str) -> None:
        """Set or (with an empty value) clear one option on a known peer."""
        if not name:
            return

        def apply(peer: PeerConfig) -> bool:
            if value:
                peer.options[name] = value
                return True
            return peer.options.pop(name, None) is not None

        if self._store.update(peer_id, apply) and name == "alias":
            self._mark_updated()
