"""File-backed storage of peer records, one JSON file per peer."""

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable
from urllib.parse import quote

from pydantic import ValidationError

from peers.models import PeerConfig, is_valid_peer_id

logger = logging.getLogger(__name__)


class PeerStore:
    """Reads and writes peer records under a directory.

    A record's modification time is its last-use time, which orders the
    recent-sessions list. Invalid ids never reach the filesystem: they load
    as missing and writes for them are dropped.

    Every read-modify-write goes through update(), which holds the store
    lock from the read to the write, so a concurrent remove() can never be
    undone by a writer that loaded the record before it was deleted.
    """

    def __init__(self, peers_dir: Path):
        self._dir = Path(peers_dir)
        self._lock = threading.Lock()
        self._last_stamp = 0

    def _path(self, peer_id: str) -> Path:
        return self._dir / f"{quote(peer_id, safe='@._-')}.json"

    def _next_stamp(self) -> int:
        # Strictly increasing so back-to-back writes keep their order.
        stamp = max(time.time_ns(), self._last_stamp + 1)
        self._last_stamp = stamp
        return stamp

    def _read(self, path: Path) -> PeerConfig | None:
        try:
            return PeerConfig(**json.loads(path.read_text()))
        except FileNotFoundError:
            return None
        except (OSError, TypeError, ValueError, ValidationError) as e:
            logger.error(f"Failed to load peer record {path.name}: {e}")
            return None

    def _write(self, peer_id: str, peer: PeerConfig) -> None:
        # Caller holds self._lock
        peer.id = peer_id
        path = self._path(peer_id)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(json.dumps(peer.model_dump(), indent=2))
            tmp.replace(path)
            stamp = self._next_stamp()
            os.utime(path, ns=(stamp, stamp))
        except OSError as e:
            logger.error(f"Failed to save peer record {peer_id}: {e}")

    def exists(self, peer_id: str) -> bool:
        return is_valid_peer_id(peer_id) and self._path(peer_id).exists()

    def load(self, peer_id: str) -> PeerConfig | None:
        """Return the stored record, or None for unknown or invalid ids."""
        if not is_valid_peer_id(peer_id):
            return None
        with self._lock:
            return self._read(self._path(peer_id))

    def update(
        self,
        peer_id: str,
        change: Callable[[PeerConfig], bool],
        create: bool = False,
    ) -> bool:
        """Atomically apply `change` to a record and write it back.

        `change` mutates the record in place and returns False to skip the
        write. Unknown records are left alone unless `create` is set, in
        which case `change` receives an empty record. Returns True when a
        record was written; a write marks it as most recently used.
        """
        if not is_valid_peer_id(peer_id):
            return False
        with self._lock:
            peer = self._read(self._path(peer_id))
            if peer is None:
                if not create:
                    return False
                peer = PeerConfig(id=peer_id)
            if not change(peer):
                return False
            self._write(peer_id, peer)
            return True

    def remove(self, peer_id: str) -> bool:
        """Delete a record. Returns False when there was nothing to delete."""
        if not is_valid_peer_id(peer_id):
            return False
        with self._lock:
            try:
                self._path(peer_id).unlink()
                return True
            except FileNotFoundError:
                return False
            except OSError as e:
                logger.error(f"Failed to remove peer record {peer_id}: {e}")
                return False

    def peers(self) -> list[PeerConfig]:
        """All records, most recently used first."""
        if not self._dir.is_dir():
            return []
        with self._lock:
            entries = []
            for path in self._dir.glob("*.json"):
                try:
                    mtime = path.stat().st_mtime_ns
                except OSError:
                    continue
                peer = self._read(path)
                if peer is None or not is_valid_peer_id(peer.id):
                    continue
                entries.append((mtime, peer))
        entries.sort(key=lambda e: (-e[0], e[1].id))
        return [peer for _, peer in entries]
