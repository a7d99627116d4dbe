"""
Credential store: temporary, permanent, per-peer cached and proxy passwords.

Each credential kind has its own lock so that, for example, rotating the
temporary password never waits on a peer record write.
"""

import logging
import secrets
import string
import threading
from typing import Callable

from config import DEFAULT_TEMPORARY_PASSWORD_LENGTH, TEMPORARY_PASSWORD_LENGTHS
from peers.models import PeerConfig
from peers.store import PeerStore
from security.crypto import SecretSealer
from storage.config_store import ConfigStore

logger = logging.getLogger(__name__)

TEMPORARY_PASSWORD_ALPHABET = string.ascii_lowercase + string.digits
PERMANENT_PASSWORD_KEY = "password"
OPTIONS_KEY = "options"
LENGTH_OPTION = "temporary-password-length"
SOCKS_KEY = "socks"


def random_password(length: int) -> str:
    return "".join(secrets.choice(TEMPORARY_PASSWORD_ALPHABET) for _ in range(length))


class CredentialStore:
    """Holds the rotating temporary password, the permanent password and
    the passwords cached per remote peer."""

    def __init__(
        self,
        config: ConfigStore,
        peers: PeerStore,
        sealer: SecretSealer,
        generator: Callable[[int], str] = random_password,
    ):
        self._config = config
        self._peers = peers
        self._sealer = sealer
        self._generator = generator

        self._temporary: str | None = None
        self._previous_temporary = ""
        self._temporary_lock = threading.Lock()
        self._permanent_lock = threading.Lock()
        self._socks_lock = threading.Lock()

    def _temporary_length(self) -> int:
        value = self._config.get_map(OPTIONS_KEY).get(LENGTH_OPTION, "")
        try:
            length = int(value)
        except ValueError:
            return DEFAULT_TEMPORARY_PASSWORD_LENGTH
        if length not in TEMPORARY_PASSWORD_LENGTHS:
            return DEFAULT_TEMPORARY_PASSWORD_LENGTH
        return length

    def _generate(self, previous: str) -> str:
        length = self._temporary_length()
        for _ in range(8):
            candidate = self._generator(length)
            if candidate and candidate != previous:
                return candidate
        raise RuntimeError("password generator kept returning the previous value")

    # --- Temporary ---

    def get_temporary_password(self) -> str:
        """Return the current temporary password, generating it on demand.

        Returns "" if the generator fails; the failure is logged.
        """
        with self._temporary_lock:
            if self._temporary is None:
                try:
                    self._temporary = self._generate(self._previous_temporary)
                except Exception as e:
                    logger.error(f"Failed to generate temporary password: {e}")
                    return ""
            return self._temporary

    def rotate_temporary_password(self) -> None:
        """Invalidate the temporary password; the next read generates a new one."""
        with self._temporary_lock:
            if self._temporary is not None:
                self._previous_temporary = self._temporary
            self._temporary = None
        logger.info("Temporary password rotated")

    # --- Permanent ---

    def get_permanent_password(self) -> str:
        with self._permanent_lock:
            return self._sealer.unseal(self._config.get_str(PERMANENT_PASSWORD_KEY))

    def set_permanent_password(self, password: str) -> None:
        """Replace the permanent password. An empty password clears it."""
        with self._permanent_lock:
            self._config.set(PERMANENT_PASSWORD_KEY, self._sealer.seal(password))
        logger.info(f"Permanent password {'updated' if password else 'cleared'}")

    # --- Peer cached ---

    def peer_has_password(self, peer_id: str) -> bool:
        peer = self._peers.load(peer_id)
        return peer is not None and bool(peer.password)

    def get_peer_cached_password(self, peer_id: str) -> str:
        peer = self._peers.load(peer_id)
        if peer is None:
            return ""
        return self._sealer.unseal(peer.password)

    def set_peer_cached_password(self, peer_id: str, password: str) -> bool:
        """Remember a password for a known peer. Unknown peers are ignored."""
        sealed = self._sealer.seal(password)

        def apply(peer: PeerConfig) -> bool:
            peer.password = sealed
            return True

        return self._peers.update(peer_id, apply)

    def forget_password(self, peer_id: str) -> None:
        """Drop a peer's cached password. Unknown ids are a no-op."""
        def clear(peer: PeerConfig) -> bool:
            if not peer.password:
                return False
            peer.password = ""
            return True

        if self._peers.update(peer_id, clear):
            logger.info(f"Forgot cached password for {peer_id}")

    # --- SOCKS proxy ---

    def get_socks(self) -> list[str]:
        """Return [proxy, username, password], or [] when no proxy is set."""
        with self._socks_lock:
            socks = self._config.get_map(SOCKS_KEY)
        proxy = socks.get("proxy", "")
        if not proxy:
            return []
        return [proxy, socks.get("username", ""), self._sealer.unseal(socks.get("password", ""))]

    def set_socks(self, proxy: str, username: str, password: str) -> None:
        """Replace the proxy settings. An empty proxy clears them."""
        if proxy:
            value = {
                "proxy": proxy,
                "username": username,
                "password": self._sealer.seal(password),
            }
        else:
            value = None
        with self._socks_lock:
            self._config.set(SOCKS_KEY, value)
        logger.info(f"SOCKS proxy {'updated' if proxy else 'cleared'}")
