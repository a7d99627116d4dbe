"""
Identity Service for the local device: its public ID, install UUID and
long-term signing key.
"""

import hashlib
import logging
import re
import secrets
import threading
import uuid
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric import ed25519
from cryptography.hazmat.primitives import serialization

from storage.config_store import ConfigStore

logger = logging.getLogger(__name__)

ID_KEY = "id"
UUID_KEY = "uuid"
# Custom IDs: a letter followed by 5-15 letters, digits or underscores
CUSTOM_ID_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]{5,15}$")


def is_valid_custom_id(value: str) -> bool:
    return isinstance(value, str) and CUSTOM_ID_PATTERN.match(value) is not None


def generate_device_id() -> str:
    """A random 9-digit numeric ID, never starting with 0."""
    return str(secrets.randbelow(900_000_000) + 100_000_000)


class IdentityService:
    """Manages the device ID, install UUID and long-term signing key."""

    def __init__(self, config: ConfigStore, key_path: Path):
        self._config = config
        self._lock = threading.Lock()

        if not self._config.get_str(ID_KEY):
            self._config.set(ID_KEY, generate_device_id())
        if not self._config.get_str(UUID_KEY):
            self._config.set(UUID_KEY, str(uuid.uuid4()))

        # Long-term Identity Key (Ed25519)
        self._key_path = Path(key_path)
        self.identity_key = self._load_or_generate_key()

        logger.info(f"Initialized IdentityService with id: {self.get_id()}")

    def _load_or_generate_key(self) -> ed25519.Ed25519PrivateKey:
        """Loads the existing identity key or creates a new one."""
        if self._key_path.exists():
            try:
                key = serialization.load_pem_private_key(
                    self._key_path.read_bytes(),
                    password=None
                )
                if isinstance(key, ed25519.Ed25519PrivateKey):
                    return key
                logger.warning("Identity key has the wrong type. Generating new one.")
            except (ValueError, TypeError) as e:
                logger.warning(f"Failed to load existing identity key: {e}. Generating new one.")

        private_key = ed25519.Ed25519PrivateKey.generate()
        pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        )
        self._key_path.parent.mkdir(parents=True, exist_ok=True)
        self._key_path.write_bytes(pem)
        return private_key

    def get_id(self) -> str:
        with self._lock:
            return self._config.get_str(ID_KEY)

    def set_id(self, new_id: str) -> None:
        with self._lock:
            old_id = self._config.get_str(ID_KEY)
            self._config.set(ID_KEY, new_id)
        logger.info(f"Device ID changed from {old_id} to {new_id}")

    def get_uuid(self) -> str:
        return self._config.get_str(UUID_KEY)

    def get_public_bytes(self) -> bytes:
        """Returns the public key as 32-byte raw bytes."""
        return self.identity_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw
        )

    def get_fingerprint(self) -> str:
        """Short human-comparable fingerprint of the public key."""
        digest = hashlib.sha256(self.get_public_bytes()).hexdigest()[:32]
        return " ".join(digest[i:i + 4] for i in range(0, len(digest), 4))

    def sign(self, data: bytes) -> bytes:
        """Sign data using the long-term identity key."""
        return self.identity_key.sign(data)
