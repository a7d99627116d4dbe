"""
Security module: at-rest sealing of stored secrets with AES-256-GCM.

The sealing key is derived with HKDF-SHA256 from a random root secret
kept next to the configuration. Sealed values are hex strings so they fit
in the JSON config files.
"""

import os
import logging
from pathlib import Path

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.hashes import SHA256
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

# AES-256-GCM nonce size (12 bytes recommended)
NONCE_SIZE = 12
# AES-256 key size
KEY_SIZE = 32
ROOT_SECRET_SIZE = 32


def load_or_create_root_secret(path: Path) -> bytes:
    """Load the root secret, creating it on first use."""
    path = Path(path)
    if path.exists():
        data = path.read_bytes()
        if len(data) == ROOT_SECRET_SIZE:
            return data
        logger.warning(f"Root secret at {path} is malformed. Generating new one.")

    secret = os.urandom(ROOT_SECRET_SIZE)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(secret)
    try:
        os.chmod(path, 0o600)
    except OSError:
        pass
    return secret


def derive_storage_key(root_secret: bytes, purpose: bytes) -> bytes:
    """
    Derive a 32-byte AES-256 key for one kind of stored secret.

    Uses HKDF-SHA256 with the purpose as context info.
    """
    return HKDF(
        algorithm=SHA256(),
        length=KEY_SIZE,
        salt=None,
        info=b"desklink-v1-" + purpose,
    ).derive(root_secret)


def encrypt_secret(key: bytes, plaintext: str) -> str:
    """
    Encrypt a secret string using AES-256-GCM.

    Returns: hex(nonce (12 bytes) || ciphertext || tag (16 bytes))
    """
    nonce = os.urandom(NONCE_SIZE)
    aesgcm = AESGCM(key)
    ciphertext = aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
    return (nonce + ciphertext).hex()


def decrypt_secret(key: bytes, sealed: str) -> str:
    """
    Decrypt a value produced by encrypt_secret.

    Returns "" for empty, malformed or tampered input.
    """
    if not sealed:
        return ""
    try:
        data = bytes.fromhex(sealed)
        nonce = data[:NONCE_SIZE]
        ciphertext = data[NONCE_SIZE:]
        return AESGCM(key).decrypt(nonce, ciphertext, None).decode("utf-8")
    except (ValueError, InvalidTag) as e:
        logger.warning(f"Failed to unseal stored secret: {type(e).__name__}")
        return ""


class SecretSealer:
    """Seals and unseals secrets of one purpose with a derived key."""

    def __init__(self, root_secret: bytes, purpose: bytes):
        self._key = derive_storage_key(root_secret, purpose)

    def seal(self, plaintext: str) -> str:
        if not plaintext:
            return ""
        return encrypt_secret(self._key, plaintext)

    def unseal(self, sealed: str) -> str:
        return decrypt_secret(self._key, sealed)
