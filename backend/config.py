"""Application-wide configuration constants."""

import os
from pathlib import Path

# --- Identity ---
APP_NAME = "DeskLink"
APP_VERSION = "1.0.0"

# --- Storage ---
CONFIG_DIR = Path(
    os.environ.get("DESKLINK_CONFIG_DIR", Path.home() / ".config" / APP_NAME)
)

# --- Networking ---
API_HOST = os.environ.get("DESKLINK_API_HOST", "127.0.0.1")
API_PORT = int(os.environ.get("DESKLINK_API_PORT", "21119"))
# Identity authority used for ID changes
API_SERVER = os.environ.get("DESKLINK_API_SERVER", "https://admin.desklink.example")
API_TIMEOUT = 10.0  # seconds

RENDEZVOUS_PORT = 21116  # custom servers default to this port
DISCOVERY_PORT = 21116  # UDP
DISCOVERY_TIMEOUT = 3.0  # seconds a scan listens for replies

# --- Credentials ---
TEMPORARY_PASSWORD_LENGTHS = (6, 8, 10)
DEFAULT_TEMPORARY_PASSWORD_LENGTH = 6

# --- Two-factor ---
TWO_FACTOR_ISSUER = APP_NAME
TWO_FACTOR_DIGITS = 6
TWO_FACTOR_INTERVAL = 30  # seconds per code
TWO_FACTOR_MAX_FAILURES = 5
TWO_FACTOR_FAILURE_WINDOW = 60.0  # seconds
TWO_FACTOR_LOCKOUT = 300.0  # seconds

# --- Peers ---
PEER_ID_MAX_LENGTH = 128
