"""
Two-factor verification (TOTP, RFC 6238).

A freshly generated secret is pending: it only becomes the enabled secret
after a code derived from it has been verified once, which proves the
authenticator app holds it. The enabled secret is persisted sealed under
the "2fa" config key.
"""

import base64
import logging
import re
import threading
import time
from io import BytesIO
from typing import Callable

import pyotp
import qrcode
from pyotp.utils import strings_equal

from config import (
    TWO_FACTOR_DIGITS,
    TWO_FACTOR_FAILURE_WINDOW,
    TWO_FACTOR_INTERVAL,
    TWO_FACTOR_ISSUER,
    TWO_FACTOR_LOCKOUT,
    TWO_FACTOR_MAX_FAILURES,
)
from security.crypto import SecretSealer
from storage.config_store import ConfigStore

logger = logging.getLogger(__name__)

TWO_FACTOR_KEY = "2fa"
CODE_PATTERN = re.compile(r"^\d{%d}$" % TWO_FACTOR_DIGITS)
# Accept the previous and next window to tolerate clock skew
SKEW_WINDOWS = (0, -1, 1)


class AttemptLimiter:
    """Locks verification after too many failures in a short window."""

    def __init__(
        self,
        max_failures: int = TWO_FACTOR_MAX_FAILURES,
        window: float = TWO_FACTOR_FAILURE_WINDOW,
        lockout: float = TWO_FACTOR_LOCKOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._max_failures = max_failures
        self._window = window
        self._lockout = lockout
        self._clock = clock
        self._failures: list[float] = []
        self._locked_until = 0.0

    def is_locked(self) -> bool:
        return self._clock() < self._locked_until

    def record_failure(self) -> None:
        now = self._clock()
        cutoff = now - self._window
        self._failures = [t for t in self._failures if t >= cutoff]
        self._failures.append(now)
        if len(self._failures) >= self._max_failures:
            self._locked_until = now + self._lockout
            self._failures.clear()
            logger.warning("Too many failed 2FA attempts, verification locked")

    def reset(self) -> None:
        self._failures.clear()
        self._locked_until = 0.0


class TwoFactorVerifier:
    """Generates TOTP secrets and verifies codes against them."""

    def __init__(
        self,
        config: ConfigStore,
        sealer: SecretSealer,
        limiter: AttemptLimiter | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._config = config
        self._sealer = sealer
        self._limiter = limiter or AttemptLimiter()
        self._clock = clock
        self._lock = threading.Lock()
        self._pending: str | None = None
        self._last_counter = -1

    @staticmethod
    def _totp(secret: str) -> pyotp.TOTP:
        return pyotp.TOTP(secret, digits=TWO_FACTOR_DIGITS, interval=TWO_FACTOR_INTERVAL)

    def _enabled_secret(self) -> str:
        return self._sealer.unseal(self._config.get_str(TWO_FACTOR_KEY))

    def generate_secret(self, account: str) -> str:
        """Create a new pending secret and return its provisioning URI."""
        secret = pyotp.random_base32()
        with self._lock:
            self._pending = secret
            self._last_counter = -1
        logger.info("Generated new pending 2FA secret")
        return self._totp(secret).provisioning_uri(
            name=account or TWO_FACTOR_ISSUER, issuer_name=TWO_FACTOR_ISSUER
        )

    def verify(self, code: str) -> bool:
        """Check a code against the pending secret, or the enabled one.

        A matching time step is accepted only once. The first success on a
        pending secret enables and persists it.
        """
        if not isinstance(code, str):
            return False
        code = code.strip()

        with self._lock:
            if self._limiter.is_locked():
                return False

            pending = self._pending
            secret = pending or self._enabled_secret()
            if not secret:
                return False

            if not CODE_PATTERN.match(code):
                self._limiter.record_failure()
                return False

            totp = self._totp(secret)
            current = int(self._clock() // TWO_FACTOR_INTERVAL)
            matched = None
            for offset in SKEW_WINDOWS:
                counter = current + offset
                if counter <= self._last_counter:
                    continue
                if strings_equal(code, totp.generate_otp(counter)):
                    matched = counter
                    break

            if matched is None:
                self._limiter.record_failure()
                return False

            self._last_counter = matched
            self._limiter.reset()
            if pending:
                self._config.set(TWO_FACTOR_KEY, self._sealer.seal(pending))
                self._pending = None
                logger.info("2FA enabled")
            return True

    def has_valid_secret(self) -> bool:
        with self._lock:
            return bool(self._enabled_secret())

    def disable(self) -> None:
        with self._lock:
            self._pending = None
            self._last_counter = -1
            self._config.delete(TWO_FACTOR_KEY)
        logger.info("2FA disabled")

    @staticmethod
    def provisioning_qr(data: str) -> str:
        """Render a provisioning URI as a PNG data URI."""
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=4,
            border=4,
        )
        qr.add_data(data)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buffer = BytesIO()
        img.save(buffer, format="PNG")
        qr_base64 = base64.b64encode(buffer.getvalue()).decode()
        return f"data:image/png;base64,{qr_base64}"
