"""Client for the identity authority that approves device ID changes."""

import logging
from typing import Callable, Protocol

import httpx

from config import API_SERVER, API_TIMEOUT

logger = logging.getLogger(__name__)


class IdentityAuthority(Protocol):
    def change_id(self, uuid: str, old_id: str, new_id: str, signature: str) -> str:
        """Ask for the ID change. Returns "" on success or the refusal message.

        Transport failures raise httpx.HTTPError.
        """
        ...


class HttpIdentityAuthority:
    """Talks to the identity authority over its JSON HTTP API.

    base_url may be a callable so the server options are read per request.
    """

    def __init__(self, base_url: str | Callable[[], str] = API_SERVER,
                 timeout: float = API_TIMEOUT,
                 transport: httpx.BaseTransport | None = None):
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport

    def _url(self, path: str) -> str:
        base = self._base_url() if callable(self._base_url) else self._base_url
        return f"{base.rstrip('/')}{path}"

    def change_id(self, uuid: str, old_id: str, new_id: str, signature: str) -> str:
        with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
            response = client.post(
                self._url("/api/id/change"),
                json={
                    "uuid": uuid,
                    "old_id": old_id,
                    "new_id": new_id,
                    "signature": signature,
                },
            )

        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])

        response.raise_for_status()
        return ""
