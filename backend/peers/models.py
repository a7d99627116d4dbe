"""Pydantic models for the peer registry."""

import re

from pydantic import BaseModel, Field

from config import PEER_ID_MAX_LENGTH

PEER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_@:\-][A-Za-z0-9._@:\-]*$")


def is_valid_peer_id(peer_id: object) -> bool:
    """True if the value is usable as a peer id (and as a record key)."""
    return (
        isinstance(peer_id, str)
        and 0 < len(peer_id) <= PEER_ID_MAX_LENGTH
        and PEER_ID_PATTERN.match(peer_id) is not None
    )


class PeerInfo(BaseModel):
    """What the remote side told us about itself."""
    username: str = ""
    hostname: str = ""
    platform: str = ""


class PeerConfig(BaseModel):
    """A persisted peer record."""
    id: str = ""
    info: PeerInfo = Field(default_factory=PeerInfo)
    options: dict[str, str] = Field(default_factory=dict)
    password: str = ""  # sealed cached password, "" when none

    @property
    def alias(self) -> str:
        return self.options.get("alias", "")


class PeerDisplay(BaseModel):
    """The flat projection the UI renders for a peer."""
    id: str
    username: str
    hostname: str
    platform: str
    alias: str

    @classmethod
    def from_config(cls, peer_id: str, peer: PeerConfig) -> "PeerDisplay":
        return cls(
            id=peer_id,
            username=peer.info.username,
            hostname=peer.info.hostname,
            platform=peer.info.platform,
            alias=peer.alias,
        )

    def as_list(self) -> list[str]:
        return [self.id, self.username, self.hostname, self.platform, self.alias]


class DiscoveredPeer(BaseModel):
    """A peer found by a LAN scan. Never persisted."""
    id: str
    username: str = ""
    hostname: str = ""
    platform: str = ""
