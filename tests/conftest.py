"""Shared fixtures: services built on a temporary config directory with
fake collaborators for the identity authority, the LAN scanner and
outbound HTTP posts."""

import threading

import pytest

from main import build_services
from peers.models import DiscoveredPeer
from peers.store import PeerStore


class FakeAuthority:
    """Identity authority double. Clear `release` to hold a call mid-flight."""

    def __init__(self, response: str = "", error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls = []
        self.entered = threading.Event()
        self.release = threading.Event()
        self.release.set()

    def change_id(self, uuid, old_id, new_id, signature):
        self.calls.append((uuid, old_id, new_id, signature))
        self.entered.set()
        assert self.release.wait(5), "test never released the authority call"
        if self.error is not None:
            raise self.error
        return self.response


class FakeScanner:
    def __init__(self, results=None, error: Exception | None = None):
        self.results = list(results or [])
        self.error = error
        self.scans = 0
        self.release = threading.Event()
        self.release.set()

    def scan(self):
        self.scans += 1
        assert self.release.wait(5), "test never released the scan"
        if self.error is not None:
            raise self.error
        return list(self.results)


class FakePoster:
    def __init__(self, response: str = '{"ok": true}', error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls = []

    def __call__(self, url, body, header):
        self.calls.append((url, body, header))
        if self.error is not None:
            raise self.error
        return self.response


class GatedPeerStore(PeerStore):
    """Peer store that can hold its next record read until `release` is set."""

    def __init__(self, peers_dir):
        super().__init__(peers_dir)
        self._hold = False
        self.entered = threading.Event()
        self.release = threading.Event()

    def hold_next_read(self):
        self.entered.clear()
        self.release.clear()
        self._hold = True

    def _read(self, path):
        if self._hold:
            self._hold = False
            self.entered.set()
            assert self.release.wait(5), "test never released the read"
        return super()._read(path)


@pytest.fixture
def authority():
    return FakeAuthority()


@pytest.fixture
def scanner():
    return FakeScanner([
        DiscoveredPeer(id="123456789", username="alice", hostname="alice-pc", platform="Windows"),
        DiscoveredPeer(id="987654321", username="bob", hostname="bob-mac", platform="Mac OS"),
    ])


@pytest.fixture
def poster():
    return FakePoster()


@pytest.fixture
def services(tmp_path, authority, scanner, poster):
    svc = build_services(
        tmp_path / "config", authority=authority, scanner=scanner, poster=poster
    )
    yield svc
    svc.jobs.shutdown()
    svc.discovery.shutdown()


@pytest.fixture
def bridge(services):
    return services.bridge
