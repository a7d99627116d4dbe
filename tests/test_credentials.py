"""Tests for the credential store."""

import threading

import pytest

from credentials.store import TEMPORARY_PASSWORD_ALPHABET, CredentialStore
from peers.store import PeerStore
from security.crypto import SecretSealer, load_or_create_root_secret
from storage.config_store import ConfigStore


def make_store(tmp_path, generator=None):
    config = ConfigStore(tmp_path / "config.json")
    peers = PeerStore(tmp_path / "peers")
    sealer = SecretSealer(load_or_create_root_secret(tmp_path / "storage.key"), b"passwords")
    kwargs = {"generator": generator} if generator else {}
    return CredentialStore(config, peers, sealer, **kwargs), config


def scripted(values):
    it = iter(values)
    return lambda length: next(it)


# ---------------------------------------------------------------------------
# Temporary password
# ---------------------------------------------------------------------------

class TestTemporaryPassword:
    def test_generated_on_first_read_and_stable(self, tmp_path):
        store, _ = make_store(tmp_path)
        first = store.get_temporary_password()
        assert len(first) == 6
        assert set(first) <= set(TEMPORARY_PASSWORD_ALPHABET)
        assert store.get_temporary_password() == first

    def test_rotation_replaces_value(self, tmp_path):
        store, _ = make_store(tmp_path)
        seen = [store.get_temporary_password()]
        for _ in range(20):
            store.rotate_temporary_password()
            seen.append(store.get_temporary_password())
        assert all(a != b for a, b in zip(seen, seen[1:]))

    def test_rotation_never_repeats_previous(self, tmp_path):
        store, _ = make_store(tmp_path, scripted(["abc123", "abc123", "xyz789"]))
        assert store.get_temporary_password() == "abc123"
        store.rotate_temporary_password()
        assert store.get_temporary_password() == "xyz789"

    def test_rotation_visible_to_other_threads(self, tmp_path):
        store, _ = make_store(tmp_path)
        before = store.get_temporary_password()
        store.rotate_temporary_password()
        seen = []
        reader = threading.Thread(target=lambda: seen.append(store.get_temporary_password()))
        reader.start()
        reader.join(5)
        assert seen and seen[0] != before
        assert store.get_temporary_password() == seen[0]

    def test_generator_failure_returns_empty(self, tmp_path):
        def broken(length):
            raise OSError("no entropy")

        store, _ = make_store(tmp_path, broken)
        assert store.get_temporary_password() == ""

    @pytest.mark.parametrize("option,expected", [("8", 8), ("10", 10), ("7", 6), ("abc", 6)])
    def test_length_follows_option(self, tmp_path, option, expected):
        store, config = make_store(tmp_path)
        config.set_map_item("options", "temporary-password-length", option)
        assert len(store.get_temporary_password()) == expected

    def test_never_persisted(self, tmp_path):
        store, config = make_store(tmp_path)
        password = store.get_temporary_password()
        assert not config.path.exists() or password not in config.path.read_text()


# ---------------------------------------------------------------------------
# Permanent password
# ---------------------------------------------------------------------------

class TestPermanentPassword:
    def test_unset_by_default(self, tmp_path):
        store, _ = make_store(tmp_path)
        assert store.get_permanent_password() == ""

    def test_set_persists_sealed(self, tmp_path):
        store, config = make_store(tmp_path)
        store.set_permanent_password("correct horse")
        assert store.get_permanent_password() == "correct horse"
        assert "correct horse" not in config.path.read_text()

        reloaded, _ = make_store(tmp_path)
        assert reloaded.get_permanent_password() == "correct horse"

    def test_replace_keeps_single_value(self, tmp_path):
        store, _ = make_store(tmp_path)
        store.set_permanent_password("one")
        store.set_permanent_password("two")
        assert store.get_permanent_password() == "two"

    def test_empty_clears(self, tmp_path):
        store, config = make_store(tmp_path)
        store.set_permanent_password("one")
        store.set_permanent_password("")
        assert store.get_permanent_password() == ""
        assert config.get("password", None) is None


# ---------------------------------------------------------------------------
# Peer cached passwords
# ---------------------------------------------------------------------------

class TestPeerCachedPassword:
    def test_cache_lifecycle(self, services):
        services.registry.add_peer("10.0.0.5", "bob", "office", "Linux")
        creds = services.credentials
        assert not creds.peer_has_password("10.0.0.5")

        assert creds.set_peer_cached_password("10.0.0.5", "pw")
        assert creds.peer_has_password("10.0.0.5")
        assert creds.get_peer_cached_password("10.0.0.5") == "pw"

        creds.forget_password("10.0.0.5")
        assert not creds.peer_has_password("10.0.0.5")
        assert creds.get_peer_cached_password("10.0.0.5") == ""

    def test_cached_password_sealed_on_disk(self, services, tmp_path):
        services.registry.add_peer("10.0.0.5")
        services.credentials.set_peer_cached_password("10.0.0.5", "plaintext-pw")
        record = (tmp_path / "config" / "peers" / "10.0.0.5.json").read_text()
        assert "plaintext-pw" not in record

    def test_caches_are_independent_per_peer(self, services):
        services.registry.add_peer("111111111")
        services.registry.add_peer("222222222")
        creds = services.credentials
        creds.set_peer_cached_password("111111111", "a")
        creds.set_peer_cached_password("222222222", "b")
        creds.forget_password("111111111")
        assert not creds.peer_has_password("111111111")
        assert creds.peer_has_password("222222222")

    @pytest.mark.parametrize("peer_id", ["never-seen", "", "../escape", "555555555"])
    def test_forget_unknown_is_noop(self, services, peer_id):
        creds = services.credentials
        creds.forget_password(peer_id)
        assert not creds.peer_has_password(peer_id)
        assert not services.registry.store.exists(peer_id)

    def test_set_for_unknown_peer_is_ignored(self, services):
        assert not services.credentials.set_peer_cached_password("555555555", "pw")
        assert not services.registry.store.exists("555555555")


# ---------------------------------------------------------------------------
# SOCKS proxy
# ---------------------------------------------------------------------------

class TestSocks:
    def test_unset_by_default(self, tmp_path):
        store, _ = make_store(tmp_path)
        assert store.get_socks() == []

    def test_set_and_get(self, tmp_path):
        store, config = make_store(tmp_path)
        store.set_socks("proxy.local:1080", "alice", "s3cret")
        assert store.get_socks() == ["proxy.local:1080", "alice", "s3cret"]
        assert "s3cret" not in config.path.read_text()

    def test_survives_reload(self, tmp_path):
        store, _ = make_store(tmp_path)
        store.set_socks("proxy.local:1080", "", "")
        reloaded, _ = make_store(tmp_path)
        assert reloaded.get_socks() == ["proxy.local:1080", "", ""]

    def test_empty_proxy_clears(self, tmp_path):
        store, config = make_store(tmp_path)
        store.set_socks("proxy.local:1080", "alice", "s3cret")
        store.set_socks("", "alice", "s3cret")
        assert store.get_socks() == []
        assert "socks" not in config.path.read_text()
