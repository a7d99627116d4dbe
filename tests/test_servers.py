"""Tests for server address checks and the derived authority URL."""

import pytest

from config import API_SERVER
from network.servers import (
    INVALID_SERVER,
    api_server_for,
    check_server_address,
    split_host_port,
)


@pytest.mark.parametrize("address,expected", [
    ("rs.example.com", ("rs.example.com", None)),
    ("rs.example.com:21116", ("rs.example.com", 21116)),
    ("10.0.0.5:8000", ("10.0.0.5", 8000)),
    ("[::1]:21116", ("::1", 21116)),
    ("[fe80::1]", ("fe80::1", None)),
    ("fe80::1", ("fe80::1", None)),
    ("  localhost  ", ("localhost", None)),
])
def test_split_host_port(address, expected):
    assert split_host_port(address) == expected


@pytest.mark.parametrize("address", [
    "rs.example.com:0",
    "rs.example.com:70000",
    "rs.example.com:port",
    "bad_host!",
    "-leading.example.com",
    "[::1",
    "[::1]x",
    "[not-v6]:1",
    "a:b:c",
])
def test_invalid_addresses(address):
    with pytest.raises(ValueError):
        split_host_port(address)
    assert check_server_address(address) == INVALID_SERVER


@pytest.mark.parametrize("address", ["", "   ", "rs.example.com", "10.0.0.5:21116"])
def test_valid_addresses(address):
    assert check_server_address(address) == ""


class TestApiServer:
    def test_default(self):
        assert api_server_for({}) == API_SERVER

    def test_explicit_option_wins(self):
        options = {"api-server": "https://api.example.com/", "custom-rendezvous-server": "rs.example.com"}
        assert api_server_for(options) == "https://api.example.com"

    @pytest.mark.parametrize("custom,expected", [
        ("rs.example.com", "http://rs.example.com:21114"),
        ("rs.example.com:30000", "http://rs.example.com:29998"),
        ("[::1]:21116", "http://[::1]:21114"),
    ])
    def test_derived_from_custom_server(self, custom, expected):
        assert api_server_for({"custom-rendezvous-server": custom}) == expected

    @pytest.mark.parametrize("custom", ["bad_host!", "rs.example.com:2"])
    def test_unusable_custom_server_falls_back(self, custom):
        assert api_server_for({"custom-rendezvous-server": custom}) == API_SERVER
