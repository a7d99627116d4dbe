"""
Server address handling: syntax checks for user-entered server addresses
and the identity authority URL derived from the server options.
"""

import ipaddress
import re

from config import API_SERVER, RENDEZVOUS_PORT

API_SERVER_OPTION = "api-server"
CUSTOM_SERVER_OPTION = "custom-rendezvous-server"
INVALID_SERVER = "Invalid server address"

# The authority listens two ports below the rendezvous server
API_PORT_OFFSET = 2

_LABEL = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


def _is_host(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass
    if not host or len(host) > 253:
        return False
    return all(_LABEL.match(label) for label in host.rstrip(".").split("."))


def split_host_port(address: str) -> tuple[str, int | None]:
    """Split "host", "host:port", "[v6]:port" or a bare IPv6 address.

    Raises ValueError for anything else.
    """
    address = address.strip()
    if address.startswith("["):
        host, sep, rest = address[1:].partition("]")
        if not sep or (rest and not rest.startswith(":")):
            raise ValueError(f"malformed address: {address}")
        ipaddress.IPv6Address(host)
        port = rest[1:] if rest else ""
    elif address.count(":") > 1:
        ipaddress.IPv6Address(address)
        return address, None
    else:
        host, _, port = address.partition(":")
        if not _is_host(host):
            raise ValueError(f"invalid host: {host!r}")

    if not port:
        return host, None
    if not port.isdigit() or not 0 < int(port) < 65536:
        raise ValueError(f"invalid port: {port!r}")
    return host, int(port)


def check_server_address(address: str) -> str:
    """Return "" when the address is usable (or empty), else an error message."""
    if not address.strip():
        return ""
    try:
        split_host_port(address)
    except ValueError:
        return INVALID_SERVER
    return ""


def api_server_for(options: dict[str, str]) -> str:
    """The authority URL: an explicit api-server option wins, then one
    derived from a custom rendezvous server, then the built-in default."""
    explicit = options.get(API_SERVER_OPTION, "").strip()
    if explicit:
        return explicit.rstrip("/")

    custom = options.get(CUSTOM_SERVER_OPTION, "").strip()
    if custom:
        try:
            host, port = split_host_port(custom)
        except ValueError:
            return API_SERVER
        if ":" in host:
            host = f"[{host}]"
        port = (port or RENDEZVOUS_PORT) - API_PORT_OFFSET
        if port <= 0:
            return API_SERVER
        return f"http://{host}:{port}"

    return API_SERVER
