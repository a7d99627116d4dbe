"""
LAN discovery view.

A scan runs on its own thread and its results are polled through
get_lan_peers(); nothing discovered here is ever persisted. The packet
protocol lives behind the LanScanner interface; UdpLanScanner is a small
broadcast ping/pong implementation.
"""

import json
import logging
import socket
import threading
import time
from typing import Iterable, Protocol

from pydantic import ValidationError

from config import DISCOVERY_PORT, DISCOVERY_TIMEOUT
from peers.models import DiscoveredPeer, is_valid_peer_id

logger = logging.getLogger(__name__)


class LanScanner(Protocol):
    def scan(self) -> Iterable[DiscoveredPeer]:
        ...


class UdpLanScanner:
    """Broadcasts a JSON ping and collects the replies for a short window."""

    def __init__(self, port: int = DISCOVERY_PORT, timeout: float = DISCOVERY_TIMEOUT):
        self._port = port
        self._timeout = timeout

    def _broadcast_addresses(self) -> set[str]:
        bcast_ips = {"255.255.255.255"}
        try:
            host_name = socket.gethostname()
            _, _, ips = socket.gethostbyname_ex(host_name)
            for ip in ips:
                if not ip.startswith("127."):
                    # Simple heuristic for /24 subnets
                    parts = ip.split(".")
                    if len(parts) == 4:
                        parts[3] = "255"
                        bcast_ips.add(".".join(parts))
        except OSError as e:
            logger.debug(f"Error resolving local IPs: {e}")
        return bcast_ips

    def scan(self) -> list[DiscoveredPeer]:
        found: dict[str, DiscoveredPeer] = {}
        ping = json.dumps({"type": "ping"}).encode("utf-8")

        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP) as sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind(("0.0.0.0", 0))
            for bcast_ip in self._broadcast_addresses():
                try:
                    sock.sendto(ping, (bcast_ip, self._port))
                except OSError:
                    # Some interfaces don't support broadcast
                    pass

            deadline = time.monotonic() + self._timeout
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                sock.settimeout(remaining)
                try:
                    data, addr = sock.recvfrom(4096)
                except socket.timeout:
                    break
                try:
                    payload = json.loads(data.decode("utf-8"))
                    if payload.get("type") != "pong":
                        continue
                    peer = DiscoveredPeer(**payload.get("peer", {}))
                except (ValueError, AttributeError, ValidationError) as e:
                    logger.debug(f"Ignoring invalid discovery reply from {addr}: {e}")
                    continue
                found[peer.id] = peer

        return list(found.values())


class LanDiscovery:
    """Holds the transient set of LAN peers seen by the latest scan.

    A finished scan replaces the whole view: a machine that stopped
    answering disappears on the next scan. A failed scan leaves the view
    as it was.
    """

    def __init__(self, scanner: LanScanner):
        self._scanner = scanner
        self._peers: dict[str, DiscoveredPeer] = {}
        self._lock = threading.Lock()
        self._scan_thread: threading.Thread | None = None
        self._scan_lock = threading.Lock()
        self._closed = False

    def discover(self) -> bool:
        """Start a background scan. Returns False if one is already running
        or discovery has been shut down."""
        with self._scan_lock:
            if self._closed:
                return False
            if self._scan_thread is not None and self._scan_thread.is_alive():
                return False
            self._scan_thread = threading.Thread(
                target=self._run_scan, name="lan-discovery", daemon=True
            )
            self._scan_thread.start()
            return True

    def wait(self, timeout: float | None = None) -> None:
        """Block until the current scan, if any, has finished."""
        thread = self._scan_thread
        if thread is not None:
            thread.join(timeout)

    def shutdown(self, timeout: float | None = DISCOVERY_TIMEOUT) -> None:
        """Refuse new scans and wait for the running one to finish."""
        with self._scan_lock:
            self._closed = True
        self.wait(timeout)

    def _run_scan(self) -> None:
        try:
            results = list(self._scanner.scan())
        except Exception as e:
            logger.warning(f"LAN discovery failed: {e}")
            return
        fresh = self._valid(results)
        with self._lock:
            self._peers = fresh
        logger.info(f"LAN scan finished with {len(fresh)} peer(s)")

    @staticmethod
    def _valid(scan_results: Iterable[DiscoveredPeer]) -> dict[str, DiscoveredPeer]:
        return {p.id: p for p in scan_results if is_valid_peer_id(p.id)}

    def merge_discovered(self, scan_results: Iterable[DiscoveredPeer]) -> None:
        """Fold extra results into the current scan's view, replacing
        entries with the same id. The next finished scan replaces them all."""
        fresh = self._valid(scan_results)
        with self._lock:
            self._peers.update(fresh)
        if fresh:
            logger.info(f"Discovered {len(fresh)} LAN peer(s)")

    def get_lan_peers(self) -> list[DiscoveredPeer]:
        with self._lock:
            return list(self._peers.values())

    def get_lan_peers_json(self) -> str:
        return json.dumps([p.model_dump() for p in self.get_lan_peers()])

    def remove_discovered(self, peer_id: str) -> None:
        with self._lock:
            self._peers.pop(peer_id, None)
