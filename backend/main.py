"""
DeskLink Bridge: FastAPI application entry point.

Builds the credential, peer, identity and session services once, injects
them into the UI bridge, and serves the bridge over a local REST API.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from fastapi import FastAPI

from api.bridge import UIBridge
from api.routes import init_routes, router
from config import API_HOST, API_PORT, APP_NAME, APP_VERSION, CONFIG_DIR
from credentials.store import OPTIONS_KEY, CredentialStore
from identity.authority import HttpIdentityAuthority, IdentityAuthority
from identity.service import IdentityService
from jobs.coordinator import AsyncJobCoordinator, Poster, post_text
from network.servers import api_server_for
from peers.discovery import LanDiscovery, LanScanner, UdpLanScanner
from peers.registry import PeerRegistry
from peers.store import PeerStore
from security.crypto import SecretSealer, load_or_create_root_secret
from security.twofactor import TwoFactorVerifier
from session.status import ConnectionStatusBoard
from storage.config_store import ConfigStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Every stateful service, owned for the lifetime of the process."""
    identity: IdentityService
    credentials: CredentialStore
    two_factor: TwoFactorVerifier
    registry: PeerRegistry
    discovery: LanDiscovery
    jobs: AsyncJobCoordinator
    status: ConnectionStatusBoard
    bridge: UIBridge


def build_services(
    config_dir: Path = CONFIG_DIR,
    authority: IdentityAuthority | None = None,
    scanner: LanScanner | None = None,
    poster: Poster | None = None,
) -> Services:
    """Construct the services on top of the files under config_dir."""
    config_dir = Path(config_dir)
    config_dir.mkdir(parents=True, exist_ok=True)

    config = ConfigStore(config_dir / "config.json")
    local_config = ConfigStore(config_dir / "local.json")
    peer_store = PeerStore(config_dir / "peers")
    root_secret = load_or_create_root_secret(config_dir / "storage.key")

    identity = IdentityService(config, config_dir / "identity.key")
    credentials = CredentialStore(
        config, peer_store, SecretSealer(root_secret, b"passwords")
    )
    two_factor = TwoFactorVerifier(config, SecretSealer(root_secret, b"2fa"))
    registry = PeerRegistry(peer_store, local_config)
    discovery = LanDiscovery(scanner or UdpLanScanner())
    if authority is None:
        authority = HttpIdentityAuthority(lambda: api_server_for(config.get_map(OPTIONS_KEY)))
    jobs = AsyncJobCoordinator(identity, authority, poster=poster or post_text)
    status = ConnectionStatusBoard()

    bridge = UIBridge(
        identity=identity,
        credentials=credentials,
        two_factor=two_factor,
        registry=registry,
        discovery=discovery,
        jobs=jobs,
        status=status,
        config=config,
        local_config=local_config,
    )
    return Services(identity, credentials, two_factor, registry, discovery, jobs, status, bridge)


def create_app(services: Services) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Stop background work on shutdown."""
        logger.info(f"{APP_NAME} bridge ready, API: {API_HOST}:{API_PORT}")
        try:
            yield
        finally:
            logger.info(f"Shutting down {APP_NAME} bridge...")
            services.jobs.shutdown()
            services.discovery.shutdown()

    app = FastAPI(
        title=f"{APP_NAME} Bridge",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    # Inject services into routes
    init_routes(services.bridge, services.status, services.jobs)
    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    # --- Logging ---
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    uvicorn.run(
        create_app(build_services()),
        host=API_HOST,
        port=API_PORT,
        log_level="info",
    )
