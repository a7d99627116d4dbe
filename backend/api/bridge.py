"""
UI dispatch bridge.

Maps the named operations the UI shell calls onto the injected services
and turns their results into flat values (str, bool, int, lists and
string maps). Services never call back into the UI.
"""

import logging
from typing import Any

from pydantic import ValidationError

from api.schemas import OPERATION_ARGS
from config import APP_NAME, APP_VERSION
from credentials.store import OPTIONS_KEY, CredentialStore
from identity.service import IdentityService
from jobs.coordinator import AsyncJobCoordinator
from network.servers import CUSTOM_SERVER_OPTION, api_server_for, check_server_address
from peers.discovery import LanDiscovery
from peers.registry import PeerRegistry
from security.twofactor import TwoFactorVerifier
from session.status import ConnectionStatusBoard
from storage.config_store import ConfigStore

logger = logging.getLogger(__name__)

REMOTE_ID_KEY = "remote_id"
LOCAL_OPTIONS_KEY = "options"
RELAY_SUFFIXES = ("\\r", "/r")


class BridgeError(Exception):
    """Base class for calls the bridge refuses to dispatch."""


class UnknownOperationError(BridgeError):
    def __init__(self, name: str):
        super().__init__(f"Unknown operation: {name}")
        self.name = name


class BridgeValidationError(BridgeError):
    def __init__(self, name: str, errors: list):
        super().__init__(f"Invalid arguments for {name}")
        self.name = name
        self.errors = errors


class UIBridge:
    """The script-callable surface of the control plane."""

    def __init__(
        self,
        identity: IdentityService,
        credentials: CredentialStore,
        two_factor: TwoFactorVerifier,
        registry: PeerRegistry,
        discovery: LanDiscovery,
        jobs: AsyncJobCoordinator,
        status: ConnectionStatusBoard,
        config: ConfigStore,
        local_config: ConfigStore,
    ) -> None:
        self._identity = identity
        self._credentials = credentials
        self._two_factor = two_factor
        self._registry = registry
        self._discovery = discovery
        self._jobs = jobs
        self._status = status
        self._config = config
        self._local = local_config

    @staticmethod
    def operations() -> list[str]:
        return sorted(OPERATION_ARGS)

    def call(self, name: str, args: dict[str, Any] | None = None) -> Any:
        """Validate the arguments for an operation and run it."""
        args_model = OPERATION_ARGS.get(name)
        if args_model is None:
            raise UnknownOperationError(name)
        try:
            params = args_model.model_validate(args or {})
        except ValidationError as e:
            logger.debug(f"Rejected call to {name}: {e}")
            raise BridgeValidationError(
                name, e.errors(include_url=False, include_context=False)
            ) from e
        return getattr(self, name)(**params.model_dump())

    # --- Identity ---

    def get_id(self) -> str:
        return self._identity.get_id()

    def get_uuid(self) -> str:
        return self._identity.get_uuid()

    def get_fingerprint(self) -> str:
        return self._identity.get_fingerprint()

    def is_ok_change_id(self) -> bool:
        return bool(self._identity.get_uuid())

    def change_id(self, id: str) -> bool:
        """Start an ID change in the background. False means one is running."""
        return self._jobs.start_change_identity(id, self._identity.get_id())

    def get_async_job_status(self) -> str:
        return self._jobs.poll_status().legacy_status()

    def reset_async_job_status(self) -> None:
        self._jobs.reset()

    def post_request(self, url: str, body: str, header: str) -> bool:
        """POST in the background; the response text is read back through
        get_async_job_status. False means a job is running."""
        return self._jobs.start_post_request(url, body, header)

    def get_remote_id(self) -> str:
        return self._local.get_str(REMOTE_ID_KEY)

    def set_remote_id(self, id: str) -> None:
        self._local.set(REMOTE_ID_KEY, id)

    def handle_relay_id(self, id: str) -> str:
        if id.endswith(RELAY_SUFFIXES):
            return id[:-2]
        return id

    # --- Credentials ---

    def temporary_password(self) -> str:
        return self._credentials.get_temporary_password()

    def update_temporary_password(self) -> None:
        self._credentials.rotate_temporary_password()

    def permanent_password(self) -> str:
        return self._credentials.get_permanent_password()

    def set_permanent_password(self, password: str) -> None:
        self._credentials.set_permanent_password(password)

    def peer_has_password(self, peer_id: str) -> bool:
        return self._credentials.peer_has_password(peer_id)

    def forget_password(self, peer_id: str) -> None:
        self._credentials.forget_password(peer_id)

    def get_socks(self) -> list[str]:
        return self._credentials.get_socks()

    def set_socks(self, proxy: str, username: str, password: str) -> None:
        self._credentials.set_socks(proxy, username, password)

    # --- Two-factor ---

    def has_valid_2fa(self) -> bool:
        return self._two_factor.has_valid_secret()

    def generate2fa(self) -> str:
        return self._two_factor.generate_secret(self._identity.get_id())

    def verify2fa(self, code: str) -> bool:
        return self._two_factor.verify(code)

    def generate_2fa_img_src(self, data: str) -> str:
        try:
            return self._two_factor.provisioning_qr(data)
        except Exception as e:
            logger.warning(f"Failed to render 2FA QR code: {e}")
            return ""

    # --- Peers ---

    def get_peer(self, peer_id: str) -> list[str]:
        return self._registry.get_peer_display(peer_id).as_list()

    def add_peer(self, peer_id: str, username: str, hostname: str,
                 platform: str, alias: str) -> bool:
        return self._registry.add_peer(peer_id, username, hostname, platform, alias)

    def remove_peer(self, peer_id: str) -> None:
        self._registry.remove_peer(peer_id)

    def get_fav(self) -> list[str]:
        return self._registry.list_favorites()

    def store_fav(self, fav: list[str]) -> None:
        self._registry.store_favorites(fav)

    def get_recent_sessions(self) -> list[list[str]]:
        return [p.as_list() for p in self._registry.list_recent_sessions()]

    def recent_sessions_updated(self) -> bool:
        return self._registry.recent_sessions_updated()

    def get_peer_option(self, peer_id: str, name: str) -> str:
        return self._registry.get_peer_option(peer_id, name)

    def set_peer_option(self, peer_id: str, name: str, value: str) -> None:
        self._registry.set_peer_option(peer_id, name, value)

    # --- LAN discovery ---

    def discover(self) -> bool:
        return self._discovery.discover()

    def get_lan_peers(self) -> str:
        return self._discovery.get_lan_peers_json()

    def remove_discovered(self, peer_id: str) -> None:
        self._discovery.remove_discovered(peer_id)

    # --- Options ---

    def get_option(self, key: str) -> str:
        return self._config.get_map(OPTIONS_KEY).get(key, "")

    def set_option(self, key: str, value: str) -> None:
        self._config.set_map_item(OPTIONS_KEY, key, value)

    def get_options(self) -> dict[str, str]:
        return self._config.get_map(OPTIONS_KEY)

    def set_options(self, options: dict[str, str]) -> None:
        """Replace all options; entries with empty values are dropped."""
        self._config.set(OPTIONS_KEY, {k: v for k, v in options.items() if v})

    def get_local_option(self, key: str) -> str:
        return self._local.get_map(LOCAL_OPTIONS_KEY).get(key, "")

    def set_local_option(self, key: str, value: str) -> None:
        self._local.set_map_item(LOCAL_OPTIONS_KEY, key, value)

    # --- Session and app info ---

    def get_connect_status(self) -> list:
        return self._status.snapshot().as_list()

    def using_public_server(self) -> bool:
        return not self.get_option(CUSTOM_SERVER_OPTION)

    def get_api_server(self) -> str:
        return api_server_for(self.get_options())

    def test_if_valid_server(self, host: str) -> str:
        return check_server_address(host)

    def get_app_name(self) -> str:
        return APP_NAME

    def get_version(self) -> str:
        return APP_VERSION
