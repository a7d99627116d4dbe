"""
Argument shapes for every operation the UI shell can call.

Each operation name maps to the model its arguments are validated
against. Anything that does not fit, including unknown argument names,
is rejected here before it reaches a service.
"""

from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from peers.models import is_valid_peer_id

SHORT_TEXT = 256
LONG_TEXT = 4096
REQUEST_BODY = 65536


def _check_peer_id(value: str) -> str:
    if not is_valid_peer_id(value):
        raise ValueError("invalid peer id")
    return value


PeerId = Annotated[str, AfterValidator(_check_peer_id)]
OptionKey = Annotated[str, Field(min_length=1, max_length=SHORT_TEXT)]
OptionValue = Annotated[str, Field(max_length=LONG_TEXT)]


class Args(BaseModel):
    """Base for argument models: strict field names, no extras."""
    model_config = ConfigDict(extra="forbid")


class NoArgs(Args):
    pass


class PeerArgs(Args):
    peer_id: PeerId


class PeerOptionArgs(Args):
    peer_id: PeerId
    name: OptionKey


class SetPeerOptionArgs(Args):
    peer_id: PeerId
    name: OptionKey
    value: OptionValue = ""


class AddPeerArgs(Args):
    peer_id: PeerId
    username: Annotated[str, Field(max_length=SHORT_TEXT)] = ""
    hostname: Annotated[str, Field(max_length=SHORT_TEXT)] = ""
    platform: Annotated[str, Field(max_length=SHORT_TEXT)] = ""
    alias: Annotated[str, Field(max_length=SHORT_TEXT)] = ""


class FavoritesArgs(Args):
    fav: Annotated[list[Annotated[str, Field(max_length=SHORT_TEXT)]], Field(max_length=1000)]


class PasswordArgs(Args):
    password: Annotated[str, Field(max_length=SHORT_TEXT)]


class IdArgs(Args):
    id: Annotated[str, Field(max_length=SHORT_TEXT)]


class OptionArgs(Args):
    key: OptionKey


class SetOptionArgs(Args):
    key: OptionKey
    value: OptionValue = ""


class OptionsArgs(Args):
    options: dict[OptionKey, OptionValue]


class CodeArgs(Args):
    code: Annotated[str, Field(max_length=16)]


class TextArgs(Args):
    data: Annotated[str, Field(max_length=LONG_TEXT)]


class HostArgs(Args):
    host: Annotated[str, Field(max_length=SHORT_TEXT)]


class SocksArgs(Args):
    proxy: Annotated[str, Field(max_length=SHORT_TEXT)]
    username: Annotated[str, Field(max_length=SHORT_TEXT)] = ""
    password: Annotated[str, Field(max_length=SHORT_TEXT)] = ""


class PostRequestArgs(Args):
    url: Annotated[str, Field(max_length=LONG_TEXT, pattern=r"^https?://\S+$")]
    body: Annotated[str, Field(max_length=REQUEST_BODY)] = ""
    header: Annotated[str, Field(max_length=LONG_TEXT)] = ""


OPERATION_ARGS: dict[str, type[Args]] = {
    # identity
    "get_id": NoArgs,
    "get_uuid": NoArgs,
    "get_fingerprint": NoArgs,
    "is_ok_change_id": NoArgs,
    "change_id": IdArgs,
    "get_async_job_status": NoArgs,
    "reset_async_job_status": NoArgs,
    "post_request": PostRequestArgs,
    "get_remote_id": NoArgs,
    "set_remote_id": IdArgs,
    "handle_relay_id": IdArgs,
    # credentials
    "temporary_password": NoArgs,
    "update_temporary_password": NoArgs,
    "permanent_password": NoArgs,
    "set_permanent_password": PasswordArgs,
    "peer_has_password": PeerArgs,
    "forget_password": PeerArgs,
    "get_socks": NoArgs,
    "set_socks": SocksArgs,
    # two-factor
    "has_valid_2fa": NoArgs,
    "generate2fa": NoArgs,
    "verify2fa": CodeArgs,
    "generate_2fa_img_src": TextArgs,
    # peers
    "get_peer": PeerArgs,
    "add_peer": AddPeerArgs,
    "remove_peer": PeerArgs,
    "get_fav": NoArgs,
    "store_fav": FavoritesArgs,
    "get_recent_sessions": NoArgs,
    "recent_sessions_updated": NoArgs,
    "get_peer_option": PeerOptionArgs,
    "set_peer_option": SetPeerOptionArgs,
    # LAN discovery
    "discover": NoArgs,
    "get_lan_peers": NoArgs,
    "remove_discovered": PeerArgs,
    # options
    "get_option": OptionArgs,
    "set_option": SetOptionArgs,
    "get_options": NoArgs,
    "set_options": OptionsArgs,
    "get_local_option": OptionArgs,
    "set_local_option": SetOptionArgs,
    # session and app info
    "get_connect_status": NoArgs,
    "using_public_server": NoArgs,
    "get_api_server": NoArgs,
    "test_if_valid_server": HostArgs,
    "get_app_name": NoArgs,
    "get_version": NoArgs,
}
