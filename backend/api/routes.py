"""REST API routes for the UI shell."""

import logging
from typing import Any

from fastapi import APIRouter, Body, HTTPException

from api.bridge import BridgeValidationError, UIBridge, UnknownOperationError
from jobs.coordinator import AsyncJobCoordinator
from session.status import ConnectionStatus, ConnectionStatusBoard

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

# These will be injected by main.py at startup
_bridge: UIBridge | None = None
_status_board: ConnectionStatusBoard | None = None
_jobs: AsyncJobCoordinator | None = None


def init_routes(bridge: UIBridge, status_board: ConnectionStatusBoard,
                jobs: AsyncJobCoordinator) -> None:
    """Inject service dependencies into the routes module."""
    global _bridge, _status_board, _jobs
    _bridge = bridge
    _status_board = status_board
    _jobs = jobs


# --- Operation dispatch ---

@router.get("/ops")
def list_operations():
    """Return the names of all callable operations."""
    return {"operations": _bridge.operations()}


@router.post("/call/{name}")
def call_operation(name: str, args: dict[str, Any] | None = Body(default=None)):
    """Run one named operation with a JSON object of arguments."""
    try:
        result = _bridge.call(name, args or {})
    except UnknownOperationError:
        raise HTTPException(status_code=404, detail=f"Unknown operation: {name}")
    except BridgeValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors)
    return {"result": result}


# --- Polling ---

@router.get("/status")
def get_status():
    """Connection snapshot and background job state for polling UIs."""
    return {
        "connection": _status_board.snapshot().model_dump(),
        "job": _jobs.poll_status().model_dump(mode="json"),
    }


# --- Session layer ---

@router.put("/session")
def publish_session(status: ConnectionStatus):
    """Published by the live session layer when the connection changes."""
    _status_board.publish(status.status_code, status.key_confirmed, status.active_peer_id)
    return {"status": "updated"}


@router.delete("/session")
def clear_session():
    _status_board.clear()
    return {"status": "cleared"}
