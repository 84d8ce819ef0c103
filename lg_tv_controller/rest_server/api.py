# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
REST API routes for the LG TV server.

Commands that cannot be sent because the TV is offline or no keycode is
installed fail with 409 Conflict; malformed configuration or key names fail
with 400 Bad Request.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from ..internal_types import *
from ..version import __version__
from ..exceptions import LgTvError, LgTvNotReadyError, LgTvConfigError
from ..client import LgTvClient, SessionState
from .logger import logger

router = APIRouter()

def tv_client_dependency(request: Request) -> LgTvClient:
    return request.app.state.tv_client

def state_to_jsonable(state: SessionState) -> Dict[str, Any]:
    return dict(
        online=state.online,
        powered=state.powered,
        connect_requested=state.connect_requested,
        pending_power_on=state.pending_power_on,
      )

def to_http_exception(e: LgTvError) -> HTTPException:
    if isinstance(e, LgTvNotReadyError):
        status_code = 409
    else:
        status_code = 400
    logger.info(f"Request failed with {status_code}: {e}")
    return HTTPException(status_code=status_code, detail=str(e))

@router.get("/")
async def root() -> Dict[str, Any]:
    return dict(name="lg_tv_controller", version=__version__)

@router.get("/status")
async def get_status(client: LgTvClient=Depends(tv_client_dependency)) -> Dict[str, Any]:
    return state_to_jsonable(client.state)

@router.post("/power/on")
async def power_on(client: LgTvClient=Depends(tv_client_dependency)) -> Dict[str, Any]:
    try:
        await client.power_on()
    except LgTvConfigError as e:
        raise to_http_exception(e) from e
    return state_to_jsonable(client.state)

@router.post("/power/off")
async def power_off(client: LgTvClient=Depends(tv_client_dependency)) -> Dict[str, Any]:
    try:
        sent = await client.power_off()
    except LgTvError as e:
        raise to_http_exception(e) from e
    result = state_to_jsonable(client.state)
    result['sent'] = sent
    return result

@router.post("/key/{key_name}")
async def send_key(key_name: str, client: LgTvClient=Depends(tv_client_dependency)) -> Dict[str, Any]:
    try:
        await client.send_key(key_name)
    except LgTvError as e:
        raise to_http_exception(e) from e
    return dict(key=key_name, sent=True)

_volume_keys: Dict[str, str] = {
    "up": "volumeup",
    "down": "volumedown",
    "mute": "volumemute",
  }

@router.post("/volume/{action}")
async def volume(action: str, client: LgTvClient=Depends(tv_client_dependency)) -> Dict[str, Any]:
    key_name = _volume_keys.get(action)
    if key_name is None:
        raise HTTPException(status_code=404, detail=f"Unknown volume action: {action}")
    try:
        await client.send_key(key_name)
    except LgTvError as e:
        raise to_http_exception(e) from e
    return dict(key=key_name, sent=True)
