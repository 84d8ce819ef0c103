# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
A single TCP session with the LG TV emulator.
"""

from __future__ import annotations

import asyncio

from ..internal_types import *
from ..pkg_logging import logger

if TYPE_CHECKING:
    from .emulator_impl import LgTvEmulator

class LgTvEmulatorSession(asyncio.Protocol):
    emulator: LgTvEmulator
    session_id: int
    transport: Optional[asyncio.Transport] = None
    peername: Optional[Any] = None

    def __init__(self, emulator: LgTvEmulator):
        self.emulator = emulator
        self.session_id = emulator.alloc_session_id(self)

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        assert isinstance(transport, asyncio.Transport)
        self.transport = transport
        self.peername = transport.get_extra_info('peername')
        if not self.emulator.powered:
            logger.debug(f"{self}: TV is in standby; refusing connection")
            self.close()
            return
        logger.debug(f"{self}: Connection made")

    def data_received(self, data: bytes) -> None:
        logger.debug(f"{self}: Received {len(data)} bytes: {data.hex(' ')}")
        self.emulator.on_frame_received(self, data)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        logger.debug(f"{self}: Connection lost: {exc}")
        self.transport = None
        self.emulator.free_session_id(self.session_id)

    def write(self, data: bytes) -> None:
        if self.transport is not None and not self.transport.is_closing():
            self.transport.write(data)

    def close(self) -> None:
        if self.transport is not None:
            self.transport.close()

    def __str__(self) -> str:
        return f"LgTvEmulatorSession({self.session_id}, {self.peername})"

    def __repr__(self) -> str:
        return str(self)
