# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
LG TV emulator.

Provides a simple emulation of an LG TV's encrypted IP control port on TCP/IP.

Like the real TV, the emulator is silent about anything it cannot decrypt. It
replies to recognized commands with an encrypted "OK", enters standby (closing
all sessions and refusing new ones) on "POWER off", and leaves standby when
wake() is called.
"""

from __future__ import annotations

import asyncio

from ..internal_types import *
from ..pkg_logging import logger
from ..constants import DEFAULT_PORT
from ..exceptions import LgTvError
from ..protocol import (
    LgCryptoEngine,
    LgCommand,
    POWER_OFF_COMMAND,
  )

from .session import LgTvEmulatorSession

OK_RESPONSE = "OK"

class LgTvEmulator(AsyncContextManager['LgTvEmulator']):
    keycode: str
    bind_addr: str
    port: int
    powered: bool
    engine: LgCryptoEngine
    sessions: Dict[int, LgTvEmulatorSession]
    next_session_id: int = 0
    received_commands: List[str]
    requests: asyncio.Queue[Optional[Tuple[LgTvEmulatorSession, str]]]
    server: Optional[asyncio.Server] = None
    handler_task: Optional[asyncio.Task[None]] = None
    final_result: asyncio.Future[None]

    def __init__(
            self,
            keycode: str,
            bind_addr: Optional[str] = None,
            port: int = DEFAULT_PORT,
            powered: bool = True,
          ):
        """Creates an emulator. Pass port=0 to listen on an ephemeral port;
        the bound port is available as self.port after start()."""
        self.keycode = keycode
        self.engine = LgCryptoEngine(keycode)
        self.bind_addr = '0.0.0.0' if bind_addr is None else bind_addr
        self.port = port
        self.powered = powered
        self.sessions = {}
        self.received_commands = []
        self.requests = asyncio.Queue()
        self.final_result = asyncio.get_running_loop().create_future()

    def alloc_session_id(self, session: LgTvEmulatorSession) -> int:
        result = self.next_session_id
        self.next_session_id += 1
        self.sessions[result] = session
        return result

    def free_session_id(self, session_id: int) -> None:
        self.sessions.pop(session_id, None)

    def on_frame_received(self, session: LgTvEmulatorSession, data: bytes) -> None:
        """Called when bytes are received from a session."""
        msg = self.engine.decode(data)
        if msg == '':
            logger.debug(f"{session}: Undecodable frame ignored")
            return
        self.requests.put_nowait((session, msg))

    def wake(self) -> None:
        """Leaves standby, as if a Wake-on-LAN packet had been received."""
        logger.debug("Emulator: Waking up")
        self.powered = True

    def standby(self) -> None:
        """Enters standby, closing all sessions."""
        logger.debug("Emulator: Entering standby")
        self.powered = False
        for session in list(self.sessions.values()):
            session.close()

    async def handle_command(
            self,
            session: LgTvEmulatorSession,
            msg: str,
          ) -> Optional[str]:
        """Handles a decoded command. Returns the plaintext reply, or None for no reply.
           Subclasses can override to customize behavior."""
        try:
            command = LgCommand(msg)
        except LgTvError:
            logger.debug(f"{session}: Malformed command ignored: {msg!r}")
            return None
        if command.is_key_action:
            logger.debug(f"{session}: Key press: {command.key_name}")
            return OK_RESPONSE
        if command.text == POWER_OFF_COMMAND:
            return OK_RESPONSE
        logger.debug(f"{session}: Unrecognized command ignored: {msg!r}")
        return None

    async def handle_requests(self) -> None:
        """Handle requests from sessions."""
        while True:
            session_and_msg = await self.requests.get()
            try:
                if session_and_msg is None:
                    logger.debug("Emulator handler: Received EOF; exiting")
                    break
                session, msg = session_and_msg
                try:
                    logger.debug(f"{session}: Emulator handler: received command: {msg!r}")
                    self.received_commands.append(msg)
                    reply = await self.handle_command(session, msg)
                    if reply is not None:
                        logger.debug(f"{session}: Emulator handler: Sending reply: {reply!r}")
                        session.write(self.engine.encode(reply))
                    if msg == POWER_OFF_COMMAND:
                        self.standby()
                except asyncio.CancelledError as e:
                    logger.debug(f"{session}: Handler task cancelled; exiting")
                    break
                except Exception as e:
                    logger.exception(f"{session}: Handler task: Exception while handling request; killing session: {e}")
                    session.close()
            finally:
                self.requests.task_done()

    async def run(self) -> None:
        """Runs the Emulator until it is closed."""
        async with self:
            await self.wait_closed()

    async def start(self) -> None:
        try:
            loop = asyncio.get_running_loop()
            self.handler_task = asyncio.create_task(self.handle_requests())
            self.server = await loop.create_server(
                lambda: LgTvEmulatorSession(self),
                host=self.bind_addr,
                port=self.port)
            if self.port == 0 and self.server.sockets:
                self.port = self.server.sockets[0].getsockname()[1]
            logger.debug(f"Emulator: Listening on {self.bind_addr}:{self.port}")
            await self.server.start_serving()
        except BaseException as e:
            self.set_final_result(e)
            try:
                await self.wait_closed()
            except BaseException as e:
                pass
            raise

    def close(self, exc: Optional[BaseException]=None) -> None:
        """Stops the Emulator."""
        self.set_final_result(exc)

    async def wait_closed(self) -> None:
        """Waits for the emulator to be fully closed. Does not initiate shutdown.
           Does not raise an exception based on final status."""
        try:
            await self.final_result
        finally:
            try:
                for session in list(self.sessions.values()):
                    session.close()
                if self.server is not None:
                    try:
                        self.server.close()
                    finally:
                        await self.server.wait_closed()
            finally:
                self.server = None
                if self.handler_task is not None:
                    try:
                        await self.handler_task
                    finally:
                        self.handler_task = None

    async def close_and_wait(self, exc: Optional[BaseException]=None) -> None:
        self.close(exc)
        await self.wait_closed()

    def set_final_result(self, exc: Optional[BaseException]=None) -> None:
        if not self.final_result.done():
            if exc is None:
                logger.debug(f"Emulator: Setting final result to success")
                self.final_result.set_result(None)
            else:
                logger.debug(f"Emulator: Setting final exception: {exc}")
                self.final_result.set_exception(exc)
            self.requests.put_nowait(None)
            if self.server is not None:
                self.server.close()

    async def __aenter__(self) -> LgTvEmulator:
        await self.start()
        return self

    async def __aexit__(self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> None:
        self.close(exc)
        try:
            await self.wait_closed()
        finally:
            self.engine.dispose()

    def __str__(self) -> str:
        return f"LgTvEmulator({self.bind_addr}:{self.port})"

    def __repr__(self) -> str:
        return str(self)
