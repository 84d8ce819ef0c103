# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
LG TV client.

Wires an LgTvSessionController to a TCP transport and a Wake-on-LAN sender.
The controller decides when a TCP session should exist; this client opens and
closes it, and reports the result back.
"""

from __future__ import annotations

import asyncio
import time

from ..internal_types import *
from ..exceptions import LgTvConnectionError
from ..constants import CONNECT_TIMEOUT, CONNECT_RETRY_INTERVAL
from ..pkg_logging import logger
from ..protocol import RandomSource

from .client_config import LgTvClientConfig
from .client_transport import LgTvClientTransport
from .connector import LgTvConnector
from .tcp_connector import TcpLgTvConnector
from .session_controller import LgTvSessionController, SessionState
from .wol_sender import WakeOnLanSender

class LgTvClient:
    """LG TV TCP/IP client."""

    config: LgTvClientConfig
    connector: LgTvConnector
    controller: LgTvSessionController
    transport: Optional[LgTvClientTransport] = None
    wol_sender: Optional[Callable[[bytes], Any]]
    loop: asyncio.AbstractEventLoop
    connect_timeout: float

    on_message: Optional[MessageSink]
    on_power_state: Optional[FlagSink]

    _connect_task: Optional[asyncio.Task[None]] = None
    _shutdown_tasks: Set[asyncio.Task[None]]
    _online: asyncio.Event
    _closed: bool = False

    def __init__(
            self,
            config: Optional[LgTvClientConfig]=None,
            connector: Optional[LgTvConnector]=None,
            wol_sender: Optional[Callable[[bytes], Any]]=None,
            on_message: Optional[MessageSink]=None,
            on_power_state: Optional[FlagSink]=None,
            random_source: Optional[RandomSource]=None,
            connect_timeout: float=CONNECT_TIMEOUT,
          ) -> None:
        """Creates a client. Must be called with a running event loop. Does not
           derive the key or connect; call start() for that.

              Args:
                config: Host, keycode, MAC address, etc. If None, a default
                        config (from environment variables) is used.
                connector: Creates transports. If None, a TCP connector for
                        the configured host is used.
                wol_sender: Broadcasts magic packets. If None, a
                        WakeOnLanSender for the configured broadcast address
                        is used.
                on_message: Called with each decoded message from the TV.
                on_power_state: Called when the believed power state changes.
                random_source: IV source for the crypto engine.
                connect_timeout: How long to keep retrying a requested
                        connection, in seconds.
        """
        self.config = LgTvClientConfig(base_config=config)
        self.loop = asyncio.get_running_loop()
        self.connector = TcpLgTvConnector(config=self.config) if connector is None else connector
        if wol_sender is None:
            wol_sender = WakeOnLanSender(self.config.wol_broadcast_addr, self.config.wol_port)
        self.wol_sender = wol_sender
        self.on_message = on_message
        self.on_power_state = on_power_state
        self.connect_timeout = connect_timeout
        self._online = asyncio.Event()
        self._shutdown_tasks = set()
        self.controller = LgTvSessionController(
            send_frame=self._on_send_frame,
            on_message=self._on_message,
            on_power_state=self._on_power_state,
            on_connect_request=self._on_connect_request,
            wake_on_lan=self._on_wake_on_lan,
            mac_address=self.config.mac_address,
            boot_delay_secs=self.config.boot_delay_secs,
            random_source=random_source,
            loop=self.loop,
          )

    @property
    def state(self) -> SessionState:
        return self.controller.state

    @property
    def is_online(self) -> bool:
        return self.controller.online

    # Controller sinks. These may be called on any thread.

    def _on_send_frame(self, frame: bytes) -> None:
        self.loop.call_soon_threadsafe(self._write_frame, frame)

    def _on_message(self, msg: str) -> None:
        if self.on_message is not None:
            self.on_message(msg)

    def _on_power_state(self, powered: bool) -> None:
        if self.on_power_state is not None:
            self.on_power_state(powered)

    def _on_connect_request(self, connect: bool) -> None:
        self.loop.call_soon_threadsafe(self._apply_connect_request)

    def _on_wake_on_lan(self, packet: bytes) -> None:
        if self.wol_sender is None:
            logger.warning(f"{self}: No Wake-on-LAN sender; magic packet not sent")
        else:
            self.wol_sender(packet)

    # Event loop side

    def _write_frame(self, frame: bytes) -> None:
        transport = self.transport
        if transport is None:
            logger.warning(f"{self}: Transport closed before {len(frame)}-byte frame could be written; dropped")
            return
        try:
            transport.send_frame(frame)
        except LgTvConnectionError as e:
            logger.warning(f"{self}: Frame dropped: {e}")

    def _apply_connect_request(self) -> None:
        if self._closed:
            return
        if self.controller.connect_requested:
            # If a closing transport is still attached, _on_transport_closed reconnects
            self._start_connect()
        else:
            if self._connect_task is not None and not self._connect_task.done():
                logger.debug(f"{self}: Connect request withdrawn; cancelling connection attempt")
                self._connect_task.cancel()
            transport = self.transport
            if transport is not None:
                logger.debug(f"{self}: Connect request withdrawn; closing transport")
                task = asyncio.create_task(transport.shutdown())
                self._shutdown_tasks.add(task)
                task.add_done_callback(self._on_shutdown_task_done)

    def _on_shutdown_task_done(self, task: asyncio.Task[None]) -> None:
        self._shutdown_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"{self}: Exception while closing transport: {task.exception()}")

    def _start_connect(self, delay_secs: float=0.0) -> None:
        """Starts a connection attempt unless one is running or a transport is attached."""
        task = self._connect_task
        if self.transport is None and (task is None or task.done() or task is asyncio.current_task()):
            self._connect_task = asyncio.create_task(self._connect(delay_secs))

    async def _connect(self, delay_secs: float=0.0) -> None:
        """Connects, retrying until connect_timeout elapses or the request is withdrawn."""
        transport_ref: List[Optional[LgTvClientTransport]] = [None]
        if delay_secs > 0:
            await asyncio.sleep(delay_secs)
            if self._closed or not self.controller.connect_requested:
                return
        start_time = time.monotonic()
        while True:
            try:
                transport = await self.connector.connect(
                    on_frame=self._on_frame,
                    on_closed=lambda exc: self._on_transport_closed(transport_ref[0], exc),
                  )
            except LgTvConnectionError as e:
                remaining = self.connect_timeout - (time.monotonic() - start_time)
                if remaining <= 0 or self._closed or not self.controller.connect_requested:
                    logger.warning(f"{self}: Giving up on connection: {e}")
                    return
                logger.debug(f"{self}: Connection attempt failed ({e}); retrying")
                await asyncio.sleep(min(CONNECT_RETRY_INTERVAL, remaining))
                continue
            break
        transport_ref[0] = transport
        if self._closed or self.controller.disposed or not self.controller.connect_requested:
            await transport.aclose()
            return
        self.transport = transport
        self._online.set()
        self.controller.set_online_status(True)
        if transport.is_closed:
            # closed before it was attached; on_closed was ignored
            self._on_transport_closed(transport, None)

    def _on_frame(self, data: bytes) -> None:
        if self.controller.disposed:
            return
        self.controller.receive_frame(data)

    def _on_transport_closed(self, transport: Optional[LgTvClientTransport], exc: Optional[BaseException]) -> None:
        if transport is None or transport is not self.transport:
            return
        self.transport = None
        self._online.clear()
        if exc is not None:
            logger.info(f"{self}: Connection closed: {exc}")
        if self._closed or self.controller.disposed:
            return
        self.controller.set_online_status(False)
        if self.controller.connect_requested:
            logger.info(f"{self}: Session lost while a connection is requested; reconnecting")
            self._start_connect(CONNECT_RETRY_INTERVAL)

    # Public API

    async def start(self) -> None:
        """Installs the configured keycode and, if auto_connect is set, requests a connection.

        Key derivation runs in a worker thread, since it takes a noticeable time.

        Raises LgTvConfigError if the keycode is missing or malformed.
        """
        keycode = self.config.keycode
        await self.loop.run_in_executor(None, self.controller.initialize, keycode)
        if self.config.auto_connect:
            self.controller.request_connection(True)

    async def wait_online(self, timeout_secs: Optional[float]=None) -> None:
        """Waits for the TCP session to come up.

        Raises asyncio.TimeoutError if it does not within timeout_secs.
        """
        await asyncio.wait_for(self._online.wait(), timeout_secs)

    async def _drain(self) -> None:
        # let the deferred _write_frame run first
        await asyncio.sleep(0)
        transport = self.transport
        if transport is not None:
            await transport.drain()

    async def send_key(self, key_name: str) -> None:
        """Sends a remote control key press.

        Raises LgTvNotReadyError if not online or no keycode is installed.
        """
        self.controller.send_command(key_name)
        await self._drain()

    async def send_raw_command(self, text: str) -> None:
        """Sends command text as-is."""
        self.controller.send_raw_command(text)
        await self._drain()

    async def volume_up(self) -> None:
        await self.send_key("volumeup")

    async def volume_down(self) -> None:
        await self.send_key("volumedown")

    async def volume_mute(self) -> None:
        await self.send_key("volumemute")

    async def power_on(self, wait_for_online: bool=False, timeout_secs: Optional[float]=None) -> None:
        """Wakes the TV and connects once the boot delay has elapsed.

        If wait_for_online is True, waits for the TCP session to come up.

        Raises LgTvConfigError if the MAC address is missing or malformed.
        """
        self.controller.power_on()
        if wait_for_online:
            if timeout_secs is None:
                timeout_secs = self.config.boot_delay_secs + self.connect_timeout
            # power_on() withdraws the connect request; the current session is going away
            self._online.clear()
            await self.wait_online(timeout_secs)

    async def power_off(self) -> bool:
        """Puts the TV into standby and closes the TCP session.

        Returns True if the power-down command was sent.
        """
        sent = self.controller.power_off()
        if sent:
            await asyncio.sleep(0)
            transport = self.transport
            if transport is not None:
                try:
                    await transport.drain()
                except Exception as e:
                    logger.debug(f"{self}: Error draining power-off command: {e}")
        return sent

    async def _async_dispose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.controller.dispose()
        if self._connect_task is not None:
            self._connect_task.cancel()
            await asyncio.gather(self._connect_task, return_exceptions=True)
            self._connect_task = None
        if len(self._shutdown_tasks) > 0:
            await asyncio.gather(*self._shutdown_tasks, return_exceptions=True)
        transport = self.transport
        self.transport = None
        if transport is not None:
            try:
                await transport.aclose()
            except Exception as e:
                logger.debug(f"{self}: Exception while closing transport: {e}")

    async def __aenter__(self) -> LgTvClient:
        logger.debug(f"{self}: Entering async context manager")
        return self

    async def __aexit__(
            self,
            exc_type: Optional[Type[BaseException]],
            exc_val: Optional[BaseException],
            exc_tb: Optional[TracebackType],
          ) -> None:
        logger.debug(f"{self}: Exiting async context manager, exc={exc_val}")
        await self._async_dispose()

    def __str__(self) -> str:
        return f"LgTvClient(connector={self.connector})"

    def __repr__(self) -> str:
       return str(self)

    async def aclose(self) -> None:
       await self._async_dispose()
