# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
LG TV TCP/IP client transport.

Provides an implementation of LgTvClientTransport over a TCP/IP
socket.

The protocol has no framing beyond the encryption block structure; each chunk
read from the socket is delivered as one inbound frame. Responses from the TV
are short and arrive in a single segment.
"""

from __future__ import annotations

import asyncio
from asyncio import Future

from ..internal_types import *
from ..exceptions import LgTvConnectionError
from ..constants import DEFAULT_TIMEOUT, DEFAULT_PORT, READ_CHUNK_SIZE
from ..pkg_logging import logger

from .client_transport import (
    LgTvClientTransport,
    FrameCallback,
    ClosedCallback,
  )

from .resolve_host import resolve_tv_tcp_host

class TcpLgTvClientTransport(LgTvClientTransport):
    """LG TV TCP/IP client transport."""

    reader: Optional[asyncio.StreamReader] = None
    writer: Optional[asyncio.StreamWriter] = None
    host: str
    port: int
    timeout_secs: float
    final_status: Future[None]
    reader_task: Optional[asyncio.Task[None]] = None
    reader_closed: bool = False
    writer_closed: bool = False
    _closed_notified: bool = False

    def __init__(
            self,
            host: str,
            port: int=DEFAULT_PORT,
            timeout_secs: float = DEFAULT_TIMEOUT,
            on_frame: Optional[FrameCallback]=None,
            on_closed: Optional[ClosedCallback]=None,
          ) -> None:
        """Initializes the transport. Does not connect.
        """
        super().__init__()
        self.host = host
        self.port = port
        self.timeout_secs = timeout_secs
        self.on_frame = on_frame
        self.on_closed = on_closed
        self.final_status = asyncio.get_running_loop().create_future()

    @property
    def is_closed(self) -> bool:
        return self.final_status.done()

    # @abstractmethod
    def send_frame(self, frame: bytes) -> None:
        """Queues an encrypted frame for sending, byte-exact.

        Raises LgTvConnectionError if the transport is not connected.
        """
        if self.writer is None or self.is_closed:
            raise LgTvConnectionError(f"{self}: Not connected; frame of {len(frame)} bytes dropped", reason="not_connected")
        logger.debug(f"{self}: Writing {len(frame)} bytes: {frame.hex(' ')}")
        self.writer.write(frame)

    # @override
    async def drain(self) -> None:
        """Waits for queued frames to be written, with timeout.

        On error, the transport will be shut down, and no further interaction is possible.
        """
        if self.writer is None or self.is_closed:
            return
        try:
            await asyncio.wait_for(self.writer.drain(), self.timeout_secs)
        except Exception as e:
            await self.shutdown(e)
            raise

    async def write_frame(self, frame: bytes) -> None:
        """Sends an encrypted frame and waits for it to drain, with timeout.

        On error, the transport will be shut down, and no further interaction is possible.
        """
        try:
            self.send_frame(frame)
        except Exception as e:
            await self.shutdown(e)
            raise
        await self.drain()

    def _notify_closed(self, exc: Optional[BaseException]) -> None:
        if not self._closed_notified:
            self._closed_notified = True
            if self.on_closed is not None:
                try:
                    self.on_closed(exc)
                except Exception as e:
                    logger.exception(f"{self}: on_closed callback failed: {e}")

    async def _read_loop(self) -> None:
        """Delivers inbound bytes to on_frame until EOF or error."""
        assert self.reader is not None
        exc: Optional[BaseException] = None
        try:
            while True:
                data = await self.reader.read(READ_CHUNK_SIZE)
                if len(data) == 0:
                    logger.debug(f"{self}: Connection closed by TV")
                    break
                logger.debug(f"{self}: Read {len(data)} bytes: {data.hex(' ')}")
                if self.on_frame is not None:
                    try:
                        self.on_frame(data)
                    except Exception as e:
                        logger.exception(f"{self}: on_frame callback failed: {e}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug(f"{self}: Read failed: {e}")
            exc = LgTvConnectionError(f"{self}: Connection lost: {e}", reason="read_failed")
        await self.shutdown(exc)

    # @abstractmethod
    async def shutdown(self, exc: Optional[BaseException] = None) -> None:
        """Shuts the transport down. Does not wait for the transport to finish
           closing. Safe to call from a callback.

        If exc is not None, sets the final status of the transport.

        Has no effect if the transport is already shutting down or closed.

        Does not raise an exception based on final status.
        """
        if not self.final_status.done():
            if exc is not None:
                self.final_status.set_exception(exc)
            else:
                self.final_status.set_result(None)
        try:
            if not self.reader_closed:
                self.reader_closed = True
                if self.reader is not None:
                    self.reader.feed_eof()
                if self.reader_task is not None and self.reader_task is not asyncio.current_task():
                    self.reader_task.cancel()
        except Exception as e:
            logger.debug("Exception while closing reader", exc_info=True)
        finally:
            try:
                if not self.writer_closed:
                    self.writer_closed = True
                    if self.writer is not None:
                        self.writer.close()
            except Exception as e:
                logger.debug("Exception while closing writer", exc_info=True)
            finally:
                self._notify_closed(exc)

    # @abstractmethod
    async def wait(self) -> None:
        """Waits for complete shutdown/cleanup. Does not initiate shutdown.
        Not safe to call from a callback.

        Returns immediately if the transport is already closed.
        Raises an exception if the final status of the transport is an exception.
        """
        try:
            if self.writer is not None:
                await self.writer.wait_closed()
        except Exception as e:
            logger.debug("Exception while waiting for writer to close", exc_info=True)
            await self.shutdown(e)
        finally:
            if not self.final_status.done():
                await self.shutdown()
            if self.reader_task is not None and self.reader_task is not asyncio.current_task():
                await asyncio.gather(self.reader_task, return_exceptions=True)
        await self.final_status

    # @override
    async def __aenter__(self) -> TcpLgTvClientTransport:
        """Enters a context that will close the transport on exit."""
        return self

    async def connect(self) -> None:
        """Connects to the TV, with timeout, and starts delivering inbound frames.
        """
        try:
            assert self.reader is None and self.writer is None
            logger.debug(f"Connecting to TV at {self.host}:{self.port}")
            try:
                self.reader, self.writer = await asyncio.wait_for(
                    asyncio.open_connection(self.host, self.port), self.timeout_secs)
            except (OSError, asyncio.TimeoutError) as e:
                raise LgTvConnectionError(
                    f"{self}: Unable to connect: {e!r}", reason="connect_failed") from e
            self.reader_task = asyncio.create_task(self._read_loop())
            logger.info(f"{self}: Connected")
        except BaseException as e:
            await self.aclose(e)
            raise

    @classmethod
    async def create(
            cls,
            host: Optional[str]=None,
            port: Optional[int]=None,
            timeout_secs: float=DEFAULT_TIMEOUT,
            on_frame: Optional[FrameCallback]=None,
            on_closed: Optional[ClosedCallback]=None,
          ) -> Self:
        """Creates and connects a transport to
           an LG TV that is reachable over TCP/IP.

              Args:
                host: The hostname or IPV4 address of the TV.
                      may optionally be prefixed with "tcp://".
                      May be suffixed with ":<port>" to specify a
                      non-default port, which will override the port argument.
                      If None, the host will be taken from the
                        LG_TV_HOST environment variable.
                port: The default TCP/IP port number to use. If None, the port
                      will be taken from LG_TV_PORT. If that
                      environment variable is not found, the default LG
                      encrypted control port (9761) will be used.
                timeout_secs: The timeout for connecting and for draining
                        writes. If not provided, DEFAULT_TIMEOUT (2 seconds)
                        is used.
                on_frame: Called with each chunk of inbound bytes.
                on_closed: Called once when the transport closes.
        """
        final_host, final_port = resolve_tv_tcp_host(host, port)

        transport = cls(
            final_host,
            port=final_port,
            timeout_secs=timeout_secs,
            on_frame=on_frame,
            on_closed=on_closed,
          )
        await transport.connect()
        # on error, the transport will be shut down, and no further interaction is possible
        return transport

    def __str__(self) -> str:
        return f"TcpLgTvClientTransport({self.host}:{self.port})"

    def __repr__(self) -> str:
        return str(self)
