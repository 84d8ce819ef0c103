# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
LG TV client abstract transport interface.

Provides a low-level abstract interface for sending opaque encrypted frames
to an LG TV and receiving opaque inbound frames. Does not provide encryption,
session state or any higher-level abstractions such as key presses.

This abstraction allows for the implementation of proxies and alternate network
transports.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

from ..internal_types import *

FrameCallback = Callable[[bytes], None]
"""Called with each chunk of inbound bytes."""

ClosedCallback = Callable[[Optional[BaseException]], None]
"""Called once when the transport closes, with the exception that closed it, if any."""

class LgTvClientTransport(ABC):
    on_frame: Optional[FrameCallback] = None
    on_closed: Optional[ClosedCallback] = None

    @abstractmethod
    def send_frame(self, frame: bytes) -> None:
        """Queues an encrypted frame for sending, byte-exact. Does not wait for it
        to be written. Must be called on the transport's event loop.

        Must be implemented by subclasses.
        """
        raise NotImplementedError()

    async def drain(self) -> None:
        """Waits until queued frames have been handed to the network.

        May be overridden by subclasses. The default implementation returns immediately.
        """
        pass

    @abstractmethod
    async def shutdown(self, exc: Optional[BaseException] = None) -> None:
        """Shuts the transport down. Does not wait for the transport to finish
           closing. Safe to call from a callback.

        If exc is not None, sets the final status of the transport.

        Has no effect if the transport is already shutting down or closed.

        Does not raise an exception based on final status.

        Must be implemented by subclasses.
        """
        raise NotImplementedError()

    @abstractmethod
    async def wait(self) -> None:
        """Waits for complete shutdown/cleanup. Does not initiate shutdown
        Not safe to call from a callback.

        Returns immediately if the transport is already closed.
        Raises an exception if the final status of the transport is an exception.

        Must be implemented by a subclass.
        """
        raise NotImplementedError()

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """True once shutdown has begun."""
        raise NotImplementedError()

    async def aclose(self, exc: Optional[BaseException] = None) -> None:
        """Closes the transport and waits for complete shutdown/cleanup.
        Not safe to call from a callback.

        If exc is not None, sets the final status of the transport.

        Has no effect if the transport is already closed.

        Raises an exception if the final status of the transport is an exception.

        May be overridden by subclasses. The default implementation simply calls
        shutdown() and then wait().
        """
        await self.shutdown(exc)
        await self.wait()

    async def __aenter__(self) -> LgTvClientTransport:
        """Enters a context that will close the transport on exit."""
        return self

    async def __aexit__(
            self,
            exc_type: Optional[Type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType],
          ) -> None:
        """Exits the context, closes the transport, and waits for complete shutdown/cleanup."""
        # Close the transport without raising an exception
        closer: asyncio.Task[None] = asyncio.ensure_future(self.aclose(exc))
        assert isinstance(closer, asyncio.Task)
        done, pending = await asyncio.wait([closer])
        assert len(done) == 1 and len(pending) == 0
        if exc is None:
            # raise the exception from the transport if there is one
            closer.result()
