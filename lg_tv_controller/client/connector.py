# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
LG TV client abstract transport connector interface.

Provides a low-level abstract interface for objects that can create
transport connections to an LG TV.
This abstraction allows for the implementation of proxies and alternate network
transports.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..internal_types import *
from .client_transport import LgTvClientTransport, FrameCallback, ClosedCallback

class LgTvConnector(ABC):
    """Abstract base class for LG TV client transport connectors."""

    @abstractmethod
    async def connect(
            self,
            on_frame: Optional[FrameCallback]=None,
            on_closed: Optional[ClosedCallback]=None,
          ) -> LgTvClientTransport:
        """Create and connect a client transport for the TV associated with this
           connector. Inbound bytes are delivered to on_frame; on_closed is called
           once when the transport closes.

        Must be implemented by subclasses.
        """
        raise NotImplementedError()
