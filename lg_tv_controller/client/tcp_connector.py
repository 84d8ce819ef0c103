# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
LG TV TCP/IP client connector.

Provides a connector for a LgTvClientTransport over a TCP/IP
socket.
"""

from __future__ import annotations

from ..internal_types import *
from .connector import LgTvConnector
from .client_transport import LgTvClientTransport, FrameCallback, ClosedCallback
from .client_config import LgTvClientConfig
from .resolve_host import resolve_tv_tcp_host

from .tcp_client_transport import TcpLgTvClientTransport

class TcpLgTvConnector(LgTvConnector):
    """LG TV TCP/IP client transport connector."""

    config: LgTvClientConfig

    def __init__(
            self,
            host: Optional[str]=None,
            port: Optional[int]=None,
            timeout_secs: Optional[float] = None,
            config: Optional[LgTvClientConfig]=None,
          ) -> None:
        """Creates a connector that can create transports to
           an LG TV that is reachable over TCP/IP.

              Args:
                host: The hostname or IPV4 address of the TV.
                      may optionally be prefixed with "tcp://".
                      May be suffixed with ":<port>" to specify a
                      non-default port, which will override the port argument.
                      If None, the host will be taken from the config.
                port: The default TCP/IP port number to use. If None, the port
                      will be taken from the config.
                timeout_secs: The connect timeout. If not provided, the
                        config timeout is used.
                config: A LgTvClientConfig object that specifies
                        the default host, port, etc to use.
                        If None, a default config will be created.

        Raises LgTvConfigError if the host specifier is invalid.
        """
        super().__init__()
        self.config = LgTvClientConfig(
            default_host=host,
            default_port=port,
            timeout_secs=timeout_secs,
            base_config=config
          )
        # Validate the host specifier now rather than at connect time
        resolve_tv_tcp_host(self.config.default_host, self.config.default_port)

    # @abstractmethod
    async def connect(
            self,
            on_frame: Optional[FrameCallback]=None,
            on_closed: Optional[ClosedCallback]=None,
          ) -> LgTvClientTransport:
        """Create and connect a TCP/IP client transport for the TV associated with this
           connector.
        """
        transport = await TcpLgTvClientTransport.create(
            self.config.default_host,
            port=self.config.default_port,
            timeout_secs=self.config.timeout_secs,
            on_frame=on_frame,
            on_closed=on_closed,
          )
        return transport

    def __str__(self) -> str:
        return f"TcpLgTvConnector(host='{self.config.default_host}', port={self.config.default_port})"

    def __repr__(self) -> str:
        return str(self)
