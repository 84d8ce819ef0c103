# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
LG TV client.

Session state machine, TCP transport, Wake-on-LAN sender and the high-level
asyncio client that ties them together.
"""

from .resolve_host import resolve_tv_tcp_host
from .session_controller import LgTvSessionController, SessionState, validate_keycode
from .client_transport import LgTvClientTransport
from .connector import LgTvConnector
from .tcp_client_transport import TcpLgTvClientTransport
from .tcp_connector import TcpLgTvConnector
from .wol_sender import WakeOnLanSender
from .simple import lg_tv_connect
from .client_config import LgTvClientConfig
from .client_impl import (
    LgTvClient,
  )
