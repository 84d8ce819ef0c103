# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Package lg_tv_controller provides an API for controlling LG TVs via their
encrypted TCP/IP control protocol.
"""

from .version import __version__

from .pkg_logging import logger

from .internal_types import Jsonable, JsonableDict

from .exceptions import (
    LgTvError,
    LgTvConfigError,
    LgTvKeyDerivationError,
    LgTvDecodeError,
    LgTvDisposedError,
    LgTvNotReadyError,
    LgTvNotOnlineError,
    LgTvNotInitializedError,
    LgTvConnectionError,
  )

from .constants import DEFAULT_PORT, DEFAULT_TIMEOUT, BOOT_DELAY, KEYCODE_LENGTH

from .protocol import (
    LgCryptoEngine,
    LgCommand,
    RandomSource,
    LockedRandomSource,
    default_random_source,
    derive_key,
    pad,
    unpad,
    parse_mac_address,
    build_magic_packet,
    KNOWN_KEYS,
  )

from .client import (
    LgTvSessionController,
    SessionState,
    LgTvClient,
    LgTvClientConfig,
    LgTvClientTransport,
    LgTvConnector,
    TcpLgTvClientTransport,
    TcpLgTvConnector,
    WakeOnLanSender,
    resolve_tv_tcp_host,
    lg_tv_connect,
  )
