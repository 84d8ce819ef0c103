# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
LG TV host IP/Port resolver.

Provides a method that can resolve various host specifiers and environment
variables into a TV hostname and port.
"""

from __future__ import annotations

import os

from ..internal_types import *
from ..exceptions import LgTvConfigError
from ..constants import DEFAULT_PORT

def resolve_tv_tcp_host(
        host: Optional[str]=None,
        default_port: Optional[int]=None,
      ) -> Tuple[str, int]:
    """Resolves a TV host string into a hostname and port.

        Args:
            host: The hostname or IPV4 address of the TV.
                    may optionally be prefixed with "tcp://".
                    May be suffixed with ":<port>" to specify a
                    non-default port, which will override the default_port argument.
                    If None, the host will be taken from the
                    LG_TV_HOST environment variable.
            default_port: The default TCP/IP port number to use. If None, the port
                    will be taken from LG_TV_PORT. If that
                    environment variable is not found, the default LG
                    encrypted control port (9761) will be used.

        Returns:
            A tuple of (hostname: str, port: int).

        Raises LgTvConfigError if no host is configured or the specifier is malformed.
    """
    if host is None or host == '':
        host = os.environ.get('LG_TV_HOST')
        if host is None or host == '':
            raise LgTvConfigError("No TV host specified, and LG_TV_HOST is not set")

    if default_port is None or default_port <= 0:
        default_port_str = os.environ.get('LG_TV_PORT')
        if default_port_str is None or default_port_str == '':
            default_port = DEFAULT_PORT
        else:
            default_port = _parse_port(default_port_str)

    if host.startswith('tcp://'):
        host = host[6:]
    elif '://' in host:
        raise LgTvConfigError(f"Invalid host protocol specifier for TCP transport: '{host}'")
    if ':' in host:
        host, port_str = host.rsplit(':', 1)
        port = _parse_port(port_str)
    else:
        port = default_port
    if host == '':
        raise LgTvConfigError("Empty TV hostname")

    return (host, port)

def _parse_port(port_str: str) -> int:
    try:
        port = int(port_str)
    except ValueError as e:
        raise LgTvConfigError(f"Invalid TCP port: '{port_str}'") from e
    if port <= 0 or port > 65535:
        raise LgTvConfigError(f"TCP port out of range: {port}")
    return port
