# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
LG TV client configuration.

Provides general config object for an LgTvClient: where the TV is, how to wake
it, and the keycode used to derive the encryption key.
"""

from __future__ import annotations

import os

from ..internal_types import *
from ..exceptions import LgTvConfigError
from ..constants import (
    DEFAULT_TIMEOUT,
    DEFAULT_PORT,
    BOOT_DELAY,
    WOL_BROADCAST_ADDR,
    WOL_PORT,
  )

def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value == '':
        return default
    try:
        return float(value)
    except ValueError as e:
        raise LgTvConfigError(f"Invalid value for {name}: '{value}'") from e

def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError as e:
        raise LgTvConfigError(f"Invalid value for {name}: '{value}'") from e

class LgTvClientConfig:
    """LG TV client configuration."""
    default_host: Optional[str]
    default_port: int
    mac_address: Optional[str]
    keycode: Optional[str]
    timeout_secs: float
    boot_delay_secs: float
    wol_broadcast_addr: str
    wol_port: int
    auto_connect: bool

    def __init__(
            self,
            default_host: Optional[str]=None,
            keycode: Optional[str]=None,
            *,
            mac_address: Optional[str]=None,
            default_port: Optional[int]=None,
            timeout_secs: Optional[float] = None,
            boot_delay_secs: Optional[float] = None,
            wol_broadcast_addr: Optional[str] = None,
            wol_port: Optional[int] = None,
            auto_connect: Optional[bool] = None,
            base_config: Optional[LgTvClientConfig]=None
          ) -> None:
        """Creates a configuration for an LG TV client.

           Args:
             default_host: The default hostname or IPV4 address of the TV.
                   may optionally be prefixed with "tcp://".
                   May be suffixed with ":<port>" to specify a
                   non-default port, which will override the default_port argument.
                   If None, the default host will be taken from the
                     LG_TV_HOST environment variable.
             keycode:
                   The 8-character keycode from the TV's service menu. If None,
                   the keycode will be taken from the LG_TV_KEYCODE
                   environment variable.
             mac_address:
                   The TV's hardware address, for Wake-on-LAN. If None, it will
                   be taken from the LG_TV_MAC environment variable.
             default_port: The default TCP/IP port number to use.
                    If None, the default port will be taken from LG_TV_PORT.
                    If that environment variable is not found, the default LG
                    encrypted control port (9761) will be used.
             timeout_secs:
                   The timeout for connect and write operations, in seconds.
                   If None, the timeout will be taken from the
                   LG_TV_TIMEOUT environment variable.
                   If the environment variable is not found, the
                   default timeout will be used.
             boot_delay_secs:
                   Seconds to wait after Wake-on-LAN before connecting.
                   If None, BOOT_DELAY (3 seconds) is used.
             wol_broadcast_addr, wol_port:
                   Destination of Wake-on-LAN broadcasts. Default
                   255.255.255.255:9.
             auto_connect:
                   If True, the client connects as soon as it is started,
                   without waiting for power_on(). If None, the base
                   configuration is used. If no base configuration
                   is provided, the default is True.
             base_config:
                     An optional base configuration to use.
        """
        if base_config is None:
            self.init_from_defaults()
        else:
            self.init_from_base_config(base_config)

        if default_host is not None and default_host != '':
            self.default_host = default_host

        if keycode is not None and keycode != '':
            self.keycode = keycode

        if mac_address is not None and mac_address != '':
            self.mac_address = mac_address

        if default_port is not None and default_port > 0:
            self.default_port = default_port

        if timeout_secs is not None:
            self.timeout_secs = timeout_secs

        if boot_delay_secs is not None:
            if boot_delay_secs < 0:
                raise LgTvConfigError(f"boot_delay_secs must not be negative: {boot_delay_secs}")
            self.boot_delay_secs = boot_delay_secs

        if wol_broadcast_addr is not None and wol_broadcast_addr != '':
            self.wol_broadcast_addr = wol_broadcast_addr

        if wol_port is not None and wol_port > 0:
            self.wol_port = wol_port

        if auto_connect is not None:
            self.auto_connect = auto_connect

    def init_from_defaults(self) -> None:
        """Initializes the configuration from defaults."""
        default_host: Optional[str] = os.environ.get('LG_TV_HOST')
        if default_host == '':
            default_host = None
        self.default_host = default_host
        self.default_port = _env_int('LG_TV_PORT', DEFAULT_PORT)
        mac_address = os.environ.get('LG_TV_MAC')
        self.mac_address = None if mac_address == '' else mac_address
        keycode = os.environ.get('LG_TV_KEYCODE')
        self.keycode = None if keycode == '' else keycode
        self.timeout_secs = _env_float('LG_TV_TIMEOUT', DEFAULT_TIMEOUT)
        self.boot_delay_secs = BOOT_DELAY
        self.wol_broadcast_addr = WOL_BROADCAST_ADDR
        self.wol_port = WOL_PORT
        self.auto_connect = True

    def init_from_base_config(self, base_config: LgTvClientConfig) -> None:
        """Initializes the configuration from a base configuration."""
        self.default_host = base_config.default_host
        self.default_port = base_config.default_port
        self.mac_address = base_config.mac_address
        self.keycode = base_config.keycode
        self.timeout_secs = base_config.timeout_secs
        self.boot_delay_secs = base_config.boot_delay_secs
        self.wol_broadcast_addr = base_config.wol_broadcast_addr
        self.wol_port = base_config.wol_port
        self.auto_connect = base_config.auto_connect

    @classmethod
    def from_jsonable(cls, jsonable: JsonableDict, base_config: Optional[LgTvClientConfig]=None) -> LgTvClientConfig:
        """Creates a configuration from a JSON-compatible dict, such as the REST server's
           config file. Missing keys fall back to base_config, then to defaults.

           Recognized keys: host, port, mac_address, keycode, timeout_secs,
           boot_delay_secs, wol_broadcast_addr, wol_port, auto_connect.
        """
        if not isinstance(jsonable, dict):
            raise LgTvConfigError(f"Configuration must be a JSON object, got {type(jsonable).__name__}")
        known_keys = {
            'host', 'port', 'mac_address', 'keycode', 'timeout_secs',
            'boot_delay_secs', 'wol_broadcast_addr', 'wol_port', 'auto_connect'
          }
        unknown_keys = set(jsonable.keys()) - known_keys
        if len(unknown_keys) > 0:
            raise LgTvConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown_keys))}")

        def get_typed(key: str, types: Tuple[type, ...]) -> Any:
            value = jsonable.get(key)
            if value is not None and (not isinstance(value, types) or isinstance(value, bool) != (bool in types)):
                raise LgTvConfigError(f"Invalid type for configuration key '{key}': {type(value).__name__}")
            return value

        return cls(
            default_host=get_typed('host', (str,)),
            keycode=get_typed('keycode', (str,)),
            mac_address=get_typed('mac_address', (str,)),
            default_port=get_typed('port', (int,)),
            timeout_secs=get_typed('timeout_secs', (int, float)),
            boot_delay_secs=get_typed('boot_delay_secs', (int, float)),
            wol_broadcast_addr=get_typed('wol_broadcast_addr', (str,)),
            wol_port=get_typed('wol_port', (int,)),
            auto_connect=get_typed('auto_connect', (bool,)),
            base_config=base_config,
          )

    def to_jsonable(self) -> JsonableDict:
        """Returns the configuration as a JSON-compatible dict. The keycode is omitted."""
        return dict(
            host=self.default_host,
            port=self.default_port,
            mac_address=self.mac_address,
            timeout_secs=self.timeout_secs,
            boot_delay_secs=self.boot_delay_secs,
            wol_broadcast_addr=self.wol_broadcast_addr,
            wol_port=self.wol_port,
            auto_connect=self.auto_connect,
          )

    def __str__(self) -> str:
        return (
            f"LgTvClientConfig("
            f"default_host={self.default_host}, "
            f"default_port={self.default_port}, "
            f"mac_address={self.mac_address}, "
            f"timeout_secs={self.timeout_secs!r})"
          )

    def __repr__(self) -> str:
        return str(self)
