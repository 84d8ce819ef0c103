# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants used by lg_tv_controller"""

DEFAULT_PORT = 9761
"""The listen port number used by the TV for encrypted TCP/IP control."""

DEFAULT_TIMEOUT = 2.0
"""The default timeout for TCP/IP connect and write operations, in seconds."""

BOOT_DELAY = 3.0
"""Seconds to wait after a Wake-on-LAN broadcast before asking the transport to connect.
   Determined empirically; the TV does not accept connections while it is booting."""

KEYCODE_LENGTH = 8
"""Length of the keycode shown in the TV's hidden service menu."""

WOL_PORT = 9
"""UDP port that Wake-on-LAN magic packets are broadcast to."""

WOL_BROADCAST_ADDR = "255.255.255.255"
"""Default broadcast address for Wake-on-LAN magic packets."""

READ_CHUNK_SIZE = 4096
"""Maximum number of bytes taken from the TCP stream per inbound frame."""

CONNECT_TIMEOUT = 15.0
"""How long the client keeps retrying a requested TCP connection, in seconds."""

CONNECT_RETRY_INTERVAL = 1.0
"""The interval between connection attempts over TCP/IP, in seconds."""
