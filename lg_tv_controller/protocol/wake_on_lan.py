# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Wake-on-LAN magic packets.

A magic packet is 6 bytes of 0xFF followed by 16 repetitions of the target's
6-byte hardware address, 102 bytes in total.
"""

from __future__ import annotations

import re

from ..internal_types import *
from ..exceptions import LgTvConfigError

MAC_ADDRESS_LENGTH = 6
MAGIC_PACKET_SYNC = b"\xff" * 6
MAGIC_PACKET_REPEAT = 16
MAGIC_PACKET_LENGTH = len(MAGIC_PACKET_SYNC) + MAC_ADDRESS_LENGTH * MAGIC_PACKET_REPEAT

_octet_re = re.compile(r'^[0-9A-Fa-f]{1,2}$')

def parse_mac_address(mac_address: Optional[str]) -> bytes:
    """Parses a hardware address of the form AA:BB:CC:DD:EE:FF or AA-BB-CC-DD-EE-FF.

    Raises LgTvConfigError if the address is missing or malformed.
    """
    if mac_address is None or mac_address.strip() == '':
        raise LgTvConfigError("MAC address is not set")
    parts = re.split(r'[:-]', mac_address.strip())
    if len(parts) != MAC_ADDRESS_LENGTH or not all(_octet_re.match(p) for p in parts):
        raise LgTvConfigError(
            f"Invalid MAC address format: {mac_address!r}; expected AA:BB:CC:DD:EE:FF or AA-BB-CC-DD-EE-FF")
    return bytes(int(p, 16) for p in parts)

def build_magic_packet(mac: Union[bytes, str]) -> bytes:
    """Builds the 102-byte magic packet for a hardware address (raw bytes or text)."""
    if isinstance(mac, str):
        mac = parse_mac_address(mac)
    if len(mac) != MAC_ADDRESS_LENGTH:
        raise LgTvConfigError(f"MAC address must be {MAC_ADDRESS_LENGTH} bytes, got {len(mac)}")
    return MAGIC_PACKET_SYNC + bytes(mac) * MAGIC_PACKET_REPEAT
