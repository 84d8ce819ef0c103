# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Wake-on-LAN UDP broadcast sender.
"""

from __future__ import annotations

import socket

from ..internal_types import *
from ..constants import WOL_PORT, WOL_BROADCAST_ADDR
from ..pkg_logging import logger
from ..protocol import MAGIC_PACKET_LENGTH, build_magic_packet

class WakeOnLanSender:
    """Broadcasts Wake-on-LAN magic packets over UDP."""

    broadcast_addr: str
    port: int

    def __init__(self, broadcast_addr: str=WOL_BROADCAST_ADDR, port: int=WOL_PORT) -> None:
        self.broadcast_addr = broadcast_addr
        self.port = port

    def send(self, packet: bytes) -> bool:
        """Broadcasts a magic packet.

        Network errors are logged, not raised; a TV that does not wake up gives no
        feedback either way. Returns True if the datagram was sent.
        """
        if len(packet) != MAGIC_PACKET_LENGTH:
            logger.warning(f"{self}: Sending {len(packet)}-byte magic packet; expected {MAGIC_PACKET_LENGTH}")
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
                sock.sendto(packet, (self.broadcast_addr, self.port))
        except OSError as e:
            logger.error(f"{self}: Wake-on-LAN broadcast failed: {e}")
            return False
        logger.debug(f"{self}: Sent {len(packet)}-byte magic packet")
        return True

    def wake(self, mac_address: str) -> bool:
        """Builds and broadcasts the magic packet for mac_address.

        Raises LgTvConfigError if mac_address is malformed.
        """
        return self.send(build_magic_packet(mac_address))

    def __call__(self, packet: bytes) -> None:
        self.send(packet)

    def __str__(self) -> str:
        return f"WakeOnLanSender({self.broadcast_addr}:{self.port})"

    def __repr__(self) -> str:
        return str(self)
