# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Low-level protocol definitions for LG encrypted IP control.

Frame encryption and decryption, padding, command text and Wake-on-LAN packets.
Nothing here touches the network or keeps time.
"""

from .constants import (
    KEY_SALT,
    KEY_ITERATIONS,
    KEY_LENGTH,
    BLOCK_SIZE,
    IV_LENGTH,
    MIN_FRAME_LENGTH,
    MESSAGE_TERMINATOR,
  )

from .padding import (
    pad,
    pad_length,
    unpad,
    unpad_or_passthrough,
  )

from .random_source import (
    RandomSource,
    LockedRandomSource,
    default_random_source,
  )

from .crypto_engine import (
    LgCryptoEngine,
    derive_key,
  )

from .command import (
    LgCommand,
    KEY_ACTION_PREFIX,
    POWER_OFF_COMMAND,
    KNOWN_KEYS,
  )

from .wake_on_lan import (
    parse_mac_address,
    build_magic_packet,
    MAGIC_PACKET_LENGTH,
  )
