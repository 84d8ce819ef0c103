# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Fixed parameters of the LG encrypted IP control protocol.

None of these are secrets. They are identical for every TV of the product line,
and a wrong value produces a wrong key or a malformed frame that the TV silently
ignores.
"""

from __future__ import annotations

KEY_SALT = bytes([
    0x63, 0x61, 0xb8, 0x0e, 0x9b, 0xdc, 0xa6, 0x63,
    0x8d, 0x07, 0x20, 0xf2, 0xcc, 0x56, 0x8f, 0xb9,
  ])
"""PBKDF2 salt used to derive the AES key from the keycode."""

KEY_ITERATIONS = 16384
"""PBKDF2 iteration count."""

KEY_LENGTH = 16
"""Length of the derived AES-128 key, in bytes."""

BLOCK_SIZE = 16
"""AES block size, in bytes."""

IV_LENGTH = BLOCK_SIZE
"""Length of the (encrypted) IV block at the front of every frame."""

MIN_FRAME_LENGTH = IV_LENGTH + BLOCK_SIZE
"""Shortest valid wire frame: the IV block plus one padded payload block."""

MESSAGE_TERMINATOR = "\r"
"""Appended to every outbound command. The TV does not respond to unterminated commands."""

TRAILING_NOISE_CHARS = "\x00\r\n"
"""Stripped from the end of every decoded inbound message."""

TEXT_ENCODING = "utf-8"
"""Encoding of command text inside the encrypted payload."""
