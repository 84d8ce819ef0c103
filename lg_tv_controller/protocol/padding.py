# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
PKCS#7-style block padding.

Padding always adds between 1 and block_size bytes; a message that already ends
on a block boundary gets a full block of padding. Every padding byte holds the
pad length.
"""

from __future__ import annotations

from ..internal_types import *
from ..pkg_logging import logger
from .constants import BLOCK_SIZE

def pad_length(data_length: int, block_size: int=BLOCK_SIZE) -> int:
    """Returns the number of padding bytes that pad() appends to a message of data_length bytes."""
    return block_size - (data_length % block_size)

def pad(data: bytes, block_size: int=BLOCK_SIZE) -> bytes:
    """Pads data to a multiple of block_size."""
    n = pad_length(len(data), block_size)
    return data + bytes([n]) * n

def unpad(data: bytes, block_size: int=BLOCK_SIZE) -> Tuple[bytes, bool]:
    """Removes padding added by pad().

    Returns a tuple (result, valid). If the padding is invalid, result is the
    unmodified input and valid is False; no exception is raised, because invalid
    padding is the normal outcome of decrypting with the wrong key.

    All claimed padding bytes are examined even after a mismatch is found.
    """
    if len(data) == 0:
        return (data, False)
    n = data[-1]
    if n < 1 or n > block_size or n > len(data):
        logger.debug(f"unpad: invalid pad length {n} for {len(data)} bytes (wrong keycode?)")
        return (data, False)
    valid = True
    for b in data[-n:]:
        valid &= (b == n)
    if not valid:
        logger.debug(f"unpad: padding bytes do not all equal 0x{n:02x} (wrong keycode or corrupted data?)")
        return (data, False)
    return (data[:-n], True)

def unpad_or_passthrough(data: bytes, block_size: int=BLOCK_SIZE) -> bytes:
    """Removes padding if it is valid; otherwise returns data unchanged."""
    result, _ = unpad(data, block_size)
    return result
