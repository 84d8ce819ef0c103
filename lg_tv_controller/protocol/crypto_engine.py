# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Encryption and decryption of LG encrypted IP control frames.

Wire frame layout::

    +----------------------+---------------------------------------+
    | ECB(key, iv)         | CBC(key, iv, pad(text + "\\r"))        |
    | 16 bytes             | N * 16 bytes                          |
    +----------------------+---------------------------------------+

The key is derived from the 8-character keycode found in the TV's service menu
with PBKDF2-HMAC-SHA256, a fixed public salt and 16384 iterations.

The TV gives no feedback on a wrong key or a malformed frame, so decoding never
raises on cipher or padding failures; it degrades to garbage or empty text.
"""

from __future__ import annotations

import threading

from Crypto.Cipher import AES
from Crypto.Hash import SHA256
from Crypto.Protocol.KDF import PBKDF2

from ..internal_types import *
from ..exceptions import LgTvKeyDerivationError, LgTvDecodeError, LgTvDisposedError
from ..pkg_logging import logger
from .constants import (
    KEY_SALT,
    KEY_ITERATIONS,
    KEY_LENGTH,
    BLOCK_SIZE,
    IV_LENGTH,
    MESSAGE_TERMINATOR,
    TRAILING_NOISE_CHARS,
    TEXT_ENCODING,
  )
from .padding import pad, unpad_or_passthrough
from .random_source import RandomSource, default_random_source

def derive_key(keycode: str) -> bytes:
    """Derives the 16-byte AES key for a keycode.

    This is deliberately slow (tens to hundreds of milliseconds); call it once per
    keycode change, never per message.

    Raises LgTvKeyDerivationError if the keycode is empty or not ASCII.
    """
    if keycode is None or len(keycode) == 0:
        raise LgTvKeyDerivationError("Keycode is empty")
    try:
        password = keycode.encode('ascii')
    except UnicodeEncodeError as e:
        raise LgTvKeyDerivationError("Keycode must contain only ASCII characters") from e
    return PBKDF2(password, KEY_SALT, dkLen=KEY_LENGTH, count=KEY_ITERATIONS, hmac_hash_module=SHA256)

class LgCryptoEngine:
    """Encodes command text into wire frames and decodes wire frames into text.

    The derived key is held in a mutable buffer that dispose() overwrites with zeros.
    Use the engine as a context manager, or call dispose() explicitly.
    """

    random_source: RandomSource
    strict_text: bool

    _key: bytearray
    _disposed: bool = False
    _lock: threading.Lock
    """Held while the key is read or cleared, so dispose() cannot race an
    in-flight encode() or decode()."""

    def __init__(
            self,
            keycode: str,
            random_source: Optional[RandomSource]=None,
            strict_text: bool=False,
          ) -> None:
        """Derives the key for keycode.

        Args:
            keycode:       The TV keycode. Must be non-empty ASCII.
            random_source: Source of IV bytes. If None, the shared process-wide
                           source is used.
            strict_text:   If True, decode() raises LgTvDecodeError when decrypted
                           bytes are not valid UTF-8. If False, invalid sequences
                           are replaced with U+FFFD.

        Raises LgTvKeyDerivationError if the key cannot be derived.
        """
        self._key = bytearray(derive_key(keycode))
        self.random_source = default_random_source if random_source is None else random_source
        self.strict_text = strict_text
        self._lock = threading.Lock()

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _cipher_key(self) -> bytes:
        """Returns a snapshot of the key for building a cipher (caller must hold _lock)."""
        if self._disposed:
            raise LgTvDisposedError("LgCryptoEngine has been disposed")
        return bytes(self._key)

    def encode(self, plaintext: str) -> bytes:
        """Encrypts command text into a wire frame.

        The protocol terminator is appended to plaintext before encryption.
        """
        data = (plaintext + MESSAGE_TERMINATOR).encode(TEXT_ENCODING)
        padded = pad(data)
        iv = self.random_source.random_bytes(IV_LENGTH)
        with self._lock:
            key = self._cipher_key()
        # The IV is a single block, encrypted with no chaining. Mandated by the TV.
        encrypted_iv = AES.new(key, AES.MODE_ECB).encrypt(iv)
        encrypted_payload = AES.new(key, AES.MODE_CBC, iv=iv).encrypt(padded)
        frame = encrypted_iv + encrypted_payload
        logger.debug(
            f"encode: {len(data)} text bytes, {len(padded) - len(data)} padding bytes, "
            f"{len(frame)} frame bytes: {frame.hex(' ')}")
        return frame

    def decode(self, frame: Optional[bytes]) -> str:
        """Decrypts a wire frame into message text.

        Returns an empty string if frame is too short to hold an IV block and a
        whole number of payload blocks. Invalid padding is left in place.
        Trailing NUL, CR and LF characters are removed.

        Raises LgTvDecodeError only if strict_text is set and the decrypted bytes
        are not valid UTF-8.
        """
        if frame is None or len(frame) < IV_LENGTH:
            logger.debug(f"decode: input too short ({0 if frame is None else len(frame)} bytes), returning empty string")
            return ""
        encrypted_iv = bytes(frame[:IV_LENGTH])
        encrypted_payload = bytes(frame[IV_LENGTH:])
        if len(encrypted_payload) == 0 or len(encrypted_payload) % BLOCK_SIZE != 0:
            logger.debug(f"decode: payload of {len(encrypted_payload)} bytes is not a whole number of blocks, returning empty string")
            return ""
        with self._lock:
            key = self._cipher_key()
        iv = AES.new(key, AES.MODE_ECB).decrypt(encrypted_iv)
        padded = AES.new(key, AES.MODE_CBC, iv=iv).decrypt(encrypted_payload)
        data = unpad_or_passthrough(padded)
        try:
            text = data.decode(TEXT_ENCODING, errors='strict' if self.strict_text else 'replace')
        except UnicodeDecodeError as e:
            raise LgTvDecodeError(f"Decrypted frame is not valid {TEXT_ENCODING} text: {data.hex(' ')}") from e
        text = text.rstrip(TRAILING_NOISE_CHARS)
        logger.debug(f"decode: {len(frame)} frame bytes -> {text!r}")
        return text

    def dispose(self) -> None:
        """Zeroes the key. The engine cannot be used afterwards. Safe to call more than once."""
        with self._lock:
            if not self._disposed:
                for i in range(len(self._key)):
                    self._key[i] = 0
                self._disposed = True

    def __enter__(self) -> LgCryptoEngine:
        return self

    def __exit__(
            self,
            exc_type: Optional[Type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType],
          ) -> None:
        self.dispose()

    def __str__(self) -> str:
        return f"LgCryptoEngine(disposed={self._disposed})"

    def __repr__(self) -> str:
        return str(self)
