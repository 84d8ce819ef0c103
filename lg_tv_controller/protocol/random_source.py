# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Random byte providers used for frame IVs.

The crypto engine takes a RandomSource explicitly so that tests can substitute
a deterministic one. All access to a LockedRandomSource is serialized; callers
on different threads may share a single instance.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod

from Crypto.Random import get_random_bytes

from ..internal_types import *

class RandomSource(ABC):
    """Abstract provider of random bytes."""

    @abstractmethod
    def random_bytes(self, length: int) -> bytes:
        """Returns length random bytes.

        Must be safe to call concurrently from multiple threads.
        Must be implemented by subclasses.
        """
        raise NotImplementedError()

class LockedRandomSource(RandomSource):
    """A RandomSource that serializes access to an underlying generator function."""

    _generate: Callable[[int], bytes]
    _lock: threading.Lock

    def __init__(self, generate: Optional[Callable[[int], bytes]]=None) -> None:
        """Creates a random source.

        Args:
            generate: A function returning the requested number of random bytes.
                      If None, a cryptographically secure generator is used.
        """
        self._generate = get_random_bytes if generate is None else generate
        self._lock = threading.Lock()

    # @abstractmethod
    def random_bytes(self, length: int) -> bytes:
        with self._lock:
            result = self._generate(length)
        if len(result) != length:
            raise ValueError(f"Random generator returned {len(result)} bytes, expected {length}")
        return result

    def __str__(self) -> str:
        return f"LockedRandomSource({getattr(self._generate, '__name__', self._generate)!s})"

    def __repr__(self) -> str:
        return str(self)

default_random_source = LockedRandomSource()
"""The process-wide shared random source used when none is supplied."""
