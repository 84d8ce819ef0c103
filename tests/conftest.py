"""
Shared fixtures for lg_tv_controller tests.
"""

import itertools
import threading

import pytest

from lg_tv_controller.protocol import LgCryptoEngine, LockedRandomSource

KEYCODE = "ABCD1234"
OTHER_KEYCODE = "ZYXW9876"
MAC_ADDRESS = "AA:BB:CC:DD:EE:FF"


class CountingRandom:
    """Deterministic byte generator: each call returns the next run of a counter."""

    def __init__(self):
        self._counter = itertools.count()
        self.calls = 0
        self.threads = set()

    def __call__(self, n):
        self.calls += 1
        self.threads.add(threading.get_ident())
        return bytes(next(self._counter) & 0xFF for _ in range(n))


@pytest.fixture
def keycode():
    return KEYCODE


@pytest.fixture
def counting_random():
    return CountingRandom()


@pytest.fixture
def deterministic_source(counting_random):
    """A random source that yields predictable IVs."""
    return LockedRandomSource(counting_random)


@pytest.fixture(scope="session")
def engine():
    """Crypto engine for KEYCODE, shared across tests since key derivation is slow."""
    with LgCryptoEngine(KEYCODE) as e:
        yield e


@pytest.fixture(scope="session")
def other_engine():
    """Crypto engine for a different keycode."""
    with LgCryptoEngine(OTHER_KEYCODE) as e:
        yield e
