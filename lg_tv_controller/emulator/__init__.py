# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
LG TV emulator.

Provides a simple emulation of an LG TV's encrypted IP control port.
"""

from .session import LgTvEmulatorSession
from .emulator_impl import LgTvEmulator
