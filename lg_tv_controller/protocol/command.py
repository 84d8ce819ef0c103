# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Plaintext commands understood by the TV.

Commands are short ASCII lines. The protocol terminator is added by the crypto
engine, not here.

    KEY_ACTION <keyname>     Simulates a remote control key press
    POWER off                Enters standby. Unlike the "power" key, this never
                             toggles, so it cannot turn a TV that is already off
                             back on.
"""

from __future__ import annotations

from ..internal_types import *
from ..exceptions import LgTvError

KEY_ACTION_PREFIX = "KEY_ACTION "
"""Prefix of a remote control key press command."""

POWER_OFF_COMMAND = "POWER off"
"""Non-toggling power-down command."""

KNOWN_KEYS: Tuple[str, ...] = (
    "volumeup",
    "volumedown",
    "volumemute",
    "channelup",
    "channeldown",
    "arrowup",
    "arrowdown",
    "arrowleft",
    "arrowright",
    "ok",
    "returnback",
    "exit",
    "home",
    "settingmenu",
    "inputs",
    "power",
  )
"""Key names known to be accepted by KEY_ACTION. The TV silently ignores names it
   does not recognize, so other names are sent as-is."""

class LgCommand:
    """A plaintext command to an LG TV"""
    text: str

    def __init__(self, text: str):
        if text is None or text == '':
            raise LgTvError("Command text is empty")
        if any(c in text for c in "\r\n"):
            raise LgTvError(f"Command text must be a single line: {text!r}")
        self.text = text

    @property
    def is_key_action(self) -> bool:
        """Returns True iff the command is a key press"""
        return self.text.startswith(KEY_ACTION_PREFIX)

    @property
    def key_name(self) -> Optional[str]:
        """Returns the key name of a key press command, or None"""
        return self.text[len(KEY_ACTION_PREFIX):] if self.is_key_action else None

    @classmethod
    def key_action(cls, key_name: str) -> Self:
        """Creates a key press command"""
        if key_name is None or key_name == '' or any(c.isspace() for c in key_name):
            raise LgTvError(f"Invalid key name: {key_name!r}")
        return cls(KEY_ACTION_PREFIX + key_name)

    @classmethod
    def power_off(cls) -> Self:
        """Creates the non-toggling power-down command"""
        return cls(POWER_OFF_COMMAND)

    def __str__(self) -> str:
        return f"LgCommand({self.text!r})"

    def __repr__(self) -> str:
        return str(self)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, LgCommand) and other.text == self.text

    def __hash__(self) -> int:
        return hash(self.text)
