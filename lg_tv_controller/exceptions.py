#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Exceptions defined by this package"""

from typing import Optional

class LgTvError(Exception):
  """Base class for all error exceptions defined by this package."""
  pass

class LgTvConfigError(LgTvError):
  """A caller-supplied configuration value (MAC address, keycode, host) is invalid or missing."""
  pass

class LgTvKeyDerivationError(LgTvError):
  """The encryption key could not be derived from the keycode."""
  pass

class LgTvDecodeError(LgTvError):
  """Decrypted frame bytes could not be interpreted as text."""
  pass

class LgTvDisposedError(LgTvError):
  """An object was used after it was disposed."""
  pass

class LgTvNotReadyError(LgTvError):
  """A command was issued before the session could carry it. The command is dropped."""
  pass

class LgTvNotOnlineError(LgTvNotReadyError):
  """A command was issued while the TCP session to the TV is down."""
  pass

class LgTvNotInitializedError(LgTvNotReadyError):
  """A command was issued before a keycode was successfully installed."""
  pass

class LgTvConnectionError(LgTvError):
  """The TCP session to the TV could not be established or was lost."""
  reason: Optional[str]

  def __init__(self, message: str, reason: Optional[str]=None):
    super().__init__(message)
    self.reason = reason
