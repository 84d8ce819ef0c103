# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Type hints used internally by this package"""

from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    AsyncIterator,
    Any,
    AsyncContextManager,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Set,
    Tuple,
    Type,
    Union,
  )

from types import TracebackType

from typing_extensions import Self

Jsonable = Union[str, int, float, bool, None, Dict[str, 'Jsonable'], List['Jsonable']]
"""A type hint for a value that can be serialized to JSON"""

JsonableDict = Dict[str, Jsonable]
"""A type hint for a dictionary that can be serialized to JSON"""

FrameSink = Callable[[bytes], None]
"""A callback that accepts raw frame bytes"""

MessageSink = Callable[[str], None]
"""A callback that accepts decoded message text"""

FlagSink = Callable[[bool], None]
"""A callback that accepts a boolean state signal"""
