# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Type names shared by all modules of this package.

Modules import these with `from ..internal_types import *`.
"""

from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Any,
    AsyncContextManager,
    Awaitable,
    Callable,
    Deque,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Type,
    Union,
    cast,
  )

from types import TracebackType

from typing_extensions import Self

Jsonable = Union[None, bool, int, float, str, List['Jsonable'], Dict[str, 'Jsonable']]
"""A value that can be serialized to JSON."""

JsonableDict = Dict[str, Jsonable]
"""A JSON object."""

HostAndPort = Tuple[str, int]
"""A (host, port) network address."""

__all__ = [
    'TYPE_CHECKING',
    'Any',
    'AsyncContextManager',
    'Awaitable',
    'Callable',
    'Deque',
    'Dict',
    'Iterable',
    'List',
    'Mapping',
    'Optional',
    'Protocol',
    'Sequence',
    'Tuple',
    'Type',
    'Union',
    'cast',
    'TracebackType',
    'Self',
    'Jsonable',
    'JsonableDict',
    'HostAndPort',
  ]
