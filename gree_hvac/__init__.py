# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Package gree_hvac provides an asyncio API for discovering, binding to,
polling and commanding Gree-family air conditioners via their proprietary
encrypted UDP protocol.
"""

from .version import __version__

from .pkg_logging import logger

from .internal_types import Jsonable, JsonableDict

from .exceptions import (
    GreeHvacError,
    DecodeError,
    UnexpectedPayload,
    UnexpectedSender,
    BindFailure,
    NotBoundError,
  )

from .constants import (
    DISCOVERY_PORT,
    LOCAL_PORT_BASE,
    DEFAULT_UPDATE_INTERVAL,
    RECONNECT_DELAY,
  )

from .client import (
    GreeHvacClient,
    GreeHvacClientConfig,
    GreeHvacStateMachine,
    GreeHvacUdpTransport,
    DeviceSession,
    SessionState,
    SessionCallbacks,
    derive_local_port,
    gree_hvac_connect,
  )

from .protocol import (
    PayloadType,
    EncryptionVersion,
    EncryptionContext,
    EncryptedPack,
    Envelope,
    InnerPayload,
    decode_inner_payload,
    encrypt,
    decrypt,
    PropertyMeta,
    CommandTable,
    DEFAULT_COMMAND_TABLE,
  )
