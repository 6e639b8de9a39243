# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Low-level protocol definitions for the Gree HVAC UDP protocol.

Nothing in this subpackage performs I/O.
"""

from .constants import (
    PayloadType,
    EncryptionVersion,
  )

from .encryption import (
    EncryptedPack,
    EncryptionContext,
    encrypt,
    decrypt,
    encrypt_legacy,
    decrypt_legacy,
    encrypt_authenticated,
    decrypt_authenticated,
    default_key,
  )

from .envelope import (
    Envelope,
    SCAN_PROBE,
    decode_json_datagram,
  )

from .payload import (
    InnerPayload,
    ScanPayload,
    DevPayload,
    BindPayload,
    BindOkPayload,
    StatusPayload,
    DatPayload,
    CmdPayload,
    ResPayload,
    decode_inner_payload,
  )

from .command_table import (
    PropertyMeta,
    CommandTable,
    DEFAULT_COMMAND_TABLE,
  )
