# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Wire-level enumerations for the Gree HVAC UDP protocol.
"""

from __future__ import annotations

from enum import Enum

from ..constants import AUTHENTICATED_FIRMWARE_PREFIX
from ..internal_types import *

class PayloadType(str, Enum):
    """Value of the "t" field of a datagram or inner payload."""

    SCAN = "scan"
    """Discovery probe, sent unencrypted and not wrapped in an envelope."""

    PACK = "pack"
    """Envelope wrapping an encrypted inner payload."""

    DEV = "dev"
    """Handshake reply from the device: identity and firmware version."""

    BIND = "bind"
    """Bind request."""

    BINDOK = "bindok"
    """Bind acknowledgement, carries the device-issued session key."""

    STATUS = "status"
    """Status poll request."""

    DAT = "dat"
    """Status poll reply."""

    CMD = "cmd"
    """Command request."""

    RES = "res"
    """Command reply."""

class EncryptionVersion(Enum):
    """The encryption scheme used to wrap inner payloads."""

    LEGACY = 1
    """AES-128-ECB, PKCS#7 padding, no authentication."""

    AUTHENTICATED = 2
    """AES-128-GCM with fixed nonce and AAD, base64 tag carried in the envelope."""

    @classmethod
    def for_firmware(cls, firmware_version: Optional[str]) -> EncryptionVersion:
        """Returns the scheme a device with the given firmware version string expects."""
        if firmware_version is not None and firmware_version.startswith(AUTHENTICATED_FIRMWARE_PREFIX):
            return cls.AUTHENTICATED
        return cls.LEGACY
