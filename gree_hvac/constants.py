# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants used by gree_hvac"""

DISCOVERY_PORT = 7000
"""The UDP port on which devices listen for scan (discovery) probes."""

LOCAL_PORT_BASE = 8000
"""The local UDP port is LOCAL_PORT_BASE plus the last octet of the device's IPv4 address."""

DEFAULT_UPDATE_INTERVAL = 10.0
"""The default interval between status polls of a bound device, in seconds."""

RECONNECT_DELAY = 5.0
"""The delay before retrying a failed local socket bind, in seconds."""

CLIENT_ID = "app"
"""The client identifier carried in the cid field of every envelope sent to a device."""

BIND_REQUEST_COUNTER = 1
"""Value of the envelope i field on bind requests."""

REQUEST_COUNTER = 0
"""Value of the envelope i field on all other requests. Replies never echo it."""

GENERIC_KEY = b"a3K8Bx%2r8Y7#xDh"
"""Well-known AES key used under the legacy scheme until the device issues a session key."""

GENERIC_KEY_V2 = b"{yxAHAY_Lm6pbC/<"
"""Well-known AES key used under the authenticated scheme until the device issues a session key."""

GCM_IV = bytes([0x54, 0x40, 0x78, 0x44, 0x49, 0x67, 0x5a, 0x51, 0x6c, 0x5e, 0x63, 0x13])
"""Fixed 96-bit nonce shared with the device firmware for the authenticated scheme."""

GCM_AAD = b"qualcomm-test"
"""Fixed additional authenticated data shared with the device firmware."""

AUTHENTICATED_FIRMWARE_PREFIX = "V2."
"""Firmware versions starting with this prefix use the authenticated scheme."""
