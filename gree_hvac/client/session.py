# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Per-device session state.

A DeviceSession records everything negotiated with one device over the
lifetime of one connection: where the device says it lives, who it is,
which encryption context to use, whether it is bound, and the last known
value of each property. It is owned by a single GreeHvacStateMachine, which
is the only writer.
"""

from __future__ import annotations

from enum import Enum

from ..internal_types import *
from ..exceptions import GreeHvacError
from ..protocol import EncryptionContext, EncryptionVersion, Envelope
from ..protocol.payload import PropertyValue

class SessionState(Enum):
    DISCONNECTED = "disconnected"
    """No usable socket: the bind failed and a retry is scheduled, or the session was closed."""

    CONNECTING = "connecting"
    """Binding the local socket."""

    SCANNING = "scanning"
    """Scan probe sent; waiting for the device's handshake reply."""

    IDENTIFIED = "identified"
    """Handshake reply received; bind request about to be sent."""

    BINDING = "binding"
    """Bind request sent; waiting for the bind acknowledgement."""

    BOUND = "bound"
    """Session key received; polling and commands are allowed."""

class DeviceSession:
    """Negotiated state for one remote device."""
    host: str
    """The configured device address. Replies are accepted only from here."""

    address: Optional[str] = None
    """The address the device reported in its handshake reply; requests are sent here."""

    port: Optional[int] = None
    """The port the device reported in its handshake reply; requests are sent here."""

    mac: Optional[str] = None
    name: Optional[str] = None
    firmware_version: Optional[str] = None
    bound: bool = False
    encryption: EncryptionContext
    properties: Dict[str, PropertyValue]
    state: SessionState
    last_error: Optional[GreeHvacError] = None

    def __init__(self, host: str) -> None:
        self.host = host
        self.encryption = EncryptionContext()
        self.properties = {}
        self.state = SessionState.CONNECTING

    @property
    def encryption_version(self) -> EncryptionVersion:
        return self.encryption.version

    @property
    def session_key(self) -> Optional[bytes]:
        """The device-issued key, or None before binding."""
        return self.encryption.key if self.bound else None

    @property
    def is_identified(self) -> bool:
        return self.mac is not None

    @property
    def remote_addr(self) -> HostAndPort:
        """The (address, port) requests are sent to."""
        if self.address is None or self.port is None:
            raise GreeHvacError(f"{self}: Device has not been identified")
        return (self.address, self.port)

    def identify(
            self,
            mac: str,
            name: Optional[str],
            firmware_version: Optional[str],
            address: str,
            port: int,
          ) -> None:
        """Records the device's handshake reply and starts a fresh binding cycle."""
        self.mac = mac
        self.name = name
        self.firmware_version = firmware_version
        self.address = address
        self.port = port
        self.encryption = EncryptionContext.for_firmware(firmware_version)
        self.bound = False
        self.properties = {}
        self.state = SessionState.IDENTIFIED

    def confirm_binding(self, key: str) -> None:
        """Records the session key issued by the device."""
        if not self.is_identified:
            raise GreeHvacError(f"{self}: Cannot bind a device that has not been identified")
        self.encryption = self.encryption.with_key(key)
        self.bound = True
        self.state = SessionState.BOUND

    def release(self) -> None:
        """Forgets the binding when the session is closed. Last known properties are kept."""
        self.bound = False
        self.state = SessionState.DISCONNECTED

    def decryption_context(self, envelope: Envelope) -> EncryptionContext:
        """Selects the context for decrypting an inbound envelope.

        Once bound, only the session context is accepted. Before that, the
        scheme follows the envelope (a tag means authenticated) and the
        scheme's default key is used.
        """
        if self.bound:
            return self.encryption
        version = EncryptionVersion.AUTHENTICATED if envelope.is_authenticated else EncryptionVersion.LEGACY
        if version is self.encryption.version:
            return self.encryption
        return EncryptionContext(version)

    def update_properties(self, values: Mapping[str, PropertyValue]) -> None:
        self.properties.update(values)

    def get_property(self, code: str) -> Optional[PropertyValue]:
        """Returns the last known value for a command code, or None if never reported."""
        return self.properties.get(code)

    def __str__(self) -> str:
        ident = self.mac if self.mac is not None else "?"
        return f"DeviceSession({self.host}, mac={ident}, state={self.state.value})"

    def __repr__(self) -> str:
        return str(self)
