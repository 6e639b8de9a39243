# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Gree HVAC device emulator.

Provides a simple emulation of one Gree HVAC device on UDP. A single socket
answers both scan probes and control traffic.
"""

from __future__ import annotations

import asyncio

from ..internal_types import *
from ..pkg_logging import logger
from ..constants import DISCOVERY_PORT
from ..exceptions import GreeHvacError, DecodeError, UnexpectedPayload
from ..protocol import (
    EncryptionContext,
    EncryptionVersion,
    Envelope,
    InnerPayload,
    ScanPayload,
    DevPayload,
    BindPayload,
    BindOkPayload,
    StatusPayload,
    DatPayload,
    CmdPayload,
    ResPayload,
    decode_json_datagram,
    decode_inner_payload,
  )
from ..protocol.payload import PropertyValue

DEFAULT_DEVICE_KEY = b"Zx4Kc8Vb2Nm6Qw0E"

DEFAULT_PROPERTIES: Dict[str, PropertyValue] = {
    "Pow": 0,
    "Mod": 1,
    "TemUn": 0,
    "SetTem": 24,
    "WdSpd": 0,
    "Air": 0,
    "Blo": 0,
    "Health": 0,
    "SwhSlp": 0,
    "Lig": 1,
    "SwingLfRig": 0,
    "SwUpDn": 0,
    "Quiet": 0,
    "Tur": 0,
    "SvSt": 0,
    "StHt": 0,
    "TemSen": 65,
    "HeatCoolType": 0,
    "TemRec": 0,
  }

class GreeHvacEmulatorProtocol(asyncio.DatagramProtocol):
    emulator: GreeHvacEmulator

    def __init__(self, emulator: GreeHvacEmulator) -> None:
        super().__init__()
        self.emulator = emulator

    def datagram_received(self, data: bytes, addr: Tuple[Any, ...]) -> None:
        self.emulator.on_datagram_received(data, (addr[0], addr[1]))

class GreeHvacEmulator(AsyncContextManager['GreeHvacEmulator']):
    mac: str
    name: str
    firmware_version: str
    device_key: bytes
    bind_addr: str
    port: int
    properties: Dict[str, PropertyValue]
    received: List[InnerPayload]
    """Every inner payload received, in order."""

    muted: bool = False
    """While True, requests are recorded but never answered."""

    requests: asyncio.Queue[Optional[Tuple[bytes, HostAndPort]]]
    transport: Optional[asyncio.DatagramTransport] = None
    handler_task: Optional[asyncio.Task[None]] = None
    final_result: asyncio.Future[None]

    def __init__(
            self,
            mac: str="f4911e4a0b2c",
            name: str="emulated-ac",
            firmware_version: str="V1.2.1",
            device_key: Optional[bytes]=None,
            bind_addr: Optional[str]=None,
            port: int=DISCOVERY_PORT,
            properties: Optional[Mapping[str, PropertyValue]]=None,
          ) -> None:
        self.mac = mac
        self.name = name
        self.firmware_version = firmware_version
        self.device_key = DEFAULT_DEVICE_KEY if device_key is None else device_key
        self.bind_addr = '127.0.0.1' if bind_addr is None else bind_addr
        self.port = port
        self.properties = dict(DEFAULT_PROPERTIES if properties is None else properties)
        self.received = []
        self.requests = asyncio.Queue()
        self.final_result = asyncio.Future()

    @property
    def encryption_version(self) -> EncryptionVersion:
        return EncryptionVersion.for_firmware(self.firmware_version)

    @property
    def local_addr(self) -> HostAndPort:
        """The actual bound (address, port); useful when port is 0."""
        if self.transport is None:
            raise GreeHvacError("Emulator is not running")
        sockname = self.transport.get_extra_info('sockname')
        return (sockname[0], sockname[1])

    def on_datagram_received(self, data: bytes, addr: HostAndPort) -> None:
        """Called when a datagram is received."""
        self.requests.put_nowait((data, addr))

    def _decrypt_request(self, envelope: Envelope) -> JsonableDict:
        version = EncryptionVersion.AUTHENTICATED if envelope.is_authenticated else EncryptionVersion.LEGACY
        try:
            return EncryptionContext(version, self.device_key).decrypt(envelope.pack)
        except DecodeError:
            # bind requests are encrypted with the default key
            return EncryptionContext(version).decrypt(envelope.pack)

    def handle_payload(self, payload: InnerPayload) -> Optional[InnerPayload]:
        """Handle a single request payload, and return the reply payload, if any."""
        if isinstance(payload, ScanPayload):
            return DevPayload(
                cid=self.mac,
                name=self.name,
                ver=self.firmware_version,
                mac=self.mac,
                extra={"bc": "gree", "brand": "gree", "catalog": "gree", "mid": "10001", "model": "gree", "lock": 0},
              )
        if isinstance(payload, BindPayload):
            return BindOkPayload(self.device_key.decode('utf-8'), mac=self.mac)
        if isinstance(payload, StatusPayload):
            cols = [c for c in payload.cols if c in self.properties]
            return DatPayload(cols, [self.properties[c] for c in cols])
        if isinstance(payload, CmdPayload):
            for code, value in zip(payload.opt, payload.p):
                self.properties[code] = value
            return ResPayload(payload.opt, val=payload.p, p=payload.p)
        raise UnexpectedPayload(f"Emulator cannot handle payload {payload}")

    def _reply_context(self, reply: InnerPayload) -> EncryptionContext:
        if isinstance(reply, DevPayload):
            # firmware always answers scans under the legacy scheme
            return EncryptionContext(EncryptionVersion.LEGACY)
        if isinstance(reply, BindOkPayload):
            return EncryptionContext(self.encryption_version)
        return EncryptionContext(self.encryption_version, self.device_key)

    def handle_datagram(self, data: bytes) -> Optional[bytes]:
        """Handle a single request datagram, and return the reply datagram, if any."""
        obj = decode_json_datagram(data)
        if obj.get("t") == "pack":
            envelope = Envelope.from_jsonable(obj)
            obj = self._decrypt_request(envelope)
        payload = decode_inner_payload(obj)
        logger.debug(f"Emulator: Received {payload}")
        self.received.append(payload)
        if self.muted:
            return None
        reply = self.handle_payload(payload)
        if reply is None:
            return None
        reply_envelope = Envelope(
            self._reply_context(reply).encrypt(reply.to_jsonable()),
            cid=self.mac,
            extra={"tcid": "app"},
          )
        return reply_envelope.to_bytes()

    async def handle_requests(self) -> None:
        """Handle requests until closed."""
        while True:
            data_and_addr = await self.requests.get()
            try:
                if data_and_addr is None:
                    logger.debug("Emulator handler: Received EOF; exiting")
                    break
                data, addr = data_and_addr
                try:
                    reply = self.handle_datagram(data)
                    if reply is not None and self.transport is not None:
                        logger.debug(f"Emulator: Replying to {addr[0]}:{addr[1]}: {reply!r}")
                        self.transport.sendto(reply, addr)
                except GreeHvacError as e:
                    logger.warning(f"Emulator: Dropping request from {addr[0]}:{addr[1]}: {e}")
            finally:
                self.requests.task_done()

    async def start(self) -> None:
        try:
            loop = asyncio.get_running_loop()
            self.handler_task = asyncio.create_task(self.handle_requests())
            transport, _ = await loop.create_datagram_endpoint(
                lambda: GreeHvacEmulatorProtocol(self),
                local_addr=(self.bind_addr, self.port))
            self.transport = transport
            logger.debug(f"Emulator: Listening on {self.local_addr[0]}:{self.local_addr[1]}")
        except BaseException as e:
            self.set_final_result(e)
            try:
                await self.wait_closed()
            except BaseException:
                pass
            raise

    async def run(self) -> None:
        """Runs the Emulator until it is closed."""
        async with self:
            await self.wait_closed()

    def close(self, exc: Optional[BaseException]=None) -> None:
        """Stops the Emulator."""
        self.set_final_result(exc)

    async def wait_closed(self) -> None:
        """Waits for the emulator to be fully closed. Does not initiate shutdown."""
        try:
            await self.final_result
        finally:
            if self.transport is not None:
                self.transport.close()
                self.transport = None
            if self.handler_task is not None:
                try:
                    await self.handler_task
                finally:
                    self.handler_task = None

    def set_final_result(self, exc: Optional[BaseException]=None) -> None:
        if not self.final_result.done():
            if exc is None:
                logger.debug("Emulator: Setting final result to success")
                self.final_result.set_result(None)
            else:
                logger.debug(f"Emulator: Setting final exception: {exc}")
                self.final_result.set_exception(exc)
            self.requests.put_nowait(None)

    async def __aenter__(self) -> GreeHvacEmulator:
        await self.start()
        return self

    async def __aexit__(
            self,
            exc_type: Optional[Type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType],
          ) -> None:
        self.set_final_result(exc)
        try:
            await self.wait_closed()
        except Exception as e:
            logger.debug(f"Emulator: Closed with exception: {e}")
