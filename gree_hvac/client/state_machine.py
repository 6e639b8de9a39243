# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Gree HVAC protocol state machine.

Drives one DeviceSession through

    CONNECTING -> SCANNING -> IDENTIFIED -> BINDING -> BOUND

in response to transport events and inbound datagrams, and runs the
periodic status poll once bound. All sends are fire-and-forget; all
effects are reported through SessionCallbacks.

Replies carry no correlation id, so they are matched to requests purely by
payload type and current phase. At most one status/command request is
outstanding at a time; later requests wait in a FIFO backlog until a reply
arrives or the next poll tick gives up on the outstanding one.
"""

from __future__ import annotations

import asyncio
from collections import deque

from ..internal_types import *
from ..constants import BIND_REQUEST_COUNTER, DEFAULT_UPDATE_INTERVAL, DISCOVERY_PORT
from ..exceptions import (
    GreeHvacError,
    DecodeError,
    UnexpectedPayload,
    UnexpectedSender,
    BindFailure,
    NotBoundError,
  )
from ..pkg_logging import logger
from ..protocol import (
    CommandTable,
    DEFAULT_COMMAND_TABLE,
    EncryptionVersion,
    Envelope,
    SCAN_PROBE,
    InnerPayload,
    DevPayload,
    BindPayload,
    BindOkPayload,
    StatusPayload,
    DatPayload,
    CmdPayload,
    ResPayload,
    decode_inner_payload,
  )
from ..protocol.payload import PropertyValue
from .session import DeviceSession, SessionState

SendFunc = Callable[[bytes, HostAndPort], None]
"""Sends one datagram to an address."""

SleepFunc = Callable[[float], Awaitable[None]]
"""Suspends for a number of seconds; asyncio.sleep unless a test substitutes a fake clock."""

SessionCallback = Callable[[DeviceSession], None]

class SessionCallbacks:
    """Caller notifications. Each is called with the session; return values are ignored."""
    on_connected: Optional[SessionCallback]
    on_status: Optional[SessionCallback]
    on_update: Optional[SessionCallback]
    on_error: Optional[SessionCallback]
    on_disconnected: Optional[SessionCallback]

    def __init__(
            self,
            on_connected: Optional[SessionCallback]=None,
            on_status: Optional[SessionCallback]=None,
            on_update: Optional[SessionCallback]=None,
            on_error: Optional[SessionCallback]=None,
            on_disconnected: Optional[SessionCallback]=None,
          ) -> None:
        self.on_connected = on_connected
        self.on_status = on_status
        self.on_update = on_update
        self.on_error = on_error
        self.on_disconnected = on_disconnected

    def fire(self, name: str, session: DeviceSession) -> None:
        callback: Optional[SessionCallback] = getattr(self, name)
        if callback is None:
            return
        try:
            callback(session)
        except Exception:
            logger.exception(f"{session}: Exception in {name} callback")

class GreeHvacStateMachine:
    """Protocol state machine for a single device session."""
    session: DeviceSession
    command_table: CommandTable
    update_interval_secs: float
    discovery_port: int
    callbacks: SessionCallbacks

    _send: Optional[SendFunc] = None
    _sleep: SleepFunc
    _poll_task: Optional[asyncio.Task[None]] = None
    _in_flight: Optional[InnerPayload] = None
    _backlog: Deque[InnerPayload]

    def __init__(
            self,
            host: str,
            *,
            command_table: Optional[CommandTable]=None,
            update_interval_secs: float=DEFAULT_UPDATE_INTERVAL,
            discovery_port: int=DISCOVERY_PORT,
            callbacks: Optional[SessionCallbacks]=None,
            sleep: Optional[SleepFunc]=None,
          ) -> None:
        self.session = DeviceSession(host)
        self.command_table = DEFAULT_COMMAND_TABLE if command_table is None else command_table
        self.update_interval_secs = update_interval_secs
        self.discovery_port = discovery_port
        self.callbacks = SessionCallbacks() if callbacks is None else callbacks
        self._sleep = asyncio.sleep if sleep is None else sleep
        self._backlog = deque()

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def in_flight(self) -> Optional[InnerPayload]:
        """The status/command request awaiting a reply, if any."""
        return self._in_flight

    @property
    def backlog(self) -> List[InnerPayload]:
        """Requests waiting for the outstanding one to be answered."""
        return list(self._backlog)

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def _set_state(self, state: SessionState) -> None:
        if state is not self.session.state:
            logger.debug(f"{self.session}: {self.session.state.value} -> {state.value}")
            self.session.state = state

    # ---- transport events ------------------------------------------------

    def transport_connecting(self) -> None:
        """Called before each attempt to bind the local socket."""
        self._set_state(SessionState.CONNECTING)

    def transport_ready(self, send: SendFunc) -> None:
        """Called once the local socket is bound. Sends the scan probe."""
        self._send = send
        self._set_state(SessionState.SCANNING)
        self._send_datagram(SCAN_PROBE, (self.session.host, self.discovery_port))
        logger.info(f"{self.session}: Sent scan probe to {self.session.host}:{self.discovery_port}")

    def transport_failed(self, exc: BindFailure) -> None:
        """Called when the local socket could not be bound. The caller retries."""
        self._send = None
        self.session.last_error = exc
        self._set_state(SessionState.DISCONNECTED)
        logger.warning(f"{self.session}: {exc}")
        self.callbacks.fire("on_disconnected", self.session)

    def transport_lost(self, exc: Optional[BaseException]=None) -> None:
        """Called when the socket is closed. Stops polling; no further sends are possible."""
        logger.debug(f"{self.session}: Transport closed, exc={exc}")
        self.stop()

    def datagram_received(self, data: bytes, addr: HostAndPort) -> None:
        """Handles one inbound datagram.

        Datagrams from any address other than the configured host are
        dropped. Decode failures and payloads that do not fit the current
        phase are reported through on_error and leave the state unchanged.
        """
        try:
            self._check_sender(addr)
        except UnexpectedSender as e:
            logger.warning(f"{self.session}: Ignoring datagram: {e}")
            return
        logger.debug(f"{self.session}: Received datagram from {addr[0]}:{addr[1]}: {data!r}")
        try:
            envelope = Envelope.from_bytes(data)
            context = self.session.decryption_context(envelope)
            payload = decode_inner_payload(context.decrypt(envelope.pack))
            logger.debug(f"{self.session}: Decrypted payload: {payload}")
            self._dispatch(envelope, payload, addr)
        except (DecodeError, UnexpectedPayload) as e:
            self._report_error(e)

    def _check_sender(self, addr: HostAndPort) -> None:
        if addr[0] != self.session.host:
            raise UnexpectedSender(f"Datagram from {addr[0]}:{addr[1]} is not from the configured device {self.session.host}")

    # ---- inbound payloads ------------------------------------------------

    def _dispatch(self, envelope: Envelope, payload: InnerPayload, addr: HostAndPort) -> None:
        if isinstance(payload, DevPayload):
            self._handle_dev(envelope, payload, addr)
        elif isinstance(payload, BindOkPayload):
            self._handle_bindok(payload)
        elif isinstance(payload, DatPayload):
            self._handle_dat(payload)
        elif isinstance(payload, ResPayload):
            self._handle_res(payload)
        else:
            raise UnexpectedPayload(f"Payload type {payload.payload_type.value!r} is never sent by a device")

    def _handle_dev(self, envelope: Envelope, payload: DevPayload, addr: HostAndPort) -> None:
        if self.session.state is not SessionState.SCANNING:
            raise UnexpectedPayload(f"Handshake reply received in state {self.session.state.value}")
        version = EncryptionVersion.for_firmware(payload.ver)
        # Authenticated firmware reports its id inside the payload; legacy firmware in the envelope.
        if version is EncryptionVersion.AUTHENTICATED:
            mac = payload.cid or envelope.cid
        else:
            mac = envelope.cid or payload.cid
        if not mac:
            mac = payload.mac
        if not mac:
            raise DecodeError(f"Handshake reply carries no device id: {payload}")
        self.session.identify(mac, payload.name, payload.ver, addr[0], addr[1])
        logger.info(
            f"{self.session}: Device identified: name={payload.name}, firmware={payload.ver}, "
            f"at {addr[0]}:{addr[1]}, using {version.name} encryption")
        self._send_bind_request()

    def _send_bind_request(self) -> None:
        assert self.session.mac is not None
        bind = BindPayload(self.session.mac)
        envelope = Envelope(
            self.session.encryption.encrypt(bind.to_jsonable()),
            i=BIND_REQUEST_COUNTER,
          )
        self._set_state(SessionState.BINDING)
        self._send_datagram(envelope.to_bytes(), self.session.remote_addr)
        logger.debug(f"{self.session}: Sent bind request {bind} with {self.session.encryption}")

    def _handle_bindok(self, payload: BindOkPayload) -> None:
        if self.session.state is not SessionState.BINDING:
            raise UnexpectedPayload(f"Bind acknowledgement received in state {self.session.state.value}")
        try:
            self.session.confirm_binding(payload.key)
        except GreeHvacError as e:
            raise DecodeError(f"Unusable session key in bind acknowledgement: {e}") from e
        logger.info(f"{self.session}: Binding confirmed")
        self._start_polling()
        self.callbacks.fire("on_connected", self.session)

    def _handle_dat(self, payload: DatPayload) -> None:
        if not self.session.bound:
            raise UnexpectedPayload("Status reply received while not bound")
        self.session.update_properties(payload.properties())
        self._release_in_flight()
        self.callbacks.fire("on_status", self.session)

    def _handle_res(self, payload: ResPayload) -> None:
        if not self.session.bound:
            raise UnexpectedPayload("Command reply received while not bound")
        self.session.update_properties(payload.properties())
        self._release_in_flight()
        self.callbacks.fire("on_update", self.session)

    def _report_error(self, exc: GreeHvacError) -> None:
        logger.warning(f"{self.session}: {exc.__class__.__name__}: {exc}")
        self.session.last_error = exc
        self.callbacks.fire("on_error", self.session)

    # ---- outbound requests -----------------------------------------------

    def _send_datagram(self, data: bytes, addr: HostAndPort) -> None:
        if self._send is None:
            logger.debug(f"{self.session}: No transport; dropping datagram to {addr[0]}:{addr[1]}")
            return
        logger.debug(f"{self.session}: Sending datagram to {addr[0]}:{addr[1]}: {data!r}")
        self._send(data, addr)

    def _require_bound(self) -> None:
        if not self.session.bound:
            raise NotBoundError(f"{self.session}: Device is not bound")

    def request_status(self) -> None:
        """Queues a status poll for every code in the command table."""
        self._require_bound()
        assert self.session.mac is not None
        self._submit(StatusPayload(self.command_table.all_codes(), self.session.mac))

    def send_command(self, codes: Sequence[str], values: Sequence[PropertyValue]) -> None:
        """Queues a command setting each code to the value at the same position."""
        self._require_bound()
        if len(codes) == 0:
            raise GreeHvacError("A command must set at least one property")
        if len(codes) != len(values):
            raise GreeHvacError(f"Command codes and values differ in length: {list(codes)!r} vs {list(values)!r}")
        self._submit(CmdPayload(codes, values))

    def _submit(self, payload: InnerPayload) -> None:
        if self._in_flight is None:
            self._transmit(payload)
            return
        if isinstance(payload, StatusPayload) and self._status_pending():
            logger.debug(f"{self.session}: Status request already pending")
            return
        logger.debug(f"{self.session}: Queueing {payload} behind {self._in_flight}")
        self._backlog.append(payload)

    def _status_pending(self) -> bool:
        if isinstance(self._in_flight, StatusPayload):
            return True
        return any(isinstance(p, StatusPayload) for p in self._backlog)

    def _transmit(self, payload: InnerPayload) -> None:
        self._in_flight = payload
        envelope = Envelope(self.session.encryption.encrypt(payload.to_jsonable()))
        self._send_datagram(envelope.to_bytes(), self.session.remote_addr)

    def _release_in_flight(self) -> None:
        self._in_flight = None
        if len(self._backlog) > 0:
            self._transmit(self._backlog.popleft())

    # ---- polling ---------------------------------------------------------

    def _poll_tick(self) -> None:
        if self._in_flight is not None:
            logger.debug(f"{self.session}: No reply to {self._in_flight}; abandoning it")
            self._release_in_flight()
        self.request_status()

    async def _poll_loop(self) -> None:
        while True:
            logger.debug(f"{self.session}: Poll tick")
            self._poll_tick()
            await self._sleep(self.update_interval_secs)

    def _start_polling(self) -> None:
        self._stop_polling()
        self._poll_task = asyncio.ensure_future(self._poll_loop())

    def _stop_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    async def wait_stopped(self) -> None:
        """Waits for a cancelled poll task to finish unwinding."""
        task = self._poll_task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def stop(self) -> None:
        """Tears the session down: stops polling, drops queued requests, forgets the transport.

        The binding is released too, so later requests raise NotBoundError.
        """
        self._stop_polling()
        self._in_flight = None
        self._backlog.clear()
        self._send = None
        self.session.release()

    def __str__(self) -> str:
        return f"GreeHvacStateMachine({self.session})"

    def __repr__(self) -> str:
        return str(self)
