# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Gree HVAC client.

Wires a GreeHvacUdpTransport to a GreeHvacStateMachine, retries the local
socket bind until it succeeds, and offers property get/set operations on
the bound session. Nothing here blocks waiting for the device: commands are
fire-and-forget and their effects arrive through the session callbacks.
"""

from __future__ import annotations

import asyncio

from ..internal_types import *
from ..exceptions import GreeHvacError, BindFailure
from ..pkg_logging import logger
from ..protocol import CommandTable
from ..protocol.payload import PropertyValue
from .client_config import GreeHvacClientConfig
from .session import DeviceSession
from .state_machine import GreeHvacStateMachine, SessionCallbacks, SessionCallback, SleepFunc
from .udp_transport import GreeHvacUdpTransport

class GreeHvacClient:
    """Client for one Gree HVAC device."""

    config: GreeHvacClientConfig
    machine: GreeHvacStateMachine
    transport: Optional[GreeHvacUdpTransport] = None

    _user_callbacks: SessionCallbacks
    _sleep: SleepFunc
    _connect_task: Optional[asyncio.Task[None]] = None
    _connected: asyncio.Event
    _closed: bool = False

    def __init__(
            self,
            host: Optional[str]=None,
            config: Optional[GreeHvacClientConfig]=None,
            *,
            on_connected: Optional[SessionCallback]=None,
            on_status: Optional[SessionCallback]=None,
            on_update: Optional[SessionCallback]=None,
            on_error: Optional[SessionCallback]=None,
            on_disconnected: Optional[SessionCallback]=None,
            sleep: Optional[SleepFunc]=None,
          ) -> None:
        """Creates a client. Does not touch the network until connect() is called.

           Args:
             host: The IPv4 address of the device. Overrides config.default_host.
             config: Client configuration. If None, a default config is created
                     (which reads GREE_HVAC_* environment variables).
             on_connected: Called once binding completes.
             on_status: Called after each status reply updates the properties.
             on_update: Called after each command reply updates the properties.
             on_error: Called when a reply cannot be decoded or does not fit
                       the current phase. session.last_error holds the cause.
             on_disconnected: Called each time the local socket fails to bind.
             sleep: Substitute for asyncio.sleep, used for the poll interval and
                    the bind retry delay.
        """
        self.config = GreeHvacClientConfig(default_host=host, base_config=config)
        self._user_callbacks = SessionCallbacks(
            on_connected=on_connected,
            on_status=on_status,
            on_update=on_update,
            on_error=on_error,
            on_disconnected=on_disconnected,
          )
        self._sleep = asyncio.sleep if sleep is None else sleep
        self._connected = asyncio.Event()
        self.machine = GreeHvacStateMachine(
            self.config.host,
            command_table=self.config.command_table,
            update_interval_secs=self.config.update_interval_secs,
            discovery_port=self.config.discovery_port,
            callbacks=SessionCallbacks(
                on_connected=self._on_connected,
                on_status=on_status,
                on_update=on_update,
                on_error=on_error,
                on_disconnected=self._on_disconnected,
              ),
            sleep=self._sleep,
          )

    def _on_connected(self, session: DeviceSession) -> None:
        self._connected.set()
        self._user_callbacks.fire("on_connected", session)

    def _on_disconnected(self, session: DeviceSession) -> None:
        self._connected.clear()
        self._user_callbacks.fire("on_disconnected", session)

    @property
    def session(self) -> DeviceSession:
        return self.machine.session

    @property
    def command_table(self) -> CommandTable:
        return self.config.command_table

    @property
    def is_bound(self) -> bool:
        return self.session.bound

    async def connect(self) -> None:
        """Starts binding the local socket and discovering the device.

        Returns immediately; progress is reported through the callbacks. Use
        wait_connected() to wait for binding to complete.
        """
        if self._closed:
            raise GreeHvacError(f"{self}: Client is closed")
        if self._connect_task is not None:
            return
        local_port = self.config.resolve_local_port()
        logger.info(f"{self}: Connecting (local port {local_port})")
        self._connect_task = asyncio.ensure_future(self._connect_loop(local_port))

    async def _connect_loop(self, local_port: int) -> None:
        while True:
            self.machine.transport_connecting()
            transport = GreeHvacUdpTransport(self.machine, local_port)
            try:
                await transport.open()
            except BindFailure as e:
                self.machine.transport_failed(e)
                await self._sleep(self.config.reconnect_delay_secs)
                continue
            self.transport = transport
            self.machine.transport_ready(transport.sendto)
            return

    async def wait_connected(self, timeout_secs: Optional[float]=None) -> DeviceSession:
        """Waits until the device is bound.

        Raises asyncio.TimeoutError if timeout_secs elapses first.
        """
        if timeout_secs is None:
            await self._connected.wait()
        else:
            await asyncio.wait_for(self._connected.wait(), timeout_secs)
        return self.session

    def request_status(self) -> None:
        """Requests an immediate status poll in addition to the periodic ones."""
        self.machine.request_status()

    def set_property(self, code: str, value: PropertyValue) -> None:
        """Sends a command setting one property. The value is not validated."""
        self.machine.send_command([code], [value])

    def set_properties(self, values: Mapping[str, PropertyValue]) -> None:
        """Sends one command setting several properties, in mapping order."""
        self.machine.send_command(list(values.keys()), list(values.values()))

    def get_property(self, code: str) -> Optional[PropertyValue]:
        """Returns the last known value of a property, or None if never reported."""
        return self.session.get_property(code)

    def _code(self, name: str) -> str:
        return self.command_table.code_for(name)

    def set_power(self, value: bool) -> None:
        self.set_property(self._code("power"), 1 if value else 0)

    def get_power(self) -> Optional[PropertyValue]:
        return self.get_property(self._code("power"))

    def set_temperature(self, value: int, unit: Optional[int]=None) -> None:
        """Sets the target temperature. unit defaults to celsius."""
        unit_meta = self.command_table["temperature_unit"]
        if unit is None:
            unit = unit_meta.value_of("celsius")
        self.set_properties({
            unit_meta.code: unit,
            self._code("temperature"): value,
          })

    def get_temperature(self) -> Optional[PropertyValue]:
        return self.get_property(self._code("temperature"))

    def set_mode(self, value: int) -> None:
        self.set_property(self._code("mode"), value)

    def get_mode(self) -> Optional[PropertyValue]:
        return self.get_property(self._code("mode"))

    def set_fan_speed(self, value: int) -> None:
        self.set_property(self._code("fan_speed"), value)

    def get_fan_speed(self) -> Optional[PropertyValue]:
        return self.get_property(self._code("fan_speed"))

    def set_swing_vert(self, value: int) -> None:
        self.set_property(self._code("swing_vert"), value)

    def get_swing_vert(self) -> Optional[PropertyValue]:
        return self.get_property(self._code("swing_vert"))

    def get_room_temperature(self) -> Optional[PropertyValue]:
        return self.get_property(self._code("room_temperature"))

    async def aclose(self) -> None:
        """Closes the socket and stops polling. Outstanding requests get no reply."""
        if self._closed:
            return
        self._closed = True
        logger.debug(f"{self}: Closing")
        if self._connect_task is not None:
            self._connect_task.cancel()
            try:
                await self._connect_task
            except asyncio.CancelledError:
                pass
            self._connect_task = None
        await self.machine.wait_stopped()
        if self.transport is not None:
            self.transport.close()
            self.transport = None

    async def __aenter__(self) -> GreeHvacClient:
        logger.debug(f"{self}: Entering async context manager")
        return self

    async def __aexit__(
            self,
            exc_type: Optional[Type[BaseException]],
            exc_val: Optional[BaseException],
            exc_tb: Optional[TracebackType],
          ) -> None:
        logger.debug(f"{self}: Exiting async context manager, exc={exc_val}")
        await self.aclose()

    @classmethod
    async def create(
            cls,
            host: Optional[str]=None,
            config: Optional[GreeHvacClientConfig]=None,
            **callbacks: Any,
          ) -> Self:
        """Creates a client and starts connecting."""
        self = cls(host, config, **callbacks)
        try:
            await self.connect()
        except BaseException:
            await self.aclose()
            raise
        return self

    def __str__(self) -> str:
        return f"GreeHvacClient(host={self.config.default_host})"

    def __repr__(self) -> str:
        return str(self)
