# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Gree HVAC client configuration.

Provides a general config object for a GreeHvacClient. Explicit arguments
override a base configuration, which overrides environment variables,
which override built-in defaults.
"""

from __future__ import annotations

import os
import ipaddress

from ..internal_types import *
from ..exceptions import GreeHvacError
from ..constants import (
    DEFAULT_UPDATE_INTERVAL,
    RECONNECT_DELAY,
    DISCOVERY_PORT,
    LOCAL_PORT_BASE,
  )
from ..protocol import CommandTable, DEFAULT_COMMAND_TABLE

def derive_local_port(host: str) -> int:
    """Returns the local UDP port for a session with the device at host.

    The port is LOCAL_PORT_BASE plus the last octet of the device's IPv4
    address, so that sessions with different devices in one process do not
    collide.
    """
    try:
        addr = ipaddress.IPv4Address(host)
    except ValueError as e:
        raise GreeHvacError(f"Device host must be an IPv4 address to derive a local port: '{host}'") from e
    return LOCAL_PORT_BASE + addr.packed[3]

def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value == '':
        return default
    try:
        return float(value)
    except ValueError as e:
        raise GreeHvacError(f"Environment variable {name} is not a number: '{value}'") from e

def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    value = os.environ.get(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError as e:
        raise GreeHvacError(f"Environment variable {name} is not an integer: '{value}'") from e

class GreeHvacClientConfig:
    """Gree HVAC client configuration."""
    default_host: Optional[str]
    update_interval_secs: float
    reconnect_delay_secs: float
    discovery_port: int
    local_port: Optional[int]
    command_table: CommandTable

    def __init__(
            self,
            default_host: Optional[str]=None,
            *,
            update_interval_secs: Optional[float]=None,
            reconnect_delay_secs: Optional[float]=None,
            discovery_port: Optional[int]=None,
            local_port: Optional[int]=None,
            command_table: Optional[CommandTable]=None,
            base_config: Optional[GreeHvacClientConfig]=None
          ) -> None:
        """Creates a configuration for a Gree HVAC client.

           Args:
             default_host: The IPv4 address of the device. If None, the
                   host will be taken from the GREE_HVAC_HOST environment
                   variable.
             update_interval_secs:
                   The interval between status polls once bound, in seconds.
                   If None, taken from GREE_HVAC_UPDATE_INTERVAL, or
                   DEFAULT_UPDATE_INTERVAL (10 seconds).
             reconnect_delay_secs:
                   The delay before retrying a failed local socket bind, in
                   seconds. If None, taken from GREE_HVAC_RECONNECT_DELAY,
                   or RECONNECT_DELAY (5 seconds).
             discovery_port:
                   The device port that scan probes are sent to. If None, taken
                   from GREE_HVAC_DISCOVERY_PORT, or DISCOVERY_PORT (7000).
             local_port:
                   The local UDP port to bind. If None, taken from
                   GREE_HVAC_LOCAL_PORT; if that is not set either, the
                   port is derived from the device address (8000 + last octet).
                   0 binds an ephemeral port.
             command_table:
                   The property table. If None, DEFAULT_COMMAND_TABLE is used.
             base_config:
                   An optional base configuration to use.
        """
        if base_config is None:
            self.init_from_defaults()
        else:
            self.init_from_base_config(base_config)

        if default_host is not None and default_host != '':
            self.default_host = default_host

        if update_interval_secs is not None:
            if update_interval_secs <= 0:
                raise GreeHvacError(f"update_interval_secs must be positive: {update_interval_secs}")
            self.update_interval_secs = update_interval_secs

        if reconnect_delay_secs is not None:
            if reconnect_delay_secs < 0:
                raise GreeHvacError(f"reconnect_delay_secs must not be negative: {reconnect_delay_secs}")
            self.reconnect_delay_secs = reconnect_delay_secs

        if discovery_port is not None and discovery_port > 0:
            self.discovery_port = discovery_port

        if local_port is not None and local_port >= 0:
            self.local_port = local_port

        if command_table is not None:
            self.command_table = command_table

        if self.default_host is not None and self.local_port is None:
            # validates the host early
            derive_local_port(self.default_host)

    def init_from_defaults(self) -> None:
        """Initializes the configuration from environment variables and defaults."""
        default_host: Optional[str] = os.environ.get('GREE_HVAC_HOST')
        if default_host == '':
            default_host = None
        self.default_host = default_host
        self.update_interval_secs = _env_float('GREE_HVAC_UPDATE_INTERVAL', DEFAULT_UPDATE_INTERVAL)
        self.reconnect_delay_secs = _env_float('GREE_HVAC_RECONNECT_DELAY', RECONNECT_DELAY)
        discovery_port = _env_int('GREE_HVAC_DISCOVERY_PORT', DISCOVERY_PORT)
        assert discovery_port is not None
        self.discovery_port = discovery_port
        self.local_port = _env_int('GREE_HVAC_LOCAL_PORT', None)
        self.command_table = DEFAULT_COMMAND_TABLE

    def init_from_base_config(self, base_config: GreeHvacClientConfig) -> None:
        """Initializes the configuration from a base configuration."""
        self.default_host = base_config.default_host
        self.update_interval_secs = base_config.update_interval_secs
        self.reconnect_delay_secs = base_config.reconnect_delay_secs
        self.discovery_port = base_config.discovery_port
        self.local_port = base_config.local_port
        self.command_table = base_config.command_table

    @property
    def host(self) -> str:
        """The configured device host; raises if none was configured."""
        if self.default_host is None:
            raise GreeHvacError("No device host configured (set GREE_HVAC_HOST or pass a host)")
        return self.default_host

    def resolve_local_port(self) -> int:
        """Returns the local port to bind: explicit if configured, else derived from the host."""
        if self.local_port is not None:
            return self.local_port
        return derive_local_port(self.host)

    def to_jsonable(self) -> JsonableDict:
        result: JsonableDict = {
            "default_host": self.default_host,
            "update_interval_secs": self.update_interval_secs,
            "reconnect_delay_secs": self.reconnect_delay_secs,
            "discovery_port": self.discovery_port,
            "local_port": self.local_port,
          }
        if self.command_table is not DEFAULT_COMMAND_TABLE:
            result["command_table"] = self.command_table.to_jsonable()
        return result

    @classmethod
    def from_jsonable(
            cls,
            obj: Mapping[str, Any],
            base_config: Optional[GreeHvacClientConfig]=None
          ) -> Self:
        """Creates a configuration from a JSON object using the same key names
           as the constructor arguments. Missing keys fall back to base_config
           or the environment."""
        if not isinstance(obj, Mapping):
            raise GreeHvacError(f"Client configuration must be a JSON object: {obj!r}")
        raw_table = obj.get("command_table")
        command_table = None if raw_table is None else CommandTable.from_jsonable(raw_table)
        return cls(
            default_host=obj.get("default_host"),
            update_interval_secs=obj.get("update_interval_secs"),
            reconnect_delay_secs=obj.get("reconnect_delay_secs"),
            discovery_port=obj.get("discovery_port"),
            local_port=obj.get("local_port"),
            command_table=command_table,
            base_config=base_config,
          )

    def __str__(self) -> str:
        return (
            f"GreeHvacClientConfig("
            f"default_host={self.default_host}, "
            f"local_port={self.local_port}, "
            f"update_interval_secs={self.update_interval_secs!r})"
          )

    def __repr__(self) -> str:
        return str(self)
