# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Gree HVAC property command codes and metadata.

Maps logical property names to the wire-level command codes carried in the
cols/opt arrays of status and command payloads, together with the named
values each property accepts.

There is no protocol implementation here; only metadata about the protocol.
The client only needs the flattened code list (for polling) and individual
codes (for get/set); named values are offered to callers for convenience and
are never interpreted or range-checked by the client.
"""

from __future__ import annotations

from ..internal_types import *
from ..exceptions import GreeHvacError

CommandCode = str

on_off_map: Dict[str, int] = {
    "off": 0,
    "on": 1,
  }

mode_map: Dict[str, int] = {
    "auto": 0,
    "cool": 1,
    "dry": 2,
    "fan": 3,
    "heat": 4,
  }

temperature_unit_map: Dict[str, int] = {
    "celsius": 0,
    "fahrenheit": 1,
  }

fan_speed_map: Dict[str, int] = {
    "auto": 0,
    "low": 1,
    "medium_low": 2,   # not available on 3-speed units
    "medium": 3,
    "medium_high": 4,  # not available on 3-speed units
    "high": 5,
  }

air_map: Dict[str, int] = {
    "off": 0,
    "inside": 1,
    "outside": 2,
    "mode3": 3,
  }

quiet_map: Dict[str, int] = {
    "off": 0,
    "mode1": 1,
    "mode2": 2,
    "mode3": 3,
  }

swing_hor_map: Dict[str, int] = {
    "default": 0,
    "full": 1,
    "fixed_left": 2,
    "fixed_mid_left": 3,
    "fixed_mid": 4,
    "fixed_mid_right": 5,
    "fixed_right": 6,
    "full_alt": 7,
  }

swing_vert_map: Dict[str, int] = {
    "default": 0,
    "full": 1,
    "fixed_top": 2,
    "fixed_middle_top": 3,
    "fixed_middle": 4,
    "fixed_middle_bottom": 5,
    "fixed_bottom": 6,
    "swing_bottom": 7,
    "swing_middle_bottom": 8,
    "swing_middle": 9,
    "swing_middle_top": 10,
    "swing_top": 11,
  }

class PropertyMeta:
    """Metadata for a single device property"""
    name: str
    """Logical name of the property, e.g., "power"."""

    code: CommandCode
    """Wire-level command code, e.g., "Pow"."""

    values: Optional[Dict[str, int]]
    """Named values accepted by the property, if it has any."""

    description: str

    def __init__(
            self,
            name: str,
            code: CommandCode,
            values: Optional[Mapping[str, int]]=None,
            description: str="",
          ) -> None:
        self.name = name
        self.code = code
        self.values = None if values is None else dict(values)
        self.description = description

    def value_of(self, label: str) -> int:
        """Returns the wire value for a named value."""
        if self.values is None or not label in self.values:
            raise GreeHvacError(f"Property {self.name} has no named value {label!r}")
        return self.values[label]

    def to_jsonable(self) -> JsonableDict:
        result: JsonableDict = {"code": self.code}
        if self.values is not None:
            result["value"] = dict(self.values)
        return result

    def __str__(self) -> str:
        return f"PropertyMeta({self.name}: {self.code})"

    def __repr__(self) -> str:
        return str(self)

class CommandTable:
    """An ordered mapping of property name to PropertyMeta."""
    properties: Dict[str, PropertyMeta]

    def __init__(self, properties: Iterable[PropertyMeta]) -> None:
        self.properties = {}
        for prop in properties:
            if prop.name in self.properties:
                raise GreeHvacError(f"Duplicate property name in command table: {prop.name}")
            self.properties[prop.name] = prop

    def __getitem__(self, name: str) -> PropertyMeta:
        try:
            return self.properties[name]
        except KeyError:
            raise GreeHvacError(f"Unknown property name: {name}") from None

    def __contains__(self, name: object) -> bool:
        return name in self.properties

    def __iter__(self):
        return iter(self.properties.values())

    def __len__(self) -> int:
        return len(self.properties)

    def code_for(self, name: str) -> CommandCode:
        """Returns the command code for a property name."""
        return self[name].code

    def all_codes(self) -> List[CommandCode]:
        """Returns every command code in the table, in table order and without duplicates.

        This is the column list carried by status polls.
        """
        result: List[CommandCode] = []
        for prop in self.properties.values():
            if not prop.code in result:
                result.append(prop.code)
        return result

    def to_jsonable(self) -> JsonableDict:
        return dict((name, prop.to_jsonable()) for name, prop in self.properties.items())

    @classmethod
    def from_jsonable(cls, obj: Mapping[str, Any]) -> Self:
        """Creates a table from {name: {"code": <code>, "value": {<label>: <int>}}}"""
        props: List[PropertyMeta] = []
        for name, entry in obj.items():
            if not isinstance(entry, Mapping) or not isinstance(entry.get("code"), str):
                raise GreeHvacError(f"Invalid command table entry for {name!r}: {entry!r}")
            values = entry.get("value")
            if values is not None and not isinstance(values, Mapping):
                raise GreeHvacError(f"Invalid named values for {name!r}: {values!r}")
            props.append(PropertyMeta(name, entry["code"], values=values))
        return cls(props)

    def __str__(self) -> str:
        return f"CommandTable({', '.join(self.properties)})"

    def __repr__(self) -> str:
        return str(self)

_P = PropertyMeta

DEFAULT_COMMAND_TABLE = CommandTable([
    _P("power", "Pow", on_off_map, "Power state of the device"),
    _P("mode", "Mod", mode_map, "Operating mode"),
    _P("temperature_unit", "TemUn", temperature_unit_map, "Unit of the target temperature"),
    _P("temperature", "SetTem", description="Target temperature, in temperature_unit"),
    _P("fan_speed", "WdSpd", fan_speed_map, "Fan speed"),
    _P("air", "Air", air_map, "Fresh air valve"),
    _P("blow", "Blo", on_off_map, "X-Fan (keeps the fan running after cool/dry to dry the coil)"),
    _P("health", "Health", on_off_map, "Cold plasma / anion generator"),
    _P("sleep", "SwhSlp", on_off_map, "Sleep mode"),
    _P("lights", "Lig", on_off_map, "Display lights"),
    _P("swing_hor", "SwingLfRig", swing_hor_map, "Horizontal swing"),
    _P("swing_vert", "SwUpDn", swing_vert_map, "Vertical swing"),
    _P("quiet", "Quiet", quiet_map, "Quiet mode"),
    _P("turbo", "Tur", on_off_map, "Turbo mode (cool/heat only)"),
    _P("power_save", "SvSt", on_off_map, "Energy saving mode"),
    _P("heat_8c", "StHt", on_off_map, "Maintain 8 degrees C when heating"),
    _P("room_temperature", "TemSen", description="Room temperature sensor reading (read only)"),
    _P("heat_cool_type", "HeatCoolType", description="Heat/cool capability of the unit (read only)"),
    _P("temperature_record", "TemRec", description="Fahrenheit rounding bit"),
  ])
"""The property table for Gree-family split air conditioners."""
