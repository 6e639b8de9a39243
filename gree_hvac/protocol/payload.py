# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Inner payloads.

An inner payload is the JSON object found inside an envelope's pack field
(or, for the discovery probe, the bare datagram). The "t" field selects one
of the shapes below:

    scan     {t}
    dev      {t, cid, name, ver, ...}
    bind     {t, mac, uid}
    bindok   {t, key, ...}
    status   {t, cols, mac}
    dat      {t, cols, dat}
    cmd      {t, opt, p}
    res      {t, opt, val?, p?}

decode_inner_payload() turns a JSON object into an instance of the matching
InnerPayload subclass, raising UnexpectedPayload for an unknown tag and
DecodeError for a known tag with missing or mistyped fields.
"""

from __future__ import annotations

from ..internal_types import *
from ..exceptions import DecodeError, UnexpectedPayload
from .constants import PayloadType

PropertyValue = Jsonable
"""A property value as carried on the wire (normally an int)."""

def _get_str(obj: JsonableDict, name: str, default: Optional[str]=None) -> str:
    value = obj.get(name, default)
    if not isinstance(value, str):
        raise DecodeError(f"Payload field {name!r} must be a string: {obj!r}")
    return value

def _get_list(obj: JsonableDict, name: str) -> List[Jsonable]:
    value = obj.get(name)
    if not isinstance(value, list):
        raise DecodeError(f"Payload field {name!r} must be a list: {obj!r}")
    return value

def _get_optional_list(obj: JsonableDict, name: str) -> Optional[List[Jsonable]]:
    if obj.get(name) is None:
        return None
    return _get_list(obj, name)

def _get_codes(obj: JsonableDict, name: str) -> List[str]:
    codes = _get_list(obj, name)
    for code in codes:
        if not isinstance(code, str):
            raise DecodeError(f"Payload field {name!r} must be a list of strings: {obj!r}")
    return cast(List[str], codes)

class InnerPayload:
    """Base class for all inner payload shapes."""
    payload_type: PayloadType

    def fields(self) -> JsonableDict:
        """Returns the payload's fields, excluding "t"."""
        return {}

    def to_jsonable(self) -> JsonableDict:
        result: JsonableDict = {"t": self.payload_type.value}
        result.update(self.fields())
        return result

    @classmethod
    def from_jsonable(cls, obj: JsonableDict) -> InnerPayload:
        raise NotImplementedError()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InnerPayload):
            return NotImplemented
        return self.to_jsonable() == other.to_jsonable()

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.fields()!r})"

    def __repr__(self) -> str:
        return str(self)

class ScanPayload(InnerPayload):
    payload_type = PayloadType.SCAN

    @classmethod
    def from_jsonable(cls, obj: JsonableDict) -> ScanPayload:
        return cls()

class DevPayload(InnerPayload):
    """Handshake reply. Devices send many more fields than these; they are kept in extra."""
    payload_type = PayloadType.DEV
    cid: Optional[str]
    name: Optional[str]
    ver: Optional[str]
    mac: Optional[str]
    extra: JsonableDict

    def __init__(
            self,
            cid: Optional[str]=None,
            name: Optional[str]=None,
            ver: Optional[str]=None,
            mac: Optional[str]=None,
            extra: Optional[JsonableDict]=None,
          ) -> None:
        self.cid = cid
        self.name = name
        self.ver = ver
        self.mac = mac
        self.extra = {} if extra is None else dict(extra)

    def fields(self) -> JsonableDict:
        result: JsonableDict = dict(self.extra)
        for k, v in (("cid", self.cid), ("name", self.name), ("ver", self.ver), ("mac", self.mac)):
            if v is not None:
                result[k] = v
        return result

    @classmethod
    def from_jsonable(cls, obj: JsonableDict) -> DevPayload:
        values: Dict[str, Optional[str]] = {}
        for k in ("cid", "name", "ver", "mac"):
            v = obj.get(k)
            values[k] = None if v is None else str(v)
        extra = dict((k, v) for k, v in obj.items() if k not in ("t", "cid", "name", "ver", "mac"))
        return cls(extra=extra, **values)

class BindPayload(InnerPayload):
    payload_type = PayloadType.BIND
    mac: str
    uid: int

    def __init__(self, mac: str, uid: int=0) -> None:
        self.mac = mac
        self.uid = uid

    def fields(self) -> JsonableDict:
        return {"mac": self.mac, "uid": self.uid}

    @classmethod
    def from_jsonable(cls, obj: JsonableDict) -> BindPayload:
        uid = obj.get("uid", 0)
        return cls(_get_str(obj, "mac"), uid=uid if isinstance(uid, int) else 0)

class BindOkPayload(InnerPayload):
    payload_type = PayloadType.BINDOK
    key: str
    mac: Optional[str]

    def __init__(self, key: str, mac: Optional[str]=None) -> None:
        self.key = key
        self.mac = mac

    def fields(self) -> JsonableDict:
        result: JsonableDict = {"key": self.key}
        if self.mac is not None:
            result["mac"] = self.mac
        return result

    @classmethod
    def from_jsonable(cls, obj: JsonableDict) -> BindOkPayload:
        mac = obj.get("mac")
        return cls(_get_str(obj, "key"), mac=None if mac is None else str(mac))

class StatusPayload(InnerPayload):
    payload_type = PayloadType.STATUS
    cols: List[str]
    mac: str

    def __init__(self, cols: Sequence[str], mac: str) -> None:
        self.cols = list(cols)
        self.mac = mac

    def fields(self) -> JsonableDict:
        return {"cols": list(self.cols), "mac": self.mac}

    @classmethod
    def from_jsonable(cls, obj: JsonableDict) -> StatusPayload:
        return cls(_get_codes(obj, "cols"), _get_str(obj, "mac", ""))

class DatPayload(InnerPayload):
    payload_type = PayloadType.DAT
    cols: List[str]
    dat: List[PropertyValue]

    def __init__(self, cols: Sequence[str], dat: Sequence[PropertyValue]) -> None:
        self.cols = list(cols)
        self.dat = list(dat)

    def fields(self) -> JsonableDict:
        return {"cols": list(self.cols), "dat": list(self.dat)}

    def properties(self) -> Dict[str, PropertyValue]:
        """Returns the reported values keyed by command code."""
        return dict(zip(self.cols, self.dat))

    @classmethod
    def from_jsonable(cls, obj: JsonableDict) -> DatPayload:
        cols = _get_codes(obj, "cols")
        dat = _get_list(obj, "dat")
        if len(cols) != len(dat):
            raise DecodeError(f"Status columns and values differ in length: {obj!r}")
        return cls(cols, dat)

class CmdPayload(InnerPayload):
    payload_type = PayloadType.CMD
    opt: List[str]
    p: List[PropertyValue]

    def __init__(self, opt: Sequence[str], p: Sequence[PropertyValue]) -> None:
        if len(opt) != len(p):
            raise ValueError(f"Command codes and values differ in length: {opt!r} vs {p!r}")
        self.opt = list(opt)
        self.p = list(p)

    def fields(self) -> JsonableDict:
        return {"opt": list(self.opt), "p": list(self.p)}

    @classmethod
    def from_jsonable(cls, obj: JsonableDict) -> CmdPayload:
        opt = _get_codes(obj, "opt")
        p = _get_list(obj, "p")
        if len(opt) != len(p):
            raise DecodeError(f"Command codes and values differ in length: {obj!r}")
        return cls(opt, p)

class ResPayload(InnerPayload):
    """Command reply. Firmware variants echo resulting values in val, in p, or in both."""
    payload_type = PayloadType.RES
    opt: List[str]
    val: Optional[List[PropertyValue]]
    p: Optional[List[PropertyValue]]

    def __init__(
            self,
            opt: Sequence[str],
            val: Optional[Sequence[PropertyValue]]=None,
            p: Optional[Sequence[PropertyValue]]=None,
          ) -> None:
        self.opt = list(opt)
        self.val = None if val is None else list(val)
        self.p = None if p is None else list(p)

    def fields(self) -> JsonableDict:
        result: JsonableDict = {"opt": list(self.opt)}
        if self.val is not None:
            result["val"] = list(self.val)
        if self.p is not None:
            result["p"] = list(self.p)
        return result

    def properties(self) -> Dict[str, PropertyValue]:
        """Returns the resulting values keyed by command code, taking val[i] over p[i]."""
        result: Dict[str, PropertyValue] = {}
        for i, code in enumerate(self.opt):
            if self.val is not None and i < len(self.val):
                result[code] = self.val[i]
            elif self.p is not None and i < len(self.p):
                result[code] = self.p[i]
        return result

    @classmethod
    def from_jsonable(cls, obj: JsonableDict) -> ResPayload:
        return cls(
            _get_codes(obj, "opt"),
            val=_get_optional_list(obj, "val"),
            p=_get_optional_list(obj, "p"),
          )

payload_classes: Dict[PayloadType, Type[InnerPayload]] = dict(
    (cls.payload_type, cls) for cls in (
        ScanPayload,
        DevPayload,
        BindPayload,
        BindOkPayload,
        StatusPayload,
        DatPayload,
        CmdPayload,
        ResPayload,
      )
  )
"""Map of payload type tag to the class that decodes it."""

def decode_inner_payload(obj: JsonableDict) -> InnerPayload:
    """Decodes a JSON object into the InnerPayload subclass selected by its "t" tag."""
    t = obj.get("t")
    try:
        payload_type = PayloadType(t)
        cls = payload_classes[payload_type]
    except (ValueError, KeyError, TypeError):
        raise UnexpectedPayload(f"Unrecognized payload type {t!r}") from None
    return cls.from_jsonable(obj)
