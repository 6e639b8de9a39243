# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Outer wire envelope.

Every datagram other than the discovery probe is a JSON object of the form

    {"cid": "app", "i": 0, "t": "pack", "uid": 0, "pack": "<base64>", "tag": "<base64>"}

where "tag" is present only under the authenticated scheme. Devices add
their own fields (e.g., "tcid") to replies; those are preserved but ignored.
The "i" counter is never checked on receipt.
"""

from __future__ import annotations

import json

from ..internal_types import *
from ..constants import CLIENT_ID, REQUEST_COUNTER
from ..exceptions import DecodeError
from .constants import PayloadType
from .encryption import EncryptedPack

SCAN_PROBE: bytes = json.dumps({"t": PayloadType.SCAN.value}, separators=(',', ':')).encode('utf-8')
"""The unencrypted discovery probe datagram."""

def decode_json_datagram(data: bytes) -> JsonableDict:
    """Parses a raw datagram as a JSON object."""
    try:
        result = json.loads(data.decode('utf-8'))
    except ValueError as e:
        raise DecodeError(f"Datagram is not valid JSON: {data[:64]!r}") from e
    if not isinstance(result, dict):
        raise DecodeError(f"Datagram is not a JSON object: {data[:64]!r}")
    return result

class Envelope:
    """An envelope carrying an encrypted inner payload."""
    cid: str
    i: int
    uid: int
    pack: EncryptedPack
    extra: JsonableDict

    def __init__(
            self,
            pack: EncryptedPack,
            cid: str=CLIENT_ID,
            i: int=REQUEST_COUNTER,
            uid: int=0,
            extra: Optional[JsonableDict]=None,
          ) -> None:
        self.pack = pack
        self.cid = cid
        self.i = i
        self.uid = uid
        self.extra = {} if extra is None else dict(extra)

    @property
    def is_authenticated(self) -> bool:
        """True iff the envelope carries an authentication tag."""
        return self.pack.tag is not None

    def to_jsonable(self) -> JsonableDict:
        result: JsonableDict = dict(self.extra)
        result.update({
            "cid": self.cid,
            "i": self.i,
            "t": PayloadType.PACK.value,
            "uid": self.uid,
            "pack": self.pack.cipher_text,
          })
        if self.pack.tag is not None:
            result["tag"] = self.pack.tag
        return result

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_jsonable(), separators=(',', ':')).encode('utf-8')

    @classmethod
    def from_jsonable(cls, obj: JsonableDict) -> Self:
        t = obj.get("t")
        if t != PayloadType.PACK.value:
            raise DecodeError(f"Expected envelope type {PayloadType.PACK.value!r}, got {t!r}")
        cipher_text = obj.get("pack")
        if not isinstance(cipher_text, str):
            raise DecodeError("Envelope has no pack field")
        tag = obj.get("tag")
        if tag is not None and not isinstance(tag, str):
            raise DecodeError(f"Envelope tag is not a string: {tag!r}")
        cid = obj.get("cid", "")
        i = obj.get("i", 0)
        uid = obj.get("uid", 0)
        extra = dict((k, v) for k, v in obj.items() if k not in ("cid", "i", "t", "uid", "pack", "tag"))
        return cls(
            EncryptedPack(cipher_text, tag),
            cid="" if cid is None else str(cid),
            i=i if isinstance(i, int) else 0,
            uid=uid if isinstance(uid, int) else 0,
            extra=extra,
          )

    @classmethod
    def from_bytes(cls, data: bytes) -> Self:
        return cls.from_jsonable(decode_json_datagram(data))

    def __str__(self) -> str:
        return f"Envelope(cid={self.cid!r}, i={self.i}, authenticated={self.is_authenticated})"

    def __repr__(self) -> str:
        return str(self)
