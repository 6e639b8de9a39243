# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Encryption codec for inner payloads.

Two schemes are supported:

  LEGACY:         JSON -> PKCS#7 pad -> AES-128-ECB -> base64
  AUTHENTICATED:  JSON -> AES-128-GCM (fixed nonce and AAD) -> base64, plus a base64 tag

All functions here are stateless. Any failure to turn cipher text back into a
JSON object raises DecodeError.
"""

from __future__ import annotations

import base64
import json

from Crypto.Cipher import AES
from Crypto.Util.Padding import pad, unpad

from ..internal_types import *
from ..constants import GENERIC_KEY, GENERIC_KEY_V2, GCM_IV, GCM_AAD
from ..exceptions import GreeHvacError, DecodeError
from .constants import EncryptionVersion

BLOCK_SIZE = 16

KeyLike = Union[bytes, str]

def _key_bytes(key: KeyLike) -> bytes:
    result = key.encode('utf-8') if isinstance(key, str) else bytes(key)
    if len(result) != BLOCK_SIZE:
        raise GreeHvacError(f"Encryption key must be {BLOCK_SIZE} bytes, got {len(result)}")
    return result

def default_key(version: EncryptionVersion) -> bytes:
    """Returns the well-known pre-bind key for an encryption scheme."""
    return GENERIC_KEY_V2 if version is EncryptionVersion.AUTHENTICATED else GENERIC_KEY

def serialize_payload(payload: JsonableDict) -> bytes:
    """Serializes a payload as compact JSON, the way the device firmware does."""
    return json.dumps(payload, separators=(',', ':')).encode('utf-8')

def parse_payload(plain_text: bytes) -> JsonableDict:
    """Parses decrypted plain text into a JSON object."""
    try:
        result = json.loads(plain_text.decode('utf-8'))
    except ValueError as e:
        raise DecodeError(f"Decrypted payload is not valid JSON: {e}") from e
    if not isinstance(result, dict):
        raise DecodeError(f"Decrypted payload is not a JSON object: {result!r}")
    return result

def _b64decode(data: str, what: str) -> bytes:
    if not isinstance(data, str):
        raise DecodeError(f"Expected base64 string for {what}, got {type(data).__name__}")
    try:
        return base64.b64decode(data, validate=True)
    except ValueError as e:
        raise DecodeError(f"Malformed base64 in {what}: {e}") from e

def encrypt_legacy(payload: JsonableDict, key: KeyLike=GENERIC_KEY) -> str:
    """Encrypts a payload under the legacy scheme; returns base64 cipher text."""
    cipher = AES.new(_key_bytes(key), AES.MODE_ECB)
    return base64.b64encode(cipher.encrypt(pad(serialize_payload(payload), BLOCK_SIZE))).decode('ascii')

def decrypt_legacy(cipher_text: str, key: KeyLike=GENERIC_KEY) -> JsonableDict:
    """Decrypts legacy base64 cipher text into a payload."""
    raw = _b64decode(cipher_text, "pack")
    try:
        cipher = AES.new(_key_bytes(key), AES.MODE_ECB)
        plain_text = unpad(cipher.decrypt(raw), BLOCK_SIZE)
    except (ValueError, GreeHvacError) as e:
        raise DecodeError(f"Legacy decryption failed: {e}") from e
    return parse_payload(plain_text)

def _gcm_cipher(key: KeyLike) -> Any:
    cipher = AES.new(_key_bytes(key), AES.MODE_GCM, nonce=GCM_IV)
    cipher.update(GCM_AAD)
    return cipher

def encrypt_authenticated(payload: JsonableDict, key: KeyLike=GENERIC_KEY_V2) -> Tuple[str, str]:
    """Encrypts a payload under the authenticated scheme.

    Returns:
        A tuple of (cipher_text, tag), both base64 strings.
    """
    cipher_bytes, tag = _gcm_cipher(key).encrypt_and_digest(serialize_payload(payload))
    return (
        base64.b64encode(cipher_bytes).decode('ascii'),
        base64.b64encode(tag).decode('ascii'),
      )

def decrypt_authenticated(cipher_text: str, tag: str, key: KeyLike=GENERIC_KEY_V2) -> JsonableDict:
    """Verifies the tag and decrypts authenticated base64 cipher text into a payload.

    The tag is checked before any attempt is made to parse the plain text.
    """
    raw = _b64decode(cipher_text, "pack")
    raw_tag = _b64decode(tag, "tag")
    try:
        plain_text = _gcm_cipher(key).decrypt_and_verify(raw, raw_tag)
    except (ValueError, GreeHvacError) as e:
        raise DecodeError(f"Authenticated decryption failed: {e}") from e
    return parse_payload(plain_text)

class EncryptedPack:
    """The encrypted fields of an envelope: base64 cipher text and optional base64 tag."""
    cipher_text: str
    tag: Optional[str]

    def __init__(self, cipher_text: str, tag: Optional[str]=None) -> None:
        self.cipher_text = cipher_text
        self.tag = tag

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EncryptedPack):
            return NotImplemented
        return self.cipher_text == other.cipher_text and self.tag == other.tag

    def __str__(self) -> str:
        return f"EncryptedPack(cipher_text={self.cipher_text!r}, tag={self.tag!r})"

    def __repr__(self) -> str:
        return str(self)

def encrypt(payload: JsonableDict, key: KeyLike, version: EncryptionVersion) -> EncryptedPack:
    """Encrypts a payload under the given scheme."""
    if version is EncryptionVersion.AUTHENTICATED:
        cipher_text, tag = encrypt_authenticated(payload, key)
        return EncryptedPack(cipher_text, tag)
    return EncryptedPack(encrypt_legacy(payload, key))

def decrypt(pack: EncryptedPack, key: KeyLike, version: EncryptionVersion) -> JsonableDict:
    """Decrypts envelope fields under the given scheme."""
    if version is EncryptionVersion.AUTHENTICATED:
        if pack.tag is None:
            raise DecodeError("Authenticated scheme requires a tag")
        return decrypt_authenticated(pack.cipher_text, pack.tag, key)
    return decrypt_legacy(pack.cipher_text, key)

class EncryptionContext:
    """An encryption scheme together with the key to use with it.

    A session holds exactly one of these at a time. It starts as the default
    context for the negotiated scheme and is replaced by one carrying the
    device-issued session key once binding completes.
    """
    version: EncryptionVersion
    key: bytes

    def __init__(self, version: EncryptionVersion=EncryptionVersion.LEGACY, key: Optional[KeyLike]=None) -> None:
        self.version = version
        self.key = default_key(version) if key is None else _key_bytes(key)

    @classmethod
    def for_firmware(cls, firmware_version: Optional[str]) -> Self:
        """Returns the pre-bind context for a device reporting the given firmware version."""
        return cls(EncryptionVersion.for_firmware(firmware_version))

    def with_key(self, key: KeyLike) -> EncryptionContext:
        """Returns a context with the same scheme and a different key."""
        return EncryptionContext(self.version, key)

    @property
    def is_default_key(self) -> bool:
        return self.key == default_key(self.version)

    def encrypt(self, payload: JsonableDict) -> EncryptedPack:
        return encrypt(payload, self.key, self.version)

    def decrypt(self, pack: EncryptedPack) -> JsonableDict:
        return decrypt(pack, self.key, self.version)

    def __str__(self) -> str:
        key_desc = "default" if self.is_default_key else "session"
        return f"EncryptionContext({self.version.name}, key={key_desc})"

    def __repr__(self) -> str:
        return str(self)
