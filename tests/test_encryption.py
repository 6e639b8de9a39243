"""Tests for the payload encryption codec (legacy ECB and authenticated GCM)."""

import base64

import pytest
from Crypto.Cipher import AES
from Crypto.Util.Padding import pad

from gree_hvac import DecodeError, EncryptionContext, EncryptionVersion, EncryptedPack, GreeHvacError
from gree_hvac.constants import GENERIC_KEY, GENERIC_KEY_V2
from gree_hvac.protocol import (
    decrypt,
    decrypt_authenticated,
    decrypt_legacy,
    default_key,
    encrypt,
    encrypt_authenticated,
    encrypt_legacy,
)

SESSION_KEY = "Zx4Kc8Vb2Nm6Qw0E"
PAYLOAD = {"t": "status", "cols": ["Pow", "Mod", "SetTem"], "mac": "f4911e4a0b2c"}


class TestLegacy:
    def test_roundtrip_default_key(self):
        assert decrypt_legacy(encrypt_legacy(PAYLOAD)) == PAYLOAD

    def test_roundtrip_session_key(self):
        assert decrypt_legacy(encrypt_legacy(PAYLOAD, SESSION_KEY), SESSION_KEY) == PAYLOAD

    def test_cipher_text_is_whole_blocks(self):
        raw = base64.b64decode(encrypt_legacy(PAYLOAD))
        assert len(raw) % 16 == 0

    def test_deterministic(self):
        """ECB with no IV: identical inputs give identical output."""
        assert encrypt_legacy(PAYLOAD) == encrypt_legacy(PAYLOAD)

    def test_wrong_key_fails(self):
        with pytest.raises(DecodeError):
            decrypt_legacy(encrypt_legacy(PAYLOAD, SESSION_KEY), GENERIC_KEY)

    def test_malformed_base64(self):
        with pytest.raises(DecodeError):
            decrypt_legacy("not*base64!")

    def test_non_json_plaintext(self):
        cipher = AES.new(GENERIC_KEY, AES.MODE_ECB)
        cipher_text = base64.b64encode(cipher.encrypt(pad(b"definitely not json", 16))).decode()
        with pytest.raises(DecodeError):
            decrypt_legacy(cipher_text)

    def test_json_that_is_not_an_object(self):
        cipher = AES.new(GENERIC_KEY, AES.MODE_ECB)
        cipher_text = base64.b64encode(cipher.encrypt(pad(b"[1,2,3]", 16))).decode()
        with pytest.raises(DecodeError):
            decrypt_legacy(cipher_text)

    def test_compact_serialization(self):
        cipher = AES.new(GENERIC_KEY, AES.MODE_ECB)
        plain = cipher.decrypt(base64.b64decode(encrypt_legacy({"t": "scan", "a": [1, 2]})))
        assert plain.startswith(b'{"t":"scan","a":[1,2]}')


class TestAuthenticated:
    def test_roundtrip_default_key(self):
        cipher_text, tag = encrypt_authenticated(PAYLOAD)
        assert decrypt_authenticated(cipher_text, tag) == PAYLOAD

    def test_roundtrip_session_key(self):
        cipher_text, tag = encrypt_authenticated(PAYLOAD, SESSION_KEY)
        assert decrypt_authenticated(cipher_text, tag, SESSION_KEY) == PAYLOAD

    def test_tag_is_16_bytes(self):
        _, tag = encrypt_authenticated(PAYLOAD)
        assert len(base64.b64decode(tag)) == 16

    def test_corrupted_tag_fails(self):
        cipher_text, tag = encrypt_authenticated(PAYLOAD)
        raw = base64.b64decode(tag)
        corrupted = base64.b64encode(bytes([raw[0] ^ 0x01]) + raw[1:]).decode()
        with pytest.raises(DecodeError):
            decrypt_authenticated(cipher_text, corrupted)

    def test_corrupted_cipher_text_fails(self):
        cipher_text, tag = encrypt_authenticated(PAYLOAD)
        raw = base64.b64decode(cipher_text)
        corrupted = base64.b64encode(bytes([raw[0] ^ 0x80]) + raw[1:]).decode()
        with pytest.raises(DecodeError):
            decrypt_authenticated(corrupted, tag)

    def test_wrong_key_fails(self):
        cipher_text, tag = encrypt_authenticated(PAYLOAD, SESSION_KEY)
        with pytest.raises(DecodeError):
            decrypt_authenticated(cipher_text, tag, GENERIC_KEY_V2)

    def test_malformed_tag_base64(self):
        cipher_text, _ = encrypt_authenticated(PAYLOAD)
        with pytest.raises(DecodeError):
            decrypt_authenticated(cipher_text, "%%%")

    def test_matches_firmware_parameters(self):
        """Fixed nonce and AAD must match the firmware byte for byte."""
        cipher_text, tag = encrypt_authenticated(PAYLOAD)
        cipher = AES.new(GENERIC_KEY_V2, AES.MODE_GCM, nonce=bytes.fromhex("5440784449675a516c5e6313"))
        cipher.update(b"qualcomm-test")
        plain = cipher.decrypt_and_verify(base64.b64decode(cipher_text), base64.b64decode(tag))
        assert plain == b'{"t":"status","cols":["Pow","Mod","SetTem"],"mac":"f4911e4a0b2c"}'


class TestDispatch:
    @pytest.mark.parametrize("version", list(EncryptionVersion))
    def test_roundtrip(self, version):
        pack = encrypt(PAYLOAD, SESSION_KEY, version)
        assert (pack.tag is not None) == (version is EncryptionVersion.AUTHENTICATED)
        assert decrypt(pack, SESSION_KEY, version) == PAYLOAD

    def test_authenticated_requires_tag(self):
        pack = encrypt(PAYLOAD, SESSION_KEY, EncryptionVersion.AUTHENTICATED)
        with pytest.raises(DecodeError):
            decrypt(EncryptedPack(pack.cipher_text), SESSION_KEY, EncryptionVersion.AUTHENTICATED)

    def test_default_keys(self):
        assert default_key(EncryptionVersion.LEGACY) == b"a3K8Bx%2r8Y7#xDh"
        assert default_key(EncryptionVersion.AUTHENTICATED) == b"{yxAHAY_Lm6pbC/<"


class TestEncryptionContext:
    @pytest.mark.parametrize(
        "ver,expected",
        [
            ("V2.1.0", EncryptionVersion.AUTHENTICATED),
            ("V2.0.0", EncryptionVersion.AUTHENTICATED),
            ("V1.0.0", EncryptionVersion.LEGACY),
            ("V3.0.0", EncryptionVersion.LEGACY),
            ("v2.1.0", EncryptionVersion.LEGACY),
            (None, EncryptionVersion.LEGACY),
        ],
    )
    def test_for_firmware(self, ver, expected):
        context = EncryptionContext.for_firmware(ver)
        assert context.version is expected
        assert context.is_default_key

    def test_with_key_keeps_scheme(self):
        context = EncryptionContext.for_firmware("V2.1.0").with_key(SESSION_KEY)
        assert context.version is EncryptionVersion.AUTHENTICATED
        assert context.key == SESSION_KEY.encode()
        assert not context.is_default_key
        assert context.decrypt(context.encrypt(PAYLOAD)) == PAYLOAD

    def test_rejects_bad_key_length(self):
        with pytest.raises(GreeHvacError):
            EncryptionContext(EncryptionVersion.LEGACY, "short")
