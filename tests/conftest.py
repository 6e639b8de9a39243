"""Shared test fixtures and helpers.

Device replies are built with the package's own codec, so the state machine
can be driven one datagram at a time without a socket. The poll loop's sleep
is replaced by FakeClock so ticks happen only when a test advances it.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio

from gree_hvac import (
    EncryptionContext,
    EncryptionVersion,
    Envelope,
    GreeHvacStateMachine,
    SessionCallbacks,
)
from gree_hvac.protocol import decode_json_datagram

HOST = "192.168.1.50"
DEVICE_ADDR = (HOST, 7000)
MAC = "f4911e4a0b2c"
SESSION_KEY = "Zx4Kc8Vb2Nm6Qw0E"


class FakeClock:
    """Controllable replacement for asyncio.sleep."""

    def __init__(self) -> None:
        self.sleeps: List[float] = []
        self._pending: List[asyncio.Future] = []

    async def sleep(self, secs: float) -> None:
        self.sleeps.append(secs)
        fut = asyncio.get_running_loop().create_future()
        self._pending.append(fut)
        await fut

    def advance(self) -> None:
        pending, self._pending = self._pending, []
        for fut in pending:
            if not fut.done():
                fut.set_result(None)


class SentDatagrams(list):
    """A send function that records (data, addr) pairs."""

    def __call__(self, data: bytes, addr: Tuple[str, int]) -> None:
        self.append((data, addr))

    def envelopes(self) -> List[Envelope]:
        return [Envelope.from_bytes(data) for data, _ in self if b'"pack"' in data]

    def last_payload(self, version: EncryptionVersion, key: Optional[str] = None) -> Dict[str, Any]:
        data, _ = self[-1]
        envelope = Envelope.from_bytes(data)
        return EncryptionContext(version, key).decrypt(envelope.pack)


class CallbackRecorder:
    """Records which session callbacks fired, in order."""

    def __init__(self) -> None:
        self.calls: List[str] = []

    def callbacks(self) -> SessionCallbacks:
        return SessionCallbacks(
            on_connected=lambda s: self.calls.append("connected"),
            on_status=lambda s: self.calls.append("status"),
            on_update=lambda s: self.calls.append("update"),
            on_error=lambda s: self.calls.append("error"),
            on_disconnected=lambda s: self.calls.append("disconnected"),
        )


def device_datagram(
    payload: Dict[str, Any],
    version: EncryptionVersion = EncryptionVersion.LEGACY,
    key: Optional[str] = None,
    cid: str = MAC,
) -> bytes:
    """Builds a datagram as the device would send it."""
    context = EncryptionContext(version, key)
    return Envelope(context.encrypt(payload), cid=cid, extra={"tcid": "app"}).to_bytes()


def dev_datagram(ver: Optional[str] = "V1.2.1") -> bytes:
    payload: Dict[str, Any] = {"t": "dev", "cid": MAC, "mac": MAC, "name": "living room"}
    if ver is not None:
        payload["ver"] = ver
    return device_datagram(payload)


def bindok_datagram(version: EncryptionVersion = EncryptionVersion.LEGACY) -> bytes:
    return device_datagram({"t": "bindok", "mac": MAC, "key": SESSION_KEY}, version)


def bound_datagram(payload: Dict[str, Any], version: EncryptionVersion = EncryptionVersion.LEGACY) -> bytes:
    """Builds a post-bind datagram encrypted with the session key."""
    return device_datagram(payload, version, SESSION_KEY)


async def settle() -> None:
    """Lets pending tasks run."""
    for _ in range(10):
        await asyncio.sleep(0)


def is_scan(data: bytes) -> bool:
    return decode_json_datagram(data) == {"t": "scan"}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sent() -> SentDatagrams:
    return SentDatagrams()


@pytest.fixture
def recorder() -> CallbackRecorder:
    return CallbackRecorder()


@pytest_asyncio.fixture
async def machine(clock: FakeClock, recorder: CallbackRecorder) -> AsyncIterator[GreeHvacStateMachine]:
    result = GreeHvacStateMachine(
        HOST,
        update_interval_secs=10.0,
        callbacks=recorder.callbacks(),
        sleep=clock.sleep,
    )
    yield result
    await result.wait_stopped()
