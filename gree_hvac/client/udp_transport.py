# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Gree HVAC UDP client transport.

Owns the session's UDP socket: binds it to the local port, sends raw
datagrams, and hands every inbound datagram (with its sender address) to a
listener. The socket is never shared between sessions.
"""

from __future__ import annotations

import asyncio
import socket

from ..internal_types import *
from ..exceptions import BindFailure
from ..pkg_logging import logger

class DatagramListener(Protocol):
    def datagram_received(self, data: bytes, addr: HostAndPort) -> None: ...

    def transport_lost(self, exc: Optional[BaseException]=None) -> None: ...

class GreeHvacUdpTransport(asyncio.DatagramProtocol):
    """A UDP socket bound to one local port on all interfaces."""
    local_port: int
    bind_addr: str
    listener: DatagramListener
    transport: Optional[asyncio.DatagramTransport] = None
    closed: bool = False

    def __init__(
            self,
            listener: DatagramListener,
            local_port: int,
            bind_addr: str='0.0.0.0',
          ) -> None:
        super().__init__()
        self.listener = listener
        self.local_port = local_port
        self.bind_addr = bind_addr

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 0)
            sock.bind((self.bind_addr, self.local_port))
            sock.setblocking(False)
        except BaseException:
            sock.close()
            raise
        return sock

    async def open(self) -> None:
        """Binds the socket and starts receiving.

        Raises BindFailure if the local port cannot be bound.
        """
        assert self.transport is None
        try:
            sock = self._create_socket()
        except OSError as e:
            raise BindFailure(f"Unable to bind UDP socket to {self.bind_addr}:{self.local_port}: {e}") from e
        loop = asyncio.get_running_loop()
        await loop.create_datagram_endpoint(lambda: self, sock=sock)
        logger.info(f"{self}: Bound")

    @property
    def local_addr(self) -> HostAndPort:
        """The actual bound (address, port); useful when local_port is 0."""
        if self.transport is None:
            raise BindFailure(f"{self}: Transport is not open")
        sockname = self.transport.get_extra_info('sockname')
        return (sockname[0], sockname[1])

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = cast(asyncio.DatagramTransport, transport)

    def datagram_received(self, data: bytes, addr: Tuple[Any, ...]) -> None:
        self.listener.datagram_received(data, (addr[0], addr[1]))

    def error_received(self, exc: Exception) -> None:
        # ICMP errors (e.g., port unreachable) land here; the protocol has no way to act on them
        logger.debug(f"{self}: Socket error: {exc}")

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self.closed = True
        self.listener.transport_lost(exc)

    def sendto(self, data: bytes, addr: HostAndPort) -> None:
        """Sends a datagram. Fire-and-forget; silently dropped once closed."""
        if self.transport is None or self.closed:
            logger.debug(f"{self}: Closed; dropping datagram to {addr[0]}:{addr[1]}")
            return
        self.transport.sendto(data, addr)

    def close(self) -> None:
        if self.transport is not None and not self.closed:
            self.transport.close()

    def __str__(self) -> str:
        return f"GreeHvacUdpTransport({self.bind_addr}:{self.local_port})"

    def __repr__(self) -> str:
        return str(self)
