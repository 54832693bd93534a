from __future__ import annotations

import logging
import random
import socket
import time
from dataclasses import dataclass
from typing import Protocol, Tuple

Address = Tuple[str, int]


class Channel(Protocol):
    def sendto(self, data: bytes, addr: Address) -> None: ...

    def recvfrom(self, bufsize: int = ...) -> Tuple[bytes, Address]: ...


@dataclass(frozen=True, slots=True)
class Impairment:
    """Simulated loss/delay, applied to each datagram in both directions."""

    loss_rate: float = 0.0
    delay_ms: int = 0

    @property
    def active(self) -> bool:
        return self.loss_rate > 0 or self.delay_ms > 0

    def admit(self, direction: str, local: Address, peer: Address, nbytes: int) -> bool:
        """False if the datagram is lost; otherwise waits out the delay."""
        if self.loss_rate > 0 and random.random() < self.loss_rate:
            logging.debug("[%s:%d] DROPPED %s %d bytes, peer %s", local[0], local[1], direction, nbytes, peer)
            return False
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000.0)
        return True


class UdpEndpoint:
    """One UDP socket with a fixed receive timeout.

    A timed out `recvfrom` raises `TimeoutError`; any other failure surfaces
    as the `OSError` the socket raised.
    """

    def __init__(self, sock: socket.socket, impairment: Impairment | None = None):
        self.sock = sock
        self.impairment = impairment or Impairment()

    @classmethod
    def _open(cls, timeout_ms: int, impairment: Impairment | None, bind: Address | None) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            if bind is not None:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                sock.bind(bind)
            if timeout_ms > 0:
                sock.settimeout(timeout_ms / 1000.0)
        except OSError:
            sock.close()
            raise
        return cls(sock, impairment)

    @classmethod
    def listening(
        cls,
        host: str,
        port: int,
        timeout_ms: int = 0,
        impairment: Impairment | None = None,
    ) -> "UdpEndpoint":
        return cls._open(timeout_ms, impairment, (host, port))

    @classmethod
    def ephemeral(cls, timeout_ms: int = 0, impairment: Impairment | None = None) -> "UdpEndpoint":
        """Client socket; the kernel picks the port on first send."""
        return cls._open(timeout_ms, impairment, None)

    @property
    def address(self) -> Address:
        return self.sock.getsockname()

    def sendto(self, data: bytes, addr: Address) -> None:
        if self.impairment.active and not self.impairment.admit("outbound", self.address, addr, len(data)):
            return
        self.sock.sendto(data, addr)

    def recvfrom(self, bufsize: int = 65535) -> Tuple[bytes, Address]:
        # a dropped datagram is invisible to the caller: keep waiting
        while True:
            data, addr = self.sock.recvfrom(bufsize)
            if not self.impairment.active or self.impairment.admit("inbound", self.address, addr, len(data)):
                return data, addr

    def close(self) -> None:
        self.sock.close()
