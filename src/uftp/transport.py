from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Protocol, Tuple

from .constants import BUFSIZE, DEFAULT_MAX_RETRIES
from .errors import ReceiveFailed, RetryExhausted, SendFailed
from .net import Address, Channel
from .packet import Token, is_token


class Transport(Protocol):
    def send(self, payload: bytes, dest: Address) -> None: ...

    def receive(self) -> Tuple[bytes, Address]: ...


@dataclass(slots=True)
class Metrics:
    packets_sent: int = 0
    packets_received: int = 0
    bytes_sent: int = 0
    bytes_received: int = 0
    timeouts: int = 0
    retransmits: int = 0
    start_ts: float = field(default_factory=time.monotonic)
    end_ts: float | None = None

    @property
    def duration_s(self) -> float:
        end = self.end_ts if self.end_ts is not None else time.monotonic()
        return max(0.0, end - self.start_ts)

    @property
    def throughput_mbps(self) -> float:
        if self.duration_s <= 0:
            return 0.0
        return ((self.bytes_sent + self.bytes_received) * 8 / 1_000_000) / self.duration_s


@dataclass(slots=True)
class StopAndWaitTransport:
    """Acknowledged send/receive over a datagram channel.

    One datagram is outstanding at a time. There are no sequence numbers, so a
    stale or duplicated datagram is indistinguishable from a fresh one.
    """

    udp: Channel
    max_retries: int = DEFAULT_MAX_RETRIES
    bufsize: int = BUFSIZE
    metrics: Metrics = field(default_factory=Metrics)

    def send(self, payload: bytes, dest: Address) -> None:
        if len(payload) > self.bufsize:
            raise ValueError(f"payload too large: {len(payload)}")

        for attempt in range(1, self.max_retries + 1):
            try:
                self.udp.sendto(payload, dest)
            except OSError as exc:
                raise SendFailed(f"sendto {dest} failed: {exc}") from exc
            self.metrics.packets_sent += 1
            if attempt > 1:
                self.metrics.retransmits += 1

            try:
                reply, _ = self.udp.recvfrom(self.bufsize)
            except TimeoutError:
                self.metrics.timeouts += 1
                logging.info("timeout waiting for ACK; attempt=%d/%d", attempt, self.max_retries)
                continue
            except OSError as exc:
                raise SendFailed(f"waiting for ACK from {dest} failed: {exc}") from exc

            if is_token(reply, Token.ACK):
                self.metrics.bytes_sent += len(payload)
                return
            logging.debug("non-ACK reply (%d bytes); attempt=%d/%d", len(reply), attempt, self.max_retries)

        raise RetryExhausted("send", self.max_retries)

    def receive(self) -> Tuple[bytes, Address]:
        for attempt in range(1, self.max_retries + 1):
            try:
                data, addr = self.udp.recvfrom(self.bufsize)
            except TimeoutError:
                self.metrics.timeouts += 1
                logging.info("timeout waiting for datagram; attempt=%d/%d", attempt, self.max_retries)
                continue
            except OSError as exc:
                raise ReceiveFailed(f"recvfrom failed: {exc}") from exc

            try:
                self.udp.sendto(Token.ACK.value, addr)
            except OSError as exc:
                raise SendFailed(f"ACK to {addr} failed: {exc}") from exc

            self.metrics.packets_received += 1
            self.metrics.bytes_received += len(data)
            return data, addr

        raise RetryExhausted("receive", self.max_retries)
