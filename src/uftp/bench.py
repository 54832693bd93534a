from __future__ import annotations

import hashlib
import os
import tempfile
import threading
import time
from dataclasses import dataclass

from .constants import DEFAULT_MAX_RETRIES
from .client import Client
from .net import Impairment, UdpEndpoint
from .server import Server
from .storage import FileStore
from .transport import StopAndWaitTransport

BENCH_FILENAME = "bench.bin"


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    bytes_transferred: int
    duration_s: float
    throughput_mbps: float
    retransmits: int
    timeouts: int
    intact: bool


def sha1_file(path: str) -> str:
    h = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def run_benchmark(
    *,
    size_bytes: int,
    loss_rate: float = 0.0,
    delay_ms: int = 0,
    timeout_ms: int = 250,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> BenchmarkResult:
    """put then get one file over loopback and time the round trip.

    Without sequence numbers a lost ACK duplicates a chunk, so with loss the
    fetched copy may differ: `intact` reports whether it matched.
    """
    impair = Impairment(loss_rate=loss_rate, delay_ms=delay_ms)

    with tempfile.TemporaryDirectory() as tmp:
        server_root = os.path.join(tmp, "server")
        client_root = os.path.join(tmp, "client")
        os.mkdir(server_root)
        os.mkdir(client_root)

        local = os.path.join(client_root, BENCH_FILENAME)
        with open(local, "wb") as f:
            f.write(os.urandom(size_bytes))
        original = sha1_file(local)

        server_ep = UdpEndpoint.listening("127.0.0.1", 0, timeout_ms=timeout_ms, impairment=impair)
        server = Server(
            StopAndWaitTransport(server_ep, max_retries=max_retries),
            FileStore(server_root),
        )

        def server_runner():
            try:
                server.serve_forever()
            finally:
                server_ep.close()

        t = threading.Thread(target=server_runner, daemon=True)
        t.start()

        client_ep = UdpEndpoint.ephemeral(timeout_ms=timeout_ms, impairment=impair)
        transport = StopAndWaitTransport(client_ep, max_retries=max_retries)
        client = Client(transport, server_ep.address, FileStore(client_root))
        try:
            start = time.monotonic()
            client.put(BENCH_FILENAME)
            os.remove(local)
            client.get(BENCH_FILENAME)
            duration_s = max(0.001, time.monotonic() - start)
            client.exit()
        finally:
            client_ep.close()

        t.join(timeout=10.0)
        intact = os.path.exists(local) and sha1_file(local) == original

    moved = size_bytes * 2
    return BenchmarkResult(
        bytes_transferred=moved,
        duration_s=duration_s,
        throughput_mbps=(moved * 8 / 1_000_000) / duration_s,
        retransmits=transport.metrics.retransmits,
        timeouts=transport.metrics.timeouts,
        intact=intact,
    )
