from __future__ import annotations

import argparse
import json
import logging
import socket
import sys
from typing import Iterable, TextIO

from .bench import run_benchmark
from .client import Client
from .constants import DEFAULT_LISTEN_HOST, DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT_MS, DELETE, EXIT, GET, LS, PUT
from .errors import CommandError, StorageError, TransportError
from .net import Impairment, UdpEndpoint
from .packet import Command
from .server import Server
from .storage import FileStore
from .transport import StopAndWaitTransport

MENU = """Below are available commands:
get [filename]      - Requests file from server.
put [filename]      - Sends file to server.
delete [filename]   - Deletes file from server.
ls                  - Lists files on server.
exit                - Close the server."""


def cmd_server(args: argparse.Namespace) -> int:
    impair = Impairment(args.loss_rate, args.delay_ms)
    try:
        udp = UdpEndpoint.listening(args.host, args.port, timeout_ms=args.timeout_ms, impairment=impair)
    except OSError as exc:
        print(f"ERROR on binding {args.host}:{args.port}: {exc}", file=sys.stderr)
        return 1

    print(f"Listening on port {args.port}...")
    try:
        Server(StopAndWaitTransport(udp, max_retries=args.retries), FileStore(args.root)).serve_forever()
    except TransportError as exc:
        print(f"ERROR in recvfrom: {exc}", file=sys.stderr)
        return 1
    finally:
        print("Closing socket connection...")
        udp.close()
    return 0


def report(command: Command, outcome, out: TextIO) -> None:
    if command.verb == GET:
        if outcome.ok:
            print(f"File write completed ({outcome.nbytes} bytes).", file=out)
        else:
            print(f"File write failed: {outcome.message}", file=out)
    elif command.verb == PUT:
        print("File transfer complete." if outcome.ok else "File transfer failed.", file=out)
    elif command.verb == DELETE:
        print("File deletion complete." if outcome.ok else "File deletion failed.", file=out)
    elif command.verb == LS:
        print("Available files from server:", file=out)
        for name in outcome:
            print(name, file=out)


def run_client(client: Client, lines: Iterable[str], out: TextIO = sys.stdout) -> None:
    """Execute command lines until `exit` or the input runs out.

    A failed command is reported and the loop moves on to the next line.
    """
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            command = Command.parse(line)
        except CommandError as exc:
            print(f"INVALID COMMAND: {exc}", file=out)
            continue

        try:
            outcome = client.execute(command)
        except StorageError as exc:
            print(f"ERROR: {exc}", file=out)
            continue
        except TransportError as exc:
            print(f"ERROR: {command.verb} failed: {exc}", file=out)
            if command.verb == EXIT:
                break
            continue

        if command.verb == EXIT:
            break
        report(command, outcome, out)
        print(file=out)


def cmd_client(args: argparse.Namespace) -> int:
    try:
        host = socket.gethostbyname(args.host)
    except OSError as exc:
        print(f"ERROR, no such host as {args.host}: {exc}", file=sys.stderr)
        return 1

    impair = Impairment(args.loss_rate, args.delay_ms)
    try:
        udp = UdpEndpoint.ephemeral(timeout_ms=args.timeout_ms, impairment=impair)
    except OSError as exc:
        print(f"ERROR opening socket: {exc}", file=sys.stderr)
        return 1

    client = Client(StopAndWaitTransport(udp, max_retries=args.retries), (host, args.port), FileStore(args.root))
    try:
        if args.command:
            run_client(client, args.command)
        else:
            print(MENU)
            run_client(client, _prompt_lines(sys.stdin))
    finally:
        print("Closing socket connection...")
        udp.close()
    return 0


def _prompt_lines(stream: TextIO) -> Iterable[str]:
    while True:
        print("enter a command:")
        line = stream.readline()
        if not line:
            return
        yield line


def cmd_bench(args: argparse.Namespace) -> int:
    r = run_benchmark(
        size_bytes=args.size_bytes,
        loss_rate=args.loss_rate,
        delay_ms=args.delay_ms,
        timeout_ms=args.timeout_ms,
        max_retries=args.retries,
    )
    payload = {"role": "bench", **{k: getattr(r, k) for k in r.__dataclass_fields__}}
    print(json.dumps(payload, indent=2) if args.json else payload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="uftp", description="File transfer over UDP (get/put/delete/ls).")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(x: argparse.ArgumentParser) -> None:
        x.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS)
        x.add_argument("--retries", type=int, default=DEFAULT_MAX_RETRIES)
        x.add_argument("--loss-rate", type=float, default=0.0, help="simulate packet loss")
        x.add_argument("--delay-ms", type=int, default=0, help="simulate per-packet delay")

    server = sub.add_parser("server", help="serve files from a directory")
    add_common(server)
    server.add_argument("--host", default=DEFAULT_LISTEN_HOST)
    server.add_argument("--port", type=int, required=True)
    server.add_argument("--root", default=".")
    server.set_defaults(func=cmd_server)

    client = sub.add_parser("client", help="issue commands to a server")
    add_common(client)
    client.add_argument("--host", required=True)
    client.add_argument("--port", type=int, required=True)
    client.add_argument("--root", default=".", help="local directory for get/put")
    client.add_argument("-c", "--command", action="append", help="run this command instead of prompting (repeatable)")
    client.set_defaults(func=cmd_client)

    bench = sub.add_parser("bench", help="loopback put/get benchmark")
    add_common(bench)
    bench.set_defaults(timeout_ms=250)
    bench.add_argument("--size-bytes", type=int, default=1_000_000)
    bench.add_argument("--json", action="store_true")
    bench.set_defaults(func=cmd_bench)

    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
