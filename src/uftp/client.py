from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from .constants import BUFSIZE, DELETE, EXIT, GET, LS, PUT
from .errors import TransportError
from .net import Address
from .packet import Command
from .session import TransferResult, TransferSession
from .storage import ChunkSink, ChunkSource, FileStore
from .transport import Transport

Outcome = Union[TransferResult, list, None]


@dataclass(slots=True)
class Client:
    """Client half of the command protocol.

    Local storage failures before the command is sent abort without any
    network traffic (`StorageError`). Transport failures propagate as
    `TransportError`, except while waiting for a put/delete status, which is
    reported as a failed `TransferResult`.
    """

    transport: Transport
    server: Address
    store: FileStore
    bufsize: int = BUFSIZE

    def _session(self) -> TransferSession:
        return TransferSession(self.transport, self.server)

    def execute(self, command: Command) -> Outcome:
        if command.verb == GET:
            return self.get(command.filename)
        if command.verb == PUT:
            return self.put(command.filename)
        if command.verb == DELETE:
            return self.delete(command.filename)
        if command.verb == LS:
            return self.ls()
        return self.exit()

    def run(self, line: str) -> Outcome:
        return self.execute(Command.parse(line))

    def get(self, name: str) -> TransferResult:
        sink = ChunkSink(self.store.open_write(name))
        session = self._session()
        try:
            session.send_command(Command(GET, name))
            chunks = session.receive_stream(sink.write)
        finally:
            sink.close()
            session.finish()

        if sink.error is not None:
            return TransferResult(False, chunks, sink.nbytes, str(sink.error))
        logging.info("get %s: %d bytes in %d chunks", name, sink.nbytes, chunks)
        return TransferResult(True, chunks, sink.nbytes)

    def put(self, name: str) -> TransferResult:
        src = self.store.open_read(name)
        source = ChunkSource(src, self.bufsize)
        session = self._session()
        try:
            try:
                session.send_command(Command(PUT, name))
                chunks = session.send_stream(source)
            finally:
                src.close()

            try:
                ok = session.receive_status()
            except TransportError as exc:
                logging.warning("put %s: no status from server: %s", name, exc)
                return TransferResult(False, chunks, source.nbytes, str(exc))
        finally:
            session.finish()

        if source.error is not None:
            return TransferResult(False, chunks, source.nbytes, str(source.error))
        logging.info("put %s: %d bytes in %d chunks; server ok=%s", name, source.nbytes, chunks, ok)
        return TransferResult(ok, chunks, source.nbytes)

    def delete(self, name: str) -> TransferResult:
        session = self._session()
        try:
            session.send_command(Command(DELETE, name))
            try:
                ok = session.receive_status()
            except TransportError as exc:
                logging.warning("delete %s: no status from server: %s", name, exc)
                return TransferResult(False, message=str(exc))
        finally:
            session.finish()
        return TransferResult(ok)

    def ls(self) -> list[str]:
        names: list[str] = []
        session = self._session()
        try:
            session.send_command(Command(LS))
            session.receive_stream(lambda raw: names.append(raw.decode("utf-8", errors="replace")))
        finally:
            session.finish()
        return names

    def exit(self) -> None:
        session = self._session()
        try:
            session.send_command(Command(EXIT))
        finally:
            session.finish()
