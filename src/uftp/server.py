from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .constants import BUFSIZE, DELETE, EXIT, GET, LS, PUT
from .errors import CommandError, RetryExhausted, SendFailed, StorageError, TransportError
from .net import Address
from .packet import Command
from .session import TransferSession
from .storage import ChunkSink, ChunkSource, FileStore
from .transport import Transport


@dataclass(slots=True)
class Server:
    transport: Transport
    store: FileStore
    bufsize: int = BUFSIZE

    def serve_forever(self) -> None:
        """Serve commands one at a time until a client sends `exit`.

        Having nobody to talk to is not an error: retry exhaustion while idle
        just restarts the wait. `ReceiveFailed` is fatal and propagates.
        """
        logging.info("serving %s", self.store.root)
        while True:
            try:
                raw, peer = self.transport.receive()
            except RetryExhausted:
                logging.debug("no command received; still listening")
                continue
            except SendFailed as exc:
                logging.warning("could not acknowledge command: %s", exc)
                continue

            try:
                command = Command.from_bytes(raw)
            except CommandError as exc:
                logging.warning("INVALID COMMAND from %s: %s", peer, exc)
                continue

            logging.info("received command from %s: %s", peer, command)
            if not self.handle(command, peer):
                break
        logging.info("exit received; shutting down")

    def handle(self, command: Command, peer: Address) -> bool:
        """Run one command to completion. Returns False for `exit`."""
        if command.verb == EXIT:
            return False

        handlers = {
            GET: self._get,
            PUT: self._put,
            DELETE: self._delete,
            LS: self._ls,
        }
        session = TransferSession(self.transport, peer)
        try:
            handlers[command.verb](session, command)
        except TransportError as exc:
            logging.warning("%s failed: %s", command, exc)
        finally:
            session.finish()
        return True

    def _get(self, session: TransferSession, command: Command) -> None:
        try:
            src = self.store.open_read(command.filename)
        except StorageError as exc:
            # Only FIN: indistinguishable from an empty file on the client.
            logging.warning("%s", exc)
            session.send_stream(())
            return

        source = ChunkSource(src, self.bufsize)
        with src:
            chunks = session.send_stream(source)
        logging.info("sent %s: %d bytes in %d chunks", command.filename, source.nbytes, chunks)

    def _put(self, session: TransferSession, command: Command) -> None:
        try:
            sink = ChunkSink(self.store.open_write(command.filename))
        except StorageError as exc:
            logging.warning("%s", exc)
            sink = ChunkSink(None, error=exc)

        failed = False
        try:
            chunks = session.receive_stream(sink.write)
            logging.info("received %s: %d bytes in %d chunks", command.filename, sink.nbytes, chunks)
        except TransportError as exc:
            logging.warning("receiving %s failed: %s", command.filename, exc)
            failed = True
        finally:
            sink.close()

        session.send_status(not failed and sink.error is None)

    def _delete(self, session: TransferSession, command: Command) -> None:
        try:
            self.store.remove(command.filename)
        except StorageError as exc:
            logging.info("%s does not exist: %s", command.filename, exc)
            session.send_status(False)
            return
        logging.info("%s was successfully removed", command.filename)
        session.send_status(True)

    def _ls(self, session: TransferSession, command: Command) -> None:
        try:
            names = self.store.list_entries()
        except StorageError as exc:
            logging.warning("%s", exc)
            names = []
        # raw on-disk bytes; names need not be valid UTF-8
        count = session.send_stream(os.fsencode(name) for name in names)
        logging.info("listed %d entries", count)
