from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator

from .errors import TransportError
from .net import Address
from .packet import Command, Token, is_token, parse_status, status_token
from .transport import Transport


class State(enum.Enum):
    IDLE = "idle"
    AWAITING_COMMAND_ACK = "awaiting_command_ack"
    STREAMING = "streaming"
    AWAITING_STATUS = "awaiting_status"


@dataclass(frozen=True, slots=True)
class TransferResult:
    ok: bool
    chunks: int = 0
    nbytes: int = 0
    message: str = ""


@dataclass(slots=True)
class TransferSession:
    """State of one command exchange with one peer.

    Create a fresh session per command. Each operation moves the session into
    its state for the duration of the call; a transport failure drops it back
    to IDLE before the error propagates.
    """

    transport: Transport
    peer: Address
    state: State = State.IDLE
    history: list[State] = field(default_factory=lambda: [State.IDLE])

    def _enter(self, state: State) -> None:
        if state is self.state:
            return
        logging.debug("session %s: %s -> %s", self.peer, self.state.value, state.value)
        self.state = state
        self.history.append(state)

    @contextmanager
    def _phase(self, state: State) -> Iterator[None]:
        self._enter(state)
        try:
            yield
        except TransportError:
            self._enter(State.IDLE)
            raise

    def finish(self) -> None:
        self._enter(State.IDLE)

    def send_command(self, command: Command) -> None:
        with self._phase(State.AWAITING_COMMAND_ACK):
            self.transport.send(command.to_bytes(), self.peer)

    def send_stream(self, chunks: Iterable[bytes]) -> int:
        """Send every chunk, then FIN. Returns the number of payload chunks."""
        count = 0
        with self._phase(State.STREAMING):
            for chunk in chunks:
                self.transport.send(chunk, self.peer)
                count += 1
            self.transport.send(Token.FIN.value, self.peer)
        return count

    def receive_stream(self, on_chunk: Callable[[bytes], None]) -> int:
        """Hand every datagram before FIN to `on_chunk`. Returns the chunk count."""
        count = 0
        with self._phase(State.STREAMING):
            while True:
                data, _ = self.transport.receive()
                if is_token(data, Token.FIN):
                    break
                on_chunk(data)
                count += 1
        return count

    def send_status(self, ok: bool) -> None:
        # Terminal step of put/delete on the serving side; no state of its own.
        with self._phase(self.state):
            self.transport.send(status_token(ok), self.peer)

    def receive_status(self) -> bool:
        with self._phase(State.AWAITING_STATUS):
            data, _ = self.transport.receive()
        return parse_status(data)
