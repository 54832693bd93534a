from __future__ import annotations

import enum
from dataclasses import dataclass

from . import constants
from .constants import BUFSIZE, VERBS, VERBS_WITH_FILENAME
from .errors import CommandError


class Token(bytes, enum.Enum):
    ACK = constants.ACK
    FIN = constants.FIN
    SUCCESS = constants.SUCCESS
    FAIL = constants.FAIL


def is_token(raw: bytes, token: Token) -> bool:
    # Exact content match: a datagram is either a token or payload, nothing
    # on the wire tells them apart.
    return bytes(raw) == token.value


def status_token(ok: bool) -> bytes:
    return (Token.SUCCESS if ok else Token.FAIL).value


def parse_status(raw: bytes) -> bool:
    return is_token(raw, Token.SUCCESS)


@dataclass(frozen=True, slots=True)
class Command:
    verb: str
    filename: str | None = None

    @staticmethod
    def parse(line: str) -> "Command":
        """Parse `<verb>[ <filename>]`; the filename is the rest of the line."""
        line = line.rstrip("\r\n")
        verb, _, rest = line.partition(" ")
        if verb not in VERBS:
            raise CommandError(f"unknown command: {verb!r}")
        filename = rest or None
        if verb in VERBS_WITH_FILENAME and filename is None:
            raise CommandError(f"{verb} requires a filename")
        if verb not in VERBS_WITH_FILENAME:
            filename = None
        cmd = Command(verb, filename)
        cmd.to_bytes()
        return cmd

    @staticmethod
    def from_bytes(raw: bytes) -> "Command":
        return Command.parse(raw.decode("utf-8", errors="replace"))

    def to_bytes(self) -> bytes:
        text = self.verb if self.filename is None else f"{self.verb} {self.filename}"
        raw = text.encode("utf-8")
        if len(raw) > BUFSIZE:
            raise CommandError(f"command too long: {len(raw)} bytes")
        return raw

    def __str__(self) -> str:
        return self.verb if self.filename is None else f"{self.verb} {self.filename}"
