from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO, Iterator

from .errors import StorageError


class FileStore:
    """Files addressed by name relative to one root directory."""

    def __init__(self, root: str | os.PathLike[str] = "."):
        self.root = Path(root).resolve()

    def resolve(self, name: str) -> Path:
        if not name or os.path.isabs(name):
            raise StorageError(f"invalid filename: {name!r}")
        path = (self.root / name).resolve()
        if path != self.root and self.root not in path.parents:
            raise StorageError(f"filename escapes store: {name!r}")
        return path

    def open_read(self, name: str) -> BinaryIO:
        try:
            return open(self.resolve(name), "rb")
        except OSError as exc:
            raise StorageError(f"cannot open {name!r} for reading: {exc}") from exc

    def open_write(self, name: str) -> BinaryIO:
        try:
            return open(self.resolve(name), "wb")
        except OSError as exc:
            raise StorageError(f"cannot create {name!r}: {exc}") from exc

    def remove(self, name: str) -> None:
        try:
            os.remove(self.resolve(name))
        except OSError as exc:
            raise StorageError(f"cannot remove {name!r}: {exc}") from exc

    def list_entries(self) -> list[str]:
        try:
            return sorted(os.listdir(self.root))
        except OSError as exc:
            raise StorageError(f"cannot list {self.root}: {exc}") from exc


def read_chunks(stream: BinaryIO, size: int) -> Iterator[bytes]:
    while True:
        try:
            chunk = stream.read(size)
        except OSError as exc:
            raise StorageError(f"read failed: {exc}") from exc
        if not chunk:
            return
        yield chunk


def write_chunk(stream: BinaryIO, data: bytes) -> None:
    try:
        stream.write(data)
    except OSError as exc:
        raise StorageError(f"write failed: {exc}") from exc


class ChunkSource:
    """Iterates a stream in chunks, stopping at the first read error.

    The error is kept in `error` so the stream can still be terminated
    normally on the wire.
    """

    def __init__(self, stream: BinaryIO | None, size: int):
        self.stream = stream
        self.size = size
        self.nbytes = 0
        self.error: StorageError | None = None

    def __iter__(self) -> Iterator[bytes]:
        if self.stream is None:
            return
        try:
            for chunk in read_chunks(self.stream, self.size):
                self.nbytes += len(chunk)
                yield chunk
        except StorageError as exc:
            logging.warning("%s", exc)
            self.error = exc


class ChunkSink:
    """Appends chunks to a stream; after the first failure it discards them."""

    def __init__(self, stream: BinaryIO | None, error: StorageError | None = None):
        self.stream = stream
        self.nbytes = 0
        self.error = error

    def write(self, data: bytes) -> None:
        if self.stream is None or self.error is not None:
            return
        try:
            write_chunk(self.stream, data)
        except StorageError as exc:
            logging.warning("%s", exc)
            self.error = exc
            return
        self.nbytes += len(data)

    def close(self) -> None:
        if self.stream is None:
            return
        try:
            self.stream.close()
        except OSError as exc:
            if self.error is None:
                self.error = StorageError(f"close failed: {exc}")
