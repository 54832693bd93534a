from __future__ import annotations


class TransportError(Exception):
    """A reliable send/receive step could not be completed."""


class RetryExhausted(TransportError):
    def __init__(self, op: str, attempts: int):
        super().__init__(f"{op}: no success after {attempts} attempts")
        self.op = op
        self.attempts = attempts


class SendFailed(TransportError):
    pass


class ReceiveFailed(TransportError):
    pass


class StorageError(Exception):
    """A file or directory operation failed on the local store."""


class CommandError(ValueError):
    pass
