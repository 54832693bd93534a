from __future__ import annotations

import pytest

from uftp.errors import ReceiveFailed, RetryExhausted, SendFailed
from uftp.transport import StopAndWaitTransport

PEER = ("10.0.0.2", 9000)


class ScriptedChannel:
    """Replies are handed out in order; an exception instance is raised instead.

    Once the script runs out every receive times out.
    """

    def __init__(self, replies=(), send_error=None):
        self.replies = list(replies)
        self.send_error = send_error
        self.sent = []

    def sendto(self, data, addr):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((data, addr))

    def recvfrom(self, bufsize=65535):
        if not self.replies:
            raise TimeoutError("timed out")
        r = self.replies.pop(0)
        if isinstance(r, BaseException):
            raise r
        return r[:bufsize], PEER


def test_send_returns_on_ack():
    ch = ScriptedChannel([b"ACK"])
    t = StopAndWaitTransport(ch)
    t.send(b"hello", PEER)
    assert ch.sent == [(b"hello", PEER)]
    assert t.metrics.retransmits == 0
    assert t.metrics.bytes_sent == 5


def test_send_gives_up_after_exactly_five_attempts():
    ch = ScriptedChannel()
    t = StopAndWaitTransport(ch)
    with pytest.raises(RetryExhausted) as exc_info:
        t.send(b"data", PEER)
    assert len(ch.sent) == 5
    assert exc_info.value.attempts == 5
    assert t.metrics.timeouts == 5
    assert t.metrics.retransmits == 4


def test_retry_bound_is_configurable():
    ch = ScriptedChannel()
    with pytest.raises(RetryExhausted):
        StopAndWaitTransport(ch, max_retries=2).send(b"data", PEER)
    assert len(ch.sent) == 2


def test_send_retries_on_anything_but_ack():
    ch = ScriptedChannel([b"ACKK", b"", b"some payload", b"ACK"])
    t = StopAndWaitTransport(ch)
    t.send(b"data", PEER)
    assert len(ch.sent) == 4


def test_send_never_accepts_non_ack_replies():
    ch = ScriptedChannel([b"ACKK", b"", b"ack", b"FIN", b"SUCCESS", b"ACK"])
    with pytest.raises(RetryExhausted):
        StopAndWaitTransport(ch).send(b"data", PEER)
    assert len(ch.sent) == 5


def test_timeout_then_ack():
    ch = ScriptedChannel([TimeoutError(), b"ACK"])
    t = StopAndWaitTransport(ch)
    t.send(b"data", PEER)
    assert len(ch.sent) == 2
    assert t.metrics.timeouts == 1


def test_send_fault_is_not_retried():
    ch = ScriptedChannel(send_error=OSError("network unreachable"))
    with pytest.raises(SendFailed):
        StopAndWaitTransport(ch).send(b"data", PEER)


def test_refused_while_waiting_for_ack_is_send_failure():
    ch = ScriptedChannel([ConnectionRefusedError()])
    with pytest.raises(SendFailed):
        StopAndWaitTransport(ch).send(b"data", PEER)
    assert len(ch.sent) == 1


def test_send_rejects_oversized_payload():
    ch = ScriptedChannel([b"ACK"])
    with pytest.raises(ValueError):
        StopAndWaitTransport(ch).send(b"x" * 1025, PEER)
    assert ch.sent == []


def test_receive_acks_the_sender():
    ch = ScriptedChannel([b"chunk"])
    t = StopAndWaitTransport(ch)
    data, addr = t.receive()
    assert data == b"chunk"
    assert addr == PEER
    assert ch.sent == [(b"ACK", PEER)]


def test_receive_returns_exact_length():
    ch = ScriptedChannel([b"abc"])
    data, _ = StopAndWaitTransport(ch).receive()
    assert len(data) == 3


def test_receive_retries_timeouts_within_bound():
    ch = ScriptedChannel([TimeoutError(), TimeoutError(), b"late"])
    t = StopAndWaitTransport(ch)
    data, _ = t.receive()
    assert data == b"late"
    assert t.metrics.timeouts == 2


def test_receive_gives_up_after_bound():
    ch = ScriptedChannel()
    with pytest.raises(RetryExhausted):
        StopAndWaitTransport(ch).receive()
    assert ch.sent == []


def test_receive_fault_is_not_retried():
    ch = ScriptedChannel([OSError("bad fd"), b"never read"])
    with pytest.raises(ReceiveFailed):
        StopAndWaitTransport(ch).receive()
    assert ch.replies == [b"never read"]


def test_receive_fails_when_ack_cannot_be_sent():
    ch = ScriptedChannel([b"chunk"], send_error=OSError("down"))
    with pytest.raises(SendFailed):
        StopAndWaitTransport(ch).receive()
