"""uftp: file transfer over UDP

A small get/put/delete/ls service layered on a stop-and-wait reliable
datagram transport:
- `transport` turns raw datagrams into acknowledged sends/receives
- `session` frames each command as an explicit per-command state machine
- `client` / `server` drive the sessions against a local `FileStore`

Control tokens are matched by exact content, so payload that equals a token
is misread as control. That is a property of the wire protocol, kept for
compatibility.
"""

__all__ = []
