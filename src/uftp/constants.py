from __future__ import annotations

BUFSIZE = 1024  # max packet capacity, also the receive buffer
DEFAULT_MAX_RETRIES = 5
DEFAULT_TIMEOUT_MS = 10_000

ACK = b"ACK"
FIN = b"FIN"
SUCCESS = b"SUCCESS"
FAIL = b"FAIL"

GET = "get"
PUT = "put"
DELETE = "delete"
LS = "ls"
EXIT = "exit"

VERBS = frozenset({GET, PUT, DELETE, LS, EXIT})
VERBS_WITH_FILENAME = frozenset({GET, PUT, DELETE})

DEFAULT_LISTEN_HOST = "0.0.0.0"
