"""A connection wrapper that counts the bytes passing through it."""

import threading
from typing import Any


class CountingConn:
    """Counts bytes written (inbound) and read (outbound) since the last query.

    Other attributes are those of the wrapped connection.
    """

    def __init__(self, conn: Any) -> None:
        self.conn = conn
        self._in = 0
        self._out = 0
        self._in_lock = threading.Lock()
        self._out_lock = threading.Lock()

    def read(self, size: int = -1) -> bytes:
        data = self.conn.read(size)
        with self._out_lock:
            self._out += len(data)
        return data

    def write(self, data: bytes) -> int:
        written = self.conn.write(data)
        count = len(data) if written is None else written
        with self._in_lock:
            self._in += count
        return count

    def in_count(self) -> int:
        """Bytes written since the last call; resets the count."""
        with self._in_lock:
            count, self._in = self._in, 0
        return count

    def out_count(self) -> int:
        """Bytes read since the last call; resets the count."""
        with self._out_lock:
            count, self._out = self._out, 0
        return count

    def __getattr__(self, name: str) -> Any:
        return getattr(self.conn, name)