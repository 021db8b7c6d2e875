"""Registry of connected clients, used to shut the server down cleanly."""

from __future__ import annotations

import socket
import threading
from typing import Any


class ClientRegistry:
    """Tracks live client connections and lets a caller wait until none remain."""

    def __init__(self) -> None:
        self._clients: list[Any] = []
        self._changed = threading.Condition()

    def __len__(self) -> int:
        with self._changed:
            return len(self._clients)

    def register(self, conn: Any) -> None:
        """Record a connection as active."""
        with self._changed:
            self._clients.append(conn)
            self._changed.notify_all()

    def unregister(self, conn: Any) -> None:
        """Forget a connection; raise KeyError if it was not registered."""
        with self._changed:
            for index, client in enumerate(self._clients):
                if client is conn:
                    del self._clients[index]
                    break
            else:
                raise KeyError(conn)
            if not self._clients:
                self._changed.notify_all()

    def wait_for_empty(self, timeout: float | None = None) -> bool:
        """Block until no clients are registered; False if the timeout expired."""
        with self._changed:
            return self._changed.wait_for(lambda: not self._clients, timeout)

    def shutdown_all(self) -> None:
        """Shut down the reading side of every registered connection.

        Service threads see end of input and unregister themselves.
        """
        with self._changed:
            clients = list(self._clients)
        for conn in clients:
            try:
                conn.shutdown(socket.SHUT_RD)
            except OSError:
                pass