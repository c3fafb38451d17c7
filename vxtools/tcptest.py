"""Run a TCP client against a TCP server on a local listener, for tests.

Each helper listens on *addr* (``host:port``; port ``0`` picks a free one),
runs the client on a background thread and returns once the client is done
and the listener is closed.  An exception raised by the client, or by a
server handler that has finished, is raised again by the helper.
"""

from __future__ import annotations

import socket
import threading
from typing import Any, Callable, Optional

__all__ = ["c2l", "c2s", "d2l", "d2s", "sl"]

_CLOSED_MESSAGE = "use of closed network connection"


def _parse_addr(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep:
        host, port = addr, ""
    return host.strip("[]") or "127.0.0.1", int(port or 0)


class _Listener:
    """A listening socket whose :meth:`accept` stops when it is closed."""

    _POLL = 0.05

    def __init__(self, addr: str) -> None:
        host, port = _parse_addr(addr)
        self._sock = socket.create_server((host, port))
        self._sock.settimeout(self._POLL)
        self._closed = threading.Event()
        self.addr: tuple[str, int] = self._sock.getsockname()[:2]

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def accept(self) -> socket.socket:
        """Wait for a connection; raise OSError once the listener is closed."""
        while True:
            if self._closed.is_set():
                raise OSError(_CLOSED_MESSAGE)
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                if self._closed.is_set():
                    raise OSError(_CLOSED_MESSAGE) from None
                raise
            conn.setblocking(True)
            return conn

    def close(self) -> None:
        self._closed.set()
        self._sock.close()

    def __enter__(self) -> "_Listener":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class _Errors:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.client: Optional[BaseException] = None
        self.server: Optional[BaseException] = None

    def guard(self, role: str, target: Callable[..., Any], *args: Any) -> Callable[[], None]:
        def run() -> None:
            try:
                target(*args)
            except BaseException as exc:  # noqa: BLE001 - re-raised by the caller
                with self._lock:
                    if getattr(self, role) is None:
                        setattr(self, role, exc)

        return run

    def raise_first(self) -> None:
        error = self.client or self.server
        if error is not None:
            raise error


def _start(target: Callable[[], None]) -> threading.Thread:
    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    return thread


def _serve(listener: _Listener, server: Callable[[socket.socket], Any], errors: _Errors) -> None:
    while True:
        try:
            conn = listener.accept()
        except OSError:
            if listener.closed:
                return
            raise
        _start(errors.guard("server", server, conn))


def _connect_client(listener: _Listener, client: Callable[[socket.socket], Any]) -> Callable[[], None]:
    def run() -> None:
        try:
            conn = socket.create_connection(listener.addr)
            try:
                client(conn)
            finally:
                conn.close()
        finally:
            listener.close()

    return run


def _addr_client(listener: _Listener, client: Callable[[tuple[str, int]], Any]) -> Callable[[], None]:
    def run() -> None:
        try:
            client(listener.addr)
        finally:
            listener.close()

    return run


def c2s(addr: str, server: Callable[[socket.socket], Any], client: Callable[[socket.socket], Any]) -> None:
    """Connect *client*; hand each accepted connection to *server* on its own thread."""
    errors = _Errors()
    with _Listener(addr) as listener:
        thread = _start(errors.guard("client", _connect_client(listener, client)))
        _serve(listener, server, errors)
        thread.join()
    errors.raise_first()


def c2l(addr: str, server: Callable[[_Listener], Any], client: Callable[[socket.socket], Any]) -> None:
    """Connect *client*; give the listener itself to *server*."""
    errors = _Errors()
    with _Listener(addr) as listener:
        thread = _start(errors.guard("client", _connect_client(listener, client)))
        server(listener)
        thread.join()
    errors.raise_first()


def d2s(addr: str, server: Callable[[socket.socket], Any], client: Callable[[tuple[str, int]], Any]) -> None:
    """Give *client* the listening address; hand accepted connections to *server*."""
    errors = _Errors()
    with _Listener(addr) as listener:
        thread = _start(errors.guard("client", _addr_client(listener, client)))
        _serve(listener, server, errors)
        thread.join()
    errors.raise_first()


def d2l(addr: str, server: Callable[[_Listener], Any], client: Callable[[tuple[str, int]], Any]) -> None:
    """Give *client* the listening address and *server* the listener."""
    errors = _Errors()
    with _Listener(addr) as listener:
        thread = _start(errors.guard("client", _addr_client(listener, client)))
        server(listener)
        thread.join()
    errors.raise_first()


def sl(addr: str, server: Callable[[socket.socket], Any]) -> _Listener:
    """Serve accepted connections in the background; close the returned listener to stop."""
    listener = _Listener(addr)

    def loop() -> None:
        try:
            _serve(listener, server, _Errors())
        finally:
            listener.close()

    _start(loop)
    return listener