"""Send HTML mail over one reusable SMTP connection.

The connection is opened on first use, upgraded with STARTTLS when the
server offers it, authenticated with ``AUTH PLAIN`` when the server asks
for authentication, and reopened when the server has dropped it.
"""

from __future__ import annotations

import json
import smtplib
import ssl
import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

__all__ = ["Info", "PlainAuth", "Smtp", "SmtpError", "build_message"]


class SmtpError(Exception):
    """A configuration, state or protocol error of :class:`Smtp`."""


class PlainAuth:
    """The ``PLAIN`` authentication mechanism, bound to one host name."""

    def __init__(self, identity: str, username: str, password: str, host: str) -> None:
        self.identity = identity
        self.username = username
        self.password = password
        self.host = host

    def start(self, server_name: str) -> tuple[str, bytes]:
        """Return the mechanism name and initial response for *server_name*."""
        if server_name != self.host:
            raise SmtpError("wrong host name")
        response = f"{self.identity}\x00{self.username}\x00{self.password}".encode()
        return "PLAIN", response

    def next(self, from_server: bytes, more: bool) -> bytes:
        """Answer a server challenge; ``PLAIN`` expects none and answers with nothing."""
        if more:
            raise SmtpError("unexpected server challenge")
        return b""


@dataclass
class Info:
    """Connection settings.

    *server* is ``host:port``; *host* is the name used for TLS and
    authentication and defaults to the host part of *server*.  With *tls*
    set the connection is TLS from the start.
    """

    server: str = ""
    host: str = ""
    user_name: str = ""
    password: str = ""
    from_email: str = ""
    tls: Optional[ssl.SSLContext] = None
    extra: dict[str, Any] = field(default_factory=dict)


_CONFIG_KEYS = {
    "server": "server",
    "host": "host",
    "username": "user_name",
    "user_name": "user_name",
    "password": "password",
    "fromemail": "from_email",
    "from_email": "from_email",
    "extra": "extra",
}


def _tls_context(value: Any) -> Optional[ssl.SSLContext]:
    if not value:
        return None
    context = ssl.create_default_context()
    if isinstance(value, dict):
        options = {key.lower(): item for key, item in value.items()}
        if options.get("insecureskipverify"):
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
    return context


def _split_host_port(server: str) -> tuple[str, int]:
    host, sep, port = server.rpartition(":")
    if not sep or not port.isdigit():
        raise SmtpError("Server field is incorrect, expected host:port")
    return host.strip("[]"), int(port)


def build_message(from_email: str, to: Iterable[str], title: str, body: str) -> str:
    """Return the message text sent for an HTML mail."""
    return (
        f"From: {from_email}\r\n"
        f"To: {';'.join(to)}\r\n"
        f"Subject: {title}\r\n"
        "Content-Type: text/html; charset=UTF-8\r\n"
        "\r\n"
        f"{body}"
    )


class Smtp:
    """A mail sender holding one SMTP connection; safe to share between threads."""

    def __init__(self, info: Optional[Info] = None) -> None:
        self.info = info
        self._client: Optional[smtplib.SMTP] = None
        self._closed = False
        self._lock = threading.Lock()

    def __enter__(self) -> "Smtp":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def open_config(self, path: str) -> None:
        """Load settings from a JSON file; keys match :class:`Info` fields case-insensitively."""
        with open(path, encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise SmtpError("configuration must be a JSON object")
        info = self.info if self.info is not None else Info()
        for key, value in data.items():
            lowered = key.lower()
            if lowered == "tls":
                info.tls = _tls_context(value)
            elif lowered in _CONFIG_KEYS:
                setattr(info, _CONFIG_KEYS[lowered], value if value is not None else "")
        self.info = info

    def _connect(self) -> smtplib.SMTP:
        info = self.info
        if info is None:
            raise SmtpError("configuration not loaded")
        server_host, port = _split_host_port(info.server)
        host = info.host or server_host

        if info.tls is None:
            client = smtplib.SMTP(server_host, port, local_hostname="localhost")
        else:
            client = smtplib.SMTP_SSL(
                server_host, port, local_hostname="localhost", context=info.tls
            )
        try:
            client.ehlo()
            if info.tls is None and client.has_extn("starttls"):
                client.starttls(context=ssl.create_default_context())
                client.ehlo()
            if client.has_extn("auth"):
                auth = PlainAuth("", info.user_name, info.password, host)
                mechanism, response = auth.start(host)

                def answer(challenge: Optional[bytes] = None) -> str:
                    if challenge is None:
                        return response.decode()
                    return auth.next(challenge, True).decode()

                client.auth(mechanism, answer)
        except BaseException:
            client.close()
            raise
        return client

    def _connection(self) -> smtplib.SMTP:
        if self._closed:
            raise SmtpError("smtp has been closed")
        if self._client is None:
            self._client = self._connect()
        return self._client

    def _reset(self) -> smtplib.SMTP:
        client = self._connection()
        try:
            code, message = client.rset()
        except (smtplib.SMTPServerDisconnected, OSError):
            client.close()
            self._client = None
            client = self._connection()
            code, message = client.rset()
        if code != 250:
            raise SmtpError(f"RSET failed: {code} {message!r}")
        return client

    def send(self, to: list[str], title: str, body: str) -> None:
        """Send an HTML mail from the configured address to every address in *to*."""
        with self._lock:
            client = self._reset()
            assert self.info is not None
            code, message = client.mail(self.info.from_email)
            if code != 250:
                raise SmtpError(f"MAIL failed: {code} {message!r}")
            for address in to:
                code, message = client.rcpt(address)
                if code not in (250, 251):
                    raise SmtpError(f"RCPT {address} failed: {code} {message!r}")
            text = build_message(self.info.from_email, to, title, body)
            client.data(text.encode("utf-8"))

    def close(self) -> None:
        """Quit the session; later sends fail."""
        with self._lock:
            self._closed = True
            client, self._client = self._client, None
            if client is not None:
                client.quit()