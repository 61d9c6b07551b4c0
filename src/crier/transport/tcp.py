"""Direct TCP transport.

One connection carries one exchange:

    client -> server    [AUTH:<token>\\n]<message>\\n
    server -> client    OK\\n | ERR:AUTH\\n | (nothing, on malformed input)

The server handles connections strictly one after another; clients that
arrive while a command is running wait in the listen backlog.
"""

from __future__ import annotations

import logging
import socket
import threading
from typing import Iterator, Optional, Union

from ..protocol import fields
from ..protocol.envelope import Direct, Envelope
from .base import (
    AuthError,
    ConnectError,
    Delivery,
    Listener,
    ProtocolError,
    Sender,
)
from .codec import line_codec

logger = logging.getLogger(__name__)


def _direct(address: Union[Direct, str]) -> Direct:
    if isinstance(address, Direct):
        return address
    return Direct(address)


def _format_peer(peer) -> str:
    try:
        host, port = peer[0], peer[1]
    except (TypeError, IndexError):
        return str(peer)
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class Connection(Delivery):
    """One accepted connection, alive for a single exchange."""

    def __init__(self, sock: socket.socket, peer, auth: Optional[str] = None):
        self.socket = sock
        self.peer = _format_peer(peer)
        self.auth = auth
        self.reader = sock.makefile("rb")
        self.closed = False

    def open(self) -> Envelope:
        return line_codec.decode(self.reader, self.auth)

    def acknowledge(self) -> None:
        self._reply(fields.OK)

    def reject(self, error: AuthError) -> None:
        self._reply(fields.ERR_AUTH)

    def drop(self) -> None:
        self.close()

    def _reply(self, line: str) -> None:
        try:
            self.socket.sendall(line.encode(fields.ENCODING) + fields.EOL)
        except OSError as exc:
            logger.info("[%s] could not write %s: %s", self.peer, line, exc)
        finally:
            self.close()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.reader.close()
            self.socket.close()
        except OSError:
            pass


class Server(Listener):
    """Accept direct connections on a bound address."""

    # How often the accept loop wakes up to look at the stop flag.
    poll_interval = 0.25

    def __init__(self, address: Union[Direct, str], auth: Optional[str] = None, backlog: int = 16):
        self.address = _direct(address)
        self.auth = auth

        host, port = self.address.split()
        family = socket.AF_INET6 if ":" in host else socket.AF_INET

        try:
            self.socket = socket.create_server((host, port), family=family, backlog=backlog)
        except OSError as exc:
            raise ConnectError(f"Failed to bind {self.address}: {exc}") from exc

        self.socket.settimeout(self.poll_interval)
        self.port = self.socket.getsockname()[1]
        self.closed = False

    def deliveries(self, stop: Optional[threading.Event] = None) -> Iterator[Connection]:
        while not self.closed:
            if stop is not None and stop.is_set():
                return

            try:
                sock, peer = self.socket.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if self.closed:
                    return
                logger.error("Connection error: %s", exc)
                continue

            sock.settimeout(None)
            connection = Connection(sock, peer, self.auth)
            try:
                yield connection
            finally:
                connection.close()

    def close(self) -> None:
        self.closed = True
        self.socket.close()


class Client(Sender):
    """Deliver one envelope per connection and wait for the acknowledgment."""

    def __init__(self, address: Union[Direct, str]):
        self.address = _direct(address)

    def send(self, envelope: Envelope) -> None:
        host, port = self.address.split()

        try:
            sock = socket.create_connection((host, port))
        except OSError as exc:
            raise ConnectError(f"Failed to connect to {self.address}: {exc}") from exc

        with sock:
            try:
                sock.sendall(line_codec.encode(envelope))
            except OSError as exc:
                raise ConnectError(f"Failed to send to {self.address}: {exc}") from exc

            try:
                with sock.makefile("rb") as reader:
                    line = reader.readline()
            except OSError as exc:
                raise ProtocolError(f"no acknowledgment from {self.address}: {exc}") from exc

        response = line.decode(fields.ENCODING, errors="replace").rstrip()

        if response == fields.OK:
            return
        if response == fields.ERR_AUTH:
            raise AuthError(response)
        if not line:
            raise ProtocolError(f"{self.address} closed the connection without acknowledgment")
        raise ProtocolError(response)


def send(address: Union[Direct, str], envelope: Envelope) -> None:
    Client(address).send(envelope)
