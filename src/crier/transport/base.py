"""Transport interface.

This is the (small) contract that transport implementations should follow.
It lives outside :mod:`crier.protocol` so the protocol remains transport-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator, Optional
import threading

from ..protocol.envelope import Envelope


# Transport agnostic exceptions

class TransportError(Exception):
    """Base class for all transport-layer errors."""


class ConnectError(TransportError):
    """The transport could not bind, connect, or reach its broker."""


class AuthError(TransportError):
    """The auth tag was missing, mismatched, or rejected by the peer."""


class ProtocolError(TransportError):
    """An envelope or acknowledgment was malformed or incomplete."""


class TransportTimeout(TransportError, TimeoutError):
    """A publish confirmation did not arrive in time."""


class Delivery(ABC):
    """One inbound exchange, as seen by the listen loop.

    A direct delivery is an accepted connection; a relay delivery is one
    message pulled off the broker subscription.
    """

    peer: str = ''

    @abstractmethod
    def open(self) -> Envelope:
        """Decode the envelope, raising AuthError or ProtocolError."""

    @abstractmethod
    def acknowledge(self) -> None:
        """Confirm receipt once dispatch was attempted."""

    @abstractmethod
    def reject(self, error: AuthError) -> None:
        """Refuse an envelope that failed authentication."""

    @abstractmethod
    def drop(self) -> None:
        """Discard a malformed exchange without answering."""


class Listener(ABC):
    """Receiving side of a transport."""

    @abstractmethod
    def deliveries(self, stop: Optional[threading.Event] = None) -> Iterator[Delivery]:
        """Lazily yield inbound deliveries until *stop* is set."""

    @abstractmethod
    def close(self) -> None:
        """Release the socket or broker session."""

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class Sender(ABC):
    """Sending side of a transport."""

    @abstractmethod
    def send(self, envelope: Envelope) -> None:
        """Deliver one envelope, raising a TransportError on failure."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
