""" Immutable descriptions of what moves between a sender and a listener
    (an :class:`Envelope`) and of the one action a process performs (an
    :class:`Operation`). Neither class knows how it is represented on the
    wire; that is the job of :mod:`crier.transport.codec`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Union


class ConfigurationError(ValueError):
    """An :class:`Operation` is incomplete and cannot be performed."""


@dataclass(frozen=True)
class Envelope:
    """ The logical (auth, message) pair. The *auth* tag is None when the
        sending side was not configured with a token. The *message* is a
        single line of text; a newline is rejected here so that
        the direct transport never has to guess where a message ends.
    """

    auth: Optional[str]
    message: str

    def __post_init__(self):
        if '\n' in self.message:
            raise ValueError('envelope message must be a single line')


class Role(enum.Enum):
    LISTENER = 'listener'
    SENDER = 'sender'


@dataclass(frozen=True)
class Direct:
    """ Point-to-point transport addressed by a ``host:port`` string. IPv6
        hosts may be bracketed, as in ``[::1]:5555``.
    """

    address: str

    def split(self):
        """ Return the (host, port) tuple for this address, raising
            :class:`ConfigurationError` if it cannot be parsed.
        """

        address = (self.address or '').strip()
        if ':' not in address:
            raise ConfigurationError('address must be host:port: %r' % (self.address,))

        host, port = address.rsplit(':', 1)
        if host.startswith('[') and host.endswith(']'):
            host = host[1:-1]

        try:
            port = int(port)
        except ValueError:
            raise ConfigurationError('invalid port in address: %r' % (self.address,))

        if port < 0 or port > 65535:
            raise ConfigurationError('port out of range in address: %r' % (self.address,))

        return host, port

    @property
    def host(self) -> str:
        return self.split()[0]

    @property
    def port(self) -> int:
        return self.split()[1]

    def __str__(self):
        return self.address


@dataclass(frozen=True)
class Relay:
    """Publish/subscribe transport through a broker, addressed by topic."""

    broker: str
    port: int
    topic: str

    def __str__(self):
        return '%s:%d/%s' % (self.broker, self.port, self.topic)


Transport = Union[Direct, Relay]


@dataclass(frozen=True)
class Operation:
    """ One fully resolved listen or send action. For a sender the *payload*
        is the literal message; for a listener it is a command template with
        zero or more ``{}`` placeholders.
    """

    role: Role
    transport: Optional[Transport]
    payload: str
    auth: Optional[str] = None

    def validate(self) -> None:
        """ Raise :class:`ConfigurationError` if this operation cannot be
            performed. No network activity occurs here.
        """

        transport = self.transport

        if transport is None:
            raise ConfigurationError('no transport specified')

        if isinstance(transport, Direct):
            transport.split()
        elif isinstance(transport, Relay):
            if not transport.broker:
                raise ConfigurationError('no broker specified')
            if not transport.topic:
                raise ConfigurationError('no topic specified')
            try:
                port = int(transport.port)
            except (TypeError, ValueError):
                raise ConfigurationError('invalid broker port: %r' % (transport.port,))
            if port <= 0 or port > 65535:
                raise ConfigurationError('broker port out of range: %d' % (port,))
        else:
            raise ConfigurationError('unknown transport: %r' % (transport,))

        if not self.payload:
            if self.role is Role.SENDER:
                raise ConfigurationError('no message specified')
            raise ConfigurationError('no command template specified')

        if self.role is Role.SENDER:
            # Constructing the envelope enforces the single-line rule.
            try:
                self.envelope()
            except ValueError as error:
                raise ConfigurationError(str(error))

    def envelope(self) -> Envelope:
        return Envelope(self.auth, self.payload)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
