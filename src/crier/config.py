""" Resolve command line arguments and environment defaults into a single
    :class:`crier.protocol.Operation`. This is the only place that reads the
    environment; the delivery core only ever sees the resolved operation.

    Recognized environment variables:

    ``CRIER_AMQP_HOST``
        Relay broker host when ``--broker`` is not given (default localhost).
    ``CRIER_AMQP_PORT``
        Relay broker port when ``--port`` is not given (default 5672).
    ``CRIER_TOPIC``
        Relay topic when ``--subscribe``/``--publish`` is given no topic.
    ``CRIER_AUTH``
        Auth token when ``--auth`` is not given.
    ``CRIER_LOG_LEVEL``
        Logging level name (default WARNING).
"""

from dataclasses import dataclass
import os
from typing import Optional

from .protocol.envelope import ConfigurationError, Direct, Operation, Relay, Role

DEFAULT_HOST = 'localhost'
DEFAULT_PORT = 5672
DEFAULT_TOPIC = 'crier'
DEFAULT_LOG_LEVEL = 'WARNING'


@dataclass(frozen=True)
class Settings:

    broker: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    topic: str = DEFAULT_TOPIC
    auth: Optional[str] = None
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_environ(cls, environ=None):
        if environ is None:
            environ = os.environ

        port = environ.get('CRIER_AMQP_PORT', str(DEFAULT_PORT))
        try:
            port = int(port)
        except ValueError:
            raise ConfigurationError('CRIER_AMQP_PORT is not a number: %r' % (port,))

        auth = environ.get('CRIER_AUTH') or None

        return cls(broker=environ.get('CRIER_AMQP_HOST', DEFAULT_HOST),
                   port=port,
                   topic=environ.get('CRIER_TOPIC', DEFAULT_TOPIC),
                   auth=auth,
                   log_level=environ.get('CRIER_LOG_LEVEL', DEFAULT_LOG_LEVEL))


def resolve(arguments, settings=None):
    """ Build an :class:`Operation` from parsed *arguments* (any object with
        the attributes produced by :func:`crier.cli.parser`), falling back
        to *settings* for anything not given explicitly.
    """

    if settings is None:
        settings = Settings.from_environ()

    auth = arguments.auth
    if auth is None:
        auth = settings.auth

    broker = arguments.broker or settings.broker
    port = arguments.port if arguments.port is not None else settings.port

    message = arguments.message
    if message is not None and message.endswith('\n'):
        message = message[:-1]
        if message.endswith('\r'):
            message = message[:-1]

    if arguments.listen is not None:
        role, transport = Role.LISTENER, Direct(arguments.listen)
    elif arguments.send is not None:
        role, transport = Role.SENDER, Direct(arguments.send)
    elif arguments.subscribe is not None:
        role = Role.LISTENER
        transport = Relay(broker, port, arguments.subscribe or settings.topic)
    elif arguments.publish is not None:
        role = Role.SENDER
        transport = Relay(broker, port, arguments.publish or settings.topic)
    else:
        raise ConfigurationError('one of --listen, --send, --subscribe, --publish is required')

    return Operation(role, transport, message or '', auth)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
