""" Top-level entry point for the delivery core. :func:`run` takes one
    resolved :class:`crier.protocol.Operation`, performs it over whichever
    transport it names, and reports a uniform :class:`Result`. There are
    exactly four paths through here, one per role and transport pairing.
"""

from dataclasses import dataclass
from typing import Optional, Type

from .dispatch import Dispatcher
from .protocol.envelope import ConfigurationError, Direct, Role
from .transport import rabbitmq
from .transport import tcp
from .transport.base import TransportError
from .transport.session import ListenSession


@dataclass(frozen=True)
class Result:
    """ Terminal outcome of one operation. A failed result carries the
        exception class (*error*) and a human-readable *detail*.
    """

    ok: bool
    error: Optional[Type[Exception]] = None
    detail: str = ''

    @classmethod
    def failure(cls, exception):
        return cls(False, type(exception), str(exception))


def listen_direct(operation, stop=None, dispatcher=None, ready=None):

    server = tcp.Server(operation.transport, operation.auth)

    with server:
        if ready is not None:
            ready(server)
        ListenSession(server, dispatcher).run(stop)


def send_direct(operation):
    tcp.Client(operation.transport).send(operation.envelope())


def listen_relay(operation, stop=None, dispatcher=None, ready=None):

    client = rabbitmq.Client(operation.transport, operation.auth)

    with client:
        if ready is not None:
            ready(client)
        ListenSession(client, dispatcher).run(stop)


def send_relay(operation, timeout=rabbitmq.SEND_TIMEOUT):
    rabbitmq.Server(operation.transport, timeout).send(operation.envelope())


def run(operation, stop=None, dispatcher=None, ready=None):
    """ Perform *operation* and return a :class:`Result`.

        For a listener, *stop* is an optional :class:`threading.Event`; the
        listener runs until it is set. *dispatcher* replaces the default
        :class:`crier.dispatch.Dispatcher` built from the operation's
        command template, and *ready*, if provided, is called with the bound
        listener once it is accepting messages.

        The operation is validated before any network activity; an
        incomplete operation yields a failed result with
        :class:`ConfigurationError`.
    """

    try:
        operation.validate()
    except ConfigurationError as error:
        return Result.failure(error)

    transport = operation.transport

    try:
        if operation.role is Role.LISTENER:
            if dispatcher is None:
                dispatcher = Dispatcher(operation.payload)

            if isinstance(transport, Direct):
                listen_direct(operation, stop, dispatcher, ready)
            else:
                listen_relay(operation, stop, dispatcher, ready)
        else:
            if isinstance(transport, Direct):
                send_direct(operation)
            else:
                send_relay(operation)
    except TransportError as error:
        return Result.failure(error)

    return Result(True)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
