import socket
import threading
import time

import crier
from crier.deliver import Result, run
from crier.protocol import ConfigurationError, Direct, Operation, Relay, Role
from crier.transport import AuthError, ConnectError, TransportTimeout


def start_listener(operation, dispatcher):
    """ Run a listening operation in the background and wait for it to bind.
        Returns the bound listener, the stop event, and the thread.
    """

    bound = list()
    ready = threading.Event()
    stop = threading.Event()

    def announce(listener):
        bound.append(listener)
        ready.set()

    thread = threading.Thread(target=run, args=(operation, stop, dispatcher, announce))
    thread.daemon = True
    thread.start()

    assert ready.wait(5)
    return bound[0], stop, thread


def test_configuration_error():

    result = run(Operation(Role.SENDER, None, 'hello'))
    assert result.ok == False
    assert result.error is ConfigurationError
    assert 'transport' in result.detail

    result = run(Operation(Role.LISTENER, Direct('127.0.0.1:0'), ''))
    assert result.error is ConfigurationError


def test_direct(recorder):

    listen = Operation(Role.LISTENER, Direct('127.0.0.1:0'), 'unused {}', 'secret')
    server, stop, thread = start_listener(listen, recorder)
    address = Direct('127.0.0.1:%d' % (server.port))

    result = run(Operation(Role.SENDER, address, 'Build done!', 'secret'))
    assert result == Result(True)
    assert recorder.messages == ['Build done!']

    result = run(Operation(Role.SENDER, address, 'sneaky', 'wrong'))
    assert result.ok == False
    assert result.error is AuthError
    assert result.detail == 'ERR:AUTH'
    assert recorder.messages == ['Build done!']

    stop.set()
    thread.join(5)
    assert not thread.is_alive()


def test_direct_connect_error():

    unused = socket.create_server(('127.0.0.1', 0))
    port = unused.getsockname()[1]
    unused.close()

    result = run(Operation(Role.SENDER, Direct('127.0.0.1:%d' % (port)), 'hello'))
    assert result.error is ConnectError
    assert 'Failed to connect' in result.detail


def test_direct_bind_error():

    occupied = socket.create_server(('127.0.0.1', 0))
    port = occupied.getsockname()[1]

    result = run(Operation(Role.LISTENER, Direct('127.0.0.1:%d' % (port)), 'true'))
    assert result.error is ConnectError
    assert 'Failed to bind' in result.detail

    occupied.close()


def test_relay(broker, recorder):

    relay = Relay('localhost', 5672, 'alerts')
    listen = Operation(Role.LISTENER, relay, 'unused {}', 'secret')
    client, stop, thread = start_listener(listen, recorder)

    assert run(Operation(Role.SENDER, relay, 'ping', 'secret')) == Result(True)
    assert run(Operation(Role.SENDER, relay, 'pong', 'wrong')) == Result(True)

    # The wrong token is only detected on the listening side.

    deadline = time.monotonic() + 5
    while not recorder.messages and time.monotonic() < deadline:
        time.sleep(0.01)

    stop.set()
    thread.join(5)

    assert recorder.messages == ['ping']


def test_relay_timeout(broker):
    """ A broker that never confirms the publish fails the send after five
        seconds rather than hanging.
    """

    broker.hang = True
    relay = Relay('localhost', 5672, 'alerts')

    begin = time.monotonic()
    result = run(Operation(Role.SENDER, relay, 'ping'))
    elapsed = time.monotonic() - begin

    assert result.ok == False
    assert result.error is TransportTimeout
    assert elapsed >= 5
    assert elapsed < 7


def test_relay_refused(broker):

    broker.refuse = True
    relay = Relay('localhost', 5672, 'alerts')

    result = run(Operation(Role.SENDER, relay, 'ping'))
    assert result.error is ConnectError

    result = run(Operation(Role.LISTENER, relay, 'true'))
    assert result.error is ConnectError


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
