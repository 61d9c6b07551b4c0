import itertools
import pytest
import socket
import threading
import time
import types

import pika
import pika.exceptions

import crier


class Recorder:
    """ Stand-in for a :class:`crier.dispatch.Dispatcher` that remembers
        every message it was handed, optionally sleeping first to simulate
        a slow command.
    """

    def __init__(self, delay=0):
        self.delay = delay
        self.messages = list()
        self.times = list()

    def __call__(self, message):
        if self.delay:
            time.sleep(self.delay)
        self.messages.append(message)
        self.times.append(time.monotonic())
        return crier.dispatch.Completed(True, 0)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def direct_listener():
    """ Factory fixture: start a direct listener on a loopback port in a
        background thread. Returns the bound port and the recorder that
        receives dispatched messages.
    """

    running = list()

    def start(auth=None, delay=0):
        dispatched = Recorder(delay)
        server = crier.transport.tcp.Server('127.0.0.1:0', auth)
        stop = threading.Event()
        session = crier.transport.session.ListenSession(server, dispatched)

        thread = threading.Thread(target=session.run, args=(stop,))
        thread.daemon = True
        thread.start()

        running.append((server, stop, thread))
        return server.port, dispatched

    yield start

    for server, stop, thread in running:
        stop.set()
        thread.join(5)
        server.close()


def exchange(port, data, shutdown=False):
    """ Write raw *data* to a direct listener and return the single response
        line, or b'' if the listener closed without answering.
    """

    with socket.create_connection(('127.0.0.1', port), timeout=10) as sock:
        sock.sendall(data)
        if shutdown:
            sock.shutdown(socket.SHUT_WR)
        with sock.makefile('rb') as reader:
            return reader.readline()


@pytest.fixture
def raw_exchange():
    return exchange


class FakeBroker:
    """ Just enough of a RabbitMQ broker, living in-process, to exercise
        :mod:`crier.transport.rabbitmq` through the real pika API surface.
    """

    def __init__(self):
        self.bindings = dict()
        self.queues = dict()
        self.connections = list()
        self.published = list()
        self.acked = list()
        self.rejected = list()

        self.refuse = False
        self.hang = False
        self.release = threading.Event()
        self.drained = threading.Event()

        self._names = itertools.count(1)
        self._tags = itertools.count(1)
        self._lock = threading.Lock()

    def route(self, routing_key, body):
        with self._lock:
            for queue, key in self.bindings.items():
                if key == routing_key:
                    tag = next(self._tags)
                    self.queues[queue].append((tag, routing_key, body))


class FakeChannel:

    def __init__(self, broker):
        self.broker = broker
        self.confirming = False
        self.exchanges = dict()

    def exchange_declare(self, exchange, exchange_type, durable):
        self.exchanges[exchange] = exchange_type

    def queue_declare(self, queue, exclusive=False):
        name = queue or 'amq.gen-%d' % (next(self.broker._names))
        self.broker.queues.setdefault(name, list())
        return types.SimpleNamespace(method=types.SimpleNamespace(queue=name))

    def queue_bind(self, exchange, queue, routing_key):
        self.broker.bindings[queue] = routing_key

    def consume(self, queue, auto_ack=False, inactivity_timeout=None):
        pending = self.broker.queues[queue]
        while True:
            with self.broker._lock:
                event = pending.pop(0) if pending else None

            if event is None:
                self.broker.drained.set()
                time.sleep(0.01)
                yield None, None, None
                continue

            tag, routing_key, body = event
            method = types.SimpleNamespace(delivery_tag=tag, routing_key=routing_key)
            yield method, pika.BasicProperties(), body

    def cancel(self):
        return 0

    def basic_ack(self, delivery_tag):
        self.broker.acked.append(delivery_tag)

    def basic_reject(self, delivery_tag, requeue=True):
        self.broker.rejected.append(delivery_tag)

    def confirm_delivery(self):
        self.confirming = True

    def basic_publish(self, exchange, routing_key, body, properties=None, mandatory=False):
        if self.broker.hang:
            self.broker.release.wait()
            raise pika.exceptions.ConnectionClosed(320, 'test teardown')
        self.broker.published.append((routing_key, body, properties, self.confirming))
        self.broker.route(routing_key, body)


class FakeConnection:

    broker = None

    def __init__(self, parameters):
        if self.broker.refuse:
            raise pika.exceptions.AMQPConnectionError('connection refused')
        self.parameters = parameters
        self.is_open = True
        self.broker.connections.append(self)

    def channel(self):
        return FakeChannel(self.broker)

    def close(self):
        self.is_open = False


@pytest.fixture
def broker(monkeypatch):
    fake = FakeBroker()
    connection = type('BoundFakeConnection', (FakeConnection,), {'broker': fake})
    monkeypatch.setattr(pika, 'BlockingConnection', connection)

    yield fake

    fake.release.set()

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
