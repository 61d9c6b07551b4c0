"""RabbitMQ publish/subscribe transport.

Messages are published to a topic exchange; the configured topic is the
routing key. A listener binds an exclusive, server-named queue to that
routing key and consumes with manual acknowledgment (at-least-once). A
sender publishes once with a transient delivery mode (at-most-once) and
waits for the broker's publisher confirm.
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Iterator, Optional

import pika
import pika.exceptions

from ..protocol.envelope import Envelope, Relay, Role
from .base import (
    AuthError,
    ConnectError,
    Delivery,
    Listener,
    ProtocolError,
    Sender,
    TransportTimeout,
)
from .codec import payload_codec

logger = logging.getLogger(__name__)

EXCHANGE = "crier"
SEND_TIMEOUT = 5.0


def _broker_params(broker: str, port: int, identity: str) -> pika.ConnectionParameters:
    return pika.ConnectionParameters(
        host=broker,
        port=int(port),
        heartbeat=600,
        blocked_connection_timeout=300,
        client_properties={"connection_name": identity},
    )


class Session:
    """One broker connection and channel, owned by whoever created it.

    The client identity carries the role, so a listener and a sender running
    against the same broker never present the same name.
    """

    def __init__(self, broker: str, port: int, role: Role):
        self.broker = broker
        self.port = int(port)
        self.identity = f"crier-{role.value}-{uuid.uuid4().hex[:12]}"

        try:
            self.connection = pika.BlockingConnection(
                _broker_params(broker, self.port, self.identity)
            )
            self.channel = self.connection.channel()
            self.channel.exchange_declare(
                exchange=EXCHANGE, exchange_type="topic", durable=False
            )
        except (pika.exceptions.AMQPError, OSError) as exc:
            raise ConnectError(
                f"Failed to connect to broker {broker}:{self.port}: {exc!r}"
            ) from exc

        logger.debug("%s connected to %s:%d", self.identity, broker, self.port)

    def close(self) -> None:
        try:
            if self.connection.is_open:
                self.connection.close()
        except pika.exceptions.AMQPError:
            pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class Message(Delivery):
    """One message pulled off the subscription queue."""

    def __init__(self, channel, method, body: bytes, auth: Optional[str] = None):
        self.channel = channel
        self.method = method
        self.body = body
        self.auth = auth
        self.peer = method.routing_key

    def open(self) -> Envelope:
        return payload_codec.decode(self.body, self.auth)

    def acknowledge(self) -> None:
        self.channel.basic_ack(delivery_tag=self.method.delivery_tag)

    def reject(self, error: AuthError) -> None:
        self.drop()

    def drop(self) -> None:
        self.channel.basic_reject(delivery_tag=self.method.delivery_tag, requeue=False)


class Client(Listener):
    """Subscriber: one broker session, one topic, messages in arrival order."""

    # How often the consume loop wakes up to look at the stop flag.
    inactivity_timeout = 0.5

    def __init__(self, relay: Relay, auth: Optional[str] = None, session: Optional[Session] = None):
        self.relay = relay
        self.auth = auth

        if session is None:
            session = Session(relay.broker, relay.port, Role.LISTENER)
        self.session = session

        channel = session.channel
        try:
            result = channel.queue_declare(queue="", exclusive=True)
            self.queue = result.method.queue
            channel.queue_bind(
                exchange=EXCHANGE,
                queue=self.queue,
                routing_key=relay.topic,
            )
        except pika.exceptions.AMQPError as exc:
            session.close()
            raise ConnectError(f"Failed to subscribe to {relay.topic!r}: {exc!r}") from exc

    def deliveries(self, stop: Optional[threading.Event] = None) -> Iterator[Message]:
        channel = self.session.channel
        events = channel.consume(
            self.queue,
            auto_ack=False,
            inactivity_timeout=self.inactivity_timeout,
        )

        try:
            for method, _properties, body in events:
                if stop is not None and stop.is_set():
                    return
                if method is None:
                    # Inactivity tick; nothing arrived.
                    continue
                yield Message(channel, method, body, self.auth)
        except pika.exceptions.AMQPError as exc:
            raise ConnectError(f"Lost connection to broker {self.relay.broker}: {exc!r}") from exc
        finally:
            try:
                channel.cancel()
            except pika.exceptions.AMQPError:
                pass

    def close(self) -> None:
        self.session.close()


class Server(Sender):
    """Publisher: one envelope, one confirmed publish.

    The broker connection is driven on a worker thread so that the wait for
    the publisher confirm can be bounded by *timeout*.
    """

    def __init__(self, relay: Relay, timeout: float = SEND_TIMEOUT):
        self.relay = relay
        self.timeout = timeout

    def send(self, envelope: Envelope) -> None:
        body = payload_codec.encode(envelope)
        done = threading.Event()
        failure = []

        def publish() -> None:
            session = None
            try:
                session = Session(self.relay.broker, self.relay.port, Role.SENDER)
                session.channel.confirm_delivery()
                session.channel.basic_publish(
                    exchange=EXCHANGE,
                    routing_key=self.relay.topic,
                    body=body,
                    properties=pika.BasicProperties(
                        delivery_mode=pika.DeliveryMode.Transient,
                    ),
                )
            except ConnectError as exc:
                failure.append(exc)
            except (pika.exceptions.NackError, pika.exceptions.UnroutableError) as exc:
                failure.append(ProtocolError(f"broker refused publish: {exc!r}"))
            except (pika.exceptions.AMQPError, OSError) as exc:
                failure.append(ConnectError(f"connection error during publish: {exc!r}"))
            finally:
                if session is not None:
                    session.close()
                done.set()

        thread = threading.Thread(target=publish, daemon=True)
        thread.start()

        if not done.wait(self.timeout):
            raise TransportTimeout(
                f"no publish confirmation from {self.relay} in {self.timeout:.1f} sec"
            )

        if failure:
            raise failure[0]


def send(relay: Relay, envelope: Envelope, timeout: float = SEND_TIMEOUT) -> None:
    Server(relay, timeout).send(envelope)
