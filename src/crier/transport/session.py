"""Transport-agnostic listen loop."""

from __future__ import annotations

import logging
import threading
import traceback
from typing import Callable, Optional

from .base import AuthError, Delivery, Listener, ProtocolError

logger = logging.getLogger(__name__)


class ListenSession:
    """Drive a Listener: authenticate, dispatch, acknowledge.

    Deliveries are handled one at a time, in arrival order; the dispatcher
    runs synchronously and holds up the next delivery until it returns.
    Nothing that goes wrong with a single delivery ends the session.
    """

    def __init__(self, listener: Listener, dispatcher: Callable[[str], object]):
        self.listener = listener
        self.dispatcher = dispatcher

    def run(self, stop: Optional[threading.Event] = None) -> None:
        for delivery in self.listener.deliveries(stop):
            try:
                self.handle(delivery)
            except Exception:
                print(traceback.format_exc())

    def handle(self, delivery: Delivery) -> None:
        try:
            envelope = delivery.open()
        except AuthError as exc:
            logger.warning("[%s] %s", delivery.peer, exc)
            delivery.reject(exc)
            return
        except ProtocolError as exc:
            logger.info("[%s] dropped: %s", delivery.peer, exc)
            delivery.drop()
            return

        print(f"[{delivery.peer}] {envelope.message}", flush=True)

        # The acknowledgment means "received and dispatch attempted"; the
        # command's own outcome is reported by the dispatcher only.
        try:
            self.dispatcher(envelope.message)
        finally:
            delivery.acknowledge()
