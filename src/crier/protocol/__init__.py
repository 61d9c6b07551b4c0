"""
crier Protocol Layer
====================

Transport-agnostic description of a delivery. Nothing in this package
knows about sockets or brokers.

Layer Architecture Overview
---------------------------

Orchestrator (crier.deliver)
    Picks role x transport, reports a Result
    │
    ▼
Session (crier.transport.session)
    Listen loop: event -> dispatch -> acknowledge
    │
    ▼
Codec (crier.transport.codec)
    Envelope <-> wire bytes, one codec per transport
    │
    ▼
Transport (crier.transport.tcp, crier.transport.rabbitmq)
    Moves bytes

Dependencies only flow downward. The Envelope and Operation defined here
are the only types shared by every layer.
"""

from . import fields
from . import envelope

from .envelope import (
    ConfigurationError,
    Direct,
    Envelope,
    Operation,
    Relay,
    Role,
)
