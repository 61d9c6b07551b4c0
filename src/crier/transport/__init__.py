"""Transport layer implementations."""

from .base import (
    TransportError,
    ConnectError,
    AuthError,
    ProtocolError,
    TransportTimeout,
)

from . import codec
from . import session
from . import tcp
from . import rabbitmq
