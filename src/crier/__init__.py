""" Python implementation of crier, a simple push notification tool. A
    sender delivers one line of text to a listener, either directly over TCP
    or through a publish/subscribe broker, and the listener runs a local
    command with that text substituted in.
"""

# Submodules used by multiple other components.

from . import protocol
from . import transport

# Primary public-facing interfaces.

from . import dispatch
from . import config
from . import deliver

from .protocol import Direct, Envelope, Operation, Relay, Role
run = deliver.run

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
