""" Command line front end: ``crier --listen ADDR -m TEMPLATE`` and friends.
    Parses arguments, resolves them into an operation, runs it, and turns
    the result into console output and an exit status.
"""

import argparse
import logging
import sys

from . import config
from . import deliver
from .protocol.envelope import ConfigurationError, Direct, Role


EPILOG = """examples:
  Listen:    crier --listen 0.0.0.0:5555 -m 'notify-send "Alert" "{}"'
  Send:      crier --send 192.168.1.10:5555 -m 'Build done!'
  Subscribe: crier --subscribe alerts --broker mq.example.com -m 'logger "{}"'
  Publish:   crier --publish alerts --broker mq.example.com -m 'Build done!'
"""


def parser():

    description = 'Simple push notification tool. Start a listener first, ' \
                  'then send messages from anywhere.'

    parser = argparse.ArgumentParser(prog='crier',
                                     description=description,
                                     epilog=EPILOG,
                                     formatter_class=argparse.RawDescriptionHelpFormatter)

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument('--listen', metavar='ADDR',
                      help='listen for direct connections on ADDR (e.g. 0.0.0.0:5555)')
    mode.add_argument('--send', metavar='ADDR',
                      help='send directly to ADDR (e.g. 192.168.1.10:5555)')
    mode.add_argument('--subscribe', metavar='TOPIC', nargs='?', const='',
                      help='listen for messages published to TOPIC on the broker')
    mode.add_argument('--publish', metavar='TOPIC', nargs='?', const='',
                      help='publish the message to TOPIC on the broker')

    parser.add_argument('-m', '--message', required=True,
                        help='listen: command template ({} is replaced by the message); '
                             'send: message to send')
    parser.add_argument('-a', '--auth', default=None,
                        help='optional shared authentication token')
    parser.add_argument('--broker', default=None,
                        help='broker host for --subscribe/--publish')
    parser.add_argument('--port', default=None, type=int,
                        help='broker port for --subscribe/--publish')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='more diagnostic output; repeat for debug output')

    return parser


def _log_level(verbose, settings):

    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO

    level = logging.getLevelName(settings.log_level.upper())
    if isinstance(level, int):
        return level
    return logging.WARNING


def main(argv=None, environ=None):
    """ Run the command line tool and return the process exit status. """

    arguments = parser().parse_args(argv)

    try:
        settings = config.Settings.from_environ(environ)
        operation = config.resolve(arguments, settings)
    except ConfigurationError as error:
        print('Error: ' + str(error), file=sys.stderr)
        return 1

    logging.basicConfig(level=_log_level(arguments.verbose, settings),
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    def announce(listener):
        print('Listening on ' + str(operation.transport))
        print('Command: ' + operation.payload)
        if operation.auth is not None:
            print('Auth: enabled')
        print(flush=True)

    try:
        result = deliver.run(operation, ready=announce)
    except KeyboardInterrupt:
        return 0

    if not result.ok:
        print('Error: ' + result.detail, file=sys.stderr)
        return 1

    if operation.role is Role.SENDER:
        if isinstance(operation.transport, Direct):
            print('Sent: ' + operation.payload)
        else:
            print('Published: ' + operation.payload)

    return 0


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
