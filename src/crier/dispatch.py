""" Turn a received message into a local command invocation. The message is
    substituted into a command template and the result is handed to the
    platform shell; the shell's standard output and error are inherited
    from this process.

    The substitution is verbatim. A message containing shell metacharacters
    will have them interpreted by the shell; anyone able to deliver a
    message (and present the auth tag, if one is configured) can run
    commands as the listening user.
"""

from dataclasses import dataclass
import logging
import subprocess
from typing import Union

logger = logging.getLogger(__name__)

PLACEHOLDER = '{}'


@dataclass(frozen=True)
class Completed:
    """ The shell ran and exited with *returncode*. """

    success: bool
    returncode: int


@dataclass(frozen=True)
class LaunchFailed:
    """ The shell itself could not be started. """

    reason: str


Outcome = Union[Completed, LaunchFailed]


def render(template, message):
    """ Replace every ``{}`` in *template* with *message*. """

    return template.replace(PLACEHOLDER, message)


def run(command):
    """ Run *command* through the platform shell and block until it exits.
        Returns a :class:`Completed` or :class:`LaunchFailed` instance; this
        function does not raise for a failed command.
    """

    try:
        completed = subprocess.run(command, shell=True)
    except (OSError, ValueError) as error:
        return LaunchFailed(str(error))

    return Completed(completed.returncode == 0, completed.returncode)


class Dispatcher:
    """ Callable wrapper around a command template. A :class:`Dispatcher`
        is what the listen loop invokes for every authenticated message;
        any object with the same call signature can stand in for it.
    """

    def __init__(self, template):
        self.template = template


    def __call__(self, message):

        command = render(self.template, message)
        print('Running: ' + command, flush=True)

        outcome = run(command)

        if isinstance(outcome, LaunchFailed):
            logger.error('failed to run %r: %s', command, outcome.reason)
        elif not outcome.success:
            logger.warning('command failed with exit status %d: %r', outcome.returncode, command)

        return outcome


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
