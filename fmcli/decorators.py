"""Decorators to reduce code duplication in command handlers"""

import functools
import logging

from .errors import InvalidInput
from .result import CommandResult

logger = logging.getLogger(__name__)


def fm_command(min_args=0, usage="", command_name=None):
    """
    Decorator that handles argument checks and error handling for handlers.

    This decorator:
    - Rejects invocations with fewer than ``min_args`` arguments
    - Turns a ``None`` return value into an OK result
    - Classifies exceptions: InvalidInput stays invalid input, anything
      else becomes an operation failure
    - Records ``min_args`` and ``usage`` on the wrapper for help output

    Args:
        min_args: Minimum number of arguments the command needs
        usage: Argument synopsis shown by ``help``
        command_name: Name to use in log messages (defaults to function name)

    Example:
        @fm_command(min_args=1, usage="<path>")
        def cmd_rm(self, args):
            operations.remove_file(self.session.resolve(args[0]))
    """
    def decorator(func):
        cmd_name = command_name or func.__name__.replace("cmd_", "", 1)

        @functools.wraps(func)
        def wrapper(self, args):
            if len(args) < min_args:
                logger.debug("%s: expected at least %d argument(s), got %d",
                             cmd_name, min_args, len(args))
                return CommandResult.invalid(f"{cmd_name}: missing operand")
            try:
                result = func(self, args)
            except InvalidInput as e:
                logger.debug("%s: invalid input: %s", cmd_name, e)
                return CommandResult.invalid(f"{cmd_name}: {e}")
            except Exception as e:
                logger.debug("%s: operation failed: %s", cmd_name, e, exc_info=True)
                return CommandResult.failed(f"{cmd_name}: {e}")
            return result if result is not None else CommandResult.ok()

        wrapper.min_args = min_args
        wrapper.usage = usage
        return wrapper
    return decorator
