"""Command execution for the current connection mode.

Every command is described by one :class:`Command` and handed to
:func:`invoke` which looks at the executor's mode once:

* ``DIRECT`` -- the command is sent right away and the returned awaitable
  resolves to the converted reply;
* ``PIPELINED`` / ``TRANSACTIONAL`` -- the command is queued by the
  executor and a future is returned; it resolves to the converted reply
  when the owner of the queue (:class:`~aiozset.commands.Pipeline`,
  :class:`~aiozset.commands.MultiExec` or a connection inside a raw
  ``MULTI``) flushes it.
"""
import enum

from .errors import ArgumentOutOfRange, InvalidArgument, UnsupportedInMode
from .log import logger
from .util import wait_convert

__all__ = [
    'ExecutionMode',
    'Command',
    'invoke',
    'require_direct',
    'check_int32',
    ]

INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1


class ExecutionMode(enum.Enum):
    DIRECT = 'direct'
    PIPELINED = 'pipelined'
    TRANSACTIONAL = 'transactional'

    @property
    def is_queueing(self):
        return self is not ExecutionMode.DIRECT


class Command:
    """Name, arguments and reply converter of a single command."""

    __slots__ = ('name', 'args', 'convert')

    def __init__(self, name, *args, convert=None):
        self.name = name
        self.args = args
        self.convert = convert

    def __repr__(self):
        return '<Command {!r} args={!r}>'.format(self.name, self.args)


def invoke(executor, command):
    mode = executor.mode
    logger.debug("Dispatching %r in %s mode", command.name, mode.value)
    fut = executor.execute(command.name, *command.args)
    if command.convert is None:
        return fut
    if mode is ExecutionMode.DIRECT:
        return wait_convert(fut, command.convert)
    return _deferred(fut, command.convert)


def _deferred(fut, convert):
    handle = fut.get_loop().create_future()

    def _resolve(fut):
        if handle.done():
            return
        if fut.cancelled():
            handle.cancel()
        elif fut.exception() is not None:
            handle.set_exception(fut.exception())
        else:
            try:
                handle.set_result(convert(fut.result()))
            except Exception as exc:
                handle.set_exception(exc)

    fut.add_done_callback(_resolve)
    return handle


def require_direct(executor, command):
    mode = executor.mode
    if mode.is_queueing:
        raise UnsupportedInMode(command, mode)


def check_int32(name, value):
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument("{} argument must be int".format(name))
    if not INT32_MIN <= value <= INT32_MAX:
        raise ArgumentOutOfRange(
            "{} must fit a signed 32-bit integer, got {}".format(name, value))
    return value
