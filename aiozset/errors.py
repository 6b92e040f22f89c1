__all__ = [
    'RedisError',
    'InvalidArgument',
    'ArgumentMismatch',
    'ArgumentOutOfRange',
    'UnsupportedInMode',
    'IteratorClosed',
    'ProtocolError',
    'ReplyError',
    'PipelineError',
    'MultiExecError',
    'ConnectionClosedError',
    'ConnectionForcedCloseError',
    ]


class RedisError(Exception):
    """Base exception class for aiozset exceptions."""


class InvalidArgument(RedisError, ValueError):
    """Raised for a missing, empty or malformed command argument.

    Always raised before anything is sent to the server.
    """


class ArgumentMismatch(InvalidArgument):
    """Raised when the number of weights differs from the number of sets."""


class ArgumentOutOfRange(RedisError, ValueError):
    """Raised when an offset or count does not fit a signed 32-bit integer."""


class UnsupportedInMode(RedisError):
    """Raised when a command can not run in the current execution mode."""

    def __init__(self, command, mode):
        super().__init__(
            "{!r} cannot be called in {} mode".format(command, mode.value))
        self.command = command
        self.mode = mode


class IteratorClosed(RedisError):
    """Raised when a closed scan cursor is advanced."""


class ProtocolError(RedisError):
    """Raised when protocol error occurs."""


class ReplyError(RedisError):
    """Raised for redis error replies (-ERR)."""


class PipelineError(RedisError):
    """Raised if command within pipeline raised error."""

    def __init__(self, errors):
        super().__init__('{} errors:'.format(self.__class__.__name__), errors)


class MultiExecError(PipelineError):
    """Raised if command within MULTI/EXEC block caused error."""


class ConnectionClosedError(RedisError):
    """Raised if connection to server was closed."""


class ConnectionForcedCloseError(ConnectionClosedError):
    """Raised if connection was closed with .close() method."""
