"""The module provides the connection interface the commands run against.

It is intended to be used for implementing custom connection managers.
"""
import abc


__all__ = [
    'AbcConnection',
]


class AbcConnection(abc.ABC):
    """Abstract connection interface."""

    @abc.abstractmethod
    def execute(self, command, *args, **kwargs):
        """Execute redis command."""

    @abc.abstractmethod
    def close(self):
        """Perform connection close and resources cleanup."""

    @abc.abstractmethod
    async def wait_closed(self):
        """
        Coroutine waiting until all resources are closed/released/cleaned up.
        """

    @property
    @abc.abstractmethod
    def closed(self):
        """Flag indicating if connection is closing or already closed."""

    @property
    @abc.abstractmethod
    def mode(self):
        """Current :class:`~aiozset.dispatch.ExecutionMode`."""

    @property
    @abc.abstractmethod
    def address(self):
        """Connection address."""
