from ..connection import create_connection
from .sorted_set import SortedSetCommandsMixin
from .transaction import TransactionsCommandsMixin, Pipeline, MultiExec

__all__ = [
    'create_client',
    'ZSetClient',
    'Pipeline',
    'MultiExec',
]


class ZSetClient(SortedSetCommandsMixin, TransactionsCommandsMixin):
    """High-level sorted set client interface.

    For details see mixin classes.
    """

    def __init__(self, connection):
        self._conn = connection

    def __repr__(self):
        return '<ZSetClient {!r}>'.format(self._conn)

    def execute(self, command, *args, **kwargs):
        return self._conn.execute(command, *args, **kwargs)

    def close(self):
        """Close client connection."""
        self._conn.close()

    async def wait_closed(self):
        """Coroutine waiting until underlying connections are closed."""
        await self._conn.wait_closed()

    @property
    def connection(self):
        """Either :class:`aiozset.RedisConnection`, a custom
        :class:`aiozset.abc.AbcConnection` or a pipeline buffer.
        """
        return self._conn

    @property
    def mode(self):
        """Execution mode of the underlying connection."""
        return self._conn.mode

    @property
    def closed(self):
        """True if connection is closed."""
        return self._conn.closed

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.close()
        await self.wait_closed()


async def create_client(address, *, db=None, timeout=None,
                        commands_factory=ZSetClient):
    """Creates high-level sorted set client.

    This function is a coroutine.
    """
    conn = await create_connection(address, db=db, timeout=timeout)
    return commands_factory(conn)
