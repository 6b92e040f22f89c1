import asyncio
import functools

from ..dispatch import ExecutionMode
from ..errors import PipelineError, MultiExecError


class TransactionsCommandsMixin:
    """Batching of sorted set commands.

    Both :meth:`pipeline` and :meth:`multi_exec` return a wrapper exposing
    the same sorted set commands as the client; every call validates its
    arguments right away and returns a future of the converted reply.
    Nothing is written until ``execute()`` is awaited.

    >>> tr = redis.multi_exec()
    >>> fut = tr.zincrby(b'board', 5, b'alice')
    >>> rank = tr.zrevrank(b'board', b'alice')
    >>> await tr.execute()
    [15.0, 0]
    >>> await fut
    15.0
    """

    def multi_exec(self):
        """Returns a :class:`MultiExec` batch bound to this connection.

        Commands run atomically inside ``MULTI``/``EXEC``.
        """
        return MultiExec(self._conn, self.__class__)

    def pipeline(self):
        """Returns a :class:`Pipeline` batch bound to this connection.

        Do not await the futures it hands out before ``execute()``;
        they would never resolve.
        """
        return Pipeline(self._conn, self.__class__)


class _RedisBuffer:

    def __init__(self, pipeline, mode):
        self._pipeline = pipeline
        self.mode = mode

    def execute(self, cmd, *args, **kw):
        fut = asyncio.get_event_loop().create_future()
        self._pipeline.append((fut, cmd, args, kw))
        return fut


class Pipeline:
    """Queues commands and sends them in one write.

    Commands which need a round-trip per call (``zscan`` and friends)
    raise :class:`~aiozset.errors.UnsupportedInMode` instead of being
    queued.  ``execute()`` returns the converted replies in call order,
    or raises :attr:`error_class` listing every failed command.
    """
    error_class = PipelineError
    mode = ExecutionMode.PIPELINED

    def __init__(self, connection, commands_factory=lambda conn: conn):
        self._conn = connection
        self._pipeline = []
        self._results = []
        self._buffer = _RedisBuffer(self._pipeline, self.mode)
        self._redis = commands_factory(self._buffer)
        self._done = False

    def __getattr__(self, name):
        assert not self._done, "Pipeline already executed. Create new one."
        attr = getattr(self._redis, name)
        if callable(attr):

            @functools.wraps(attr)
            def wrapper(*args, **kw):
                task = asyncio.ensure_future(attr(*args, **kw))
                self._results.append(task)
                return task
            return wrapper
        return attr

    async def execute(self, *, return_exceptions=False):
        """Send queued commands and collect their replies.

        With ``return_exceptions`` failed commands leave their exception
        in the result list instead of raising.
        """
        assert not self._done, "Pipeline already executed. Create new one."
        self._done = True

        if self._pipeline:
            with self._conn._buffered():
                futures = list(self._send_pipeline(self._conn))
            await asyncio.gather(*futures, return_exceptions=True)
        return await self._gather_result(return_exceptions)

    async def _gather_result(self, return_exceptions):
        errors = []
        results = []
        for fut in self._results:
            try:
                res = await fut
                results.append(res)
            except Exception as exc:
                errors.append(exc)
                results.append(exc)
        if errors and not return_exceptions:
            raise self.error_class(errors)
        return results

    def _send_pipeline(self, conn):
        for fut, cmd, args, kw in self._pipeline:
            try:
                result_fut = conn.execute(cmd, *args, **kw)
                result_fut.add_done_callback(
                    functools.partial(self._check_result, waiter=fut))
            except Exception as exc:
                fut.set_exception(exc)
            else:
                yield result_fut

    def _check_result(self, fut, waiter):
        if waiter.done():
            return
        if fut.cancelled():
            waiter.cancel()
        elif fut.exception():
            waiter.set_exception(fut.exception())
        else:
            waiter.set_result(fut.result())


class MultiExec(Pipeline):
    """Pipeline wrapped into ``MULTI``/``EXEC``.

    The connection resolves every queued command from its slot of the
    ``EXEC`` reply, so an aborted transaction fails all of them.
    """
    error_class = MultiExecError
    mode = ExecutionMode.TRANSACTIONAL

    def _send_pipeline(self, conn):
        yield conn.execute('MULTI')
        yield from super()._send_pipeline(conn)
        yield conn.execute('EXEC')
