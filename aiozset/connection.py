import asyncio
import contextlib
import functools
from collections import deque

import async_timeout
import hiredis

from .abc import AbcConnection
from .dispatch import ExecutionMode
from .errors import (
    ConnectionClosedError,
    ConnectionForcedCloseError,
    ProtocolError,
    ReplyError,
    )
from .log import logger
from .util import encode_command, parse_url, _set_result, _set_exception

__all__ = ['create_connection', 'RedisConnection']


async def create_connection(address, *, db=None, timeout=None):
    """Creates redis connection.

    Opens connection to Redis server specified by address argument.
    Address argument can be one of the following:
    * A tuple representing (host, port) pair for TCP connections;
    * A redis URI string (``redis://host:port/db?timeout=1.5``).

    ``timeout`` bounds both connecting and every command round-trip;
    expiry is raised as :exc:`asyncio.TimeoutError`.
    """
    if isinstance(address, str):
        address, options = parse_url(address)
        db = options.get('db', db)
        timeout = options.get('timeout', timeout)
    assert isinstance(address, (tuple, list)), (
        "tuple or str expected", address)
    host, port = address
    loop = asyncio.get_event_loop()

    async with async_timeout.timeout(timeout):
        transport, protocol = await loop.create_connection(
            lambda: RedisProtocol(loop), host, port)
    conn = RedisConnection(transport, protocol, (host, port),
                           timeout=timeout)
    logger.debug("Connected to %r", conn.address)

    try:
        if db is not None:
            await conn.select(db)
    except Exception:
        conn.close()
        await conn.wait_closed()
        raise
    return conn


class RedisProtocol(asyncio.Protocol):
    """Feeds replies to the waiters in the order commands were sent."""

    def __init__(self, loop):
        self._loop = loop
        self._waiters = deque()
        self._parser = hiredis.Reader(protocolError=ProtocolError,
                                      replyError=ReplyError)
        self._closed = loop.create_future()
        self._close_exc = None
        self.transport = None

    def connection_made(self, transport):
        self.transport = transport

    def connection_lost(self, exc):
        self.transport = None
        exc = exc or self._close_exc or ConnectionClosedError(
            "Connection closed by server")
        while self._waiters:
            _set_exception(self._waiters.popleft(), exc)
        if not self._closed.done():
            self._closed.set_result(None)

    def data_received(self, data):
        self._parser.feed(data)
        while True:
            try:
                obj = self._parser.gets()
            except ProtocolError as exc:
                logger.error("Protocol error, closing connection: %r", exc)
                self.close(exc)
                return
            if obj is False:
                break
            if not self._waiters:
                logger.warning("Got reply without waiter: %r", obj)
                continue
            waiter = self._waiters.popleft()
            if isinstance(obj, ReplyError):
                _set_exception(waiter, obj)
            else:
                _set_result(waiter, obj)

    def new_waiter(self):
        waiter = self._loop.create_future()
        self._waiters.append(waiter)
        return waiter

    def close(self, exc):
        self._close_exc = exc
        if self.transport is not None:
            self.transport.close()

    async def wait_closed(self):
        await asyncio.shield(self._closed)


class RedisConnection(AbcConnection):
    """Redis connection executing commands directly.

    The connection switches into ``TRANSACTIONAL`` mode while a ``MULTI``
    sent through it is not yet finished with ``EXEC`` or ``DISCARD``.
    Futures of commands sent in between resolve to their slot of the
    ``EXEC`` reply; the ``QUEUED`` acknowledgement only reports errors.
    ``DISCARD`` cancels them.
    """

    def __init__(self, transport, protocol, address, *, timeout=None):
        self._transport = transport
        self._protocol = protocol
        self._address = address
        self._timeout = timeout
        self._buffer = None
        self._transaction = None
        self._closing = False
        protocol._closed.add_done_callback(self._fail_transaction)

    def __repr__(self):
        return '<RedisConnection [{}:{}]>'.format(*self._address)

    def execute(self, command, *args):
        """Executes redis command and returns Future waiting for the answer.

        :raises ConnectionClosedError: if connection is closed
        :raises TypeError: if any of args can not be encoded as bytes
        """
        assert isinstance(command, (str, bytes, bytearray)), command
        if self.closed:
            raise ConnectionClosedError("Connection closed or corrupted")
        data = encode_command(command, *args)
        if self._buffer is not None:
            self._buffer.extend(data)
        else:
            self._transport.write(data)
        fut = self._protocol.new_waiter()

        cmd = command.upper() if isinstance(command, str) \
            else command.upper().decode()
        if self._transaction is not None:
            # nested MULTI is refused by the server and takes no EXEC slot
            if cmd != 'MULTI':
                fut = self._queue(cmd, fut)
        elif cmd == 'MULTI':
            self._transaction = []

        if self._timeout is not None:
            return asyncio.ensure_future(self._wait_reply(fut))
        return fut

    def _queue(self, cmd, waiter):
        if cmd in ('EXEC', 'DISCARD'):
            queued, self._transaction = self._transaction, None
            waiter.add_done_callback(
                functools.partial(_resolve_transaction, cmd, queued))
            return waiter
        result = self._protocol._loop.create_future()
        self._transaction.append(result)
        waiter.add_done_callback(functools.partial(_check_queued, result))
        return result

    def _fail_transaction(self, closed):
        queued, self._transaction = self._transaction or [], None
        for fut in queued:
            if not fut.done():
                fut.set_exception(ConnectionClosedError(
                    "Connection closed inside transaction"))

    async def _wait_reply(self, fut):
        async with async_timeout.timeout(self._timeout):
            return await fut

    @contextlib.contextmanager
    def _buffered(self):
        # Commands executed within the block are written at once.
        self._buffer = bytearray()
        try:
            yield self
        finally:
            buf, self._buffer = self._buffer, None
            if buf and not self.closed:
                self._transport.write(buf)

    async def select(self, db):
        """Change the selected database for the current connection."""
        if not isinstance(db, int):
            raise TypeError("DB must be of int type, not {!r}".format(db))
        if db < 0:
            raise ValueError("DB must be greater or equal 0, got {!r}"
                             .format(db))
        return (await self.execute(b'SELECT', db)) in (b'OK', 'OK')

    def close(self):
        """Close connection."""
        if self._closing:
            return
        self._closing = True
        self._protocol.close(ConnectionForcedCloseError())
        logger.debug("Closing connection %r", self)

    async def wait_closed(self):
        """Coroutine waiting until connection is closed."""
        await self._protocol.wait_closed()

    @property
    def closed(self):
        """True if connection is closed."""
        return self._closing or self._protocol.transport is None

    @property
    def mode(self):
        if self._transaction is not None:
            return ExecutionMode.TRANSACTIONAL
        return ExecutionMode.DIRECT

    @property
    def in_transaction(self):
        """Set to True when MULTI command was issued."""
        return self._transaction is not None

    @property
    def address(self):
        """Redis server address, (host, port) tuple."""
        return self._address


def _check_queued(result, waiter):
    if result.done():
        return
    if waiter.cancelled():
        result.cancel()
    elif waiter.exception() is not None:
        result.set_exception(waiter.exception())


def _resolve_transaction(cmd, queued, waiter):
    if cmd == 'DISCARD' or waiter.cancelled():
        for fut in queued:
            fut.cancel()
        return
    if waiter.exception() is not None:
        replies = [waiter.exception()] * len(queued)
    elif waiter.result() is None:
        replies = [ReplyError("EXEC aborted, watched key changed")] * len(
            queued)
    else:
        replies = waiter.result()
    for fut, reply in zip(queued, replies):
        if fut.done():
            continue
        if isinstance(reply, Exception):
            fut.set_exception(reply)
        else:
            fut.set_result(reply)
