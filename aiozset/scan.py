import enum
from collections import deque, namedtuple

from .compat import Protocol
from .errors import InvalidArgument, IteratorClosed
from .log import cursor_logger

__all__ = [
    'CursorState',
    'ScanOptions',
    'ScanIteration',
    'ZScanCursor',
    'check_cursor',
    ]


def check_cursor(cursor):
    """Return the cursor as int, accepting decimal bytes or str too."""
    if isinstance(cursor, (bytes, str)) and cursor.isdigit():
        cursor = int(cursor)
    if isinstance(cursor, bool) or not isinstance(cursor, int):
        raise InvalidArgument(
            "cursor argument must be int, got {!r}".format(cursor))
    if cursor < 0:
        raise InvalidArgument(
            "cursor argument must not be negative, got {}".format(cursor))
    return cursor


class CursorState(enum.Enum):
    CREATED = 'created'
    ACTIVE = 'active'
    EXHAUSTED = 'exhausted'
    CLOSED = 'closed'


class ScanOptions(namedtuple('ScanOptions', 'match count')):
    """``MATCH`` pattern and ``COUNT`` hint of a scan, both optional."""

    __slots__ = ()

    def __new__(cls, match=None, count=None):
        if match is not None and not isinstance(match, (bytes, str)):
            raise InvalidArgument("match argument must be bytes or str")
        if count is not None:
            if isinstance(count, bool) or not isinstance(count, int):
                raise InvalidArgument("count argument must be int")
            if count <= 0:
                raise InvalidArgument("count argument must be positive")
        return super().__new__(cls, match, count)

    def to_args(self):
        args = []
        if self.match is not None:
            args += [b'MATCH', self.match]
        if self.count is not None:
            args += [b'COUNT', self.count]
        return args


ScanOptions.NONE = ScanOptions()

ScanIteration = namedtuple('ScanIteration', 'cursor items')


class ScanStep(Protocol):

    async def __call__(self, cursor, options):
        """Issue one scan command, return ``(next_cursor, raw_items)``."""


class BatchDecoder(Protocol):

    def __call__(self, raw_items):
        """Convert one raw reply page into a list of items."""


class ZScanCursor:
    """Resumable cursor over a scan command.

    Each :meth:`next_batch` call is one round-trip to the server.
    Iterating with ``async for`` yields single items and hides empty pages:

    >>> async with redis.zscan_iter(key, ScanOptions(count=100)) as cur:
    ...     async for member, score in cur:
    ...         print(member, score)

    A cursor is good for one pass only; create a new one to start over.
    """

    def __init__(self, scan_step: ScanStep, decode: BatchDecoder, *,
                 cursor=0, options=None, on_close=None):
        self._scan = scan_step
        self._decode = decode
        self._cursor = check_cursor(cursor)
        self._options = options or ScanOptions.NONE
        self._on_close = on_close
        self._state = CursorState.CREATED
        self._pending = deque()
        self._position = 0

    @property
    def state(self):
        return self._state

    @property
    def cursor_id(self):
        """Cursor value to send with the next scan command."""
        return self._cursor

    @property
    def position(self):
        """Number of items yielded by ``async for`` so far."""
        return self._position

    @property
    def closed(self):
        return self._state is CursorState.CLOSED

    async def next_batch(self):
        """Fetch the next page as :class:`ScanIteration`.

        Pages may be empty before the scan is over.

        :raises IteratorClosed: if the cursor was closed
        :raises StopAsyncIteration: if the server already returned cursor 0
        """
        if self._state is CursorState.CLOSED:
            raise IteratorClosed("Cursor already closed")
        if self._state is CursorState.EXHAUSTED:
            raise StopAsyncIteration
        cursor, raw = await self._scan(self._cursor, self._options)
        if self._state is CursorState.CLOSED:
            raise IteratorClosed("Cursor closed while scanning")
        self._cursor = int(cursor)
        items = self._decode(raw)
        if self._state is CursorState.CREATED:
            cursor_logger.debug("Cursor %r opened", self)
            self._state = CursorState.ACTIVE
        if self._cursor == 0:
            cursor_logger.debug("Cursor %r exhausted", self)
            self._state = CursorState.EXHAUSTED
        return ScanIteration(self._cursor, items)

    def __aiter__(self):
        return self

    async def __anext__(self):
        while not self._pending:
            if self._state is CursorState.CLOSED:
                raise IteratorClosed("Cursor already closed")
            if self._state is CursorState.EXHAUSTED:
                raise StopAsyncIteration
            batch = await self.next_batch()
            self._pending.extend(batch.items)
        self._position += 1
        return self._pending.popleft()

    def close(self):
        if self._state is CursorState.CLOSED:
            return
        self._state = CursorState.CLOSED
        self._scan = None
        self._pending.clear()
        on_close, self._on_close = self._on_close, None
        if on_close is not None:
            on_close()
        cursor_logger.debug("Cursor %r closed", self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.close()

    def __repr__(self):
        return '<ZScanCursor cursor={} state={}>'.format(
            self._cursor, self._state.value)
