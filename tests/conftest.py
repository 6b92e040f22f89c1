import asyncio
import contextlib
import fnmatch

import pytest

from aiozset import ZSetClient, ExecutionMode, ReplyError
from aiozset.abc import AbcConnection
from aiozset.util import encode_command, _converters


def _b(arg):
    if isinstance(arg, str):
        return arg.encode()
    return bytes(arg)


def _fmt(score):
    return b'%.17g' % score


def _parse_score_bound(token):
    exclusive = token.startswith(b'(')
    if exclusive:
        token = token[1:]
    return float(token), exclusive


def _parse_lex_bound(token):
    if token in (b'-', b'+'):
        return token, False
    if token[:1] not in (b'[', b'('):
        raise ReplyError("ERR min or max not valid string range item")
    return token[1:], token[:1] == b'('


def _resolve(fut, reply):
    if isinstance(reply, ReplyError):
        fut.set_exception(reply)
    else:
        fut.set_result(reply)


class FakeStore:
    """In-memory sorted sets answering like Redis does."""

    def __init__(self):
        self.zsets = {}
        self.wrongtype = set()

    def call(self, cmd, args):
        handler = getattr(self, 'cmd_' + cmd.decode().lower(), None)
        if handler is None:
            return ReplyError("ERR unknown command '{}'".format(cmd))
        if args and args[0] in self.wrongtype:
            return ReplyError("WRONGTYPE Operation against a key holding"
                              " the wrong kind of value")
        try:
            return handler(*args)
        except ReplyError as err:
            return err

    def _sorted(self, key):
        zset = self.zsets.get(key, {})
        return sorted(zset.items(), key=lambda item: (item[1], item[0]))

    def _flat(self, items, withscores):
        if not withscores:
            return [m for m, _ in items]
        reply = []
        for m, s in items:
            reply.extend([m, _fmt(s)])
        return reply

    def _options(self, args):
        withscores = False
        limit = None
        args = list(args)
        while args:
            opt = args.pop(0).upper()
            if opt == b'WITHSCORES':
                withscores = True
            elif opt == b'LIMIT':
                limit = int(args.pop(0)), int(args.pop(0))
            else:
                raise ReplyError("ERR syntax error")
        return withscores, limit

    def _limit(self, items, limit):
        if limit is None:
            return items
        offset, count = limit
        items = items[offset:]
        return items if count < 0 else items[:count]

    def cmd_select(self, db):
        return b'OK'

    def cmd_zadd(self, key, *args):
        args = list(args)
        flags = set()
        while args and args[0].upper() in (b'NX', b'XX', b'GT', b'LT', b'CH'):
            flags.add(args.pop(0).upper())
        zset = self.zsets.setdefault(key, {})
        added = changed = 0
        for score, member in zip(args[::2], args[1::2]):
            score = float(score)
            exists = member in zset
            if (b'NX' in flags and exists) or (b'XX' in flags and not exists):
                continue
            if exists and (b'GT' in flags and score <= zset[member] or
                           b'LT' in flags and score >= zset[member]):
                continue
            if not exists:
                added += 1
            elif zset[member] != score:
                changed += 1
            zset[member] = score
        return added + changed if b'CH' in flags else added

    def cmd_zcard(self, key):
        return len(self.zsets.get(key, {}))

    def cmd_zscore(self, key, member):
        score = self.zsets.get(key, {}).get(member)
        return None if score is None else _fmt(score)

    def cmd_zmscore(self, key, *members):
        return [self.cmd_zscore(key, m) for m in members]

    def cmd_zincrby(self, key, increment, member):
        zset = self.zsets.setdefault(key, {})
        zset[member] = zset.get(member, 0.0) + float(increment)
        return _fmt(zset[member])

    def cmd_zrem(self, key, *members):
        zset = self.zsets.get(key, {})
        return sum(1 for m in members if zset.pop(m, None) is not None)

    def cmd_zrange(self, key, start, stop, *args):
        items = self._sorted(key)
        start, stop = int(start), int(stop)
        stop = len(items) + stop if stop < 0 else stop
        withscores, _ = self._options(args)
        return self._flat(items[start:stop + 1], withscores)

    def cmd_zrevrange(self, key, start, stop, *args):
        items = self._sorted(key)[::-1]
        start, stop = int(start), int(stop)
        stop = len(items) + stop if stop < 0 else stop
        withscores, _ = self._options(args)
        return self._flat(items[start:stop + 1], withscores)

    def cmd_zrank(self, key, member):
        members = [m for m, _ in self._sorted(key)]
        return members.index(member) if member in members else None

    def cmd_zrevrank(self, key, member):
        members = [m for m, _ in self._sorted(key)][::-1]
        return members.index(member) if member in members else None

    def cmd_zrandmember(self, key, count=None, *args):
        # deterministic: lowest scored members first
        items = self._sorted(key)
        if count is None:
            return items[0][0] if items else None
        withscores, _ = self._options(args)
        return self._flat(items[:abs(int(count))], withscores)

    def cmd_zremrangebyrank(self, key, start, stop):
        items = self._sorted(key)
        start, stop = int(start), int(stop)
        stop = len(items) + stop if stop < 0 else stop
        return self.cmd_zrem(key, *[m for m, _ in items[start:stop + 1]])

    def cmd_zremrangebyscore(self, key, min, max):
        return self.cmd_zrem(
            key, *[m for m, _ in self._by_score(key, min, max)])

    def cmd_zremrangebylex(self, key, min, max):
        return self.cmd_zrem(key, *self._by_lex(key, min, max))

    def _by_score(self, key, min, max):
        lo, lo_ex = _parse_score_bound(min)
        hi, hi_ex = _parse_score_bound(max)
        return [(m, s) for m, s in self._sorted(key)
                if (s > lo if lo_ex else s >= lo)
                and (s < hi if hi_ex else s <= hi)]

    def cmd_zrangebyscore(self, key, min, max, *args):
        withscores, limit = self._options(args)
        items = self._limit(self._by_score(key, min, max), limit)
        return self._flat(items, withscores)

    def cmd_zrevrangebyscore(self, key, max, min, *args):
        withscores, limit = self._options(args)
        items = self._by_score(key, min, max)[::-1]
        return self._flat(self._limit(items, limit), withscores)

    def cmd_zcount(self, key, min, max):
        return len(self._by_score(key, min, max))

    def _by_lex(self, key, min, max):
        lo, lo_ex = _parse_lex_bound(min)
        hi, hi_ex = _parse_lex_bound(max)
        result = []
        for m, _ in self._sorted(key):
            if lo != b'-' and (m <= lo if lo_ex else m < lo):
                continue
            if hi != b'+' and (m >= hi if hi_ex else m > hi):
                continue
            result.append(m)
        return result

    def cmd_zrangebylex(self, key, min, max, *args):
        _, limit = self._options(args)
        return self._limit(self._by_lex(key, min, max), limit)

    def cmd_zrevrangebylex(self, key, max, min, *args):
        _, limit = self._options(args)
        return self._limit(self._by_lex(key, min, max)[::-1], limit)

    def cmd_zlexcount(self, key, min, max):
        return len(self._by_lex(key, min, max))

    def _pop(self, key, count, reverse):
        items = self._sorted(key)
        if reverse:
            items = items[::-1]
        items = items[:count]
        for m, _ in items:
            del self.zsets[key][m]
        return self._flat(items, True)

    def cmd_zpopmin(self, key, count=b'1'):
        return self._pop(key, int(count), False)

    def cmd_zpopmax(self, key, count=b'1'):
        return self._pop(key, int(count), True)

    def _bzpop(self, args, reverse):
        for key in args[:-1]:
            if self.zsets.get(key):
                return [key] + self._pop(key, 1, reverse)
        return None

    def cmd_bzpopmin(self, *args):
        return self._bzpop(args, False)

    def cmd_bzpopmax(self, *args):
        return self._bzpop(args, True)

    def _diff(self, numkeys, keys):
        keys = keys[:int(numkeys)]
        first = dict(self.zsets.get(keys[0], {}))
        for key in keys[1:]:
            for member in self.zsets.get(key, {}):
                first.pop(member, None)
        return first

    def cmd_zdiff(self, numkeys, *args):
        withscores = args[int(numkeys):] == (b'WITHSCORES',)
        return self._reply(self._diff(numkeys, args), withscores)

    def cmd_zdiffstore(self, destkey, numkeys, *keys):
        return self._store(destkey, self._diff(numkeys, keys))

    def _combine(self, numkeys, args, intersect):
        numkeys = int(numkeys)
        keys, args = list(args[:numkeys]), list(args[numkeys:])
        weights = [1.0] * numkeys
        aggregate = b'SUM'
        withscores = False
        while args:
            opt = args.pop(0).upper()
            if opt == b'WEIGHTS':
                weights = [float(args.pop(0)) for _ in range(numkeys)]
            elif opt == b'AGGREGATE':
                aggregate = args.pop(0).upper()
            elif opt == b'WITHSCORES':
                withscores = True
            else:
                raise ReplyError("ERR syntax error")
        combine = {b'SUM': lambda a, b: a + b, b'MIN': min, b'MAX': max}
        result = {}
        for i, key in enumerate(keys):
            for member, score in self.zsets.get(key, {}).items():
                weighted = score * weights[i]
                if member in result:
                    result[member] = combine[aggregate](
                        result[member], weighted)
                else:
                    result[member] = weighted
        if intersect:
            for key in keys:
                zset = self.zsets.get(key, {})
                result = {m: s for m, s in result.items() if m in zset}
        return result, withscores

    def _store(self, destkey, result):
        self.zsets[destkey] = result
        return len(result)

    def _reply(self, result, withscores):
        items = sorted(result.items(), key=lambda item: (item[1], item[0]))
        return self._flat(items, withscores)

    def cmd_zunionstore(self, destkey, numkeys, *args):
        return self._store(destkey, self._combine(numkeys, args, False)[0])

    def cmd_zinterstore(self, destkey, numkeys, *args):
        return self._store(destkey, self._combine(numkeys, args, True)[0])

    def cmd_zunion(self, numkeys, *args):
        return self._reply(*self._combine(numkeys, args, False))

    def cmd_zinter(self, numkeys, *args):
        return self._reply(*self._combine(numkeys, args, True))

    def cmd_zscan(self, key, cursor, *args):
        args = list(args)
        match, count = None, 10
        while args:
            opt = args.pop(0).upper()
            if opt == b'MATCH':
                match = args.pop(0)
            elif opt == b'COUNT':
                count = int(args.pop(0))
        items = self._sorted(key)
        start = int(cursor)
        page = items[start:start + count]
        next_cursor = start + count if start + count < len(items) else 0
        if match is not None:
            page = [(m, s) for m, s in page
                    if fnmatch.fnmatchcase(m.decode(), match.decode())]
        return [b'%d' % next_cursor, self._flat(page, True)]


class FakeConnection(AbcConnection):
    """Connection answering from :class:`FakeStore`, recording commands."""

    def __init__(self, store=None):
        self.store = store or FakeStore()
        self.sent = []
        self._queued = None
        self._closed = False
        self.forced_mode = None

    def execute(self, command, *args):
        encode_command(command, *args)
        cmd = _b(command).upper()
        args = tuple(_converters[type(arg)](arg) for arg in args)
        self.sent.append((cmd,) + args)
        fut = asyncio.get_event_loop().create_future()
        if cmd == b'MULTI':
            self._queued = []
            reply = b'OK'
        elif cmd == b'DISCARD':
            queued, self._queued = self._queued, None
            for _, _, queued_fut in queued:
                queued_fut.cancel()
            reply = b'OK'
        elif cmd == b'EXEC':
            queued, self._queued = self._queued, None
            reply = []
            for c, a, queued_fut in queued:
                reply.append(self.store.call(c, a))
                _resolve(queued_fut, reply[-1])
            fut.set_result(reply)
            return fut
        elif self._queued is not None:
            # resolved from the EXEC reply
            self._queued.append((cmd, args, fut))
            return fut
        else:
            reply = self.store.call(cmd, args)
        _resolve(fut, reply)
        return fut

    @contextlib.contextmanager
    def _buffered(self):
        yield self

    def close(self):
        self._closed = True

    async def wait_closed(self):
        pass

    @property
    def closed(self):
        return self._closed

    @property
    def mode(self):
        if self.forced_mode is not None:
            return self.forced_mode
        if self._queued is not None:
            return ExecutionMode.TRANSACTIONAL
        return ExecutionMode.DIRECT

    @property
    def address(self):
        return ('fake', 0)

    def commands(self, name):
        return [c for c in self.sent if c[0] == name]


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def conn(store):
    return FakeConnection(store)


@pytest.fixture
def redis(conn):
    return ZSetClient(conn)
