from ..aggregate import Aggregate, Weights, build, check_weights
from ..boundary import Limit, Range, encode_lex_range, encode_score_range
from ..dispatch import Command, invoke, require_direct, check_int32
from ..errors import InvalidArgument
from ..scan import ScanIteration, ScanOptions, ZScanCursor, check_cursor
from ..util import (
    int_or_float,
    optional_int_or_float,
    scores_list,
    pairs_to_tuples,
    optional_tuple,
    keyed_tuple,
    )


class SortedSetCommandsMixin:
    """Sorted Sets commands mixin.

    For commands details see: http://redis.io/commands/#sorted_set
    """

    ZSET_IF_NOT_EXIST = 'ZSET_IF_NOT_EXIST'  # NX
    ZSET_IF_EXIST = 'ZSET_IF_EXIST'  # XX
    ZSET_IF_GREATER = 'ZSET_IF_GREATER'  # GT
    ZSET_IF_LESS = 'ZSET_IF_LESS'  # LT

    def _invoke(self, command, *args, convert=None):
        return invoke(self._conn, Command(command, *args, convert=convert))

    def zadd(self, key, score, member, *pairs, exist=None, compare=None,
             changed=False):
        """Add one or more members to a sorted set or update its score.

        :raises InvalidArgument: score not int or float
        :raises InvalidArgument: length of pairs is not even number
        :raises InvalidArgument: compare is combined with
            ZSET_IF_NOT_EXIST
        """
        _check_key(key)
        _check_score('score', score)
        _check_member(member)
        if len(pairs) % 2 != 0:
            raise InvalidArgument("length of pairs must be even number")
        for i, item in enumerate(pairs):
            if i % 2 == 0:
                _check_score('score', item)
            else:
                _check_member(item)

        args = self._zadd_flags(exist, compare, changed)
        args.extend([score, member])
        args.extend(pairs)
        return self._invoke(b'ZADD', key, *args)

    def zadd_tuples(self, key, tuples, *, exist=None, compare=None,
                    changed=False):
        """Add ``(member, score)`` tuples to a sorted set.

        :raises InvalidArgument: tuples is None or empty
        """
        _check_key(key)
        if not tuples:
            raise InvalidArgument("tuples must not be None or empty")
        args = self._zadd_flags(exist, compare, changed)
        for member, score in tuples:
            _check_member(member)
            _check_score('score', score)
            args.extend([score, member])
        return self._invoke(b'ZADD', key, *args)

    def _zadd_flags(self, exist, compare, changed):
        args = []
        if exist is self.ZSET_IF_EXIST:
            args.append(b'XX')
        elif exist is self.ZSET_IF_NOT_EXIST:
            args.append(b'NX')
        if compare is not None and exist is self.ZSET_IF_NOT_EXIST:
            raise InvalidArgument(
                "compare can not be combined with ZSET_IF_NOT_EXIST")
        if compare is self.ZSET_IF_GREATER:
            args.append(b'GT')
        elif compare is self.ZSET_IF_LESS:
            args.append(b'LT')
        elif compare is not None:
            raise InvalidArgument(
                "compare must be ZSET_IF_GREATER or ZSET_IF_LESS")
        if changed:
            args.append(b'CH')
        return args

    def zcard(self, key):
        """Get the number of members in a sorted set."""
        _check_key(key)
        return self._invoke(b'ZCARD', key)

    def zcount(self, key, range=None):
        """Count the members in a sorted set with scores
        within the given range.
        """
        _check_key(key)
        min, max = encode_score_range(_range(range))
        return self._invoke(b'ZCOUNT', key, min, max)

    def zincrby(self, key, increment, member):
        """Increment the score of a member in a sorted set.

        :raises InvalidArgument: increment is not float or int
        """
        _check_key(key)
        _check_score('increment', increment)
        _check_member(member)
        return self._invoke(b'ZINCRBY', key, increment, member,
                            convert=int_or_float)

    def zlexcount(self, key, range=None):
        """Count the number of members in a sorted set between a given
        lexicographical range.
        """
        _check_key(key)
        min, max = encode_lex_range(_range(range))
        return self._invoke(b'ZLEXCOUNT', key, min, max)

    def zrandmember(self, key, count=None, *, withscores=False):
        """Get one or multiple random members from a sorted set.

        Without count a single member (or :class:`Tuple` with scores) is
        returned, None if the set is empty.
        """
        _check_key(key)
        if count is None:
            if withscores:
                return self._invoke(b'ZRANDMEMBER', key, 1, b'WITHSCORES',
                                    convert=optional_tuple)
            return self._invoke(b'ZRANDMEMBER', key)
        check_int32('count', count)
        if withscores:
            return self._invoke(b'ZRANDMEMBER', key, count, b'WITHSCORES',
                                convert=pairs_to_tuples)
        return self._invoke(b'ZRANDMEMBER', key, count)

    def zrange(self, key, start=0, stop=-1, withscores=False):
        """Return a range of members in a sorted set, by index.

        :raises InvalidArgument: if start or stop is not int
        """
        return self._zrange(b'ZRANGE', key, start, stop, withscores)

    def zrevrange(self, key, start=0, stop=-1, withscores=False):
        """Return a range of members in a sorted set, by index,
        with scores ordered from high to low.

        :raises InvalidArgument: if start or stop is not int
        """
        return self._zrange(b'ZREVRANGE', key, start, stop, withscores)

    def _zrange(self, command, key, start, stop, withscores):
        _check_key(key)
        _check_int('start', start)
        _check_int('stop', stop)
        if withscores:
            return self._invoke(command, key, start, stop, b'WITHSCORES',
                                convert=pairs_to_tuples)
        return self._invoke(command, key, start, stop)

    def zrangebyscore(self, key, range=None, limit=None, withscores=False):
        """Return a range of members in a sorted set, by score.

        :raises ArgumentOutOfRange: if offset or count of limit does
                                    not fit 32-bit integer
        """
        _check_key(key)
        min, max = encode_score_range(_range(range))
        return self._zrangeby(b'ZRANGEBYSCORE', key, min, max,
                              limit, withscores)

    def zrevrangebyscore(self, key, range=None, limit=None,
                         withscores=False):
        """Return a range of members in a sorted set, by score,
        with scores ordered from high to low.
        """
        _check_key(key)
        min, max = encode_score_range(_range(range))
        return self._zrangeby(b'ZREVRANGEBYSCORE', key, max, min,
                              limit, withscores)

    def zrangebylex(self, key, range=None, limit=None):
        """Return a range of members in a sorted set, by lexicographical range.
        """
        _check_key(key)
        min, max = encode_lex_range(_range(range))
        return self._zrangeby(b'ZRANGEBYLEX', key, min, max, limit)

    def zrevrangebylex(self, key, range=None, limit=None):
        """Return a range of members in a sorted set, by lexicographical range
        from high to low.
        """
        _check_key(key)
        min, max = encode_lex_range(_range(range))
        return self._zrangeby(b'ZREVRANGEBYLEX', key, max, min, limit)

    def _zrangeby(self, command, key, start, end, limit, withscores=False):
        args = []
        if withscores:
            args.append(b'WITHSCORES')
        args.extend(_limit_args(limit))
        if withscores:
            return self._invoke(command, key, start, end, *args,
                                convert=pairs_to_tuples)
        return self._invoke(command, key, start, end, *args)

    def zrank(self, key, member):
        """Determine the index of a member in a sorted set."""
        _check_key(key)
        _check_member(member)
        return self._invoke(b'ZRANK', key, member)

    def zrevrank(self, key, member):
        """Determine the index of a member in a sorted set, with
        scores ordered from high to low.
        """
        _check_key(key)
        _check_member(member)
        return self._invoke(b'ZREVRANK', key, member)

    def zrem(self, key, member, *members):
        """Remove one or more members from a sorted set."""
        _check_key(key)
        _check_member(member)
        for m in members:
            _check_member(m)
        return self._invoke(b'ZREM', key, member, *members)

    def zremrangebylex(self, key, range=None):
        """Remove all members in a sorted set between the given
        lexicographical range.
        """
        _check_key(key)
        min, max = encode_lex_range(_range(range))
        return self._invoke(b'ZREMRANGEBYLEX', key, min, max)

    def zremrangebyrank(self, key, start, stop):
        """Remove all members in a sorted set within the given indexes.

        :raises InvalidArgument: if start or stop is not int
        """
        _check_key(key)
        _check_int('start', start)
        _check_int('stop', stop)
        return self._invoke(b'ZREMRANGEBYRANK', key, start, stop)

    def zremrangebyscore(self, key, range=None):
        """Remove all members in a sorted set within the given scores."""
        _check_key(key)
        min, max = encode_score_range(_range(range))
        return self._invoke(b'ZREMRANGEBYSCORE', key, min, max)

    def zscore(self, key, member):
        """Get the score associated with the given member in a sorted set."""
        _check_key(key)
        _check_member(member)
        return self._invoke(b'ZSCORE', key, member,
                            convert=optional_int_or_float)

    def zmscore(self, key, member, *members):
        """Get the scores of the given members, None for missing ones."""
        _check_key(key)
        _check_member(member)
        for m in members:
            _check_member(m)
        return self._invoke(b'ZMSCORE', key, member, *members,
                            convert=scores_list)

    def zpopmin(self, key, count=None):
        """Remove and return members with the lowest scores.

        Without count a single :class:`Tuple` or None is returned.
        """
        return self._zpop(b'ZPOPMIN', key, count)

    def zpopmax(self, key, count=None):
        """Remove and return members with the highest scores.

        Without count a single :class:`Tuple` or None is returned.
        """
        return self._zpop(b'ZPOPMAX', key, count)

    def _zpop(self, command, key, count):
        _check_key(key)
        if count is None:
            return self._invoke(command, key, convert=optional_tuple)
        check_int32('count', count)
        return self._invoke(command, key, count, convert=pairs_to_tuples)

    def bzpopmin(self, key, *keys, timeout=0):
        """Remove and return the member with the lowest score from the
        first non-empty sorted set, blocking until one is available.

        :raises InvalidArgument: if timeout is not int or float
        :raises InvalidArgument: if timeout is less than 0
        """
        return self._bzpop(b'BZPOPMIN', key, keys, timeout)

    def bzpopmax(self, key, *keys, timeout=0):
        """Remove and return the member with the highest score from the
        first non-empty sorted set, blocking until one is available.

        :raises InvalidArgument: if timeout is not int or float
        :raises InvalidArgument: if timeout is less than 0
        """
        return self._bzpop(b'BZPOPMAX', key, keys, timeout)

    def _bzpop(self, command, key, keys, timeout):
        keys = _check_keys(key, keys)
        if isinstance(timeout, bool) or \
                not isinstance(timeout, (int, float)):
            raise InvalidArgument("timeout argument must be int or float")
        if timeout < 0:
            raise InvalidArgument("timeout must be greater equal 0")
        return self._invoke(command, *keys, timeout, convert=keyed_tuple)

    def zdiff(self, key, *keys, withscores=False):
        """Subtract the following sorted sets from the first one."""
        keys = _check_keys(key, keys)
        if withscores:
            return self._invoke(b'ZDIFF', len(keys), *keys, b'WITHSCORES',
                                convert=pairs_to_tuples)
        return self._invoke(b'ZDIFF', len(keys), *keys)

    def zdiffstore(self, destkey, key, *keys):
        """Subtract sorted sets and store the result in a new key."""
        _check_key(destkey, 'destkey')
        keys = _check_keys(key, keys)
        return self._invoke(b'ZDIFFSTORE', destkey, len(keys), *keys)

    def zinter(self, key, *keys, aggregate=None, weights=None,
               withscores=False):
        """Intersect multiple sorted sets.

        :raises ArgumentMismatch: number of weights differs from
                                  number of keys
        """
        return self._zcombine(b'ZINTER', key, keys, aggregate, weights,
                              withscores)

    def zinterstore(self, destkey, key, *keys, aggregate=None, weights=None):
        """Intersect multiple sorted sets and store result in a new key.

        :raises ArgumentMismatch: number of weights differs from
                                  number of keys
        """
        _check_key(destkey, 'destkey')
        keys = _check_keys(key, keys)
        args = _aggregation_args(len(keys), aggregate, weights)
        return self._invoke(b'ZINTERSTORE', destkey, len(keys), *keys, *args)

    def zunion(self, key, *keys, aggregate=None, weights=None,
               withscores=False):
        """Add multiple sorted sets.

        :raises ArgumentMismatch: number of weights differs from
                                  number of keys
        """
        return self._zcombine(b'ZUNION', key, keys, aggregate, weights,
                              withscores)

    def zunionstore(self, destkey, key, *keys, aggregate=None, weights=None):
        """Add multiple sorted sets and store result in a new key.

        Weights are applied to the scores before they are aggregated:

        >>> await redis.zunionstore(b'dest', b'a', b'b',
        ...                         weights=[2, 3], aggregate=Aggregate.MAX)

        :raises ArgumentMismatch: number of weights differs from
                                  number of keys
        """
        _check_key(destkey, 'destkey')
        keys = _check_keys(key, keys)
        args = _aggregation_args(len(keys), aggregate, weights)
        return self._invoke(b'ZUNIONSTORE', destkey, len(keys), *keys, *args)

    def _zcombine(self, command, key, keys, aggregate, weights, withscores):
        keys = _check_keys(key, keys)
        args = _aggregation_args(len(keys), aggregate, weights)
        if withscores:
            args.append(b'WITHSCORES')
            return self._invoke(command, len(keys), *keys, *args,
                                convert=pairs_to_tuples)
        return self._invoke(command, len(keys), *keys, *args)

    def zscan(self, key, cursor=0, options=None):
        """Incrementally iterate sorted sets elements and associated scores.

        Returns :class:`~aiozset.scan.ScanIteration` holding next cursor
        and list of :class:`Tuple`.

        :raises InvalidArgument: cursor is not a non-negative integer
        :raises UnsupportedInMode: if called within pipeline or transaction
        """
        _check_key(key)
        cursor = check_cursor(cursor)

        def _converter(obj):
            return ScanIteration(int(obj[0]), pairs_to_tuples(obj[1]))

        return self._zscan(key, cursor, _scan_options(options), _converter)

    def _zscan(self, key, cursor, options, convert):
        require_direct(self._conn, 'ZSCAN')
        return self._invoke(b'ZSCAN', key, cursor, *options.to_args(),
                            convert=convert)

    def zscan_iter(self, key, options=None, *, cursor=0):
        """Return :class:`~aiozset.scan.ZScanCursor` over a sorted set.

        :raises UnsupportedInMode: if called within pipeline or transaction
        """
        _check_key(key)
        cursor = check_cursor(cursor)
        require_direct(self._conn, 'ZSCAN')
        options = _scan_options(options)

        def scan_step(cursor, options):
            return self._zscan(key, cursor, options, _raw_scan_reply)

        return ZScanCursor(scan_step, pairs_to_tuples,
                           cursor=cursor, options=options)

    def izscan(self, key, *, match=None, count=None):
        """Incrementally iterate sorted set items using async for.

        Usage example:

        >>> async for val, score in redis.izscan(key, match='something*'):
        ...     print('Matched:', val, ':', score)

        """
        return self.zscan_iter(key, ScanOptions(match, count))


def _check_key(key, name='key'):
    if key is None:
        raise InvalidArgument("{} must not be None".format(name))
    if isinstance(key, (bytes, bytearray, str)) and not key:
        raise InvalidArgument("{} must not be empty".format(name))
    return key


def _check_keys(key, keys):
    keys = (key,) + tuple(keys)
    if any(k is None for k in keys):
        raise InvalidArgument("Source sets must not contain None elements")
    for k in keys:
        _check_key(k)
    return keys


def _check_member(member):
    if member is None:
        raise InvalidArgument("member must not be None")


def _check_score(name, value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgument("{} argument must be int or float".format(name))


def _check_int(name, value):
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument("{} argument must be int".format(name))


def _range(range):
    if range is None:
        return Range.unbounded()
    if not isinstance(range, Range):
        raise InvalidArgument(
            "range argument must be Range, got {!r}".format(range))
    return range


def _limit_args(limit):
    if limit is None:
        return []
    if not isinstance(limit, Limit):
        raise InvalidArgument(
            "limit argument must be Limit, got {!r}".format(limit))
    if limit.is_unlimited():
        return []
    return [b'LIMIT',
            check_int32('offset', limit.offset),
            check_int32('count', limit.count)]


def _aggregation_args(numkeys, aggregate, weights):
    if aggregate is None and weights is None:
        return []
    if weights is None:
        weights = Weights.from_set_count(numkeys)
    elif not isinstance(weights, Weights):
        weights = Weights(weights)
    check_weights(weights, numkeys)
    return build(aggregate or Aggregate.SUM, weights).to_args()


def _scan_options(options):
    if options is None:
        return ScanOptions.NONE
    if not isinstance(options, ScanOptions):
        raise InvalidArgument("options argument must be ScanOptions")
    if options.count is not None:
        check_int32('count', options.count)
    return options


def _raw_scan_reply(obj):
    return int(obj[0]), obj[1]
