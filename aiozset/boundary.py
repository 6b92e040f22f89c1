"""Range boundaries and their wire representation.

Score ranges are sent as numbers, optionally prefixed with ``(`` for an
exclusive end, with ``-inf``/``+inf`` for unbounded ends.
Lexicographical ranges are always prefixed with ``[`` (inclusive) or
``(`` (exclusive), with ``-``/``+`` for unbounded ends.

>>> encode_score_range(Range.gt(5.0))
(b'(5.0', b'+inf')
>>> encode_lex_range(Range(Boundary.inclusive(b'a'), Boundary.exclusive(b'z')))
(b'[a', b'(z')
"""
import math
from collections import namedtuple

from .errors import InvalidArgument

__all__ = [
    'Boundary',
    'Range',
    'Limit',
    'format_score',
    'encode_score_boundary',
    'encode_lex_boundary',
    'decode_score_boundary',
    'encode_score_range',
    'encode_lex_range',
    ]

SCORE = 'score'
LEX = 'lex'

NEGATIVE_INFINITY = b'-inf'
POSITIVE_INFINITY = b'+inf'
MINUS = b'-'
PLUS = b'+'

INCLUSIVE_MARKER = b'['
EXCLUSIVE_MARKER = b'('


def _check_value(value):
    if value is None:
        raise InvalidArgument(
            "boundary value must not be None, use Boundary.unbounded()")
    if isinstance(value, bool):
        raise InvalidArgument("boundary value must be a number or bytes")
    if isinstance(value, float) and math.isnan(value):
        raise InvalidArgument("score boundary must not be NaN")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        return value.encode()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise InvalidArgument(
        "boundary value must be int, float, bytes or str, got {!r}"
        .format(value))


class Boundary(namedtuple('Boundary', 'value included')):
    """One end of a range: unbounded, inclusive or exclusive."""

    __slots__ = ()

    @classmethod
    def unbounded(cls):
        return _UNBOUNDED

    @classmethod
    def inclusive(cls, value):
        return cls(_check_value(value), True)

    @classmethod
    def exclusive(cls, value):
        return cls(_check_value(value), False)

    @property
    def is_unbounded(self):
        return self.value is None

    @property
    def kind(self):
        """``'score'``, ``'lex'`` or None for an unbounded boundary."""
        if self.value is None:
            return None
        if isinstance(self.value, bytes):
            return LEX
        return SCORE

    def __repr__(self):
        if self.is_unbounded:
            return 'Boundary.unbounded()'
        return 'Boundary.{}({!r})'.format(
            'inclusive' if self.included else 'exclusive', self.value)


_UNBOUNDED = tuple.__new__(Boundary, (None, True))


class Range(namedtuple('Range', 'min max')):
    """Pair of boundaries of the same kind.

    ``None`` for either end means unbounded.
    """

    __slots__ = ()

    def __new__(cls, min=None, max=None):
        min = _UNBOUNDED if min is None else min
        max = _UNBOUNDED if max is None else max
        if not isinstance(min, Boundary) or not isinstance(max, Boundary):
            raise InvalidArgument("range ends must be Boundary instances")
        if min.kind and max.kind and min.kind != max.kind:
            raise InvalidArgument(
                "range mixes {} and {} boundaries".format(min.kind, max.kind))
        return super().__new__(cls, min, max)

    @classmethod
    def unbounded(cls):
        return cls()

    @classmethod
    def closed(cls, min, max):
        return cls(Boundary.inclusive(min), Boundary.inclusive(max))

    @classmethod
    def open(cls, min, max):
        return cls(Boundary.exclusive(min), Boundary.exclusive(max))

    @classmethod
    def gt(cls, value):
        return cls(min=Boundary.exclusive(value))

    @classmethod
    def gte(cls, value):
        return cls(min=Boundary.inclusive(value))

    @classmethod
    def lt(cls, value):
        return cls(max=Boundary.exclusive(value))

    @classmethod
    def lte(cls, value):
        return cls(max=Boundary.inclusive(value))

    @property
    def kind(self):
        return self.min.kind or self.max.kind


class Limit(namedtuple('Limit', 'offset count')):
    """Pagination of a range query.

    ``Limit.unlimited()`` is a distinct state and never produces a
    ``LIMIT`` clause.
    """

    __slots__ = ()

    def __new__(cls, offset=0, count=-1):
        if isinstance(offset, bool) or not isinstance(offset, int):
            raise InvalidArgument("offset argument must be int")
        if isinstance(count, bool) or not isinstance(count, int):
            raise InvalidArgument("count argument must be int")
        return super().__new__(cls, offset, count)

    @classmethod
    def unlimited(cls):
        return _UNLIMITED

    def is_unlimited(self):
        return self is _UNLIMITED

    def __repr__(self):
        if self.is_unlimited():
            return 'Limit.unlimited()'
        return super().__repr__()


_UNLIMITED = tuple.__new__(Limit, (None, None))


def format_score(value):
    """Render a score with full precision, infinities as ``+inf``/``-inf``.
    """
    if isinstance(value, int):
        return b'%d' % value
    if math.isnan(value):
        raise InvalidArgument("score must not be NaN")
    if math.isinf(value):
        return POSITIVE_INFINITY if value > 0 else NEGATIVE_INFINITY
    return b'%r' % value


def encode_score_boundary(boundary, unbounded_token):
    if boundary.is_unbounded:
        return unbounded_token
    if boundary.kind != SCORE:
        raise InvalidArgument(
            "expected score boundary, got {!r}".format(boundary))
    token = format_score(boundary.value)
    if boundary.included:
        return token
    return EXCLUSIVE_MARKER + token


def encode_lex_boundary(boundary, unbounded_token):
    if boundary.is_unbounded:
        return unbounded_token
    if boundary.kind != LEX:
        raise InvalidArgument(
            "expected lexicographical boundary, got {!r}".format(boundary))
    marker = INCLUSIVE_MARKER if boundary.included else EXCLUSIVE_MARKER
    return marker + boundary.value


def decode_score_boundary(token, unbounded_token):
    """Inverse of :func:`encode_score_boundary`.

    ``unbounded_token`` decodes as :meth:`Boundary.unbounded`.  An inclusive
    infinity on the same side encodes to that token as well, so it comes
    back unbounded; both select the same members.
    """
    if isinstance(token, str):
        token = token.encode()
    if token == unbounded_token:
        return _UNBOUNDED
    included = not token.startswith(EXCLUSIVE_MARKER)
    if not included:
        token = token[1:]
    try:
        value = int(token)
    except ValueError:
        value = float(token)
    return Boundary(value, included)


def encode_score_range(range):
    return (encode_score_boundary(range.min, NEGATIVE_INFINITY),
            encode_score_boundary(range.max, POSITIVE_INFINITY))


def encode_lex_range(range):
    return (encode_lex_boundary(range.min, MINUS),
            encode_lex_boundary(range.max, PLUS))
