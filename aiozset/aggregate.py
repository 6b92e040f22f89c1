import enum
from collections import namedtuple

from .errors import ArgumentMismatch, InvalidArgument

__all__ = [
    'Aggregate',
    'Weights',
    'AggregationParams',
    'build',
    'check_weights',
    ]


class Aggregate(enum.Enum):
    """How scores of a member present in several sets are combined."""

    SUM = b'SUM'
    MIN = b'MIN'
    MAX = b'MAX'


class Weights:
    """Per-set score multipliers for ZUNION/ZINTER and friends."""

    __slots__ = ('_weights',)

    def __init__(self, weights):
        weights = tuple(weights)
        for w in weights:
            if isinstance(w, bool) or not isinstance(w, (int, float)):
                raise InvalidArgument(
                    "weight must be int or float, got {!r}".format(w))
        self._weights = tuple(float(w) for w in weights)

    @classmethod
    def of(cls, *weights):
        return cls(weights)

    @classmethod
    def from_set_count(cls, count):
        """Weight of 1 for each of ``count`` sets."""
        return cls([1.0] * count)

    def multiply(self, factor):
        return self.apply(lambda w: w * factor)

    def apply(self, fn):
        return Weights(fn(w) for w in self._weights)

    def size(self):
        return len(self._weights)

    def to_list(self):
        return list(self._weights)

    def __len__(self):
        return len(self._weights)

    def __iter__(self):
        return iter(self._weights)

    def __getitem__(self, index):
        return self._weights[index]

    def __eq__(self, other):
        if not isinstance(other, Weights):
            return NotImplemented
        return self._weights == other._weights

    def __hash__(self):
        return hash(self._weights)

    def __repr__(self):
        return 'Weights{!r}'.format(self._weights)


class AggregationParams(namedtuple('AggregationParams',
                                   'aggregate weights')):
    __slots__ = ()

    def to_args(self):
        args = [b'WEIGHTS']
        args.extend(self.weights)
        args.extend((b'AGGREGATE', self.aggregate.value))
        return args


def check_weights(weights, numkeys):
    if weights.size() != numkeys:
        raise ArgumentMismatch(
            "The number of weights ({}) must match the number of"
            " source sets ({})".format(weights.size(), numkeys))


def build(aggregate, weights):
    """Combine an aggregate and already validated weights."""
    if not isinstance(aggregate, Aggregate):
        raise InvalidArgument(
            "aggregate must be Aggregate member, got {!r}".format(aggregate))
    return AggregationParams(aggregate, weights)
