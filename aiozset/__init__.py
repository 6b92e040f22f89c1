from .aggregate import Aggregate, Weights, AggregationParams
from .boundary import Boundary, Range, Limit
from .commands import (
    create_client,
    ZSetClient,
    Pipeline,
    MultiExec,
)
from .connection import create_connection, RedisConnection
from .dispatch import ExecutionMode, Command
from .errors import (
    RedisError,
    InvalidArgument,
    ArgumentMismatch,
    ArgumentOutOfRange,
    UnsupportedInMode,
    IteratorClosed,
    ProtocolError,
    ReplyError,
    PipelineError,
    MultiExecError,
    ConnectionClosedError,
    ConnectionForcedCloseError,
)
from .scan import ScanOptions, ScanIteration, ZScanCursor, CursorState
from .util import Tuple


__version__ = "0.1.1"

__all__ = [
    # Factories
    'create_client',
    'create_connection',
    # Client and connection
    'ZSetClient',
    'RedisConnection',
    'Pipeline',
    'MultiExec',
    'ExecutionMode',
    'Command',
    # Values
    'Tuple',
    'Boundary',
    'Range',
    'Limit',
    'Aggregate',
    'Weights',
    'AggregationParams',
    'ScanOptions',
    'ScanIteration',
    'ZScanCursor',
    'CursorState',
    # Errors
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
