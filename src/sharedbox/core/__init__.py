"""
Core of sharedbox: the SharedDict facade, its lifecycle handle, statistics,
configuration and the exception hierarchy.
"""
# exceptions first: the codec and engine modules import them while this
# package is still initializing
from sharedbox.core.exceptions import (
    CapacityExceededError,
    CodecError,
    EngineError,
    InvalidArgumentError,
    InvalidStateError,
    KeyNotFoundError,
    MalformedValueError,
    PartialBulkLoadError,
    SegmentNotFoundError,
    SharedBoxError,
    UnsupportedTypeError,
)
from sharedbox.core.config import SharedDictConfig
from sharedbox.core.handle import SegmentHandle
from sharedbox.core.stats import SegmentStats, StatsEstimator
from sharedbox.core.shared_dict import BulkLoadResult, SharedDict

__all__ = [
    "SharedDict",
    "BulkLoadResult",
    "SharedDictConfig",
    "SegmentHandle",
    "SegmentStats",
    "StatsEstimator",
    # Exceptions
    "SharedBoxError",
    "KeyNotFoundError",
    "InvalidArgumentError",
    "InvalidStateError",
    "PartialBulkLoadError",
    "CodecError",
    "MalformedValueError",
    "UnsupportedTypeError",
    "EngineError",
    "SegmentNotFoundError",
    "CapacityExceededError",
]
