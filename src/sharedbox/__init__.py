"""
sharedbox: shared memory dictionary with typed values.

numpy arrays are stored in a native binary tensor layout; all other values go
through a pluggable object serializer (pickle by default). A one-byte marker
in front of every stored value selects the decode path.

Quick start:
    >>> import numpy as np
    >>> from sharedbox import SharedDict
    >>> d = SharedDict("cache", max_keys=1024)
    >>> d["weights"] = np.zeros((2, 3), dtype=np.float32)
    >>> d["config"] = {"epochs": 3}
    >>> len(d)
    2
    >>> d.close()
    >>> d.unlink()
"""
from sharedbox.core import (
    BulkLoadResult,
    CapacityExceededError,
    CodecError,
    EngineError,
    InvalidArgumentError,
    InvalidStateError,
    KeyNotFoundError,
    MalformedValueError,
    PartialBulkLoadError,
    SegmentHandle,
    SegmentNotFoundError,
    SegmentStats,
    SharedBoxError,
    SharedDict,
    SharedDictConfig,
    StatsEstimator,
    UnsupportedTypeError,
)
from sharedbox.codec import SerializationFormat, ValueCodec, ValueKind, WireFormat
from sharedbox.engine import InProcessEngine, SharedMemoryEngine
from sharedbox.utils import DefaultSizingAdvisor, SizingAdvisor
from sharedbox.__version__ import __version__

__all__ = [
    # Facade
    "SharedDict",
    "SharedDictConfig",
    "BulkLoadResult",
    "SegmentHandle",
    "SegmentStats",
    "StatsEstimator",

    # Codec
    "ValueCodec",
    "ValueKind",
    "WireFormat",
    "SerializationFormat",

    # Engines
    "SharedMemoryEngine",
    "InProcessEngine",

    # Sizing
    "SizingAdvisor",
    "DefaultSizingAdvisor",

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

    "__version__",
]
