"""
SharedDict

Dictionary facade over a shared key-value engine. Values are encoded with
the ValueCodec before they reach the engine and decoded on every read;
keys are always ``str``.
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from sharedbox.codec.opaque import SerializationFormat
from sharedbox.codec.value import ValueCodec
from sharedbox.core.config import SharedDictConfig
from sharedbox.core.exceptions import (
    InvalidArgumentError,
    KeyNotFoundError,
    PartialBulkLoadError,
)
from sharedbox.core.handle import SegmentHandle
from sharedbox.core.stats import StatsEstimator
from sharedbox.defaults.constants import SegmentConstants, StatsConstants
from sharedbox.engine.base import EngineFactory, SharedMemoryEngine
from sharedbox.engine.local import InProcessEngine
from sharedbox.helper.logging_config import log_performance
from sharedbox.utils.sizing import DefaultSizingAdvisor, SizingAdvisor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BulkLoadResult:
    """
    Outcome of a bulk load.

    ``success_count`` entries were written before ``error`` (if any) stopped
    the load. Written entries stay in the segment.
    """
    success_count: int
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        """
        Raises:
            PartialBulkLoadError: If the load stopped on an error
        """
        if self.error is not None:
            raise PartialBulkLoadError(self.success_count, self.error) from self.error


def _check_key(key: Any) -> str:
    if not isinstance(key, str):
        raise InvalidArgumentError(
            f"Keys must be strings, got {type(key).__name__}",
            details={"type": type(key).__name__}
        )
    return key


class SharedDict:
    """
    Shared memory dictionary with typed values.

    numpy arrays are stored in a native tensor layout, every other value with
    the configured object serializer (pickle by default).

    Example:
        >>> import numpy as np
        >>> with SharedDict("demo", max_keys=16) as d:
        ...     d["x"] = np.array([[1, 2, 3], [4, 5, 6]], dtype=np.float32)
        ...     d["meta"] = {"owner": "worker-1"}
        ...     d["x"].shape
        (2, 3)
    """

    def __init__(
        self,
        name: str,
        data: Optional[Mapping[str, Any]] = None,
        size: int = SegmentConstants.DEFAULT_SIZE,
        create: bool = SegmentConstants.DEFAULT_CREATE,
        max_keys: int = SegmentConstants.DEFAULT_MAX_KEYS,
        *,
        engine_factory: Optional[EngineFactory] = None,
        serialization_format: SerializationFormat = SerializationFormat.PICKLE,
        codec: Optional[ValueCodec] = None,
        advisor: Optional[SizingAdvisor] = None
    ):
        """
        Create or open a shared memory dictionary.

        Args:
            name: Segment name
            data: Optional string-keyed mapping written after attaching
            size: Segment capacity in bytes
            create: If True, create the segment, otherwise attach to it
            max_keys: Maximum number of distinct keys
            engine_factory: Builds the engine from (name, size, create, max_keys);
                defaults to InProcessEngine
            serialization_format: Serializer for non-tensor values
            codec: Preconfigured ValueCodec; overrides serialization_format
            advisor: SizingAdvisor used by recommend_sizing

        Raises:
            InvalidArgumentError: If an option or *data* is invalid
            PartialBulkLoadError: If writing *data* failed part way
        """
        SharedDictConfig(
            name=name, size=size, create=create, max_keys=max_keys, initial_data=data
        ).validate()

        factory = engine_factory or InProcessEngine
        engine: SharedMemoryEngine = factory(name, size, create, max_keys)

        # an existing segment keeps the limits it was created with
        capacity = engine.capacity()
        key_limit = engine.key_limit()
        self._handle = SegmentHandle(
            name=name,
            capacity_bytes=size if capacity is None else capacity,
            max_keys=max_keys if key_limit is None else key_limit,
            created=create,
            engine=engine
        )
        self._codec = codec or ValueCodec(serialization_format=serialization_format)
        self._advisor = advisor
        self._stats = StatsEstimator()

        logger.info(
            f"SharedDict '{name}' {'created' if create else 'attached'} "
            f"(size={self._handle.capacity_bytes}, max_keys={self._handle.max_keys})"
        )

        if data is not None:
            self.update(data)

    @classmethod
    def from_config(cls, config: SharedDictConfig, **kwargs) -> "SharedDict":
        """Create a SharedDict from a :class:`SharedDictConfig`."""
        config.validate()
        return cls(
            config.name,
            data=config.initial_data,
            size=config.size,
            create=config.create,
            max_keys=config.max_keys,
            serialization_format=config.serialization_format,
            **kwargs
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._handle.name

    @property
    def handle(self) -> SegmentHandle:
        return self._handle

    @property
    def codec(self) -> ValueCodec:
        return self._codec

    def close(self) -> None:
        """Close access to shared memory without removing it."""
        self._handle.close()

    def unlink(self) -> None:
        """
        Remove the shared memory segment entirely.

        Raises:
            InvalidStateError: If the dictionary is still open
        """
        self._handle.unlink()

    def is_closed(self) -> bool:
        """Check if this SharedDict connection has been closed."""
        return self._handle.closed

    def __enter__(self) -> "SharedDict":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Mapping protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return self._handle.engine.size()

    def __contains__(self, key: str) -> bool:
        return self._handle.engine.contains(_check_key(key))

    def __getitem__(self, key: str) -> Any:
        data = self._handle.engine.get(_check_key(key))
        if data is None:
            raise KeyNotFoundError(key)
        return self._codec.decode(data)

    def __setitem__(self, key: str, value: Any) -> None:
        key = _check_key(key)
        self._handle.engine.set(key, self._codec.encode(value))

    def __delitem__(self, key: str) -> None:
        if not self._handle.engine.erase(_check_key(key)):
            raise KeyNotFoundError(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def get(self, key: str, default: Any = None) -> Any:
        """
        Return the value for *key*, or *default* on any lookup or decode failure.
        """
        try:
            return self[key]
        except Exception as e:
            if not isinstance(e, KeyError):
                logger.debug(f"get('{key}') on '{self.name}' fell back to default: {e}")
            return default

    def keys(self) -> List[str]:
        """Return list of all keys."""
        return list(self._handle.engine.keys())

    def values(self) -> List[Any]:
        """Return list of all values."""
        return [value for _, value in self._iter_items()]

    def items(self) -> List[Tuple[str, Any]]:
        """Return list of (key, value) tuples."""
        return list(self._iter_items())

    def _iter_items(self) -> Iterator[Tuple[str, Any]]:
        engine = self._handle.engine
        for key in engine.keys():
            data = engine.get(key)
            if data is None:
                # erased between enumeration and read
                continue
            yield key, self._codec.decode(data)

    # ------------------------------------------------------------------
    # Bulk initialization
    # ------------------------------------------------------------------

    def bulk_load(self, data: Mapping[str, Any]) -> BulkLoadResult:
        """
        Write every entry of *data*.

        Input is validated before anything is written. Write failures stop
        the load and are returned, not raised; entries written so far are
        kept.

        Args:
            data: String-keyed mapping

        Returns:
            BulkLoadResult: Number of written entries and the stopping error

        Raises:
            InvalidArgumentError: If *data* is not a mapping or has a non-str key
        """
        if not isinstance(data, Mapping):
            raise InvalidArgumentError(
                "Argument 'data' has incorrect type (expected dict)",
                details={"type": type(data).__name__}
            )
        if not all(isinstance(key, str) for key in data):
            raise InvalidArgumentError("All keys must be strings")

        written = 0
        for key, value in data.items():
            try:
                self[key] = value
            except Exception as e:
                logger.warning(
                    f"Bulk load into '{self.name}' stopped after {written} items: {e}"
                )
                return BulkLoadResult(success_count=written, error=e)
            written += 1

        logger.debug(f"Bulk loaded {written} items into '{self.name}'")
        return BulkLoadResult(success_count=written)

    def update(self, data: Mapping[str, Any]) -> None:
        """
        Write every entry of *data*.

        Raises:
            InvalidArgumentError: If *data* is not a mapping or has a non-str key
            PartialBulkLoadError: If a write failed; carries the count of written entries
        """
        self.bulk_load(data).raise_for_error()

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        """Get runtime statistics and diagnostic information."""
        return self._stats.estimate(self._handle.engine, self.name).as_dict()

    @log_performance(threshold_ms=500.0)
    def recommend_sizing(self, target_entries: Optional[int] = None) -> Dict[str, Any]:
        """
        Get sizing recommendations based on current usage.

        Args:
            target_entries: Entry count to size for; defaults to ten times the
                current count, at least 10000

        Returns:
            dict: ``current_stats``, ``target_entries``, ``sizing_recommendation``,
            ``lock_recommendation`` and, when no recommendation was made, ``message``
        """
        stats = self.get_stats()
        current_entries = stats["total_entries"]

        if target_entries is None:
            target = max(
                current_entries * StatsConstants.GROWTH_FACTOR,
                StatsConstants.MIN_TARGET_ENTRIES
            )
        else:
            target = int(target_entries)

        result: Dict[str, Any] = {
            "current_stats": stats,
            "target_entries": target,
        }

        if current_entries == 0:
            result["sizing_recommendation"] = None
            result["lock_recommendation"] = None
            result["message"] = "No data in SharedDict yet - cannot provide recommendations"
            return result

        advisor = self._advisor or DefaultSizingAdvisor()
        try:
            result["sizing_recommendation"] = advisor.calculate_segment_size(
                target,
                int(stats["avg_key_utf8_bytes"]),
                int(stats["avg_value_encoded_bytes"])
            )
            result["lock_recommendation"] = advisor.recommend_lock_count(target)
        except Exception as e:
            logger.warning(f"Sizing advisor failed for '{self.name}': {e}")
            result["sizing_recommendation"] = None
            result["lock_recommendation"] = None
            result["message"] = f"Could not calculate recommendations: {e}"

        return result

    def __repr__(self) -> str:
        return f"SharedDict(name={self.name!r}, closed={self.is_closed()})"
