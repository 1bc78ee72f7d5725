"""
In-Process Engine

Reference key-value engine living in the memory of the current process.
Segments are kept in a module-level registry keyed by name, so several
SharedDict instances in one process can attach to the same segment the same
way separate processes attach to a native shared-memory segment.
Useful for tests and single-process deployments.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sharedbox.core.exceptions import (
    CapacityExceededError,
    InvalidStateError,
    SegmentNotFoundError,
)
from sharedbox.engine.base import SharedMemoryEngine

logger = logging.getLogger(__name__)


@dataclass
class _Segment:
    """Storage of one named segment."""
    name: str
    capacity: int
    max_keys: int
    entries: Dict[str, bytes] = field(default_factory=dict)
    used_bytes: int = 0
    lock: threading.RLock = field(default_factory=threading.RLock)


@dataclass
class SegmentInfo:
    """Segment information for diagnostics."""
    name: str
    capacity: int
    max_keys: int
    entries: int
    used_bytes: int


_registry: Dict[str, _Segment] = {}
_registry_lock = threading.RLock()


def _entry_bytes(key: str, value: bytes) -> int:
    return len(key.encode('utf-8')) + len(value)


class InProcessEngine(SharedMemoryEngine):
    """
    Process-local engine with key-count and byte-capacity enforcement.

    Every operation holds the segment's re-entrant lock, so the engine is
    safe to share between threads.

    Example:
        >>> engine = InProcessEngine("demo", size=1024, create=True, max_keys=8)
        >>> engine.set("a", b"\\x00data")
        >>> engine.get("a")
        b'\\x00data'
        >>> engine.close()
        >>> engine.unlink()
    """

    def __init__(self, name: str, size: int, create: bool = True, max_keys: int = 128):
        """
        Create or attach to segment *name*.

        Args:
            name: Segment name
            size: Capacity in bytes (keys + encoded values)
            create: If True, create the segment (attach if it already exists)
            max_keys: Maximum number of distinct keys

        Raises:
            SegmentNotFoundError: If create=False and the segment does not exist
        """
        self.name = name
        self.created = create
        self._closed = False

        with _registry_lock:
            segment = _registry.get(name)
            if segment is None:
                if not create:
                    raise SegmentNotFoundError(name)
                segment = _Segment(name=name, capacity=size, max_keys=max_keys)
                _registry[name] = segment
                logger.info(f"Created segment '{name}' ({size} bytes, max_keys={max_keys})")
            elif create:
                logger.warning(f"Segment '{name}' already exists, opening")
            else:
                logger.info(f"Opened segment '{name}'")

        self._segment: Optional[_Segment] = segment

    def _require_open(self) -> _Segment:
        if self._closed or self._segment is None:
            raise InvalidStateError(
                f"Segment '{self.name}' is closed",
                details={"segment": self.name}
            )
        return self._segment

    def size(self) -> int:
        segment = self._require_open()
        with segment.lock:
            return len(segment.entries)

    def contains(self, key: str) -> bool:
        segment = self._require_open()
        with segment.lock:
            return key in segment.entries

    def get(self, key: str) -> Optional[bytes]:
        segment = self._require_open()
        with segment.lock:
            return segment.entries.get(key)

    def set(self, key: str, value: bytes) -> None:
        segment = self._require_open()
        with segment.lock:
            previous = segment.entries.get(key)
            if previous is None and len(segment.entries) >= segment.max_keys:
                raise CapacityExceededError(
                    self.name, "max_keys", len(segment.entries) + 1, segment.max_keys
                )

            freed = _entry_bytes(key, previous) if previous is not None else 0
            needed = _entry_bytes(key, value)
            available = segment.capacity - segment.used_bytes + freed
            if needed > available:
                raise CapacityExceededError(self.name, "capacity", needed, available)

            segment.entries[key] = bytes(value)
            segment.used_bytes += needed - freed

    def erase(self, key: str) -> bool:
        segment = self._require_open()
        with segment.lock:
            previous = segment.entries.pop(key, None)
            if previous is None:
                return False
            segment.used_bytes -= _entry_bytes(key, previous)
            return True

    def keys(self) -> List[str]:
        segment = self._require_open()
        with segment.lock:
            return list(segment.entries)

    def capacity(self) -> int:
        """Capacity of the attached segment, which may predate this instance."""
        return self._require_open().capacity

    def key_limit(self) -> int:
        return self._require_open().max_keys

    def used_bytes(self) -> int:
        """Bytes currently occupied by keys and values."""
        segment = self._require_open()
        with segment.lock:
            return segment.used_bytes

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.debug(f"Closed segment '{self.name}'")

    def unlink(self) -> None:
        with _registry_lock:
            if self._segment is not None and _registry.get(self.name) is self._segment:
                del _registry[self.name]
                logger.info(f"Unlinked segment '{self.name}'")
        self._segment = None

    def is_closed(self) -> bool:
        return self._closed


def list_segments() -> List[SegmentInfo]:
    """
    List all segments of the in-process registry.

    Returns:
        List of SegmentInfo objects
    """
    with _registry_lock:
        segments = list(_registry.values())

    infos = []
    for segment in segments:
        with segment.lock:
            infos.append(SegmentInfo(
                name=segment.name,
                capacity=segment.capacity,
                max_keys=segment.max_keys,
                entries=len(segment.entries),
                used_bytes=segment.used_bytes,
            ))
    return infos


def segment_exists(name: str) -> bool:
    """True if segment *name* is in the in-process registry."""
    with _registry_lock:
        return name in _registry
