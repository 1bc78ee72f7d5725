"""
Key-Value Engine Interface

Contract of the concurrent, fixed-capacity store behind a SharedDict. The
engine stores raw bytes under string keys and owns concurrency control,
persistence and capacity enforcement. The facade only ever talks to this
interface.
"""
from abc import ABC, abstractmethod
from typing import Callable, List, Optional


class SharedMemoryEngine(ABC):
    """
    Abstract key-value engine addressed by a segment name.

    Implementations must be safe for concurrent calls. One call equals one
    logical operation; the facade never composes calls atomically.
    """

    @abstractmethod
    def size(self) -> int:
        """Number of stored entries."""

    @abstractmethod
    def contains(self, key: str) -> bool:
        """True if *key* is stored."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Stored bytes for *key*, or None if absent."""

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """Store *value* under *key*, overwriting any previous value."""

    @abstractmethod
    def erase(self, key: str) -> bool:
        """Remove *key*; False if it was not stored."""

    @abstractmethod
    def keys(self) -> List[str]:
        """Every stored key exactly once, in engine order."""

    @abstractmethod
    def close(self) -> None:
        """Detach from the segment without destroying it. Idempotent."""

    @abstractmethod
    def unlink(self) -> None:
        """Destroy the backing segment."""

    @abstractmethod
    def is_closed(self) -> bool:
        """True once :meth:`close` was called."""

    def capacity(self) -> Optional[int]:
        """Byte capacity enforced by the segment, None if the engine does not report it."""
        return None

    def key_limit(self) -> Optional[int]:
        """Distinct-key limit enforced by the segment, None if the engine does not report it."""
        return None


EngineFactory = Callable[[str, int, bool, int], SharedMemoryEngine]
"""Builds an engine from ``(name, size, create, max_keys)``."""
