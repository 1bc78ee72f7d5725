"""
Segment Handle

Lifecycle of the engine connection owned by one SharedDict.
"""
import logging
from typing import Optional

from sharedbox.core.exceptions import InvalidStateError
from sharedbox.engine.base import SharedMemoryEngine

logger = logging.getLogger(__name__)


class SegmentHandle:
    """
    Describes and exclusively owns the engine connection of a SharedDict.

    Lifecycle: open -> closed (``close()``, idempotent) -> unlinked
    (``unlink()``, only valid once closed). A handle without an engine
    reports itself as closed.
    """

    def __init__(
        self,
        name: str,
        capacity_bytes: int,
        max_keys: int,
        created: bool,
        engine: Optional[SharedMemoryEngine]
    ):
        self.name = name
        self.capacity_bytes = capacity_bytes
        self.max_keys = max_keys
        self.created = created
        self._engine = engine

    @property
    def engine(self) -> SharedMemoryEngine:
        """
        The attached engine.

        Raises:
            InvalidStateError: If no engine is attached
        """
        if self._engine is None:
            raise InvalidStateError(
                f"SharedDict '{self.name}' is not attached to a segment",
                details={"segment": self.name}
            )
        return self._engine

    @property
    def attached(self) -> bool:
        return self._engine is not None

    @property
    def closed(self) -> bool:
        if self._engine is None:
            return True
        return self._engine.is_closed()

    def close(self) -> None:
        """Close the engine connection without removing the segment."""
        if self._engine is not None and not self._engine.is_closed():
            self._engine.close()
            logger.debug(f"Closed handle for segment '{self.name}'")

    def unlink(self) -> None:
        """
        Remove the backing segment entirely.

        Raises:
            InvalidStateError: If the handle is still open
        """
        if self._engine is None:
            return
        if not self._engine.is_closed():
            raise InvalidStateError(
                "Cannot unlink a SharedDict that is still open. Call close() first.",
                details={"segment": self.name}
            )
        self._engine.unlink()
        logger.info(f"Unlinked segment '{self.name}'")

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return (
            f"SegmentHandle(name={self.name!r}, capacity_bytes={self.capacity_bytes}, "
            f"max_keys={self.max_keys}, created={self.created}, state={state})"
        )
