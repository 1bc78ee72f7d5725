"""
Key-Value Engines

Interface of the engine behind a SharedDict and the in-process reference
implementation.
"""
from sharedbox.engine.base import EngineFactory, SharedMemoryEngine
from sharedbox.engine.local import (
    InProcessEngine,
    SegmentInfo,
    list_segments,
    segment_exists,
)

__all__ = [
    "SharedMemoryEngine",
    "EngineFactory",
    "InProcessEngine",
    "SegmentInfo",
    "list_segments",
    "segment_exists",
]
