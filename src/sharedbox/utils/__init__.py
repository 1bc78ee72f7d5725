"""
Sizing utilities used by SharedDict.recommend_sizing.
"""
from sharedbox.utils.sizing import (
    DefaultSizingAdvisor,
    LockTuner,
    SegmentSizer,
    SizingAdvisor,
)

__all__ = [
    "SizingAdvisor",
    "DefaultSizingAdvisor",
    "SegmentSizer",
    "LockTuner",
]
