"""
This module provides the default constants of the sharedbox package.
"""

from .constants import (
    ENV_PREFIX,
    MIB,
    Marker,
    RequiredVersion,
    SegmentConstants,
    SizingConstants,
    StatsConstants,
    TensorConstants,
)
