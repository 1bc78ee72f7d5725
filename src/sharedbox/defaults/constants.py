from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Final


class RequiredVersion(Enum):
    """
    Interpreter requirement of the sharedbox package.
    """
    PYTHON_MIN = (3, 10, 0)


class Marker(IntEnum):
    """
    First byte of every encoded value, selects the decode path.

    * 0: opaque payload produced by the configured serializer
    * 1: native tensor payload
    """
    OPAQUE = 0x00
    TENSOR = 0x01


@dataclass(frozen=True)
class SegmentConstants:
    """
    Construction defaults for a shared segment.

    :cvar DEFAULT_SIZE: Capacity of a new segment in bytes (128 MiB).
    :cvar DEFAULT_MAX_KEYS: Maximum number of distinct keys.
    :cvar DEFAULT_CREATE: Create the segment instead of attaching to it.
    """
    DEFAULT_SIZE: Final[int] = 128 * 1024 * 1024
    DEFAULT_MAX_KEYS: Final[int] = 128
    DEFAULT_CREATE: Final[bool] = True


@dataclass(frozen=True)
class TensorConstants:
    """
    Wire layout constants of the tensor payload.

    :cvar ENDIAN_CHAR: Byte order char written into every dtype string.
    :cvar SUPPORTED_KINDS: numpy dtype kinds encoded natively.
    :cvar DTYPE_LEN_FORMAT: struct format of the dtype string length.
    :cvar NDIM_FORMAT: struct format of the dimension count.
    :cvar EXTENT_FORMAT: struct format of one shape extent and of data_len.
    """
    ENDIAN_CHAR: Final[str] = '<'
    SUPPORTED_KINDS: Final[str] = 'iufcb'
    DTYPE_LEN_FORMAT: Final[str] = '<I'
    NDIM_FORMAT: Final[str] = '<I'
    EXTENT_FORMAT: Final[str] = '<Q'


@dataclass(frozen=True)
class StatsConstants:
    """
    Telemetry constants.

    :cvar SAMPLE_SIZE: Number of keys sampled by get_stats.
    :cvar GROWTH_FACTOR: Default growth applied to the current entry count.
    :cvar MIN_TARGET_ENTRIES: Lower bound of the default sizing target.
    """
    SAMPLE_SIZE: Final[int] = 100
    GROWTH_FACTOR: Final[int] = 10
    MIN_TARGET_ENTRIES: Final[int] = 10000


@dataclass(frozen=True)
class SizingConstants:
    """
    Footprint model used by the default sizing advisor.

    :cvar ENTRY_OVERHEAD: Fixed bytes per stored entry (headers, alignment).
    :cvar INDEX_SLOT_BYTES: Bytes per hash index slot.
    :cvar LOAD_FACTOR: Target fill ratio of the hash index.
    :cvar HEADROOM: Extra fraction added on top of the computed footprint.
    :cvar ENTRIES_PER_LOCK: Entries one lock stripe should guard.
    :cvar MIN_LOCKS: Lower bound of the lock stripe count.
    :cvar MAX_LOCKS: Upper bound of the lock stripe count.
    """
    ENTRY_OVERHEAD: Final[int] = 64
    INDEX_SLOT_BYTES: Final[int] = 16
    LOAD_FACTOR: Final[float] = 0.75
    HEADROOM: Final[float] = 0.25
    ENTRIES_PER_LOCK: Final[int] = 1024
    MIN_LOCKS: Final[int] = 16
    MAX_LOCKS: Final[int] = 65536


MIB: Final[int] = 1024 * 1024
ENV_PREFIX: Final[str] = "SHAREDBOX_"
