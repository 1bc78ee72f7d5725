"""
Sizing Advisor

Turns segment statistics into capacity and lock-striping recommendations.
SharedDict.recommend_sizing talks to any object implementing
:class:`SizingAdvisor`; :class:`DefaultSizingAdvisor` combines
:class:`SegmentSizer` and :class:`LockTuner`.
"""
import logging
import math
import os
from typing import Any, Dict, Optional, Protocol

from sharedbox.defaults.constants import MIB, SizingConstants

logger = logging.getLogger(__name__)


class SizingAdvisor(Protocol):
    """Interface consumed by SharedDict.recommend_sizing."""

    def calculate_segment_size(
        self,
        target_entries: int,
        avg_key_bytes: int,
        avg_value_bytes: int
    ) -> Dict[str, Any]: ...

    def recommend_lock_count(self, target_entries: int) -> Dict[str, Any]: ...


def _next_power_of_two(value: int) -> int:
    if value <= 1:
        return 1
    return 1 << (value - 1).bit_length()


class SegmentSizer:
    """
    Segment capacity model.

    Footprint = entries x (key + value + entry overhead)
              + index slots (entries / load factor, power of two) x slot size,
    plus headroom, rounded up to a whole MiB.
    """

    @staticmethod
    def calculate_segment_size(
        target_entries: int,
        avg_key_bytes: int,
        avg_value_bytes: int,
        headroom: float = SizingConstants.HEADROOM
    ) -> Dict[str, Any]:
        """
        Calculate required segment size.

        Args:
            target_entries: Number of entries the segment must hold
            avg_key_bytes: Average UTF-8 key length
            avg_value_bytes: Average encoded value length
            headroom: Extra fraction on top of the computed footprint

        Returns:
            dict: ``per_entry_bytes``, ``data_bytes``, ``index_slots``,
            ``index_bytes``, ``recommended_bytes``, ``recommended_mib`` and
            ``max_keys``

        Raises:
            ValueError: If an argument is negative
        """
        if target_entries < 0 or avg_key_bytes < 0 or avg_value_bytes < 0 or headroom < 0:
            raise ValueError("Sizing arguments must not be negative")

        per_entry = avg_key_bytes + avg_value_bytes + SizingConstants.ENTRY_OVERHEAD
        data_bytes = target_entries * per_entry
        index_slots = _next_power_of_two(math.ceil(target_entries / SizingConstants.LOAD_FACTOR))
        index_bytes = index_slots * SizingConstants.INDEX_SLOT_BYTES

        total = math.ceil((data_bytes + index_bytes) * (1.0 + headroom))
        recommended_mib = max(1, math.ceil(total / MIB))

        return {
            "per_entry_bytes": per_entry,
            "data_bytes": data_bytes,
            "index_slots": index_slots,
            "index_bytes": index_bytes,
            "recommended_bytes": recommended_mib * MIB,
            "recommended_mib": recommended_mib,
            "max_keys": target_entries,
        }


class LockTuner:
    """
    Lock striping model.

    Enough stripes that each guards about ``ENTRIES_PER_LOCK`` entries and
    at least four stripes per CPU, as a power of two within
    ``[MIN_LOCKS, MAX_LOCKS]``.
    """

    @staticmethod
    def recommend_lock_count(target_entries: int, cpu_count: Optional[int] = None) -> Dict[str, Any]:
        """
        Recommend a lock stripe count.

        Args:
            target_entries: Number of entries the segment must hold
            cpu_count: CPUs contending for the segment (default: os.cpu_count())

        Returns:
            dict: ``recommended_locks``, ``entries_per_lock`` and ``cpu_count``

        Raises:
            ValueError: If target_entries is negative
        """
        if target_entries < 0:
            raise ValueError("target_entries must not be negative")

        cpus = cpu_count or os.cpu_count() or 1
        by_entries = math.ceil(target_entries / SizingConstants.ENTRIES_PER_LOCK)
        locks = _next_power_of_two(max(by_entries, cpus * 4))
        locks = min(max(locks, SizingConstants.MIN_LOCKS), SizingConstants.MAX_LOCKS)

        return {
            "recommended_locks": locks,
            "entries_per_lock": math.ceil(target_entries / locks) if target_entries else 0,
            "cpu_count": cpus,
        }


class DefaultSizingAdvisor:
    """SizingAdvisor backed by SegmentSizer and LockTuner."""

    def __init__(self, headroom: float = SizingConstants.HEADROOM, cpu_count: Optional[int] = None):
        self.headroom = headroom
        self.cpu_count = cpu_count

    def calculate_segment_size(
        self,
        target_entries: int,
        avg_key_bytes: int,
        avg_value_bytes: int
    ) -> Dict[str, Any]:
        return SegmentSizer.calculate_segment_size(
            target_entries, avg_key_bytes, avg_value_bytes, headroom=self.headroom
        )

    def recommend_lock_count(self, target_entries: int) -> Dict[str, Any]:
        return LockTuner.recommend_lock_count(target_entries, cpu_count=self.cpu_count)
