"""
Segment Statistics

Sampling-based size estimation of a segment's contents. Runs beside the
facade on demand, never on the read/write path.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict

from sharedbox.defaults.constants import StatsConstants
from sharedbox.engine.base import SharedMemoryEngine
from sharedbox.helper.logging_config import log_performance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegmentStats:
    """
    Aggregate statistics of one segment.

    ``estimated_data_bytes`` is a linear extrapolation of the sample to all
    entries, not a measurement.
    """
    total_entries: int
    sample_size: int
    avg_key_utf8_bytes: float
    avg_value_encoded_bytes: float
    estimated_data_bytes: int
    segment_name: str

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class StatsEstimator:
    """
    Samples the first entries of the engine's key enumeration.

    The sample is deterministic: the first ``sample_size`` keys in engine
    order, or all keys when fewer exist.
    """

    def __init__(self, sample_size: int = StatsConstants.SAMPLE_SIZE):
        self.sample_size = sample_size

    @log_performance(threshold_ms=250.0)
    def estimate(self, engine: SharedMemoryEngine, segment_name: str) -> SegmentStats:
        """
        Compute statistics for *engine*.

        Args:
            engine: Engine to sample
            segment_name: Name reported in the result

        Returns:
            SegmentStats: Sampled statistics
        """
        sample = engine.keys()[:self.sample_size]

        total_key_bytes = 0
        total_value_bytes = 0
        for key in sample:
            total_key_bytes += len(key.encode('utf-8'))
            # Entries erased since enumeration count as zero-length values.
            value = engine.get(key)
            if value is not None:
                total_value_bytes += len(value)

        sampled = len(sample)
        avg_key_bytes = total_key_bytes / sampled if sampled else 0.0
        avg_value_bytes = total_value_bytes / sampled if sampled else 0.0
        total_entries = engine.size()

        stats = SegmentStats(
            total_entries=total_entries,
            sample_size=sampled,
            avg_key_utf8_bytes=avg_key_bytes,
            avg_value_encoded_bytes=avg_value_bytes,
            estimated_data_bytes=int(total_entries * (avg_key_bytes + avg_value_bytes)),
            segment_name=segment_name,
        )
        logger.debug(f"Stats for segment '{segment_name}': {stats}")
        return stats
