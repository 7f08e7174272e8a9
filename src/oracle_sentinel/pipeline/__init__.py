"""Price pipeline: concurrent snapshot aggregation and history recording."""

from oracle_sentinel.pipeline.aggregator import SnapshotAggregator
from oracle_sentinel.pipeline.recorder import HistoryRecorder

__all__ = ["SnapshotAggregator", "HistoryRecorder"]
