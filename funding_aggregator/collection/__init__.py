"""
Data collection layer for funding rates
"""

from funding_aggregator.collection.snapshot_collector import CollectionResult, SnapshotCollector

__all__ = [
    "CollectionResult",
    "SnapshotCollector",
]
