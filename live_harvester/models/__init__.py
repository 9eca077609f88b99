"""
Data Models Layer.

This package contains the Pydantic models and dataclasses that define the core
data structures used throughout the application, such as configuration,
segment indexes and cycle statistics.
"""

from .config import HarvestConfig
from .segment import (
    ContinuityToken,
    CycleResult,
    DecryptionJob,
    PlannedSegment,
    SegmentIndex,
    SegmentReference,
    TrackState,
)
from .stats import CycleStats

__all__ = [
    "ContinuityToken",
    "CycleResult",
    "CycleStats",
    "DecryptionJob",
    "HarvestConfig",
    "PlannedSegment",
    "SegmentIndex",
    "SegmentReference",
    "TrackState",
]
