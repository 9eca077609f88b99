"""
Core application engine for harvesting a live stream one cycle at a time.

The `HarvestCycle` acts as the high-level coordinator, reconciling each
track's segment index and delegating every segment to the `SegmentPipeline`,
which commits it to the track's `PlaylistWindow`.
"""

from .cycle import HarvestCycle
from .pacer import CyclePacer, compute_slack
from .pipeline import SegmentPipeline
from .playlist_window import PlaylistWindow
from .reconciler import (
    align_tracks,
    check_continuity,
    reconcile_track,
    segment_number_from_uri,
)

__all__ = [
    "CyclePacer",
    "HarvestCycle",
    "PlaylistWindow",
    "SegmentPipeline",
    "align_tracks",
    "check_continuity",
    "compute_slack",
    "reconcile_track",
    "segment_number_from_uri",
]
