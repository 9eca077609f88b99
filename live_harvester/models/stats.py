"""
Dataclass for tracking the statistics of a single harvest cycle.
"""

from dataclasses import dataclass, field


@dataclass
class CycleStats:
    """Counters collected while a cycle runs."""

    segments_planned: dict[str, int] = field(default_factory=dict)
    segments_committed: dict[str, int] = field(default_factory=dict)
    segments_evicted: int = 0
    bytes_downloaded: int = 0
    continuity_mismatches: int = 0
    segments_skipped: int = 0
    slept_seconds: float = 0.0

    def record_commit(self, track: str) -> None:
        self.segments_committed[track] = self.segments_committed.get(track, 0) + 1

    @property
    def total_committed(self) -> int:
        return sum(self.segments_committed.values())
