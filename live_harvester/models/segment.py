"""
Data structures describing segment indexes, per-track cycle state and the
continuity token threaded between cycles.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, NamedTuple

from pydantic import BaseModel, ValidationError

from live_harvester.exceptions import SegmentIndexError
from live_harvester.models.stats import CycleStats

# Track name -> URI of the last committed segment (None on cold start).
ContinuityToken = dict[str, str | None]


class SegmentReference(BaseModel):
    """A single entry of a segment index."""

    uri: str
    start_time: float = 0.0
    end_time: float = 0.0
    is_init: bool = False

    class Config:
        """Pydantic model configuration."""

        frozen = True

    @property
    def duration(self) -> float:
        if self.is_init:
            return 0.0
        return self.end_time - self.start_time


class SegmentIndex(BaseModel):
    """
    Ordered segment references for one track.

    The first reference may be the track's initialization segment; every other
    reference is a playable media segment on the track-local clock.
    """

    references: list[SegmentReference] = []

    @property
    def init_reference(self) -> SegmentReference | None:
        if self.references and self.references[0].is_init:
            return self.references[0]
        return None

    @property
    def media_references(self) -> list[SegmentReference]:
        return [ref for ref in self.references if not ref.is_init]

    @classmethod
    def from_file(cls, path: Path) -> "SegmentIndex":
        """Loads a JSON snapshot of a segment index."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data: Any = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SegmentIndexError(f"Could not read segment index '{path}': {e}") from e

        if isinstance(data, list):
            data = {"references": data}
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise SegmentIndexError(f"Invalid segment index '{path}':\n{e}") from e


class PlannedSegment(NamedTuple):
    """A segment scheduled for processing in the current cycle."""

    uri: str
    duration: float

    @property
    def name(self) -> str:
        return self.uri.split("?", 1)[0].rstrip("/").split("/")[-1]


@dataclass
class TrackState:
    """
    Segments of one track to be processed in the current cycle.

    ``segments[0]`` is always the init segment (duration 0), followed by the
    media segments not yet committed, in index order.
    """

    name: str
    playlist_name: str
    segments: list[PlannedSegment] = field(default_factory=list)

    @property
    def media_segments(self) -> list[PlannedSegment]:
        return self.segments[1:]


@dataclass
class CycleResult:
    """Outcome of one cycle: the continuity token for the next one."""

    last_uris: ContinuityToken
    stats: CycleStats = field(default_factory=CycleStats)

    @property
    def audio(self) -> str | None:
        return self.last_uris.get("audio")

    @property
    def video(self) -> str | None:
        return self.last_uris.get("video")

    def to_token(self) -> ContinuityToken:
        return dict(self.last_uris)


@dataclass(frozen=True)
class DecryptionJob:
    """Arguments of one invocation of the external decryption executable."""

    key_id: str
    key: str
    input_path: Path
    output_path: Path
    track: str
