"""
Works out which segments of a track are new since the previous cycle, and
keeps the tracks in lockstep before they are processed.
"""

import logging
import os

from live_harvester.exceptions import SegmentIndexError
from live_harvester.models.segment import PlannedSegment, SegmentIndex

log = logging.getLogger(__name__)


def segment_number_from_uri(uri: str | None) -> int | None:
    """
    Derives the numeric index of a segment from its file name.

    Segment base names are hexadecimal counters (e.g. ``.../00001f.m4s``).
    Returns None when the name does not follow that scheme.
    """
    if not uri:
        return None
    name = uri.split("?", 1)[0].rstrip("/").split("/")[-1]
    stem, _ = os.path.splitext(name)
    try:
        return int(stem, 16)
    except ValueError:
        return None


def reconcile_track(
    index: SegmentIndex,
    last_uri: str | None,
    max_segment_num: int,
    track: str = "",
) -> list[PlannedSegment]:
    """
    Builds the ordered list of segments to process for one track.

    Element 0 is the init segment (duration 0). It is followed by every media
    segment strictly after ``last_uri`` in index order. When ``last_uri`` is
    absent or cannot be found in the index, the last ``max_segment_num`` media
    segments are taken instead so that the stream keeps moving forward.

    Args:
        index: The current segment index of the track.
        last_uri: URI of the last segment committed in the previous cycle.
        max_segment_num: Capacity of the playlist window.
        track: Track name, used for log messages only.

    Returns:
        The planned segments, or an empty list if the index has no references.

    Raises:
        SegmentIndexError: If the index has media segments but no init segment.
    """
    if not index.references:
        log.debug(f"Segment index of {track or 'track'} is empty, skipping it.")
        return []

    init_ref = index.init_reference
    if init_ref is None:
        raise SegmentIndexError(
            f"Segment index of {track or 'track'} has no initialization segment."
        )

    plan = [PlannedSegment(init_ref.uri, 0.0)]
    candidates: list[PlannedSegment] = []
    found_last = False

    for ref in index.media_references:
        segment = PlannedSegment(ref.uri, ref.duration)
        candidates.append(segment)
        if found_last:
            plan.append(segment)
        if last_uri is not None and ref.uri == last_uri:
            found_last = True

    if not found_last:
        if last_uri is not None:
            log.debug(
                f"Last {track or 'track'} segment '{last_uri}' not in index, "
                f"taking the latest {max_segment_num} segment(s)."
            )
        first = max(0, len(candidates) - max_segment_num)
        plan.extend(candidates[first:])

    return plan


def check_continuity(
    track: str, plan: list[PlannedSegment], last_uri: str | None
) -> bool:
    """
    Checks that the first new segment directly follows the last committed one.

    A mismatch is only logged; processing continues either way.

    Returns:
        False if a gap or overlap was detected, True otherwise.
    """
    if not last_uri or len(plan) < 2:
        return True

    last_number = segment_number_from_uri(last_uri)
    first_number = segment_number_from_uri(plan[1].uri)
    if last_number is None or first_number is None:
        log.debug(
            f"Skipping {track} continuity check: segment names are not hexadecimal."
        )
        return True

    offset = first_number - last_number
    log.debug(
        f"{track}: offset between cycles is {offset} "
        f"({last_number} -> {first_number})."
    )
    if offset != 1:
        log.warning(
            f"[yellow]Mismatching {track} segments:[/] expected {last_number + 1}, "
            f"got {first_number}."
        )
        return False
    return True


def align_tracks(
    plans: dict[str, list[PlannedSegment]],
) -> dict[str, list[PlannedSegment]]:
    """
    Truncates every track's plan from the end to the length of the shortest one.

    Segments at the same position are processed together, so an empty plan
    holds every other track back for the cycle as well.
    """
    if not plans:
        return {}

    shortest = min(len(plan) for plan in plans.values())
    aligned = {}
    for name, plan in plans.items():
        if len(plan) > shortest:
            log.debug(f"Dropping {len(plan) - shortest} trailing {name} segment(s).")
        aligned[name] = plan[:shortest]
    return aligned
