"""
The main orchestrator for one harvest cycle: reconciliation, per-segment
processing, playlist maintenance, scratch cleanup and pacing.
"""

import logging
from collections.abc import Mapping

from live_harvester.exceptions import HarvesterError
from live_harvester.media.decryptor import Decryptor, SubprocessDecryptor
from live_harvester.media.downloader import SegmentFetcher
from live_harvester.models.config import HarvestConfig
from live_harvester.models.segment import (
    ContinuityToken,
    CycleResult,
    SegmentIndex,
    TrackState,
)
from live_harvester.models.stats import CycleStats
from live_harvester.utils.path import Workspace

from .pacer import CyclePacer
from .pipeline import Fetcher, SegmentPipeline
from .playlist_window import PlaylistWindow
from .reconciler import align_tracks, check_continuity, reconcile_track

log = logging.getLogger(__name__)


class HarvestCycle:
    """
    Runs one cycle per call to :meth:`run`.

    Nothing survives between calls except the files on disk and the continuity
    token handed back to the caller, so one instance can be reused by a driver
    loop as long as it awaits each cycle before starting the next.
    """

    def __init__(
        self,
        config: HarvestConfig,
        fetcher: Fetcher | None = None,
        decryptor: Decryptor | None = None,
        pacer: CyclePacer | None = None,
    ):
        self.config = config
        self.fetcher = fetcher or SegmentFetcher(config.fetch_timeout)
        self.decryptor = decryptor or SubprocessDecryptor(
            config.decrypt_script, config.decrypt_workdir
        )
        self.pacer = pacer or CyclePacer()
        self.workspace = Workspace(
            config.result_path,
            config.download_path,
            config.merge_path,
            [name for name, _ in config.tracks],
        )

    def plan_tracks(
        self,
        indexes: Mapping[str, SegmentIndex],
        token: ContinuityToken,
        stats: CycleStats | None = None,
    ) -> list[TrackState]:
        """Reconciles every track against the token and aligns the results."""
        plans = {}
        for name, _ in self.config.tracks:
            last_uri = token.get(name)
            plan = reconcile_track(
                indexes.get(name, SegmentIndex()),
                last_uri,
                self.config.max_segment_num,
                track=name,
            )
            if last_uri:
                log.debug(f"Last {name} URI: {last_uri.split('/')[-1]}")
            if not check_continuity(name, plan, last_uri) and stats is not None:
                stats.continuity_mismatches += 1
            plans[name] = plan

        aligned = align_tracks(plans)
        tracks = []
        for name, playlist_name in self.config.tracks:
            if stats is not None:
                stats.segments_planned[name] = max(0, len(aligned[name]) - 1)
            tracks.append(TrackState(name, playlist_name, aligned[name]))
        return tracks

    async def run(
        self,
        indexes: Mapping[str, SegmentIndex],
        token: ContinuityToken | None = None,
        update_duration: float | None = None,
    ) -> CycleResult:
        """
        Processes every segment that appeared since the previous cycle.

        Args:
            indexes: Current segment index per track name.
            token: Continuity token returned by the previous cycle.
            update_duration: Nominal manifest update period in seconds
                (defaults to the configured value).

        Returns:
            The result holding the continuity token for the next cycle.

        Raises:
            HarvesterError: On any fatal failure. Segments committed before the
                failure stay in the playlists and are listed in the
                exception's ``last_committed``.
        """
        token = dict(token or {})
        if update_duration is None:
            update_duration = self.config.update_duration

        stats = CycleStats()
        self.pacer.start()
        self.workspace.prepare()
        tracks = self.plan_tracks(indexes, token, stats)

        last_uris: ContinuityToken = {
            name: token.get(name) for name, _ in self.config.tracks
        }
        length = len(tracks[0].segments) if tracks else 0
        log.info(
            "Processing "
            + ", ".join(f"{t.name}: {len(t.media_segments)}" for t in tracks)
            + " segment(s)..."
        )

        pipeline = SegmentPipeline(
            self.config, self.workspace, self.fetcher, self.decryptor, stats
        )
        windows = {
            track.name: PlaylistWindow.load(
                self.workspace.result_dir(track.name) / track.playlist_name,
                self.config.max_segment_num,
                self.config.target_duration,
            )
            for track in tracks
            if track.segments
        }

        segment_duration = 0.0
        try:
            for position in range(length):
                for track in tracks:
                    committed = await pipeline.process(
                        track, position, windows[track.name]
                    )
                    segment_duration = track.segments[position].duration
                    if committed:
                        last_uris[track.name] = track.segments[position].uri
        except HarvesterError as e:
            e.last_committed = dict(last_uris)
            raise
        finally:
            self.workspace.cleanup()

        if length:
            stats.slept_seconds = await self.pacer.pace(segment_duration, update_duration)

        log.info(
            f"Cycle finished: {stats.total_committed} segment(s) committed, "
            f"{stats.segments_evicted} evicted."
        )
        return CycleResult(last_uris=last_uris, stats=stats)
