"""
Handles the processing of a single segment, from fetch to playlist commit.
"""

import logging
from typing import Protocol

from live_harvester.core.playlist_window import PlaylistWindow
from live_harvester.exceptions import Severity, SegmentManipulationError
from live_harvester.media.decryptor import Decryptor
from live_harvester.media.merger import concat_files
from live_harvester.models.config import HarvestConfig
from live_harvester.models.segment import DecryptionJob, TrackState
from live_harvester.models.stats import CycleStats
from live_harvester.utils.path import Workspace, segment_stem

log = logging.getLogger(__name__)

MEDIA_EXTENSION = ".mp4"


class Fetcher(Protocol):
    async def fetch(
        self, url: str, destination_path: str, proxy: str | None = None
    ) -> int: ...


class SegmentPipeline:
    """
    Fetches, merges, decrypts and commits segments, one at a time.

    Position 0 of every track is the init segment: it is only fetched, and its
    payload is prepended to every later segment of the same track.
    """

    def __init__(
        self,
        config: HarvestConfig,
        workspace: Workspace,
        fetcher: Fetcher,
        decryptor: Decryptor,
        stats: CycleStats,
    ):
        self.config = config
        self.workspace = workspace
        self.fetcher = fetcher
        self.decryptor = decryptor
        self.stats = stats
        self._init_paths: dict[str, str] = {}

    async def process(
        self, track: TrackState, position: int, window: PlaylistWindow
    ) -> str | None:
        """
        Runs one segment of ``track`` through the pipeline.

        Returns:
            The committed file name, or None for the init segment.
            A segment whose output is already listed in ``window`` is not
            fetched again; its file name is returned as committed.

        Raises:
            SegmentFetchError: If the segment could not be fetched.
            SegmentManipulationError: If merging or decryption failed.
        """
        segment = track.segments[position]
        name = segment.name
        if position > 0:
            output_name = segment_stem(name) + MEDIA_EXTENSION
            if output_name in window.filenames:
                log.debug(f"{track.name} {segment_stem(name)} already committed.")
                self.stats.segments_skipped += 1
                return output_name
        download_path = str(self.workspace.download_dir(track.name) / name)

        self.stats.bytes_downloaded += await self.fetcher.fetch(
            segment.uri, download_path, self.config.proxy
        )

        if position == 0:
            self._init_paths[track.name] = download_path
            return None

        merge_path = self.workspace.merge_dir(track.name) / name
        init_path = self._init_paths.get(track.name)
        if init_path is None or not await concat_files(
            init_path, download_path, str(merge_path)
        ):
            log.error(f"[red]Failed to combine {track.name} segment '{name}'[/]")
            raise SegmentManipulationError(
                f"Failed to combine {track.name} segment '{name}' with its init segment.",
                severity=Severity.CRITICAL,
            )

        output_name = segment_stem(name) + MEDIA_EXTENSION
        job = DecryptionJob(
            key_id=self.config.key_id,
            key=self.config.key,
            input_path=merge_path,
            output_path=self.workspace.result_dir(track.name) / output_name,
            track=track.name,
        )
        if not await self.decryptor(job):
            log.error("[red]Decrypting failed.[/]")
            raise SegmentManipulationError(
                f"Decrypting {track.name} segment '{name}' failed.",
                severity=Severity.CRITICAL,
            )
        log.debug(f"{track.name} {segment_stem(name)} Decrypted.")

        evicted = window.append(segment.duration, output_name)
        self.stats.segments_evicted += len(evicted)
        self.stats.record_commit(track.name)
        return output_name
