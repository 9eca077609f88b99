"""
Maintains a track's rolling media playlist: a bounded FIFO of segment entries
whose media-sequence header advances by one for every evicted entry.
"""

import logging
import math
import os
import re
from pathlib import Path

from live_harvester.exceptions import PlaylistFormatError, PlaylistWriteError
from live_harvester.utils.formatting import format_duration_directive

log = logging.getLogger(__name__)

DURATION_DIRECTIVE = "#EXTINF:"
MEDIA_SEQUENCE_RE = re.compile(r"#EXT-X-MEDIA-SEQUENCE:(\d+)", re.IGNORECASE)


def default_header(target_duration: float) -> list[str]:
    """Header lines of a fresh live media playlist."""
    return [
        "#EXTM3U",
        "#EXT-X-VERSION:6",
        f"#EXT-X-TARGETDURATION:{max(1, math.ceil(target_duration))}",
        "#EXT-X-MEDIA-SEQUENCE:0",
    ]


class PlaylistWindow:
    """
    In-memory lines of a media playlist, written through to disk on every change.

    Each entry is a pair of lines: ``#EXTINF:<duration>,`` followed by the
    segment file name, which lives next to the playlist.
    """

    def __init__(self, path: Path, lines: list[str], max_segment_num: int):
        self.path = Path(path)
        self.lines = lines
        self.max_segment_num = max_segment_num
        self._sequence_line = self._find_sequence_line()

    @classmethod
    def load(
        cls, path: Path, max_segment_num: int, target_duration: float = 10
    ) -> "PlaylistWindow":
        """Reads the playlist at ``path``, or starts a new one if it is missing."""
        path = Path(path)
        lines: list[str] = []
        if path.is_file():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    lines = [line.rstrip("\r\n") for line in f]
            except OSError as e:
                raise PlaylistWriteError(f"Could not read playlist '{path}': {e}") from e
            while lines and not lines[-1].strip():
                lines.pop()
        if not lines:
            log.debug(f"Starting new playlist at '{path}'")
            lines = default_header(target_duration)
        return cls(path, lines, max_segment_num)

    def _find_sequence_line(self) -> int:
        for i, line in enumerate(self.lines):
            if MEDIA_SEQUENCE_RE.search(line):
                return i
        raise PlaylistFormatError(
            f"Playlist '{self.path}' has no #EXT-X-MEDIA-SEQUENCE header."
        )

    @property
    def media_sequence(self) -> int:
        match = MEDIA_SEQUENCE_RE.search(self.lines[self._sequence_line])
        return int(match.group(1))

    @property
    def entries(self) -> list[tuple[str, str]]:
        """(duration directive, file name) pairs, oldest first."""
        result = []
        for i, line in enumerate(self.lines):
            if DURATION_DIRECTIVE in line:
                filename = self.lines[i + 1] if i + 1 < len(self.lines) else ""
                result.append((line, filename))
        return result

    @property
    def filenames(self) -> list[str]:
        return [name for _, name in self.entries]

    def _entry_positions(self) -> list[int]:
        return [i for i, line in enumerate(self.lines) if DURATION_DIRECTIVE in line]

    def _evict_oldest(self) -> str:
        position = self._entry_positions()[0]
        filename = ""
        end = position + 1
        if end < len(self.lines) and not self.lines[end].startswith("#"):
            filename = self.lines[end]
            end += 1
        del self.lines[position:end]
        self._sequence_line = self._find_sequence_line()

        if filename:
            backing_file = self.path.parent / filename
            try:
                os.remove(backing_file)
            except FileNotFoundError:
                log.warning(
                    f"[yellow]Evicted segment '{filename}' was already missing.[/]"
                )
            except OSError as e:
                raise PlaylistWriteError(
                    f"Could not delete evicted segment '{backing_file}': {e}"
                ) from e

        sequence = self.media_sequence + 1
        self.lines[self._sequence_line] = MEDIA_SEQUENCE_RE.sub(
            f"#EXT-X-MEDIA-SEQUENCE:{sequence}", self.lines[self._sequence_line]
        )
        log.debug(f"Evicted '{filename}' from '{self.path.name}', sequence {sequence}")
        return filename

    def append(self, duration: float, filename: str) -> list[str]:
        """
        Adds a segment entry, evicting the oldest one once the window is full,
        and persists the playlist.

        A file name that is already listed is left alone, so its entry is never
        duplicated or evicted in favour of itself.

        Returns:
            File names of the evicted entries (empty unless the window was full).
        """
        if filename in self.filenames:
            log.debug(f"'{filename}' is already in '{self.path.name}'")
            return []

        evicted = []
        while len(self._entry_positions()) >= self.max_segment_num:
            evicted.append(self._evict_oldest())

        self.lines.append(f"{DURATION_DIRECTIVE}{format_duration_directive(duration)},")
        self.lines.append(filename)
        self.save()
        return evicted

    def save(self) -> None:
        """Overwrites the playlist file with the current lines."""
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write("\n".join(self.lines) + "\n")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PlaylistWriteError(f"Could not write playlist '{self.path}': {e}") from e
