"""
Utilities for handling the workspace directories used by a cycle.
"""

import logging
import shutil
from pathlib import Path

log = logging.getLogger(__name__)


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def clear_dir(directory_path: Path) -> None:
    """Removes everything inside a directory, keeping the directory itself."""
    if not directory_path.is_dir():
        create_dir(directory_path)
        return
    for entry in directory_path.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


def segment_stem(segment_name: str) -> str:
    """Returns a segment file name without its extension."""
    return Path(segment_name).stem


class Workspace:
    """
    The result, download and merge roots, each with one subdirectory per track.

    Layout::

        result/<track>/<playlist>      result/<track>/<segment>.mp4
        download/<track>/<segment>     merge/<track>/<segment>
    """

    def __init__(
        self,
        result_path: Path,
        download_path: Path,
        merge_path: Path,
        tracks: list[str],
    ):
        self.result_path = Path(result_path)
        self.download_path = Path(download_path)
        self.merge_path = Path(merge_path)
        self.tracks = list(tracks)

    def result_dir(self, track: str) -> Path:
        return self.result_path / track

    def download_dir(self, track: str) -> Path:
        return self.download_path / track

    def merge_dir(self, track: str) -> Path:
        return self.merge_path / track

    def prepare(self) -> None:
        """Creates every directory a cycle writes to. Safe to call repeatedly."""
        roots = (
            ("Result", self.result_path),
            ("Download", self.download_path),
            ("Merge", self.merge_path),
        )
        for label, root in roots:
            if not root.is_dir():
                log.warning(
                    f"[yellow]{label} path '{root}' doesn't exist, creating new one...[/]"
                )
                create_dir(root)
            for track in self.tracks:
                create_dir(root / track)

    def cleanup(self) -> None:
        """Empties the per-track scratch directories under download and merge."""
        for track in self.tracks:
            clear_dir(self.download_dir(track))
            clear_dir(self.merge_dir(track))
        log.debug("Scratch directories cleared.")
