"""
Defines custom exceptions for the application to allow for more specific error handling.

Every error carries a severity, a category and a stable code so that the
driver loop can decide whether to retry a cycle or abort the stream.
"""

from enum import Enum


class Severity(str, Enum):
    """How bad an error is for the stream being harvested."""

    CRITICAL = "CRITICAL"


class Category(str, Enum):
    """Which part of the system raised the error."""

    CONFIG = "CONFIG"
    MANIFEST = "MANIFEST"
    NETWORK = "NETWORK"
    SEGMENT = "SEGMENT"
    STORAGE = "STORAGE"


class Code(str, Enum):
    """Stable error codes."""

    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    INVALID_SEGMENT_INDEX = "INVALID_SEGMENT_INDEX"
    SEGMENT_FETCH_FAILED = "SEGMENT_FETCH_FAILED"
    SEGMENT_MANIPULATION_FAILED = "SEGMENT_MANIPULATION_FAILED"
    INVALID_PLAYLIST = "INVALID_PLAYLIST"
    PLAYLIST_WRITE_FAILED = "PLAYLIST_WRITE_FAILED"


class HarvesterError(Exception):
    """Base exception for all application-specific errors."""

    severity = Severity.CRITICAL
    category = Category.SEGMENT
    code = Code.SEGMENT_MANIPULATION_FAILED

    def __init__(self, message: str = "", **overrides):
        super().__init__(message)
        for attr in ("severity", "category", "code"):
            if attr in overrides:
                setattr(self, attr, overrides.pop(attr))
        if overrides:
            raise TypeError(f"Unexpected arguments: {', '.join(overrides)}")
        # Filled in by the cycle with the URIs committed before the failure.
        self.last_committed: dict[str, str | None] = {}

    def __str__(self) -> str:
        message = super().__str__()
        prefix = f"[{self.severity.value}/{self.category.value}/{self.code.value}]"
        return f"{prefix} {message}" if message else prefix


class ConfigurationError(HarvesterError):
    """Raised for issues related to configuration loading or validation."""

    category = Category.CONFIG
    code = Code.INVALID_CONFIGURATION


class SegmentIndexError(HarvesterError):
    """Raised when a segment index snapshot cannot be used for reconciliation."""

    category = Category.MANIFEST
    code = Code.INVALID_SEGMENT_INDEX


class SegmentFetchError(HarvesterError):
    """Raised when a segment could not be fetched to the scratch directory."""

    category = Category.NETWORK
    code = Code.SEGMENT_FETCH_FAILED


class SegmentManipulationError(HarvesterError):
    """Raised when merging a segment with its init payload or decrypting it fails."""

    category = Category.SEGMENT
    code = Code.SEGMENT_MANIPULATION_FAILED


class PlaylistFormatError(HarvesterError):
    """Raised when a media playlist lacks the media-sequence header."""

    category = Category.STORAGE
    code = Code.INVALID_PLAYLIST


class PlaylistWriteError(HarvesterError):
    """Raised when a playlist or an evicted segment file cannot be written or removed."""

    category = Category.STORAGE
    code = Code.PLAYLIST_WRITE_FAILED
