"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

# Track order is also processing order within each segment position.
AUDIO_TRACK = "audio"
VIDEO_TRACK = "video"


class HarvestConfig(BaseModel):
    """A validated configuration model for the application."""

    # Workspace
    result_path: Path
    download_path: Path
    merge_path: Path

    # Playlist window
    max_segment_num: int = 5
    audio_playlist_name: str = "audio.m3u8"
    video_playlist_name: str = "video.m3u8"
    target_duration: int = 10

    # Decryption
    decrypt_script: str
    decrypt_workdir: Path = Field(default_factory=Path.cwd)
    key: str
    key_id: str

    # Network & pacing
    update_duration: float = 0.0
    proxy: str | None = None
    fetch_timeout: float = 60.0

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("max_segment_num")
    @classmethod
    def validate_window(cls, v: int) -> int:
        """The playlist window must hold at least one segment."""
        if v < 1:
            raise ValueError("max_segment_num must be at least 1.")
        return v

    @field_validator("target_duration")
    @classmethod
    def validate_target_duration(cls, v: int) -> int:
        if v < 1:
            raise ValueError("target_duration must be a positive number of seconds.")
        return v

    @field_validator("update_duration", "fetch_timeout")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Durations cannot be negative.")
        return v

    @field_validator("key", "key_id", "decrypt_script")
    @classmethod
    def validate_required(cls, v: str) -> str:
        if not v:
            raise ValueError("Value cannot be empty.")
        return v

    @field_validator("proxy")
    @classmethod
    def validate_proxy(cls, v: str | None) -> str | None:
        return v or None

    @field_validator("audio_playlist_name", "video_playlist_name")
    @classmethod
    def validate_playlist_name(cls, v: str) -> str:
        """Playlist names are plain file names inside each track directory."""
        if not v:
            raise ValueError("Playlist name cannot be empty.")
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError(f"Playlist name must be a plain file name, got: {v}")
        return v

    @model_validator(mode="after")
    def validate_distinct_paths(self) -> "HarvestConfig":
        """Scratch roots are cleared every cycle, so they must not hold results."""
        result = self.result_path.resolve()
        for scratch in (self.download_path, self.merge_path):
            if scratch.resolve() == result:
                raise ValueError(
                    "download_path and merge_path must differ from result_path."
                )
        return self

    @property
    def tracks(self) -> list[tuple[str, str]]:
        """Ordered (track name, playlist file name) pairs."""
        return [
            (AUDIO_TRACK, self.audio_playlist_name),
            (VIDEO_TRACK, self.video_playlist_name),
        ]

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        return set(cls.model_fields)
