"""
Helper functions for formatting data into human-readable strings.
"""


def format_size(bytes_size: int) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_seconds(seconds: float) -> str:
    """Formats a short duration with millisecond precision (e.g., '7.600s')."""
    return f"{seconds:.3f}s"


def format_duration_directive(duration: float) -> str:
    """Formats a segment duration for an ``#EXTINF`` line without trailing zeros."""
    text = f"{duration:.6f}".rstrip("0").rstrip(".")
    return text or "0"
