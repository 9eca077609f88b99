"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from live_harvester.exceptions import HarvesterError
from live_harvester.models.segment import CycleResult
from live_harvester.utils.formatting import format_seconds, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• Run `live-harvester --show-config` to inspect it.",
            "• Run `live-harvester init --force` to recreate it.",
        ],
        "SegmentIndexError": [
            "• Make sure the index snapshot is a JSON list of references.",
            "• The first reference must be the init segment (`is_init: true`).",
        ],
        "SegmentFetchError": [
            "• The CDN may be temporarily unavailable; run the cycle again.",
            "• Check the `proxy` setting if you fetch through a proxy.",
        ],
        "SegmentManipulationError": [
            "• Verify the key and key ID in the configuration file.",
            "• Run the decryption script by hand on the merged segment.",
            "• Run the command with -vv to see the script's output.",
        ],
        "PlaylistFormatError": [
            "• The media playlist must contain an #EXT-X-MEDIA-SEQUENCE line.",
            "• Delete the playlist to start a new window.",
        ],
        "PlaylistWriteError": [
            "• Check permissions and free space under the result directory.",
            "• Make sure nothing else replaced a segment file with a directory.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if isinstance(error, HarvesterError) and error.last_committed:
        context = {**(context or {}), "last_committed": error.last_committed}
    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if key in ("key", "key_id"):
            value = "[hidden]"
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            Text(content.strip()),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_cycle_summary(result: CycleResult, console: Console | None = None):
    """Displays the per-track outcome of a cycle and the new continuity token."""
    console = console or Console()
    stats = result.stats

    table = Table(box=box.SIMPLE_HEAVY, title="Cycle Summary")
    table.add_column("Track", style="bold cyan")
    table.add_column("Planned", justify="right")
    table.add_column("Committed", justify="right", style="green")
    table.add_column("Last URI", overflow="fold")

    for track, last_uri in result.last_uris.items():
        table.add_row(
            track,
            str(stats.segments_planned.get(track, 0)),
            str(stats.segments_committed.get(track, 0)),
            last_uri or "[dim]-[/dim]",
        )
    console.print(table)

    details = Table(show_header=False, box=None, padding=(0, 2))
    details.add_column(style="bold")
    details.add_column()
    details.add_row("Evicted:", str(stats.segments_evicted))
    details.add_row("Already listed:", str(stats.segments_skipped))
    details.add_row("Downloaded:", format_size(stats.bytes_downloaded))
    details.add_row("Continuity mismatches:", str(stats.continuity_mismatches))
    details.add_row("Slept:", format_seconds(stats.slept_seconds))
    console.print(details)
