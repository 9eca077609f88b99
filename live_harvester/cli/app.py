"""
Defines the command-line interface for the application using Typer.

The CLI runs exactly one cycle per invocation; an external driver calls
``live-harvester cycle`` after every manifest refresh and keeps the continuity
token file between calls.
"""

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from live_harvester import __version__
from live_harvester.core.cycle import HarvestCycle
from live_harvester.exceptions import HarvesterError
from live_harvester.media.downloader import close_connection_pool
from live_harvester.models.config import AUDIO_TRACK, VIDEO_TRACK
from live_harvester.models.segment import SegmentIndex
from live_harvester.storage.config_manager import ConfigManager
from live_harvester.storage.token_store import ContinuityStore

from .formatters import format_error_with_suggestions, print_config, print_cycle_summary

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("live_harvester")

app = typer.Typer(
    name="live-harvester",
    help="Incrementally harvest a live segmented stream into a rolling HLS window.",
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "live-harvester"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"

config_option = typer.Option(
    CONFIG_FILE, "--config", "-c", help="Path to the INI configuration file."
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
    config_file: Path = config_option,
):
    """Live stream harvester CLI"""
    if version:
        console.print(f"[bold]live-harvester[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    elif verbose == 0:
        log_level = "WARNING"
    logging.getLogger("live_harvester").setLevel(log_level)

    if show_config:
        if not config_file.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]live-harvester init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(config_file)
        config_manager._parser.read(config_file, encoding="utf-8")
        config_data = config_manager._get_config_as_dict()
        print_config(config_file, config_data)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    key_id: str = typer.Option(..., "--key-id", help="Content key ID (hex)."),
    key: str = typer.Option(..., "--key", help="Content key (hex)."),
    decrypt_script: str = typer.Option(
        ..., "--decrypt-script", help="Executable that decrypts one segment."
    ),
    result_path: Path = typer.Option(Path("result"), "--result", help="Output root."),
    download_path: Path = typer.Option(
        Path("download"), "--download", help="Scratch root for fetched segments."
    ),
    merge_path: Path = typer.Option(
        Path("merge"), "--merge", help="Scratch root for merged segments."
    ),
    max_segment_num: int = typer.Option(
        5, "--max-segments", "-n", help="Number of segments kept in each playlist."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration file."
    ),
    config_file: Path = config_option,
):
    """Write a configuration file."""
    if (
        config_file.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {
        "key_id": key_id,
        "key": key,
        "decrypt_script": decrypt_script,
        "result_path": result_path,
        "download_path": download_path,
        "merge_path": merge_path,
        "max_segment_num": max_segment_num,
    }
    ConfigManager(config_file).save_new_config(settings)
    console.print(f"[bold green]✓ Configuration saved to '{config_file}'[/bold green]")


@app.command(name="cycle")
def cycle_command(
    audio_index: Path = typer.Option(
        ..., "--audio-index", "-a", help="JSON snapshot of the audio segment index."
    ),
    video_index: Path = typer.Option(
        ..., "--video-index", "-V", help="JSON snapshot of the video segment index."
    ),
    token_file: Path = typer.Option(
        Path("continuity.json"),
        "--token",
        "-t",
        help="File holding the continuity token between cycles.",
    ),
    update_duration: float | None = typer.Option(
        None,
        "--update-duration",
        "-u",
        help="Nominal manifest update period in seconds.",
    ),
    max_segment_num: int | None = typer.Option(
        None, "--max-segments", "-n", help="Override the playlist window size."
    ),
    proxy: str | None = typer.Option(None, "--proxy", help="HTTP proxy URL."),
    config_file: Path = config_option,
):
    """Run one harvest cycle."""
    cli_options = {
        key: value
        for key, value in {
            "max_segment_num": max_segment_num,
            "proxy": proxy,
        }.items()
        if value is not None
    }

    async def _cycle_async():
        config = ConfigManager(config_file).load_config(cli_options)
        indexes = {
            AUDIO_TRACK: SegmentIndex.from_file(audio_index),
            VIDEO_TRACK: SegmentIndex.from_file(video_index),
        }
        store = ContinuityStore(token_file)
        try:
            result = await HarvestCycle(config).run(
                indexes, store.load(), update_duration
            )
        except HarvesterError as e:
            if e.last_committed:
                store.save(e.last_committed)
            raise
        finally:
            await close_connection_pool()
        store.save(result.to_token())
        return result

    try:
        result = asyncio.run(_cycle_async())
    except HarvesterError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    print_cycle_summary(result, console)
