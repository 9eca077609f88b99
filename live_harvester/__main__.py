"""
Main entry point for the live-harvester application.
This module handles top-level setup, exception handling, and CLI invocation.
"""

import asyncio
import logging
import sys

import typer
from rich.console import Console

from live_harvester.cli.app import app
from live_harvester.cli.formatters import format_error_with_suggestions
from live_harvester.exceptions import HarvesterError


def main() -> None:
    """Main entry point function."""
    log = logging.getLogger("live_harvester")
    console = Console()

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]⚠️  Cycle cancelled by user.[/yellow]")
        sys.exit(130)
    except HarvesterError as e:
        console.print(f"\n{format_error_with_suggestions(e)}")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n{format_error_with_suggestions(e, {'type': 'Unexpected'})}")
        log.debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
