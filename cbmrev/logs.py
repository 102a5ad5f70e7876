from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(debug: bool = False, no_colors: bool = False) -> None:
    """Sends log records to stderr through rich. Only the CLI calls this."""
    console = Console(stderr=True, no_color=no_colors, highlight=not no_colors)
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=debug, rich_tracebacks=True)],
        force=True,
    )
