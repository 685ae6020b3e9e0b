"""Console logging setup."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(debug: bool = False) -> None:
    """Route all log records through rich on stderr."""
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=debug,
        rich_tracebacks=True,
        log_time_format="[%Y-%m-%dT%H:%M:%S]",
    )
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(name)s: %(message)s",
        handlers=[handler],
        force=True,
    )
    # Third-party clients are chatty at DEBUG.
    for name in ("urllib3", "kubernetes", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
