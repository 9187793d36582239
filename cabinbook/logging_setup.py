"""
Root logger setup for the command-line front end.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("urllib3", "requests")


def configure_logging(level: str = "INFO") -> None:
    """
    Route all log records through a Rich handler on stderr.

    Safe to call repeatedly; existing root handlers are replaced.
    """
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
