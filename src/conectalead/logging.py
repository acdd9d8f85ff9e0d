"""
Logging setup.

Library modules only ever call logging.getLogger(__name__); entry points
call setup_logging() once.
"""

import logging

from rich.logging import RichHandler

from conectalead.settings import get_settings

_configured = False


def setup_logging(level: str | None = None, rich: bool = True) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name; defaults to CONECTALEAD_LOG_LEVEL
        rich: Render through rich (CLI) instead of a plain stream handler
    """
    global _configured
    if _configured:
        return

    level = (level or get_settings().LOG_LEVEL).upper()

    if rich:
        handler: logging.Handler = RichHandler(rich_tracebacks=True, show_path=False)
        fmt = "%(message)s"
    else:
        handler = logging.StreamHandler()
        fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    logging.basicConfig(level=level, format=fmt, datefmt="[%X]", handlers=[handler])

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True
