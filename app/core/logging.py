"""
Logging configuration.

Modules log through `logging.getLogger(__name__)`; this sets up the root handlers once.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> None:
    """
    Configure root logging.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file to mirror log output into
        format_string: Optional custom format string
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=format_string or DEFAULT_FORMAT,
        handlers=handlers,
        force=True
    )

    # pymongo is chatty at DEBUG
    logging.getLogger("pymongo").setLevel(logging.WARNING)
