"""Logging utilities."""

import logging
import sys
import traceback
from pathlib import Path

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool = False):
    """Send log records to stderr, keeping stdout for command output."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )
    # yt-dlp's urllib3 chatter is noise at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def log_error(msg: str, exc: Exception | None = None, log_file: Path | None = None):
    """Append fatal errors to a file for bug reports."""
    log_file = log_file or Path.home() / "videostreamer_error.log"
    try:
        with open(log_file, "a", encoding="utf-8") as f:
            f.write(f"{msg}\n")
            if exc:
                f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
            f.write("-" * 50 + "\n")
    except OSError:
        logging.getLogger(__name__).warning(f"Could not write error log {log_file}")
