"""
Logging configuration for hookrun.

Console output goes to stderr. A log file is added when one is given or
$HOOKRUN_LOG_FILE is set; HOOKRUN_LOG_FSYNC=1 makes every flush durable.
"""

import logging
import sys
import os
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_FALSE_VALUES = {"", "0", "false", "no", "off"}


class SyncFileHandler(logging.FileHandler):
    """FileHandler that fsyncs after each flush when `sync` is set.

    Hooks run right before or after a job; the log must survive a node
    going down in between.
    """

    def __init__(self, filename, sync: bool = False):
        super().__init__(filename, mode="a", encoding="utf-8")
        self.sync = sync

    def flush(self):
        super().flush()
        if not self.sync or self.stream is None:
            return
        try:
            os.fsync(self.stream.fileno())
        except OSError:
            # e.g. EINVAL on a pipe or special file
            pass


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() not in _FALSE_VALUES


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
    console_level: Optional[str] = None,
) -> logging.Logger:
    """
    Setup logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path; falls back to $HOOKRUN_LOG_FILE.
            Without either, only the console handler is installed.
        format_string: Custom format string
        console_level: Level of the stderr handler (default WARNING)

    Returns:
        Configured logger
    """
    if format_string is None:
        format_string = DEFAULT_FORMAT

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    # Clear existing handlers
    for h in list(root.handlers):
        root.removeHandler(h)

    if log_file is None and os.environ.get("HOOKRUN_LOG_FILE"):
        log_file = Path(os.environ["HOOKRUN_LOG_FILE"])

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = SyncFileHandler(log_path, sync=_env_flag("HOOKRUN_LOG_FSYNC"))
        fh.setFormatter(logging.Formatter(format_string))
        fh.setLevel(getattr(logging, level.upper()))
        root.addHandler(fh)

    # Console goes to stderr; stdout is kept for command output.
    ch = logging.StreamHandler(sys.stderr)
    ch_level = console_level or "WARNING"
    ch.setLevel(getattr(logging, ch_level.upper()))
    ch.setFormatter(logging.Formatter(format_string))
    root.addHandler(ch)

    return logging.getLogger("hookrun")
