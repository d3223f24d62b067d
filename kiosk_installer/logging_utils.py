from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .lib.host import Host

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_COLORS = {
    logging.DEBUG: "\033[0;34m",
    logging.INFO: "\033[0;34m",
    SUCCESS: "\033[0;32m",
    logging.WARNING: "\033[1;33m",
    logging.ERROR: "\033[0;31m",
    logging.CRITICAL: "\033[0;31m",
}
_RESET = "\033[0m"


def log_success(logger: logging.Logger, msg: str, *args) -> None:
    logger.log(SUCCESS, msg, *args)


class ColorFormatter(logging.Formatter):
    """Colour the ``[ts] LEVEL:`` prefix; the message itself stays plain."""

    def format(self, record: logging.LogRecord) -> str:
        color = _COLORS.get(record.levelno)
        if not color:
            return super().format(record)
        prefix = f"[{self.formatTime(record, self.datefmt)}] {record.levelname}:"
        line = super().format(record)
        if line.startswith(prefix):
            return f"{color}{prefix}{_RESET}{line[len(prefix):]}"
        return line


class QuietFileHandler(logging.FileHandler):
    """File handler whose write failures never reach the caller."""

    def handleError(self, record: logging.LogRecord) -> None:
        pass


def prepare_log_file(log_path: str, host: "Host") -> bool:
    """Create the log file and hand it to the invoking user.

    Uses non-interactive sudo so it never prompts; any failure just means
    logging stays console-only. Returns True if the file is writable.
    """

    if host.dry_run:
        return os.access(log_path, os.W_OK)

    for argv in (
        ["sudo", "-n", "touch", log_path],
        ["sudo", "-n", "chown", host.username(), log_path],
        ["sudo", "-n", "chmod", "644", log_path],
    ):
        r = host.runner(argv, check=False)
        if not r.ok:
            break
    return os.access(log_path, os.W_OK)


def configure_logging(
    log_path: Optional[str] = None,
    level: int = logging.INFO,
    also_console: bool = True,
) -> Optional[str]:
    """Configure the root logger once.

    Every line is ``[YYYY-mm-dd HH:MM:SS] LEVEL: message``. The log file is
    only attached when it is already writable; otherwise output is
    console-only. Returns the file path in use, or None.
    """

    logger = logging.getLogger()
    logger.setLevel(level)

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(logger, "_kiosk_configured", False):
        return getattr(logger, "_kiosk_log_path", None)

    chosen_path: Optional[str] = None
    handlers: list[logging.Handler] = []

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_path and os.access(log_path, os.W_OK):
        try:
            file_handler = QuietFileHandler(log_path, mode="a", encoding="utf-8")
        except OSError:
            file_handler = None
        if file_handler is not None:
            file_handler.setFormatter(fmt)
            handlers.append(file_handler)
            chosen_path = log_path

    if also_console:
        console = logging.StreamHandler(sys.stdout)
        if console.stream.isatty():
            console.setFormatter(ColorFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        else:
            console.setFormatter(fmt)
        handlers.append(console)

    for h in handlers:
        logger.addHandler(h)

    setattr(logger, "_kiosk_configured", True)
    setattr(logger, "_kiosk_handlers", handlers)
    setattr(logger, "_kiosk_log_path", chosen_path)

    if chosen_path is None and log_path:
        logging.getLogger(__name__).info("Log file %s not writable; logging to console only", log_path)
    return chosen_path


def reset_logging() -> None:
    """Drop handlers installed by configure_logging (used by tests and re-runs)."""

    logger = logging.getLogger()
    for h in getattr(logger, "_kiosk_handlers", []):
        logger.removeHandler(h)
        h.close()
    setattr(logger, "_kiosk_handlers", [])
    setattr(logger, "_kiosk_configured", False)
    setattr(logger, "_kiosk_log_path", None)
