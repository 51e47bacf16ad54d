"""
Structured Logging

One logger per module via get_logger(__name__). Records may carry engine
context through ``extra=`` (patient_id, as_of_cycle, component); the
formatter appends it as key=value pairs so every line for one patient can
be grepped out of a batch run.

Nothing is configured on import. The host service calls setup_logging()
once at startup.
"""
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

CONTEXT_FIELDS = ("patient_id", "as_of_cycle", "component")
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s%(context)s"


def _context(record: logging.LogRecord) -> str:
    pairs = [
        f"{key}={getattr(record, key)}"
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    ]
    return " ".join(pairs)


class StructuredFormatter(logging.Formatter):
    """Single-line records: UTC timestamp, level, logger name, message, context."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'
    }

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        line = f"[{timestamp}] {record.levelname:8} [{record.name}] {record.getMessage()}"

        context = _context(record)
        if context:
            line += f" | {context}"

        if self.use_color:
            line = f"{self.COLORS.get(record.levelname, '')}{line}{self.COLORS['RESET']}"

        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"
        return line


class _FileContextFilter(logging.Filter):
    """Exposes the context pairs to the plain file format as %(context)s."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _context(record)
        record.context = f" | {context}" if context else ""
        return True


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    use_color: Optional[bool] = None,
) -> None:
    """
    Configure application-wide logging.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to settings.log_level.
        log_file: Optional file path for log output. Defaults to settings.log_file.
        use_color: ANSI colours on stdout. Defaults to whether stdout is a terminal.
    """
    from renalguard.config import settings

    level = (level or settings.log_level).upper()
    log_file = log_file or settings.log_file
    if use_color is None:
        use_color = sys.stdout.isatty()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter(use_color=use_color))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.addFilter(_FileContextFilter())
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root_logger.addHandler(file_handler)


def log_context(patient_id: Optional[str] = None, as_of_cycle: Optional[int] = None, **fields: Any) -> Dict[str, Any]:
    """Build the ``extra=`` mapping for a context-carrying log call."""
    extra: Dict[str, Any] = {"patient_id": patient_id, "as_of_cycle": as_of_cycle}
    extra.update(fields)
    return extra


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Module name (typically __name__)
    """
    return logging.getLogger(name)
