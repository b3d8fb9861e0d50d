"""Structured logging setup for CareerPath.

Every module logs snake_case events through ``get_logger(__name__)`` with
keyword context (``user_id``, ``status``, ``count`` ...). Events are written
as one JSON object per line so a session can be replayed with ``jq``.

Which level an event uses:

- DEBUG: request payloads, raw model replies, mentor state changes,
  cache reads
- INFO: entries saved, predictions replaced, mentor turns started and
  completed, no entries to predict from
- WARNING: the work continued in a degraded way (analysis or prediction
  fallback, dropped stream line, missing sign-in, corrupt local cache)
- ERROR: the work did not complete (store failures, classified transport
  failures, bad configuration)
"""

import os
from pathlib import Path
from typing import Any, Optional

import structlog


DEFAULT_LOG_DIR = Path.home() / ".cache" / "careerpath" / "logs"
LOG_LEVEL_ENV = "CAREERPATH_LOG_LEVEL"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def resolve_log_level() -> str:
    """Level named by CAREERPATH_LOG_LEVEL, or INFO when unset or unknown."""
    level = os.environ.get(LOG_LEVEL_ENV, "INFO").strip().upper()
    return level if level in LOG_LEVELS else "INFO"


def configure_logging(log_dir: Optional[Path] = None) -> Path:
    """
    Send structlog output to ``careerpath.log`` in ``log_dir``.

    Args:
        log_dir: Directory for the log file, created if missing. Defaults to
            ~/.cache/careerpath/logs

    Returns:
        Path of the log file being appended to

    Example:
        CAREERPATH_LOG_LEVEL=DEBUG careerpath chat
        tail -f ~/.cache/careerpath/logs/careerpath.log | jq .
    """
    log_dir = Path(log_dir) if log_dir is not None else DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "careerpath.log"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(resolve_log_level()),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=open(log_file, "a")),
        cache_logger_on_first_use=False,
    )
    return log_file


def get_logger(name: str) -> Any:
    """Bound structlog logger for ``name`` (pass the module's ``__name__``)."""
    return structlog.get_logger(name)
