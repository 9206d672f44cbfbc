"""
Structured logging setup built on structlog.

One call to configure_logging() at process start wires:
- JSON lines for production, colored console output when debug is on
- request-scoped context (request_id, session_id) via contextvars
- a per-run log file under logs/, older runs pruned
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import structlog
from structlog.typing import Processor

from mvp_builder.core.config import settings

LOG_FILE_PREFIX = "mvp_builder_"


def _prune_run_logs(logs_dir: Path, keep: int) -> List[Path]:
    """Remove all but the `keep` newest run logs. Returns the removed paths."""
    run_logs = sorted(
        logs_dir.glob(f"{LOG_FILE_PREFIX}*.log"),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )
    removed = []
    for stale in run_logs[keep:]:
        stale.unlink(missing_ok=True)
        removed.append(stale)
    return removed


def configure_logging(
    logs_dir: Optional[Path] = None, runs_to_keep: int = 5
) -> Path:
    """Configure structlog and the stdlib root logger.

    Args:
        logs_dir: Directory for run logs (default: ./logs)
        runs_to_keep: How many run logs survive, including the new one

    Returns:
        Path of the log file opened for this run
    """
    logs_dir = logs_dir or Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)
    _prune_run_logs(logs_dir, keep=max(runs_to_keep - 1, 0))

    run_stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = logs_dir / f"{LOG_FILE_PREFIX}{run_stamp}.log"

    level = logging.DEBUG if settings.debug else logging.INFO

    shared: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]

    if settings.debug:
        renderers: List[Processor] = [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        renderers = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    # Reset handlers so tests and reloads do not stack duplicates
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    root.setLevel(level)

    for handler in (logging.StreamHandler(), logging.FileHandler(log_file, mode="w")):
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)

    structlog.configure(
        processors=shared + renderers,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return log_file


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a logger instance with the given name.

    Usage:
        from mvp_builder.core.logging import get_logger

        log = get_logger(__name__)
        log.info("stage_completed", session_id="abc", stage="market-research")
    """
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """Bind request-scoped values (request_id, session_id) to every later log line."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop all request-scoped values bound with bind_context()."""
    structlog.contextvars.clear_contextvars()
