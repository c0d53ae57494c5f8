"""Centralized console logging with Rich formatting.

This module provides:
1. Icon vocabulary (Icon class namespace)
2. Level-based styling
3. Core log functions (log, info, warn, error)
4. Domain helpers for the headless watcher (connected, status_event, ...)
5. Structlog configuration (configure, get_structlog)

Console output uses Rich markup for colors. JSON file output via structlog
remains separate (machine-parseable, no colors).
"""

from __future__ import annotations

import logging
import logging.handlers
from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from rich.console import Console
from rich.markup import escape

from promecieus.formatting import VARIANT_STYLES, entry_variant, format_quota

if TYPE_CHECKING:
    from promecieus.config import Config
    from promecieus.protocol import Quota, StatusEvent

# Rich console for colorful human-readable output
_console = Console(highlight=False)


# ─────────────────────────────────────────────────────────────────────────────
# Icons
# ─────────────────────────────────────────────────────────────────────────────


class Icon:
    """Icon vocabulary for console output."""

    OK = "[bold green]✓[/]"
    FAIL = "[bold red]✗[/]"
    WAIT = "⏳"
    SPINNER = "[cyan]◌[/]"
    LINK = "🔗"
    JOB = "📦"
    QUOTA = "[magenta]▤[/]"
    CONNECTED = "[green]⬤[/]"
    DISCONNECTED = "[red]⬤[/]"


# ─────────────────────────────────────────────────────────────────────────────
# Level Styles
# ─────────────────────────────────────────────────────────────────────────────

_LEVEL_STYLES = {
    "info": "[bright_blue]\\[info][/]",
    "warn": "[yellow]\\[warn][/]",
    "error": "[bold red]\\[err][/] ",
}

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


# ─────────────────────────────────────────────────────────────────────────────
# Core Functions
# ─────────────────────────────────────────────────────────────────────────────


def log(level: str, msg: str, icon: str = "") -> None:
    """Print a log message with timestamp and level.

    Args:
        level: Log level (info, warn, error)
        msg: Message to print (can include Rich markup)
        icon: Optional icon to show after level (e.g., Icon.OK)
    """
    ts = datetime.now().strftime("%H:%M:%S")
    lvl = _LEVEL_STYLES.get(level, f"[{level}]")
    icon_part = f" {icon}" if icon else ""
    _console.print(f"[dim]{ts}[/] {lvl}{icon_part} {msg}")


def info(msg: str, icon: str = "") -> None:
    """Log an info message."""
    log("info", msg, icon)


def warn(msg: str, icon: str = "") -> None:
    """Log a warning message."""
    log("warn", msg, icon)


def error(msg: str, icon: str = "") -> None:
    """Log an error message."""
    log("error", msg, icon)


# ─────────────────────────────────────────────────────────────────────────────
# Domain Helpers
# ─────────────────────────────────────────────────────────────────────────────


def connected(url: str) -> None:
    """Log status feed connected."""
    info(f"Connected to [cyan]{escape(url)}[/]", Icon.CONNECTED)


def disconnected(retry_in_ms: int | None) -> None:
    """Log status feed closed, with the scheduled retry if any."""
    if retry_in_ms is None:
        info("Socket is closed", Icon.DISCONNECTED)
    else:
        info(
            f"Socket is closed. Reconnect in [cyan]{retry_in_ms / 1000:g}s[/]",
            Icon.DISCONNECTED,
        )


def submitted(url: str) -> None:
    """Log a job submission."""
    info(f"Submitted [cyan]{escape(url)}[/]", Icon.WAIT)


def submit_dropped() -> None:
    """Log a submission lost to a reconnect window."""
    warn("Not connected, submission dropped")


def status_event(event: StatusEvent) -> None:
    """Print one status feed entry, styled by its display variant."""
    variant = entry_variant(event.kind)
    if variant is None:
        return
    style = VARIANT_STYLES[variant]
    text = escape(event.payload.strip())
    if event.kind == "progress":
        info(f"[{style}]{text}[/]", Icon.SPINNER)
    elif event.kind == "link":
        info(f"[link={event.payload}]{text}[/link]", Icon.LINK)
    elif event.kind == "failure":
        error(f"[{style}]{text}[/]", Icon.FAIL)
    elif event.kind == "done":
        info(f"[{style}]{text}[/]", Icon.OK)
    else:
        info(f"[{style}]{text}[/]")


def job_labelled(job_id: str) -> None:
    """Log the service assigning a job label."""
    info(f"Job [bold cyan]{escape(job_id)}[/]", Icon.JOB)


def quota_updated(quota: Quota) -> None:
    """Log a resource quota update."""
    info(f"Resource quota [cyan]{format_quota(quota)}[/]", Icon.QUOTA)


# ─────────────────────────────────────────────────────────────────────────────
# Structlog Configuration
# ─────────────────────────────────────────────────────────────────────────────


def _add_source(source: str) -> structlog.types.Processor:
    """Create a processor that adds a source field to log events."""

    def processor(
        logger: structlog.types.WrappedLogger,
        method_name: str,
        event_dict: structlog.types.EventDict,
    ) -> structlog.types.EventDict:
        event_dict["source"] = source
        return event_dict

    return processor


def configure(config: Config, source: str = "client") -> None:
    """Configure structlog to write JSON Lines to a rotating log file.

    Console output stays with the Rich helpers above; the TUI owns the
    terminal, so nothing structured is printed there.

    Args:
        config: Application config with paths and logging settings
        source: Value of the ``source`` field on every record
    """
    config.state_dir.mkdir(parents=True, exist_ok=True)
    level = _LEVELS.get(config.logging.level, logging.INFO)

    file_handler = logging.handlers.RotatingFileHandler(
        config.log_path,
        maxBytes=config.logging.log_max_bytes,
        backupCount=config.logging.log_backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(level)

    stdlib_root = logging.getLogger()
    stdlib_root.setLevel(level)
    stdlib_root.handlers.clear()

    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
                structlog.processors.add_log_level,
                _add_source(source),
                structlog.processors.format_exc_info,
            ],
        )
    )
    stdlib_root.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
            structlog.processors.add_log_level,
            _add_source(source),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_structlog() -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance for JSON file output."""
    return structlog.get_logger()
