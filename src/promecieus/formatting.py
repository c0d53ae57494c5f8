"""Formatting utilities for consistent output across CLI and TUI."""

from promecieus.protocol import DONE, FAILURE, LINK, PROGRESS, STATUS, Quota

# Display variant per status feed kind. Kinds not listed render as nothing.
_VARIANTS = {
    STATUS: "info",
    PROGRESS: "info",
    FAILURE: "danger",
    DONE: "success",
    LINK: "primary",
}

# Rich styles used by the console watcher
VARIANT_STYLES = {
    "info": "bright_blue",
    "danger": "bold red",
    "success": "green",
    "primary": "magenta",
}


def entry_variant(kind: str) -> str | None:
    """Return the display variant for an event kind, or None if it isn't shown."""
    return _VARIANTS.get(kind)


def format_number(value: float) -> str:
    """Format a quota number without a trailing ``.0`` for whole values."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def format_quota(quota: Quota | None) -> str:
    """Format quota usage as ``used/hard``.

    Returns:
        Formatted string, or "" when there is no quota to show
    """
    if quota is None:
        return ""
    return f"{format_number(quota.used)}/{format_number(quota.hard)}"


def quota_fraction(quota: Quota) -> float:
    """Fraction of the hard limit in use, clamped to [0, 1].

    A zero hard limit (nothing reported yet) reads as empty.
    """
    if quota.hard <= 0:
        return 0.0
    return max(0.0, min(1.0, quota.used / quota.hard))


def format_retry(retry_in_ms: int | None) -> str:
    """Format a pending reconnect delay for status lines."""
    if retry_in_ms is None:
        return "reconnecting..."
    return f"reconnecting in {retry_in_ms / 1000:g}s..."
