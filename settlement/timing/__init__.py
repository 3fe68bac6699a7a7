from .timestamps import (
    InvalidTimestampFormat,
    format_instant,
    resolve_instant,
    utc_now,
    window_elapsed,
)

__all__ = [
    "InvalidTimestampFormat",
    "format_instant",
    "resolve_instant",
    "utc_now",
    "window_elapsed",
]
