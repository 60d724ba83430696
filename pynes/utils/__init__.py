"""Diagnostics helpers for the 6502 core."""

from .debug import debug_enabled, debug_log, reload_debug_categories
from .trace import TraceEntry, TraceRecorder

__all__ = [
    "debug_enabled",
    "debug_log",
    "reload_debug_categories",
    "TraceEntry",
    "TraceRecorder",
]
