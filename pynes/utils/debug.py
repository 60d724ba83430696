"""Category-based debug logging for the 6502 core.

Enable with ``PYNES_DEBUG=cpu,mem`` (or ``all``) in the environment.
"""

from __future__ import annotations

import os
from typing import Iterable

ENV_VAR = "PYNES_DEBUG"

_CATEGORIES: set[str] | None = None


def _load_categories() -> set[str]:
    global _CATEGORIES
    if _CATEGORIES is not None:
        return _CATEGORIES
    value = os.environ.get(ENV_VAR, "")
    parts: Iterable[str] = (part.strip().lower() for part in value.split(","))
    _CATEGORIES = {part for part in parts if part}
    return _CATEGORIES


def reload_debug_categories() -> set[str]:
    """Re-read ``PYNES_DEBUG``; the value is cached after first use."""

    global _CATEGORIES
    _CATEGORIES = None
    return _load_categories()


def debug_enabled(category: str | None = None) -> bool:
    categories = _load_categories()
    if not categories:
        return False
    if "all" in categories or category is None:
        return True
    return category.lower() in categories


def debug_log(category: str, message: str, *args) -> None:
    if not debug_enabled(category):
        return
    if args:
        try:
            message = message % args
        except (TypeError, ValueError):
            message = f"{message} {args!r}"
    print(f"[PYNES][{category}] {message}")
