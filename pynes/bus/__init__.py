"""Memory helpers for the 6502 core."""

from .memory import ADDRESS_SPACE, Memory

__all__ = [
    "ADDRESS_SPACE",
    "Memory",
]
