"""Utility functions."""

from .datetime import ensure_utc, from_iso, now_utc, timestamp, to_iso
from .links import build_share_link

__all__ = [
    "build_share_link",
    "ensure_utc",
    "from_iso",
    "now_utc",
    "timestamp",
    "to_iso",
]
