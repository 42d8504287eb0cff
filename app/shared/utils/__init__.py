"""Shared utilities: UTC clock."""

from app.shared.utils.clock import Clock, utc_now

__all__ = [
    "Clock",
    "utc_now",
]
