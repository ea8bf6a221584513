"""Shared utilities: injectable clock and deadline helpers."""

from consensus.utils.clock import Clock, FrozenClock, SystemClock
from consensus.utils.dates import add_business_days, default_deadline, parse_deadline

__all__ = [
    "Clock",
    "SystemClock",
    "FrozenClock",
    "add_business_days",
    "default_deadline",
    "parse_deadline",
]
